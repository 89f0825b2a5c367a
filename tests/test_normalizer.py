"""
Tests for package normalization.
"""

import pytest

from tooth_index.core.exceptions import NormalizationError
from tooth_index.core.interfaces import Contributor, Package, PackageManager, Version, VersionSource
from tooth_index.core.normalizer import (
    dedupe_tags, dedupe_versions, normalize_package, normalize_timestamp, parse_timestamp, sort_versions
)


def version(number, released_at, source=VersionSource.GITHUB):
    return Version(number, released_at, source, PackageManager.PIP)


def raw_package(versions, tags=None):
    return Package(
        identifier="github.com/owner/repo",
        name="repo",
        tags=tags or ["platform:endstone"],
        contributors=[Contributor("owner", 1)],
        versions=versions,
    )


class TestTimestamps:
    """Test timestamp parsing and rendering."""

    def test_normalize_timestamp_z_suffix(self):
        assert normalize_timestamp("2024-01-01T00:00:00Z") == "2024-01-01T00:00:00.000Z"

    def test_normalize_timestamp_converts_offset_to_utc(self):
        assert normalize_timestamp("2024-01-01T08:00:00+08:00") == "2024-01-01T00:00:00.000Z"

    def test_normalize_timestamp_truncates_to_milliseconds(self):
        assert normalize_timestamp("2024-01-16T08:00:00.123456Z") == "2024-01-16T08:00:00.123Z"

    def test_naive_timestamp_is_utc(self):
        assert normalize_timestamp("2024-01-01T00:00:00") == "2024-01-01T00:00:00.000Z"

    def test_invalid_timestamp(self):
        with pytest.raises(NormalizationError):
            parse_timestamp("yesterday")

    def test_normalized_timestamps_sort_as_strings(self):
        earlier = normalize_timestamp("2024-01-02T01:00:00+05:00")
        later = normalize_timestamp("2024-01-01T22:00:00Z")
        assert earlier < later


class TestDedupeVersions:
    """Test version deduplication across sources."""

    def test_first_seen_by_source_priority_wins(self):
        versions = [
            version("1.0.0", "2023-06-01T00:00:00.000Z", VersionSource.PYPI),
            version("1.0.0", "2023-01-01T00:00:00.000Z", VersionSource.GITHUB),
        ]
        kept = dedupe_versions(versions)
        assert len(kept) == 1
        assert kept[0].source == VersionSource.GITHUB
        assert kept[0].released_at == "2023-01-01T00:00:00.000Z"

    def test_custom_priority(self):
        versions = [
            version("1.0.0", "2023-01-01T00:00:00.000Z", VersionSource.GITHUB),
            version("1.0.0", "2023-06-01T00:00:00.000Z", VersionSource.PYPI),
        ]
        kept = dedupe_versions(versions, [VersionSource.PYPI, VersionSource.GITHUB])
        assert [v.source for v in kept] == [VersionSource.PYPI]

    def test_same_source_keeps_observed_order(self):
        versions = [
            version("1.0.0", "2023-01-01T00:00:00.000Z"),
            version("1.0.0", "2023-02-01T00:00:00.000Z"),
        ]
        assert dedupe_versions(versions)[0].released_at == "2023-01-01T00:00:00.000Z"

    def test_unlisted_source_ranks_last(self):
        versions = [
            version("1.0.0", "2023-06-01T00:00:00.000Z", VersionSource.GOPROXY),
            version("1.0.0", "2023-01-01T00:00:00.000Z", VersionSource.PYPI),
        ]
        kept = dedupe_versions(versions, [VersionSource.PYPI])
        assert kept[0].source == VersionSource.PYPI


class TestNormalizePackage:
    """Test whole-package normalization."""

    def test_versions_sorted_descending_without_duplicates(self):
        package = normalize_package(raw_package([
            version("0.1.0", "2024-01-15T00:00:00.000Z"),
            version("0.3.0", "2024-04-01T00:00:00.000Z", VersionSource.PYPI),
            version("0.2.0", "2024-03-01T00:00:00.000Z"),
            version("0.2.0", "2024-03-02T00:00:00.000Z", VersionSource.PYPI),
        ]))

        assert [v.version for v in package.versions] == ["0.3.0", "0.2.0", "0.1.0"]
        assert package.versions[1].source == VersionSource.GITHUB
        released = [v.released_at for v in package.versions]
        assert released == sorted(released, reverse=True)

    def test_updated_is_latest_release(self):
        package = normalize_package(raw_package([
            version("1.0.0", "2023-01-01T00:00:00.000Z"),
            version("1.1.0", "2023-06-01T00:00:00.000Z"),
        ]))
        assert package.updated == "2023-06-01T00:00:00.000Z"
        assert package.updated == package.versions[0].released_at

    def test_updated_follows_surviving_duplicate(self):
        package = normalize_package(raw_package([
            version("1.0.0", "2023-01-01T00:00:00Z", VersionSource.GITHUB),
            version("1.0.0", "2023-06-01T00:00:00Z", VersionSource.PYPI),
        ]))
        assert len(package.versions) == 1
        assert package.updated == "2023-01-01T00:00:00Z"

    def test_idempotent(self):
        once = normalize_package(raw_package(
            [
                version("1.0.0", "2023-01-01T00:00:00.000Z", VersionSource.PYPI),
                version("1.0.0", "2023-02-01T00:00:00.000Z"),
                version("2.0.0", "2023-03-01T00:00:00.000Z"),
            ],
            tags=["platform:endstone", "type:mod", "platform:endstone"],
        ))
        assert normalize_package(once) == once

    def test_tags_deduplicated_in_first_seen_order(self):
        package = normalize_package(raw_package(
            [version("1.0.0", "2023-01-01T00:00:00.000Z")],
            tags=["platform:levilamina", "economy", "platform:levilamina", "shop", "economy"],
        ))
        assert package.tags == ["platform:levilamina", "economy", "shop"]

    def test_input_is_not_modified(self):
        versions = [
            version("1.0.0", "2023-01-01T00:00:00.000Z"),
            version("2.0.0", "2023-03-01T00:00:00.000Z"),
        ]
        raw = raw_package(list(versions))
        normalize_package(raw)
        assert raw.versions == versions
        assert raw.updated == ""

    def test_invalid_release_time(self):
        with pytest.raises(NormalizationError):
            normalize_package(raw_package([version("1.0.0", "not a date")]))


def test_sort_versions_compares_instants():
    versions = [
        version("a", "2024-01-02T01:00:00+05:00"),
        version("b", "2024-01-01T22:00:00Z"),
    ]
    assert [v.version for v in sort_versions(versions)] == ["b", "a"]


def test_dedupe_tags():
    assert dedupe_tags(["a", "b", "a"]) == ["a", "b"]
