"""
Package normalization for tooth-index.

Fetchers build raw package records from several upstream sources. This module
reconciles them into the canonical form stored in the index: one entry per
version string, versions newest first, a derived ``updated`` timestamp and a
deduplicated tag list.
"""

import logging
from dataclasses import replace
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence

from tooth_index.core.exceptions import NormalizationError
from tooth_index.core.interfaces import Package, Version, VersionSource


logger = logging.getLogger(__name__)

# Repository host first, then the module proxy, then package registries.
DEFAULT_SOURCE_PRIORITY: List[VersionSource] = [
    VersionSource.GITHUB,
    VersionSource.GOPROXY,
    VersionSource.PYPI,
]


def parse_timestamp(value: str) -> datetime:
    """
    Parse an ISO-8601 timestamp into a timezone-aware datetime.

    Args:
        value: Timestamp string. A trailing ``Z`` is accepted; naive values
            are treated as UTC.

    Returns:
        Timezone-aware datetime.

    Raises:
        NormalizationError: If the value is not a valid ISO-8601 timestamp.
    """
    try:
        parsed = datetime.fromisoformat(value.strip())
    except (AttributeError, ValueError) as e:
        raise NormalizationError(f"Invalid timestamp {value!r}: {e}")

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def normalize_timestamp(value: str) -> str:
    """
    Render a timestamp as ``YYYY-MM-DDTHH:MM:SS.mmmZ`` in UTC.

    Stored timestamps share this form so they sort correctly as strings.
    """
    parsed = parse_timestamp(value).astimezone(timezone.utc)
    return parsed.strftime("%Y-%m-%dT%H:%M:%S.") + f"{parsed.microsecond // 1000:03d}Z"


def dedupe_versions(
    versions: Sequence[Version],
    source_priority: Optional[Sequence[VersionSource]] = None
) -> List[Version]:
    """
    Keep one entry per version string.

    Entries are ranked by source priority first (stable, so entries from the
    same source keep their observed order); the first entry seen for each
    version string wins.

    Args:
        versions: Raw version entries.
        source_priority: Sources in descending priority. Unlisted sources rank last.

    Returns:
        Deduplicated version entries in priority order.
    """
    priority = list(source_priority or DEFAULT_SOURCE_PRIORITY)
    rank: Dict[VersionSource, int] = {source: i for i, source in enumerate(priority)}

    ranked = sorted(versions, key=lambda v: rank.get(v.source, len(priority)))

    seen = set()
    kept = []
    for version in ranked:
        if version.version in seen:
            logger.debug(f"Dropping duplicate version {version.version} from {version.source.value}")
            continue
        seen.add(version.version)
        kept.append(version)
    return kept


def sort_versions(versions: Sequence[Version]) -> List[Version]:
    """Sort versions newest first by release time."""
    return sorted(versions, key=lambda v: parse_timestamp(v.released_at), reverse=True)


def dedupe_tags(tags: Sequence[str]) -> List[str]:
    """Deduplicate tags, preserving first-seen order."""
    return list(dict.fromkeys(tags))


def normalize_package(
    package: Package,
    source_priority: Optional[Sequence[VersionSource]] = None
) -> Package:
    """
    Normalize a raw package record.

    Args:
        package: Raw package as built by a fetcher.
        source_priority: Source priority for version deduplication.

    Returns:
        A new Package; the input is left untouched.

    Raises:
        NormalizationError: If a version carries an unparseable timestamp.
    """
    versions = sort_versions(dedupe_versions(package.versions, source_priority))
    updated = versions[0].released_at if versions else ""

    return replace(
        package,
        tags=dedupe_tags(package.tags),
        contributors=list(package.contributors),
        versions=versions,
        updated=updated,
    )
