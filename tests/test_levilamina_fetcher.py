"""
Tests for the LeviLamina fetcher.
"""

import unittest
from unittest import mock

from tooth_index.core.exceptions import NormalizationError
from tooth_index.core.interfaces import FetcherConfig, PackageManager, RepositoryDescriptor, VersionSource
from tooth_index.fetcher.github import GITHUB_API_URL, GITHUB_RAW_URL
from tooth_index.fetcher.levilamina import (
    GOPROXY_URL, SEARCH_QUERY, LeviLaminaFetcher, escape_for_goproxy, resolve_avatar_url, strip_go_version
)
from tests.fixtures.sample_data import (
    MockResponse, UrlRouter, code_search_response, code_search_url, levilamina_routes, tooth_json
)


DESCRIPTOR = RepositoryDescriptor("futrime", "example-mod")
TOOTH_HEAD_URL = f"{GITHUB_RAW_URL}/futrime/example-mod/HEAD/tooth.json"
MODULE_URL = f"{GOPROXY_URL}/github.com/futrime/example-mod/@v"


class TestGoProxyHelpers(unittest.TestCase):
    """Test module proxy path handling."""

    def test_escape_for_goproxy(self):
        self.assertEqual(escape_for_goproxy("LiteLDev"), "!lite!l!dev")
        self.assertEqual(escape_for_goproxy("example-mod"), "example-mod")

    def test_strip_go_version(self):
        self.assertEqual(strip_go_version("v1.2.3"), "1.2.3")
        self.assertEqual(strip_go_version("v2.0.0+incompatible"), "2.0.0")
        self.assertEqual(strip_go_version("v1.0.0-rc.1"), "1.0.0-rc.1")

    def test_module_url_escapes_owner_and_repo(self):
        fetcher = LeviLaminaFetcher(FetcherConfig())
        self.assertEqual(
            fetcher._module_url(RepositoryDescriptor("LiteLDev", "LeviLamina")),
            f"{GOPROXY_URL}/github.com/!lite!l!dev/!levi!lamina/@v"
        )


class TestResolveAvatarUrl(unittest.TestCase):
    """Test avatar URL rules."""

    def test_default_is_owner_avatar(self):
        self.assertEqual(resolve_avatar_url("owner", "repo", None), "https://avatars.githubusercontent.com/owner")
        self.assertEqual(resolve_avatar_url("owner", "repo", ""), "https://avatars.githubusercontent.com/owner")

    def test_relative_path_points_into_repository(self):
        self.assertEqual(
            resolve_avatar_url("owner", "repo", "assets/icon.png"),
            "https://raw.githubusercontent.com/owner/repo/HEAD/assets/icon.png"
        )

    def test_blob_link_is_rewritten(self):
        self.assertEqual(
            resolve_avatar_url("owner", "repo", "https://github.com/other/project/blob/main/icon.png"),
            "https://raw.githubusercontent.com/other/project/main/icon.png"
        )

    def test_absolute_urls_kept(self):
        for url in ["https://example.com/a.png", "//cdn.example.com/a.png", "/a.png", "HTTP://EXAMPLE.COM/A.PNG"]:
            with self.subTest(url=url):
                self.assertEqual(resolve_avatar_url("owner", "repo", url), url)


class TestLeviLaminaFetcher(unittest.TestCase):
    """Test the LeviLaminaFetcher class."""

    def setUp(self):
        self.config = FetcherConfig(concurrent_requests=2, retry_count=1, retry_backoff=0)
        self.fetcher = LeviLaminaFetcher(self.config)
        self.router = UrlRouter(levilamina_routes())
        patcher = mock.patch.object(self.fetcher.client.session, "get", side_effect=self.router)
        patcher.start()
        self.addCleanup(patcher.stop)

    def test_get_ecosystem_name(self):
        self.assertEqual(self.fetcher.get_ecosystem_name(), "levilamina")

    def test_resolve(self):
        package = self.fetcher.resolve(DESCRIPTOR)

        self.assertEqual(package.identifier, "github.com/futrime/example-mod")
        self.assertEqual(package.name, "Example Mod")
        self.assertEqual(package.description, "An example mod")
        self.assertEqual(package.author, "futrime")
        self.assertEqual(package.tags, ["platform:levilamina", "economy", "levilamina"])
        self.assertEqual(package.avatar_url, "https://avatars.githubusercontent.com/futrime")
        self.assertEqual(package.project_url, "https://github.com/futrime/example-mod")
        self.assertEqual(package.hotness, 42)
        self.assertEqual([c.username for c in package.contributors], ["futrime", "helper"])
        self.assertEqual(package.updated, "2024-02-01T12:30:00.000Z")

        self.assertEqual([v.version for v in package.versions], ["1.1.0", "1.0.0"])
        latest, previous = package.versions
        self.assertEqual(latest.released_at, "2024-02-01T12:30:00.000Z")
        self.assertEqual(latest.source, VersionSource.GITHUB)
        self.assertEqual(latest.package_manager, PackageManager.LIP)
        self.assertEqual(latest.platform_version_requirement, "1.0.x")
        self.assertEqual(previous.platform_version_requirement, "0.9.x")

    def test_version_without_requirement(self):
        self.router.add(
            f"{GITHUB_RAW_URL}/futrime/example-mod/v1.0.0/tooth.json",
            MockResponse(text=tooth_json("futrime", "example-mod", "1.0.0"))
        )
        package = self.fetcher.resolve(DESCRIPTOR)
        self.assertEqual(package.versions[1].platform_version_requirement, "")

    def test_relative_avatar(self):
        head = tooth_json("futrime", "example-mod", "1.1.0")
        head = head.replace('"author": "futrime"', '"author": "futrime", "avatar_url": "img/logo.png"')
        self.router.add(TOOTH_HEAD_URL, MockResponse(text=head))
        package = self.fetcher.resolve(DESCRIPTOR)
        self.assertEqual(package.avatar_url, "https://raw.githubusercontent.com/futrime/example-mod/HEAD/img/logo.png")

    def test_version_without_tagged_manifest_is_dropped(self):
        del self.router.routes[f"{GITHUB_RAW_URL}/futrime/example-mod/v1.0.0/tooth.json"]
        package = self.fetcher.resolve(DESCRIPTOR)
        self.assertEqual([v.version for v in package.versions], ["1.1.0"])

    def test_version_with_bad_info_is_dropped(self):
        self.router.add(f"{MODULE_URL}/v1.0.0.info", MockResponse(json_data={"Version": "v1.0.0"}))
        with self.assertLogs("tooth_index.fetcher.levilamina", level="ERROR"):
            package = self.fetcher.resolve(DESCRIPTOR)
        self.assertEqual([v.version for v in package.versions], ["1.1.0"])

    def test_incompatible_suffix_is_stripped(self):
        self.router.add(f"{MODULE_URL}/list", MockResponse(text="v1.1.0+incompatible\n"))
        self.router.add(
            f"{MODULE_URL}/v1.1.0+incompatible.info",
            MockResponse(json_data={"Version": "v1.1.0+incompatible", "Time": "2024-02-01T12:30:00Z"})
        )
        package = self.fetcher.resolve(DESCRIPTOR)
        self.assertEqual([v.version for v in package.versions], ["1.1.0"])

    def test_no_manifest_is_absent(self):
        del self.router.routes[TOOTH_HEAD_URL]
        self.assertIsNone(self.fetcher.resolve(DESCRIPTOR))

    def test_no_versions_is_absent(self):
        self.router.add(f"{MODULE_URL}/list", MockResponse(text=""))
        self.assertIsNone(self.fetcher.resolve(DESCRIPTOR))
        del self.router.routes[f"{MODULE_URL}/list"]
        self.assertIsNone(self.fetcher.resolve(DESCRIPTOR))

    def test_missing_repository_is_absent(self):
        del self.router.routes[f"{GITHUB_API_URL}/repos/futrime/example-mod"]
        self.assertIsNone(self.fetcher.resolve(DESCRIPTOR))

    def test_manifest_without_name(self):
        self.router.add(TOOTH_HEAD_URL, MockResponse(text='{"format_version": 2, "info": {}}'))
        with self.assertRaises(NormalizationError):
            self.fetcher.resolve(DESCRIPTOR)

    def test_invalid_manifest_json(self):
        self.router.add(TOOTH_HEAD_URL, MockResponse(text="{not json"))
        with self.assertRaises(NormalizationError):
            self.fetcher.fetch_tooth(DESCRIPTOR, "HEAD")

    def test_fetch_skips_absent_candidates(self):
        for url, response in levilamina_routes("futrime", "mod-c", stars=5).items():
            self.router.add(url, response)
        self.router.add(
            f"{GITHUB_API_URL}/repos/futrime/mod-b",
            MockResponse(json_data={"name": "mod-b", "stargazers_count": 1})
        )
        self.router.add(code_search_url(SEARCH_QUERY, 1), MockResponse(json_data=code_search_response([
            ("futrime", "example-mod"), ("futrime", "mod-b"), ("futrime", "mod-c"),
        ])))

        identifiers = sorted(p.identifier for p in self.fetcher.fetch())

        self.assertEqual(identifiers, ["github.com/futrime/example-mod", "github.com/futrime/mod-c"])
        self.assertIn(f"{GITHUB_RAW_URL}/futrime/mod-b/HEAD/tooth.json", self.router.requested)


if __name__ == "__main__":
    unittest.main()
