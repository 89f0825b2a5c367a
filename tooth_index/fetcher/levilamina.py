"""
LeviLamina package fetcher for tooth-index.

LeviLamina mods ship a ``tooth.json`` manifest at the repository root and are
versioned through git tags, which the Go module proxy lists and timestamps.
"""

import json
import logging
import re
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, Iterator, List, Optional

from tooth_index.core.exceptions import NormalizationError
from tooth_index.core.interfaces import (
    Package, PackageManager, RepositoryDescriptor, Version, VersionSource
)
from tooth_index.core.normalizer import normalize_package, normalize_timestamp
from tooth_index.fetcher.base import gather
from tooth_index.fetcher.github import GITHUB_RAW_URL, GitHubFetcher


logger = logging.getLogger(__name__)

# Matches tooth.json files that declare LeviLamina in a format_version 2 manifest.
SEARCH_QUERY = (
    'path:/+filename:tooth.json+"format_version"+2+"tooth"+"version"+"info"'
    '+"name"+"description"+"author"+"tags"+"github.com/LiteLDev/LeviLamina"'
)
PLATFORM_TOOTH = "github.com/LiteLDev/LeviLamina"
GOPROXY_URL = "https://goproxy.io"

_ABSOLUTE_URL_RE = re.compile(r'^(?:[a-z+]+:)?/', re.IGNORECASE)
_GITHUB_BLOB_RE = re.compile(r'^https://github\.com/([A-Za-z0-9-]+)/([\w.-]+)/blob/(.+)')


def escape_for_goproxy(path: str) -> str:
    """Escape a module path element for the Go module proxy (``A`` -> ``!a``)."""
    return re.sub(r'[A-Z]', lambda m: f"!{m.group(0).lower()}", path)


def strip_go_version(go_version: str) -> str:
    """Turn a Go module version (``v1.2.0+incompatible``) into a plain semver string."""
    return re.sub(r'^v', '', go_version).replace('+incompatible', '')


def resolve_avatar_url(owner: str, repo: str, avatar_url: Optional[str]) -> str:
    """
    Resolve the avatar declared in a tooth manifest to an absolute URL.

    Args:
        owner: Repository owner.
        repo: Repository name.
        avatar_url: ``info.avatar_url`` from the manifest, if any.

    Returns:
        Absolute avatar URL. Relative paths point into the repository at HEAD
        and GitHub ``blob`` links are rewritten to raw-content links.
    """
    url = avatar_url or f"https://avatars.githubusercontent.com/{owner}"

    if not _ABSOLUTE_URL_RE.match(url):
        url = f"{GITHUB_RAW_URL}/{owner}/{repo}/HEAD/{url}"

    match = _GITHUB_BLOB_RE.match(url)
    if match is not None:
        url = f"{GITHUB_RAW_URL}/{match.group(1)}/{match.group(2)}/{match.group(3)}"

    return url


class LeviLaminaFetcher(GitHubFetcher):
    """
    Fetcher for LeviLamina mods.
    """

    def get_ecosystem_name(self) -> str:
        return "levilamina"

    def discover(self) -> Iterator[RepositoryDescriptor]:
        for descriptor in self.search_repositories(SEARCH_QUERY):
            # Skip LeviLamina itself
            if descriptor.owner == "LiteLDev" and descriptor.repo == "LeviLamina":
                continue
            yield descriptor

    def resolve(self, descriptor: RepositoryDescriptor) -> Optional[Package]:
        logger.debug(f"LeviLaminaFetcher.resolve({descriptor.full_name})")

        repository, contributors, tooth, versions = gather(
            lambda: self.get_repository(descriptor),
            lambda: self.list_contributors(descriptor),
            lambda: self.fetch_tooth(descriptor, "HEAD"),
            lambda: self.fetch_versions(descriptor),
        )

        if tooth is None:
            logger.debug(f"No tooth.json in {descriptor.full_name}")
            return None
        if not versions:
            logger.debug(f"No versions for {descriptor.full_name}")
            return None
        if repository is None:
            logger.debug(f"Repository {descriptor.full_name} not found")
            return None

        info = tooth.get("info")
        if not isinstance(info, dict) or not isinstance(info.get("name"), str):
            raise NormalizationError(f"tooth.json of {descriptor.full_name} has no info.name")

        package = Package(
            identifier=self.identifier_for(descriptor),
            name=info["name"],
            description=info.get("description") or "",
            author=descriptor.owner,
            tags=[
                f"platform:{self.get_ecosystem_name()}",
                *(info.get("tags") or []),
                *(repository.get("topics") or []),
            ],
            avatar_url=resolve_avatar_url(descriptor.owner, descriptor.repo, info.get("avatar_url")),
            project_url=self.project_url_for(descriptor),
            hotness=int(repository.get("stargazers_count") or 0),
            contributors=contributors,
            versions=versions,
        )

        return normalize_package(package, self.source_priority)

    def fetch_tooth(self, descriptor: RepositoryDescriptor, ref: str) -> Optional[Dict[str, Any]]:
        """
        Fetch and parse tooth.json at a revision.

        Returns:
            Parsed manifest, or None if it does not exist at that revision.

        Raises:
            NormalizationError: If the manifest is not a JSON object.
        """
        text = self.fetch_raw_file(descriptor, ref, "tooth.json")
        if text is None:
            return None

        try:
            data = json.loads(text)
        except ValueError as e:
            raise NormalizationError(f"Invalid tooth.json in {descriptor.full_name}@{ref}: {e}")
        if not isinstance(data, dict):
            raise NormalizationError(f"tooth.json in {descriptor.full_name}@{ref} is not an object")
        return data

    def _module_url(self, descriptor: RepositoryDescriptor) -> str:
        owner = escape_for_goproxy(descriptor.owner)
        repo = escape_for_goproxy(descriptor.repo)
        return f"{GOPROXY_URL}/github.com/{owner}/{repo}/@v"

    def fetch_go_version_info(self, descriptor: RepositoryDescriptor, go_version: str) -> Optional[Dict[str, Any]]:
        return self.client.get_json(f"{self._module_url(descriptor)}/{go_version}.info")

    def fetch_versions(self, descriptor: RepositoryDescriptor) -> List[Version]:
        """
        Fetch all versions of a package from the Go module proxy.

        Each listed version needs both its proxy metadata and its tooth.json;
        versions missing either are dropped.

        Args:
            descriptor: Repository to query.

        Returns:
            Versions in proxy list order.
        """
        text = self.client.get_text(f"{self._module_url(descriptor)}/list")
        if text is None:
            return []

        go_versions = [line.strip() for line in text.split('\n') if line.strip()]
        if not go_versions:
            return []

        with ThreadPoolExecutor(max_workers=self.config.concurrent_requests) as executor:
            results = executor.map(lambda v: self._resolve_version(descriptor, v), go_versions)
            return [version for version in results if version is not None]

    def _resolve_version(self, descriptor: RepositoryDescriptor, go_version: str) -> Optional[Version]:
        version = strip_go_version(go_version)

        try:
            info, tooth = gather(
                lambda: self.fetch_go_version_info(descriptor, go_version),
                lambda: self.fetch_tooth(descriptor, f"v{version}"),
            )

            if info is None or tooth is None:
                return None

            dependencies = tooth.get("dependencies") or {}
            prerequisites = tooth.get("prerequisites") or {}
            requirement = dependencies.get(PLATFORM_TOOTH) or prerequisites.get(PLATFORM_TOOTH) or ""

            return Version(
                version=version,
                released_at=normalize_timestamp(info["Time"]),
                source=VersionSource.GITHUB,
                package_manager=PackageManager.LIP,
                platform_version_requirement=requirement,
            )
        except Exception as e:
            logger.error(f"Failed to fetch version {go_version} for package {descriptor.full_name}: {e}")
            return None
