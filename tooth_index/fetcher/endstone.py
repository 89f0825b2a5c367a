"""
Endstone Python plugin fetcher for tooth-index.

Endstone plugins are Python projects that declare an ``endstone`` entry point
in ``pyproject.toml``. Versions come from GitHub releases and from PyPI.
"""

import logging
import re
import tomllib
from typing import Any, Dict, Iterator, List, Optional

from tooth_index.core.exceptions import NormalizationError
from tooth_index.core.interfaces import (
    Package, PackageManager, RepositoryDescriptor, Version, VersionSource
)
from tooth_index.core.normalizer import normalize_package, normalize_timestamp
from tooth_index.fetcher.base import gather
from tooth_index.fetcher.github import GitHubFetcher


logger = logging.getLogger(__name__)

SEARCH_QUERY = 'path:/+filename:pyproject.toml+[project.entry-points."endstone"]'
PYPI_URL = "https://pypi.org/pypi"


def strip_release_tag(tag: str) -> str:
    """Turn a release tag (``v1.2.0+build.5``) into a plain semver string."""
    return re.sub(r'\+.*$', '', re.sub(r'^v', '', tag))


class EndstonePythonFetcher(GitHubFetcher):
    """
    Fetcher for Endstone Python plugins.
    """

    def get_ecosystem_name(self) -> str:
        return "endstone"

    def discover(self) -> Iterator[RepositoryDescriptor]:
        return self.search_repositories(SEARCH_QUERY)

    def resolve(self, descriptor: RepositoryDescriptor) -> Optional[Package]:
        logger.debug(f"EndstonePythonFetcher.resolve({descriptor.full_name})")

        repository, contributors, releases, project = gather(
            lambda: self.get_repository(descriptor),
            lambda: self.list_contributors(descriptor),
            lambda: self.list_releases(descriptor),
            lambda: self.fetch_project_metadata(descriptor),
        )

        if project is None or repository is None:
            return None

        name = project["name"]
        versions = self.versions_from_releases(releases)
        versions.extend(self.versions_from_pypi(self.fetch_pypi_metadata(name)))

        if not versions:
            logger.debug(f"No versions for {descriptor.full_name}")
            return None

        package = Package(
            identifier=self.identifier_for(descriptor),
            name=name,
            description=project.get("description") or "",
            author=(repository.get("owner") or {}).get("login") or descriptor.owner,
            tags=[
                f"platform:{self.get_ecosystem_name()}",
                "type:mod",
                *(project.get("keywords") or []),
                *(repository.get("topics") or []),
            ],
            avatar_url=self.avatar_url_for(descriptor.owner),
            project_url=self.project_url_for(descriptor),
            hotness=int(repository.get("stargazers_count") or 0),
            contributors=contributors,
            versions=versions,
        )

        return normalize_package(package, self.source_priority)

    def fetch_project_metadata(self, descriptor: RepositoryDescriptor) -> Optional[Dict[str, Any]]:
        """
        Fetch the ``[project]`` table of pyproject.toml at HEAD.

        Returns:
            The project table, or None if pyproject.toml does not exist.

        Raises:
            NormalizationError: If the file is not valid TOML or has no project name.
        """
        text = self.fetch_raw_file(descriptor, "HEAD", "pyproject.toml")
        if text is None:
            return None

        try:
            data = tomllib.loads(text)
        except tomllib.TOMLDecodeError as e:
            raise NormalizationError(f"Invalid pyproject.toml in {descriptor.full_name}: {e}")

        project = data.get("project")
        if not isinstance(project, dict) or not isinstance(project.get("name"), str):
            raise NormalizationError(f"pyproject.toml in {descriptor.full_name} has no project.name")
        return project

    def fetch_pypi_metadata(self, name: str) -> Optional[Dict[str, Any]]:
        return self.client.get_json(f"{PYPI_URL}/{name}/json")

    @staticmethod
    def versions_from_releases(releases: List[Dict[str, Any]]) -> List[Version]:
        versions = []
        for release in releases:
            tag = release.get("tag_name")
            timestamp = release.get("published_at") or release.get("created_at")
            if not tag or not timestamp:
                continue
            try:
                released_at = normalize_timestamp(timestamp)
            except NormalizationError as e:
                logger.warning(f"Skipping release {tag}: {e}")
                continue
            versions.append(Version(
                version=strip_release_tag(tag),
                released_at=released_at,
                source=VersionSource.GITHUB,
                package_manager=PackageManager.PIP,
            ))
        return versions

    @staticmethod
    def versions_from_pypi(metadata: Optional[Dict[str, Any]]) -> List[Version]:
        """
        Build versions from PyPI project metadata.

        Releases without uploaded files are skipped; the first file's upload
        time is the release time.
        """
        if metadata is None:
            return []

        versions = []
        for version, files in (metadata.get("releases") or {}).items():
            if not files:
                continue
            try:
                released_at = normalize_timestamp(files[0].get("upload_time_iso_8601"))
            except NormalizationError as e:
                logger.warning(f"Skipping PyPI release {version}: {e}")
                continue
            versions.append(Version(
                version=version,
                released_at=released_at,
                source=VersionSource.PYPI,
                package_manager=PackageManager.PIP,
            ))
        return versions
