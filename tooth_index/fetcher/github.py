"""
GitHub-backed fetcher support for tooth-index.

This module provides the base class for ecosystems whose packages live in
GitHub repositories: code-search discovery and repository, contributor,
release and raw-file lookups.
"""

import logging
from typing import Any, Dict, Iterator, List, Optional, Sequence

from tooth_index.core.exceptions import DiscoveryError, UpstreamError
from tooth_index.core.interfaces import (
    Contributor, FetcherConfig, RepositoryDescriptor, VersionSource
)
from tooth_index.fetcher.base import HttpSourceClient, PackageFetcher


logger = logging.getLogger(__name__)

GITHUB_API_URL = "https://api.github.com"
GITHUB_RAW_URL = "https://raw.githubusercontent.com"
GITHUB_AVATAR_URL = "https://avatars.githubusercontent.com"

# GitHub code search returns at most 1000 results.
SEARCH_PER_PAGE = 100
SEARCH_RESULT_LIMIT = 1000


class GitHubFetcher(PackageFetcher):
    """
    Base class for fetchers that discover packages on GitHub.
    """

    def __init__(
        self,
        config: Optional[FetcherConfig] = None,
        client: Optional[HttpSourceClient] = None,
        source_priority: Optional[Sequence[VersionSource]] = None
    ):
        config = config or FetcherConfig()
        if client is None:
            headers = {
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": "2022-11-28",
            }
            if config.github_token:
                headers["Authorization"] = f"Bearer {config.github_token}"
            client = HttpSourceClient(config, headers=headers)
        super().__init__(config=config, client=client, source_priority=source_priority)

    def search_repositories(self, query: str) -> Iterator[RepositoryDescriptor]:
        """
        Search GitHub code and yield the repositories containing matches.

        The query is placed in the URL as-is, so ``+`` separates terms.

        Args:
            query: Code search expression.

        Returns:
            Iterator over unique repository descriptors, in result order.

        Raises:
            DiscoveryError: If a search request fails.
        """
        seen = set()
        page = 1

        while (page - 1) * SEARCH_PER_PAGE < SEARCH_RESULT_LIMIT:
            url = f"{GITHUB_API_URL}/search/code?q={query}&per_page={SEARCH_PER_PAGE}&page={page}"
            try:
                data = self.client.get_json(url)
            except UpstreamError as e:
                raise DiscoveryError(f"Repository search failed on page {page}: {e}") from e

            if data is None:
                raise DiscoveryError(f"Repository search returned no data on page {page}")

            items = data.get("items") or []
            logger.debug(f"Search page {page} returned {len(items)} items")

            for item in items:
                repository = item.get("repository") or {}
                owner = (repository.get("owner") or {}).get("login")
                repo = repository.get("name")
                if not owner or not repo:
                    continue

                descriptor = RepositoryDescriptor(owner=owner, repo=repo)
                if descriptor in seen:
                    continue
                seen.add(descriptor)
                yield descriptor

            if len(items) < SEARCH_PER_PAGE:
                break
            page += 1

    def get_repository(self, descriptor: RepositoryDescriptor) -> Optional[Dict[str, Any]]:
        return self.client.get_json(f"{GITHUB_API_URL}/repos/{descriptor.owner}/{descriptor.repo}")

    def list_contributors(self, descriptor: RepositoryDescriptor) -> List[Contributor]:
        """
        List the contributors of a repository.

        Args:
            descriptor: Repository to query.

        Returns:
            Contributors in the order GitHub reports them (most contributions first).
        """
        url = f"{GITHUB_API_URL}/repos/{descriptor.owner}/{descriptor.repo}/contributors?per_page=100"
        data = self.client.get_json(url) or []
        return [
            Contributor(username=item.get("login") or "", contributions=int(item.get("contributions") or 0))
            for item in data
        ]

    def list_releases(self, descriptor: RepositoryDescriptor) -> List[Dict[str, Any]]:
        url = f"{GITHUB_API_URL}/repos/{descriptor.owner}/{descriptor.repo}/releases?per_page=100"
        return self.client.get_json(url) or []

    def fetch_raw_file(self, descriptor: RepositoryDescriptor, ref: str, path: str) -> Optional[str]:
        """
        Fetch a file at a given revision.

        Args:
            descriptor: Repository holding the file.
            ref: Branch, tag or ``HEAD``.
            path: Path of the file in the repository.

        Returns:
            File content, or None if the file does not exist at that revision.
        """
        url = f"{GITHUB_RAW_URL}/{descriptor.owner}/{descriptor.repo}/{ref}/{path}"
        return self.client.get_text(url)

    @staticmethod
    def avatar_url_for(owner: str) -> str:
        return f"{GITHUB_AVATAR_URL}/{owner}"

    @staticmethod
    def identifier_for(descriptor: RepositoryDescriptor) -> str:
        return f"github.com/{descriptor.owner}/{descriptor.repo}"

    @staticmethod
    def project_url_for(descriptor: RepositoryDescriptor) -> str:
        return f"https://github.com/{descriptor.owner}/{descriptor.repo}"
