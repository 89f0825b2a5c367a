"""
Core engine for tooth-index.

This module contains the central orchestrator that runs the fetchers into the
package index and serves searches from it.
"""

import logging
from typing import Dict, List, Optional

from tooth_index.core.exceptions import ToothIndexError, ValidationError
from tooth_index.core.interfaces import AppConfig, FetchResult, Package, SearchPage
from tooth_index.fetcher import fetcher_factory
from tooth_index.index.storage import PackageIndex, create_index_store
from tooth_index.search.engine import SearchExecutor
from tooth_index.search.query import TagNode


logger = logging.getLogger(__name__)


class ToothIndexEngine:
    """
    Central orchestrator that coordinates fetching and searching.
    """

    def __init__(self, config: Optional[AppConfig] = None, index: Optional[PackageIndex] = None):
        """
        Initialize the engine.

        Args:
            config: Application configuration. If None, default configuration is used.
            index: Package index to use. If None, one is created from the configuration.
        """
        self.config = config or AppConfig()
        self.index = index if index is not None else create_index_store(self.config.index)
        self.search_executor = SearchExecutor(self.index)

    def get_available_ecosystems(self) -> List[str]:
        return fetcher_factory.get_available_fetchers()

    def fetch_packages(self, ecosystems: Optional[List[str]] = None, prune: bool = False) -> FetchResult:
        """
        Run the fetchers and upsert every emitted package into the index.

        Args:
            ecosystems: Ecosystems to fetch. If None or empty, fetches all registered ones.
            prune: Remove indexed packages of a fetched ecosystem that the run
                did not emit. Only applied to ecosystems whose run completed.

        Returns:
            FetchResult with per-ecosystem package counts and errors.
        """
        ecosystems = ecosystems or self.get_available_ecosystems()
        logger.info(f"Fetching packages for ecosystems: {ecosystems}")

        result = FetchResult()

        for ecosystem in ecosystems:
            try:
                fetcher = fetcher_factory.create_fetcher(
                    ecosystem,
                    self.config.fetcher,
                    source_priority=self.config.source_priority
                )
            except Exception as e:
                logger.error(f"Failed to create {ecosystem} fetcher: {e}")
                result.success = False
                result.errors[ecosystem] = f"Failed to create fetcher: {e}"
                continue

            if fetcher is None:
                result.success = False
                result.errors[ecosystem] = "Fetcher not available"
                continue

            seen = set()
            try:
                for package in fetcher.fetch():
                    self.index.upsert(package)
                    seen.add(package.identifier)
                    logger.debug(f"Indexed {package.identifier}")
            except Exception as e:
                logger.error(f"Failed to fetch {ecosystem} packages: {e}")
                result.success = False
                result.errors[ecosystem] = str(e)
                result.packages[ecosystem] = len(seen)
                continue
            finally:
                fetcher.close()

            result.packages[ecosystem] = len(seen)

            if prune:
                result.pruned += self._prune(ecosystem, seen)

        logger.info(
            f"Fetch completed: {sum(result.packages.values())} packages, "
            f"{len(result.errors)} failed ecosystems, {result.pruned} pruned"
        )
        return result

    def _prune(self, ecosystem: str, seen: set) -> int:
        pruned = 0
        for identifier in self.index.identifiers(TagNode(f"platform:{ecosystem}")):
            if identifier not in seen and self.index.delete(identifier):
                logger.info(f"Pruned {identifier}")
                pruned += 1
        return pruned

    def search(
        self,
        query: str,
        per_page: Optional[int] = None,
        page: int = 1,
        sort: str = "hotness",
        order: str = "desc"
    ) -> SearchPage:
        """
        Search the package index.

        Args:
            query: Free-text, tag-aware query string.
            per_page: Page size. Defaults to the configured default and may not
                exceed the configured maximum.
            page: 1-indexed page number.
            sort: ``hotness`` or ``updated``.
            order: ``asc`` or ``desc``.

        Returns:
            SearchPage with the requested page and the total page count.

        Raises:
            ValidationError: If a parameter is out of range.
        """
        if per_page is None:
            per_page = self.config.search.default_per_page
        if isinstance(per_page, int) and per_page > self.config.search.max_per_page:
            raise ValidationError(f"perPage may not exceed {self.config.search.max_per_page}")

        return self.search_executor.search_text(query, per_page, page, sort, order)

    def get_package(self, identifier: str) -> Optional[Package]:
        return self.index.get(identifier)

    def get_statistics(self) -> Dict[str, int]:
        """Count indexed packages per ecosystem."""
        return {
            ecosystem: len(self.index.identifiers(TagNode(f"platform:{ecosystem}")))
            for ecosystem in self.get_available_ecosystems()
        }

    def close(self) -> None:
        try:
            self.index.close()
        except ToothIndexError as e:
            logger.warning(f"Failed to close package index: {e}")
