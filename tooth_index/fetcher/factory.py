"""
Registry of ecosystem fetchers.

Each ecosystem name doubles as the ``platform:<name>`` tag of the packages
its fetcher emits.
"""

import logging
from typing import Dict, List, Optional, Sequence, Type

from tooth_index.core.interfaces import FetcherConfig, VersionSource
from tooth_index.fetcher.base import PackageFetcher


logger = logging.getLogger(__name__)


class FetcherFactory:
    """
    Maps ecosystem names to fetcher classes and builds fetchers for a run.
    """

    def __init__(self):
        self._fetcher_classes: Dict[str, Type[PackageFetcher]] = {}

    def register_fetcher(self, name: str, fetcher_class: Type[PackageFetcher]) -> None:
        """
        Register the fetcher class of an ecosystem.

        Args:
            name: Ecosystem name, also used as the platform tag value.
            fetcher_class: PackageFetcher subclass discovering that ecosystem.

        Raises:
            TypeError: If fetcher_class is not a PackageFetcher subclass.
            ValueError: If another class is already registered under name.
        """
        if not (isinstance(fetcher_class, type) and issubclass(fetcher_class, PackageFetcher)):
            raise TypeError(f"{fetcher_class!r} is not a PackageFetcher subclass")

        current = self._fetcher_classes.get(name)
        if current is not None and current is not fetcher_class:
            raise ValueError(f"Ecosystem {name} is already served by {current.__name__}")

        self._fetcher_classes[name] = fetcher_class
        logger.debug(f"Registered {fetcher_class.__name__} for ecosystem {name}")

    def create_fetcher(
        self,
        name: str,
        config: Optional[FetcherConfig] = None,
        source_priority: Optional[Sequence[VersionSource]] = None
    ) -> Optional[PackageFetcher]:
        """
        Build a fetcher for one run.

        Constructor errors propagate to the caller.

        Args:
            name: Ecosystem name.
            config: Fetcher configuration shared by the run.
            source_priority: Version source order used when merging versions.

        Returns:
            Fetcher instance, or None if no fetcher is registered for name.
        """
        fetcher_class = self._fetcher_classes.get(name)
        if fetcher_class is None:
            logger.warning(f"No fetcher registered for ecosystem {name}")
            return None

        if source_priority is None:
            return fetcher_class(config=config)
        return fetcher_class(config=config, source_priority=source_priority)

    def get_available_fetchers(self) -> List[str]:
        """Ecosystem names in registration order."""
        return list(self._fetcher_classes)

    def get_registered_fetchers(self) -> Dict[str, Type[PackageFetcher]]:
        return dict(self._fetcher_classes)


fetcher_factory = FetcherFactory()
