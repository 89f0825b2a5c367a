"""
Package fetcher module for tooth-index.

This module provides functionality to discover packages of each supported
ecosystem and turn them into canonical package records.
"""

from tooth_index.fetcher.base import HttpSourceClient, PackageFetcher, gather
from tooth_index.fetcher.factory import FetcherFactory, fetcher_factory
from tooth_index.fetcher.github import GitHubFetcher
from tooth_index.fetcher.levilamina import LeviLaminaFetcher
from tooth_index.fetcher.endstone import EndstonePythonFetcher

# Register fetchers
fetcher_factory.register_fetcher("levilamina", LeviLaminaFetcher)
fetcher_factory.register_fetcher("endstone", EndstonePythonFetcher)

__all__ = [
    "HttpSourceClient",
    "PackageFetcher",
    "gather",
    "FetcherFactory",
    "fetcher_factory",
    "GitHubFetcher",
    "LeviLaminaFetcher",
    "EndstonePythonFetcher",
]
