"""Core components for tooth-index."""

from .interfaces import (
    AppConfig,
    Contributor,
    FetcherConfig,
    FetchResult,
    IndexBackend,
    IndexConfig,
    Package,
    PackageManager,
    RepositoryDescriptor,
    SearchConfig,
    SearchPage,
    Version,
    VersionSource
)
from .exceptions import (
    ToothIndexError,
    ValidationError,
    UpstreamError,
    UpstreamNotFound,
    DiscoveryError,
    NormalizationError,
    ConfigurationError,
    IndexStoreError
)

__all__ = [
    "AppConfig",
    "Contributor",
    "FetcherConfig",
    "FetchResult",
    "IndexBackend",
    "IndexConfig",
    "Package",
    "PackageManager",
    "RepositoryDescriptor",
    "SearchConfig",
    "SearchPage",
    "Version",
    "VersionSource",
    "ToothIndexError",
    "ValidationError",
    "UpstreamError",
    "UpstreamNotFound",
    "DiscoveryError",
    "NormalizationError",
    "ConfigurationError",
    "IndexStoreError"
]
