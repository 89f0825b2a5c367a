"""
Exceptions for tooth-index.

This module contains the exception hierarchy for tooth-index operations.
"""

from typing import Optional


class ToothIndexError(Exception):
    """Base exception for tooth-index operations."""
    pass


class ValidationError(ToothIndexError):
    """Raised when a tooth path, version string or search parameter is malformed."""
    pass


class UpstreamError(ToothIndexError):
    """Raised when a required upstream resource cannot be retrieved."""

    def __init__(self, status_code: int, message: str, url: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.url = url


class UpstreamNotFound(UpstreamError):
    """Raised when a required upstream resource does not exist."""

    def __init__(self, message: str, url: Optional[str] = None):
        super().__init__(404, message, url)


class DiscoveryError(ToothIndexError):
    """Raised when the repository discovery search itself fails."""
    pass


class NormalizationError(ToothIndexError):
    """Raised when manifest or version data cannot be normalized."""
    pass


class ConfigurationError(ToothIndexError):
    """Raised when configuration is invalid."""
    pass


class IndexStoreError(ToothIndexError):
    """Raised when the package index backend fails."""
    pass
