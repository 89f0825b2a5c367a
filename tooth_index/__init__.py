"""
tooth-index - discovery, normalization and search for Minecraft Bedrock teeth.

This package discovers packages published across source repositories and
package registries, normalizes them into one canonical record and serves them
through a searchable, paginated index.
"""

__version__ = "0.1.0"

from .core.engine import ToothIndexEngine
from .core.exceptions import ToothIndexError, ValidationError, UpstreamError, DiscoveryError

__all__ = [
    "ToothIndexEngine",
    "ToothIndexError",
    "ValidationError",
    "UpstreamError",
    "DiscoveryError"
]
