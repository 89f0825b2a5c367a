"""
Configuration management for tooth-index.

This module loads the application configuration from a YAML file, applies
environment variable overrides and validates the result.
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from tooth_index.core.exceptions import ConfigurationError
from tooth_index.core.interfaces import (
    AppConfig, FetcherConfig, IndexBackend, IndexConfig, SearchConfig, VersionSource
)


logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "TOOTH_INDEX_CONFIG"
DEFAULT_CONFIG_PATH = Path("~/.tooth-index/config.yaml")


def _section(data: Dict[str, Any], name: str) -> Dict[str, Any]:
    value = data.get(name) or {}
    if not isinstance(value, dict):
        raise ConfigurationError(f"Configuration section '{name}' must be a mapping")
    return value


def _positive_int(section: Dict[str, Any], key: str, default: int) -> int:
    value = section.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ConfigurationError(f"'{key}' must be a positive integer, got {value!r}")
    return value


def _check_index(index: IndexConfig) -> None:
    # SQLite connections are opened per operation, so an in-memory database would not persist.
    if index.backend == IndexBackend.SQLITE and index.path.strip() in ("", ":memory:"):
        raise ConfigurationError("The sqlite index needs a file path; use the memory backend instead")


def config_from_dict(data: Dict[str, Any]) -> AppConfig:
    """
    Build an AppConfig from a parsed configuration mapping.

    Args:
        data: Parsed YAML content.

    Returns:
        Validated application configuration.

    Raises:
        ConfigurationError: If a value is missing its expected type or range.
    """
    if not isinstance(data, dict):
        raise ConfigurationError("Configuration root must be a mapping")

    fetcher_data = _section(data, "fetcher")
    defaults = FetcherConfig()
    retry_backoff = fetcher_data.get("retry_backoff", defaults.retry_backoff)
    if isinstance(retry_backoff, bool) or not isinstance(retry_backoff, (int, float)) or retry_backoff < 0:
        raise ConfigurationError(f"'retry_backoff' must be a non-negative number, got {retry_backoff!r}")

    fetcher = FetcherConfig(
        request_timeout=_positive_int(fetcher_data, "request_timeout", defaults.request_timeout),
        retry_count=_positive_int(fetcher_data, "retry_count", defaults.retry_count),
        retry_backoff=float(retry_backoff),
        concurrent_requests=_positive_int(fetcher_data, "concurrent_requests", defaults.concurrent_requests),
        github_token=fetcher_data.get("github_token") or None,
        user_agent=str(fetcher_data.get("user_agent", defaults.user_agent)),
    )

    index_data = _section(data, "index")
    try:
        backend = IndexBackend(index_data.get("backend", IndexConfig().backend.value))
    except ValueError:
        raise ConfigurationError(f"Unknown index backend: {index_data.get('backend')!r}")
    index = IndexConfig(backend=backend, path=str(index_data.get("path", IndexConfig().path)))
    _check_index(index)

    search_data = _section(data, "search")
    search = SearchConfig(
        default_per_page=_positive_int(search_data, "default_per_page", SearchConfig().default_per_page),
        max_per_page=_positive_int(search_data, "max_per_page", SearchConfig().max_per_page),
    )
    if search.default_per_page > search.max_per_page:
        raise ConfigurationError("'default_per_page' cannot exceed 'max_per_page'")

    config = AppConfig(fetcher=fetcher, index=index, search=search)

    if "source_priority" in data:
        try:
            config.source_priority = [VersionSource(s) for s in data["source_priority"]]
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid source_priority: {e}")

    return config


def apply_env_overrides(config: AppConfig) -> AppConfig:
    """Apply environment variable overrides to a configuration."""
    token = os.getenv("GITHUB_TOKEN")
    if token:
        config.fetcher.github_token = token

    backend = os.getenv("TOOTH_INDEX_INDEX_BACKEND")
    if backend:
        try:
            config.index.backend = IndexBackend(backend.lower())
        except ValueError:
            raise ConfigurationError(f"Unknown index backend in TOOTH_INDEX_INDEX_BACKEND: {backend!r}")

    path = os.getenv("TOOTH_INDEX_INDEX_PATH")
    if path:
        config.index.path = path

    _check_index(config.index)

    return config


def load_config(config_path: Optional[Union[str, Path]] = None) -> AppConfig:
    """
    Load the application configuration.

    The file is taken from ``config_path``, then ``TOOTH_INDEX_CONFIG``, then
    ``~/.tooth-index/config.yaml`` if it exists. Without a file the defaults
    are used. Environment overrides are applied last.

    Args:
        config_path: Explicit path to a YAML configuration file.

    Returns:
        Application configuration.

    Raises:
        ConfigurationError: If the file cannot be read or is invalid.
    """
    path: Optional[Path] = None
    explicit = config_path or os.getenv(CONFIG_ENV_VAR)
    if explicit:
        path = Path(explicit).expanduser()
        if not path.exists():
            raise ConfigurationError(f"Configuration file not found: {path}")
    elif DEFAULT_CONFIG_PATH.expanduser().exists():
        path = DEFAULT_CONFIG_PATH.expanduser()

    if path is None:
        logger.debug("No configuration file found, using defaults")
        return apply_env_overrides(AppConfig())

    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Error parsing configuration YAML: {e}")
    except IOError as e:
        raise ConfigurationError(f"Error reading configuration file: {e}")

    logger.debug(f"Loaded configuration from {path}")
    return apply_env_overrides(config_from_dict(data))


def default_config_dict() -> Dict[str, Any]:
    """Return the default configuration as a YAML-ready mapping."""
    config = AppConfig()
    return {
        'fetcher': {
            'request_timeout': config.fetcher.request_timeout,
            'retry_count': config.fetcher.retry_count,
            'retry_backoff': config.fetcher.retry_backoff,
            'concurrent_requests': config.fetcher.concurrent_requests,
            'user_agent': config.fetcher.user_agent,
        },
        'index': {
            'backend': config.index.backend.value,
            'path': config.index.path,
        },
        'search': {
            'default_per_page': config.search.default_per_page,
            'max_per_page': config.search.max_per_page,
        },
        'source_priority': [s.value for s in config.source_priority],
    }
