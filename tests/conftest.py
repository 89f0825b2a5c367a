"""
Pytest configuration and fixtures for tooth-index tests.
"""

import pytest

from tooth_index.core.interfaces import (
    FetcherConfig, Package, PackageManager, Version, VersionSource
)
from tooth_index.index.storage import MemoryPackageIndex, SQLitePackageIndex


@pytest.fixture
def fetcher_config():
    """Create a test fetcher configuration."""
    return FetcherConfig(
        concurrent_requests=2,  # Lower for tests
        request_timeout=5,      # Shorter timeout
        retry_count=1,          # No retries
        retry_backoff=0
    )


@pytest.fixture
def memory_index():
    return MemoryPackageIndex()


@pytest.fixture
def sqlite_index(tmp_path):
    index = SQLitePackageIndex(str(tmp_path / "index.db"))
    yield index
    index.close()


@pytest.fixture(params=["memory", "sqlite"])
def package_index(request, tmp_path):
    """Run a test against every index backend."""
    if request.param == "memory":
        yield MemoryPackageIndex()
    else:
        index = SQLitePackageIndex(str(tmp_path / "index.db"))
        yield index
        index.close()


def make_package(identifier, name=None, description="", author="someone", tags=None,
                 hotness=0, released_at="2024-01-01T00:00:00.000Z", version="1.0.0"):
    """Build a normalized package with a single version."""
    return Package(
        identifier=identifier,
        name=name or identifier.rsplit("/", 1)[-1],
        description=description,
        author=author,
        tags=list(tags or []),
        hotness=hotness,
        updated=released_at,
        versions=[
            Version(
                version=version,
                released_at=released_at,
                source=VersionSource.GITHUB,
                package_manager=PackageManager.LIP,
            )
        ],
    )


@pytest.fixture
def sample_packages():
    """A small index population mixing ecosystems and tags."""
    return [
        make_package(
            "github.com/futrime/economy-core", name="EconomyCore",
            description="Money and shops for your server", author="futrime",
            tags=["platform:levilamina", "type:mod", "economy"], hotness=50,
            released_at="2024-03-01T00:00:00.000Z",
        ),
        make_package(
            "github.com/endstone-dev/stone-guard", name="StoneGuard",
            description="Region protection", author="endstone-dev",
            tags=["platform:endstone", "type:mod"], hotness=20,
            released_at="2024-05-01T00:00:00.000Z",
        ),
        make_package(
            "github.com/liteldev/chat-format", name="ChatFormat",
            description="Chat formatting", author="LiteLDev",
            tags=["platform:levilamina", "chat"], hotness=80,
            released_at="2024-01-01T00:00:00.000Z",
        ),
    ]
