"""
Core interfaces for tooth-index.

This module contains the data models shared by the fetchers, the normalizer,
the package index and the search layer.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class VersionSource(str, Enum):
    """
    Upstream origin of a version entry.
    """
    GITHUB = "github"
    GOPROXY = "goproxy"
    PYPI = "pypi"


class PackageManager(str, Enum):
    """
    Tool that consumes a version entry.
    """
    LIP = "lip"
    PIP = "pip"


@dataclass(frozen=True)
class RepositoryDescriptor:
    """
    A candidate repository returned by discovery.
    """
    owner: str
    repo: str

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"


@dataclass
class Contributor:
    """
    A contributor to a package repository.
    """
    username: str = ""
    contributions: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {"username": self.username, "contributions": self.contributions}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Contributor":
        return cls(
            username=data.get("username") or "",
            contributions=int(data.get("contributions") or 0),
        )


@dataclass
class Version:
    """
    A single released version of a package.
    """
    version: str
    released_at: str
    source: VersionSource
    package_manager: PackageManager
    platform_version_requirement: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "version": self.version,
            "releasedAt": self.released_at,
            "source": self.source.value,
            "packageManager": self.package_manager.value,
        }
        if self.platform_version_requirement is not None:
            data["platformVersionRequirement"] = self.platform_version_requirement
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Version":
        return cls(
            version=data["version"],
            released_at=data["releasedAt"],
            source=VersionSource(data["source"]),
            package_manager=PackageManager(data["packageManager"]),
            platform_version_requirement=data.get("platformVersionRequirement"),
        )


@dataclass
class Package:
    """
    Canonical package record, keyed by identifier (<host>/<owner>/<repo>).
    """
    identifier: str
    name: str
    description: str = ""
    author: str = ""
    tags: List[str] = field(default_factory=list)
    avatar_url: str = ""
    project_url: str = ""
    hotness: int = 0
    updated: str = ""
    contributors: List[Contributor] = field(default_factory=list)
    versions: List[Version] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert the package to its JSON wire form.

        Returns:
            Dictionary using the camelCase keys of the stored record.
        """
        return {
            "identifier": self.identifier,
            "name": self.name,
            "description": self.description,
            "author": self.author,
            "tags": list(self.tags),
            "avatarUrl": self.avatar_url,
            "projectUrl": self.project_url,
            "hotness": self.hotness,
            "updated": self.updated,
            "contributors": [c.to_dict() for c in self.contributors],
            "versions": [v.to_dict() for v in self.versions],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Package":
        """
        Create a package from its JSON wire form.

        Args:
            data: Dictionary as produced by to_dict().

        Returns:
            Package instance.
        """
        return cls(
            identifier=data["identifier"],
            name=data.get("name") or "",
            description=data.get("description") or "",
            author=data.get("author") or "",
            tags=list(data.get("tags") or []),
            avatar_url=data.get("avatarUrl") or "",
            project_url=data.get("projectUrl") or "",
            hotness=int(data.get("hotness") or 0),
            updated=data.get("updated") or "",
            contributors=[Contributor.from_dict(c) for c in data.get("contributors") or []],
            versions=[Version.from_dict(v) for v in data.get("versions") or []],
        )


@dataclass
class SearchPage:
    """
    One page of search results.
    """
    packages: List[Package] = field(default_factory=list)
    page_count: int = 0


@dataclass
class FetchResult:
    """
    Summary of one fetch run across ecosystems.
    """
    success: bool = True
    packages: Dict[str, int] = field(default_factory=dict)
    errors: Dict[str, str] = field(default_factory=dict)
    pruned: int = 0


@dataclass
class FetcherConfig:
    """
    Configuration for fetchers.
    """
    request_timeout: int = 30
    retry_count: int = 3
    retry_backoff: float = 1.0
    concurrent_requests: int = 5
    github_token: Optional[str] = None
    user_agent: str = "tooth-index"


class IndexBackend(Enum):
    """Supported package index backends."""
    MEMORY = "memory"
    SQLITE = "sqlite"


@dataclass
class IndexConfig:
    """
    Configuration for the package index.
    """
    backend: IndexBackend = IndexBackend.SQLITE
    path: str = "~/.tooth-index/index.db"


@dataclass
class SearchConfig:
    """
    Defaults for search requests.
    """
    default_per_page: int = 20
    max_per_page: int = 100


@dataclass
class AppConfig:
    """
    Top-level application configuration.
    """
    fetcher: FetcherConfig = field(default_factory=FetcherConfig)
    index: IndexConfig = field(default_factory=IndexConfig)
    search: SearchConfig = field(default_factory=SearchConfig)
    source_priority: List[VersionSource] = field(
        default_factory=lambda: [VersionSource.GITHUB, VersionSource.GOPROXY, VersionSource.PYPI]
    )
