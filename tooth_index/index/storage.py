"""
Package index storage for tooth-index.

This module provides the package index used by both the fetch (write) path
and the search (read) path, with an in-memory backend and a SQLite backend.
Records are stored whole; an upsert replaces every field of a package.
"""

import json
import logging
import os
import sqlite3
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from tooth_index.core.exceptions import IndexStoreError
from tooth_index.core.interfaces import IndexBackend, IndexConfig, Package
from tooth_index.search.query import (
    SORT_FIELDS, SORT_ORDERS, AndNode, MatchAllNode, OrNode, QueryNode, TagNode, TextNode
)


logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1


class PackageIndex(ABC):
    """Abstract base class for package index backends."""

    @abstractmethod
    def create_index(self) -> None:
        """Create or refresh the secondary index. Safe to call repeatedly."""
        pass

    @abstractmethod
    def upsert(self, package: Package) -> None:
        """Insert a package or replace the stored record with the same identifier."""
        pass

    @abstractmethod
    def get(self, identifier: str) -> Optional[Package]:
        pass

    @abstractmethod
    def delete(self, identifier: str) -> bool:
        pass

    @abstractmethod
    def identifiers(self, predicate: Optional[QueryNode] = None) -> List[str]:
        """List the identifiers of packages matching a predicate, in storage order."""
        pass

    @abstractmethod
    def count(self, predicate: QueryNode) -> int:
        pass

    @abstractmethod
    def query(
        self,
        predicate: QueryNode,
        sort: str,
        order: str,
        offset: int,
        limit: int
    ) -> List[Package]:
        """
        Return matching packages sorted by one field.

        Packages with equal sort keys keep storage order.
        """
        pass

    def close(self) -> None:
        pass


class MemoryPackageIndex(PackageIndex):
    """In-memory package index. Storage order is first-insertion order."""

    def __init__(self):
        self._packages: Dict[str, Package] = {}
        self._lock = threading.RLock()

    def create_index(self) -> None:
        pass

    def upsert(self, package: Package) -> None:
        with self._lock:
            self._packages[package.identifier] = package

    def get(self, identifier: str) -> Optional[Package]:
        with self._lock:
            return self._packages.get(identifier)

    def delete(self, identifier: str) -> bool:
        with self._lock:
            return self._packages.pop(identifier, None) is not None

    def _matching(self, predicate: Optional[QueryNode]) -> List[Package]:
        with self._lock:
            packages = list(self._packages.values())
        if predicate is None:
            return packages
        return [p for p in packages if predicate.matches(p)]

    def identifiers(self, predicate: Optional[QueryNode] = None) -> List[str]:
        return [p.identifier for p in self._matching(predicate)]

    def count(self, predicate: QueryNode) -> int:
        return len(self._matching(predicate))

    def query(
        self,
        predicate: QueryNode,
        sort: str,
        order: str,
        offset: int,
        limit: int
    ) -> List[Package]:
        _check_sort(sort, order)
        # sorted() is stable for reverse=True as well
        packages = sorted(
            self._matching(predicate),
            key=lambda p: getattr(p, sort),
            reverse=(order == "desc"),
        )
        return packages[offset:offset + limit]


def _py_lower(value: Optional[str]) -> Optional[str]:
    return value.lower() if value is not None else None


def compile_predicate(node: QueryNode) -> Tuple[str, List[Any]]:
    """
    Compile a predicate tree into a SQL WHERE expression.

    Args:
        node: Root predicate node.

    Returns:
        Tuple of the SQL expression and its positional parameters.
    """
    if isinstance(node, MatchAllNode):
        return "1", []

    if isinstance(node, TagNode):
        return "identifier IN (SELECT identifier FROM package_tags WHERE tag = ?)", [node.term]

    if isinstance(node, TextNode):
        sql = (
            "(instr(py_lower(name), ?) > 0"
            " OR instr(py_lower(description), ?) > 0"
            " OR instr(py_lower(author), ?) > 0"
            " OR identifier IN (SELECT identifier FROM package_tags WHERE instr(py_lower(tag), ?) > 0))"
        )
        return sql, [node.term] * 4

    if isinstance(node, (AndNode, OrNode)):
        if not node.children:
            return ("1", []) if isinstance(node, AndNode) else ("0", [])
        joiner = " AND " if isinstance(node, AndNode) else " OR "
        parts = []
        params: List[Any] = []
        for child in node.children:
            child_sql, child_params = compile_predicate(child)
            parts.append(child_sql)
            params.extend(child_params)
        return "(" + joiner.join(parts) + ")", params

    raise IndexStoreError(f"Unsupported predicate node: {type(node).__name__}")


class SQLitePackageIndex(PackageIndex):
    """
    SQLite-backed package index.

    Scalar fields are stored in columns for filtering and sorting, tags in a
    side table for containment queries, and the whole record as JSON.
    Storage order is rowid order, which an upsert preserves.
    """

    def __init__(self, db_path: str):
        if db_path.strip() in ("", ":memory:"):
            raise IndexStoreError("SQLitePackageIndex needs a database file; use MemoryPackageIndex in memory")
        self.db_path = str(Path(os.path.expanduser(db_path)))
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.RLock()
        self.create_index()

    def _connect(self) -> sqlite3.Connection:
        try:
            conn = sqlite3.connect(self.db_path)
        except sqlite3.Error as e:
            raise IndexStoreError(f"Failed to open index database {self.db_path}: {e}")
        conn.create_function("py_lower", 1, _py_lower, deterministic=True)
        return conn

    def create_index(self) -> None:
        with self._lock:
            conn = self._connect()
            try:
                if conn.execute("PRAGMA user_version").fetchone()[0] == SCHEMA_VERSION:
                    return

                conn.execute("""
                    CREATE TABLE IF NOT EXISTS packages (
                        identifier TEXT PRIMARY KEY,
                        name TEXT NOT NULL,
                        description TEXT NOT NULL,
                        author TEXT NOT NULL,
                        hotness INTEGER NOT NULL,
                        updated TEXT NOT NULL,
                        data TEXT NOT NULL
                    )
                """)
                conn.execute("""
                    CREATE TABLE IF NOT EXISTS package_tags (
                        identifier TEXT NOT NULL,
                        tag TEXT NOT NULL,
                        PRIMARY KEY (identifier, tag)
                    )
                """)
                conn.execute("CREATE INDEX IF NOT EXISTS idx_packages_hotness ON packages(hotness)")
                conn.execute("CREATE INDEX IF NOT EXISTS idx_packages_updated ON packages(updated)")
                conn.execute("CREATE INDEX IF NOT EXISTS idx_package_tags_tag ON package_tags(tag)")
                conn.execute(f"PRAGMA user_version = {SCHEMA_VERSION}")
                conn.commit()
                logger.debug(f"Created package index schema in {self.db_path}")
            except sqlite3.Error as e:
                raise IndexStoreError(f"Failed to create index schema: {e}")
            finally:
                conn.close()

    def upsert(self, package: Package) -> None:
        with self._lock:
            conn = self._connect()
            try:
                conn.execute(
                    """
                    INSERT INTO packages (identifier, name, description, author, hotness, updated, data)
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                    ON CONFLICT(identifier) DO UPDATE SET
                        name = excluded.name,
                        description = excluded.description,
                        author = excluded.author,
                        hotness = excluded.hotness,
                        updated = excluded.updated,
                        data = excluded.data
                    """,
                    (
                        package.identifier,
                        package.name,
                        package.description,
                        package.author,
                        package.hotness,
                        package.updated,
                        json.dumps(package.to_dict()),
                    )
                )
                conn.execute("DELETE FROM package_tags WHERE identifier = ?", (package.identifier,))
                conn.executemany(
                    "INSERT OR IGNORE INTO package_tags (identifier, tag) VALUES (?, ?)",
                    [(package.identifier, tag) for tag in package.tags]
                )
                conn.commit()
            except sqlite3.Error as e:
                conn.rollback()
                raise IndexStoreError(f"Failed to upsert {package.identifier}: {e}")
            finally:
                conn.close()

    def get(self, identifier: str) -> Optional[Package]:
        with self._lock:
            conn = self._connect()
            try:
                row = conn.execute("SELECT data FROM packages WHERE identifier = ?", (identifier,)).fetchone()
            except sqlite3.Error as e:
                raise IndexStoreError(f"Failed to read {identifier}: {e}")
            finally:
                conn.close()
        if row is None:
            return None
        return Package.from_dict(json.loads(row[0]))

    def delete(self, identifier: str) -> bool:
        with self._lock:
            conn = self._connect()
            try:
                cursor = conn.execute("DELETE FROM packages WHERE identifier = ?", (identifier,))
                conn.execute("DELETE FROM package_tags WHERE identifier = ?", (identifier,))
                conn.commit()
                return cursor.rowcount > 0
            except sqlite3.Error as e:
                raise IndexStoreError(f"Failed to delete {identifier}: {e}")
            finally:
                conn.close()

    def _fetch_all(self, sql: str, params: List[Any]) -> List[Tuple]:
        with self._lock:
            conn = self._connect()
            try:
                return conn.execute(sql, params).fetchall()
            except sqlite3.Error as e:
                raise IndexStoreError(f"Index query failed: {e}")
            finally:
                conn.close()

    def identifiers(self, predicate: Optional[QueryNode] = None) -> List[str]:
        where, params = compile_predicate(predicate or MatchAllNode())
        rows = self._fetch_all(f"SELECT identifier FROM packages WHERE {where} ORDER BY rowid", params)
        return [row[0] for row in rows]

    def count(self, predicate: QueryNode) -> int:
        where, params = compile_predicate(predicate)
        return self._fetch_all(f"SELECT COUNT(*) FROM packages WHERE {where}", params)[0][0]

    def query(
        self,
        predicate: QueryNode,
        sort: str,
        order: str,
        offset: int,
        limit: int
    ) -> List[Package]:
        _check_sort(sort, order)
        where, params = compile_predicate(predicate)
        sql = (
            f"SELECT data FROM packages WHERE {where} "
            f"ORDER BY {sort} {order.upper()}, rowid ASC LIMIT ? OFFSET ?"
        )
        rows = self._fetch_all(sql, params + [limit, offset])
        return [Package.from_dict(json.loads(row[0])) for row in rows]


def _check_sort(sort: str, order: str) -> None:
    if sort not in SORT_FIELDS:
        raise IndexStoreError(f"Unsupported sort field: {sort}")
    if order not in SORT_ORDERS:
        raise IndexStoreError(f"Unsupported sort order: {order}")


def create_index_store(config: Optional[IndexConfig] = None) -> PackageIndex:
    """
    Create the package index backend selected by the configuration.

    Args:
        config: Index configuration. If None, uses default configuration.

    Returns:
        Package index instance.
    """
    config = config or IndexConfig()
    if config.backend == IndexBackend.MEMORY:
        return MemoryPackageIndex()
    return SQLitePackageIndex(config.path)
