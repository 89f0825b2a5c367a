"""
Package index module for tooth-index.
"""

from tooth_index.index.storage import (
    MemoryPackageIndex, PackageIndex, SQLitePackageIndex, create_index_store
)

__all__ = [
    "MemoryPackageIndex",
    "PackageIndex",
    "SQLitePackageIndex",
    "create_index_store",
]
