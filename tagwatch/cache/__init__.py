"""Snapshot cache layer for TagWatch.

Stores, per registry account, which image keys have been seen and the last
digest recorded for each.  The reconciler is the only writer.

Submodules:
    keys    -- Image key derivation (make_key / parse_key).
    base    -- SnapshotCache abstract base.
    memory  -- In-process dict-backed cache.
    sqlite  -- Durable SQLite-backed cache.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from tagwatch.cache.base import SnapshotCache
from tagwatch.cache.keys import account_prefix, make_key, parse_key
from tagwatch.cache.memory import InMemorySnapshotCache
from tagwatch.cache.sqlite import SqliteSnapshotCache

if TYPE_CHECKING:
    from tagwatch.models.config import CacheConfig

__all__ = [
    "InMemorySnapshotCache",
    "SnapshotCache",
    "SqliteSnapshotCache",
    "account_prefix",
    "build_snapshot_cache",
    "make_key",
    "parse_key",
]


def build_snapshot_cache(config: CacheConfig) -> SnapshotCache:
    """Create the snapshot cache backend named by *config*."""
    if config.backend == "sqlite":
        return SqliteSnapshotCache(config.path)
    return InMemorySnapshotCache()
