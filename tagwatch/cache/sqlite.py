"""SQLite-backed snapshot cache.

Survives restarts so digest baselines are not lost between deployments.
All sqlite3 calls are blocking; they run in a worker thread via
``asyncio.to_thread`` behind a lock so the connection is never used from two
threads at once.  A cancelled caller never leaves a write to land later.
"""

from __future__ import annotations

import asyncio
import sqlite3
import threading
from collections.abc import Callable
from pathlib import Path
from typing import TypeVar

import structlog

from tagwatch.cache.base import SnapshotCache
from tagwatch.cache.keys import parse_key
from tagwatch.exceptions import CacheError

_log = structlog.get_logger(component="cache.sqlite")

_T = TypeVar("_T")


class _Abandoned(Exception):
    """The awaiting task was cancelled before the call reached the connection."""


_SCHEMA = """
CREATE TABLE IF NOT EXISTS image_digests (
    key     TEXT PRIMARY KEY,
    account TEXT NOT NULL,
    digest  TEXT
);
CREATE INDEX IF NOT EXISTS image_digests_account ON image_digests (account);
"""


class SqliteSnapshotCache(SnapshotCache):
    """Snapshot cache persisted to a single SQLite file.

    Args:
        path: Database file.  ``":memory:"`` gives a private in-memory DB.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = str(path)
        self._lock = threading.Lock()
        try:
            self._conn = sqlite3.connect(self._path, check_same_thread=False)
            with self._conn:
                self._conn.executescript(_SCHEMA)
        except sqlite3.Error as exc:
            raise CacheError(f"Cannot open snapshot cache {self._path}: {exc}") from exc
        _log.info("sqlite_cache_opened", path=self._path)

    async def _run(self, fn: Callable[[], _T]) -> _T:
        abandoned = threading.Event()

        def _locked() -> _T:
            with self._lock:
                if abandoned.is_set():
                    raise _Abandoned
                try:
                    return fn()
                except sqlite3.Error as exc:
                    raise CacheError(f"Snapshot cache error: {exc}") from exc

        work = asyncio.ensure_future(asyncio.to_thread(_locked))
        try:
            return await asyncio.shield(work)
        except asyncio.CancelledError:
            # Queued calls are skipped; a statement already running finishes
            # before the caller unwinds.
            abandoned.set()
            await asyncio.gather(work, return_exceptions=True)
            raise

    async def keys_for_account(self, account: str) -> set[str]:
        def _query() -> set[str]:
            rows = self._conn.execute("SELECT key FROM image_digests WHERE account = ?", (account,))
            return {row[0] for row in rows}

        return await self._run(_query)

    async def get_digest(self, key: str) -> str | None:
        def _query() -> str | None:
            row = self._conn.execute("SELECT digest FROM image_digests WHERE key = ?", (key,)).fetchone()
            return row[0] if row else None

        return await self._run(_query)

    async def set_digest(self, key: str, digest: str | None) -> None:
        account = parse_key(key)[0]

        def _upsert() -> None:
            with self._conn:
                self._conn.execute(
                    "INSERT INTO image_digests (key, account, digest) VALUES (?, ?, ?) "
                    "ON CONFLICT(key) DO UPDATE SET digest = excluded.digest",
                    (key, account, digest),
                )

        await self._run(_upsert)

    async def evict_account(self, account: str) -> int:
        def _delete() -> int:
            with self._conn:
                cur = self._conn.execute("DELETE FROM image_digests WHERE account = ?", (account,))
                return cur.rowcount

        removed = await self._run(_delete)
        _log.info("account_evicted", account=account, removed=removed)
        return removed

    async def close(self) -> None:
        def _close() -> None:
            self._conn.close()

        await self._run(_close)
        _log.info("sqlite_cache_closed", path=self._path)
