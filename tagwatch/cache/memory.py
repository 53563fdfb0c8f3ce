"""In-process snapshot cache.

Contents are lost on restart, which the reconciler's empty-snapshot guard
treats like a flushed cache: the first cycle re-baselines silently.
"""

from __future__ import annotations

import structlog

from tagwatch.cache.base import SnapshotCache
from tagwatch.cache.keys import parse_key

_log = structlog.get_logger(component="cache.memory")


class InMemorySnapshotCache(SnapshotCache):
    def __init__(self) -> None:
        # account -> key -> digest
        self._store: dict[str, dict[str, str | None]] = {}

    async def keys_for_account(self, account: str) -> set[str]:
        return set(self._store.get(account, {}))

    async def get_digest(self, key: str) -> str | None:
        account = parse_key(key)[0]
        return self._store.get(account, {}).get(key)

    async def set_digest(self, key: str, digest: str | None) -> None:
        account = parse_key(key)[0]
        self._store.setdefault(account, {})[key] = digest

    async def evict_account(self, account: str) -> int:
        removed = len(self._store.pop(account, {}))
        _log.info("account_evicted", account=account, removed=removed)
        return removed

    def clear(self) -> None:
        """Drop everything, as if the backing store had been flushed."""
        self._store.clear()

    def __len__(self) -> int:
        return sum(len(keys) for keys in self._store.values())
