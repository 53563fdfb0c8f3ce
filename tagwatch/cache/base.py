"""SnapshotCache abstract base.

The snapshot for an account is the set of image keys observed so far plus
the last recorded digest of each.  Only the reconciler writes to it, and only
after deciding an image is new or has changed.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from tagwatch.cache.keys import make_key


class SnapshotCache(ABC):
    """Abstract key/digest store scoped by account."""

    def make_key(self, account: str, registry: str, repository: str, tag: str) -> str:
        return make_key(account, registry, repository, tag)

    @abstractmethod
    async def keys_for_account(self, account: str) -> set[str]:
        """Return every image key previously recorded for *account*."""

    @abstractmethod
    async def get_digest(self, key: str) -> str | None:
        """Return the last recorded digest for *key*, or None.

        None is returned both for unknown keys and for keys recorded while
        the manifest could not be fetched.
        """

    @abstractmethod
    async def set_digest(self, key: str, digest: str | None) -> None:
        """Record *digest* as the new baseline for *key*."""

    @abstractmethod
    async def evict_account(self, account: str) -> int:
        """Drop every key of *account*; returns how many were removed.

        Never called by the reconciler.  Exposed for operators and external
        sweepers only.
        """

    async def close(self) -> None:  # noqa: B027
        """Release backend resources.  No-op by default."""
