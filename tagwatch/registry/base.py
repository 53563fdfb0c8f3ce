"""RegistryLister abstract base."""

from __future__ import annotations

from abc import ABC, abstractmethod

from tagwatch.models.images import RegistryAccount, TaggedImage


class RegistryLister(ABC):
    """Enumerates the tagged images currently published for an account.

    Implementations raise ``RegistryError`` when the listing as a whole
    cannot be produced.  A single manifest that cannot be read is not a
    listing failure: the image is returned with ``digest=None``.
    """

    @abstractmethod
    async def list_images(self, account: RegistryAccount) -> list[TaggedImage]:
        """Return every tagged image currently published for *account*."""

    async def close(self) -> None:  # noqa: B027
        """Release network resources.  No-op by default."""
