"""EventEmitter abstract base."""

from __future__ import annotations

from abc import ABC, abstractmethod

from tagwatch.models.events import ImageChangeEvent


class EventEmitter(ABC):
    """Delivers image change events to downstream consumers.

    The monitor treats the emitter as optional: when none is configured the
    reconciler still records snapshots but sends nothing.
    """

    @property
    @abstractmethod
    def emitter_name(self) -> str:
        """Human-readable identifier used in logs."""

    @abstractmethod
    async def emit(self, event: ImageChangeEvent) -> None:
        """Deliver *event*.

        Raises:
            EmitError: if the event was not accepted downstream.
        """

    async def close(self) -> None:  # noqa: B027
        """Release resources.  No-op by default."""
