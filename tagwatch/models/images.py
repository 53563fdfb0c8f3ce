"""Registry account and tagged image data structures."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class RegistryAccount:
    """A configured registry account.

    Produced by an AccountSource on every refresh; read-only to the monitor.
    ``repositories`` empty means the registry catalog is enumerated instead.
    """

    name: str
    address: str
    registry: str
    track_digests: bool = False
    repositories: tuple[str, ...] = field(default_factory=tuple)
    insecure: bool = False


@dataclass(frozen=True)
class TaggedImage:
    """One tag observed in a registry during a single poll cycle.

    ``digest`` is None when the manifest could not be fetched this cycle,
    or when digests are not tracked for the account.
    """

    account: str
    registry: str
    repository: str
    tag: str
    digest: str | None = None

    @property
    def reference(self) -> str:
        return f"{self.repository}:{self.tag}"

    @property
    def location(self) -> str:
        return f"{self.registry}/{self.repository}:{self.tag}"
