"""Shared fakes and factories for TagWatch unit tests.

The fakes stand in for the collaborators the monitor consumes (registry
lister, event emitter) so reconciler and driver behaviour can be asserted
without any network I/O.  The in-memory snapshot cache is used as-is.
"""

from __future__ import annotations

import asyncio

import pytest

from tagwatch.cache.keys import make_key, parse_key
from tagwatch.cache.memory import InMemorySnapshotCache
from tagwatch.exceptions import CacheError, EmitError, RegistryError
from tagwatch.models.events import ImageChangeEvent
from tagwatch.models.images import RegistryAccount, TaggedImage
from tagwatch.notifications.base import EventEmitter
from tagwatch.registry.base import RegistryLister

REGISTRY = "registry.example.com"

# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------


def make_account(
    name: str = "a1",
    track_digests: bool = True,
    registry: str = REGISTRY,
    repositories: tuple[str, ...] = (),
) -> RegistryAccount:
    """Create a RegistryAccount with sensible defaults for testing."""
    return RegistryAccount(
        name=name,
        address=f"https://{registry}",
        registry=registry,
        track_digests=track_digests,
        repositories=repositories,
    )


def make_image(
    repository: str = "svc",
    tag: str = "v1",
    digest: str | None = "sha1",
    account: str = "a1",
    registry: str = REGISTRY,
) -> TaggedImage:
    """Create a TaggedImage with sensible defaults for testing."""
    return TaggedImage(
        account=account,
        registry=registry,
        repository=repository,
        tag=tag,
        digest=digest,
    )


def key_for(image: TaggedImage) -> str:
    return make_key(image.account, image.registry, image.repository, image.tag)


async def seed(cache: InMemorySnapshotCache, *images: TaggedImage) -> None:
    """Record *images* in the cache as if a previous cycle had seen them."""
    for image in images:
        await cache.set_digest(key_for(image), image.digest)


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class FakeLister(RegistryLister):
    """Returns a preset image list; swap ``images`` between cycles."""

    def __init__(self, images: list[TaggedImage] | None = None) -> None:
        self.images = list(images or [])
        self.calls = 0
        self.closed = False

    async def list_images(self, account: RegistryAccount) -> list[TaggedImage]:
        self.calls += 1
        return list(self.images)

    async def close(self) -> None:
        self.closed = True


class FailingLister(RegistryLister):
    """Always fails the way an unreachable registry does."""

    async def list_images(self, account: RegistryAccount) -> list[TaggedImage]:
        raise RegistryError(account.name, "GET /v2/_catalog failed: connection refused")


class RecordingEmitter(EventEmitter):
    """Collects every emitted event; optionally fails for chosen tags."""

    def __init__(self, fail_tags: set[str] | None = None) -> None:
        self.events: list[ImageChangeEvent] = []
        self._fail_tags = fail_tags or set()

    @property
    def emitter_name(self) -> str:
        return "recording"

    async def emit(self, event: ImageChangeEvent) -> None:
        if event.tag in self._fail_tags:
            raise EmitError(f"delivery refused for {event.tag}")
        self.events.append(event)


class SlowDigestCache(InMemorySnapshotCache):
    """In-memory cache that tracks peak concurrency of get_digest calls."""

    def __init__(self) -> None:
        super().__init__()
        self.in_flight = 0
        self.peak = 0

    async def get_digest(self, key: str) -> str | None:
        self.in_flight += 1
        self.peak = max(self.peak, self.in_flight)
        try:
            await asyncio.sleep(0.005)
            return await super().get_digest(key)
        finally:
            self.in_flight -= 1


class PartlyBrokenCache(InMemorySnapshotCache):
    """Fails writes for tags in *fail_tags*; other writes land after a delay."""

    def __init__(self, fail_tags: set[str], delay: float = 0.05) -> None:
        super().__init__()
        self._fail_tags = fail_tags
        self._delay = delay

    async def set_digest(self, key: str, digest: str | None) -> None:
        if parse_key(key)[3] in self._fail_tags:
            raise CacheError("disk full")
        await asyncio.sleep(self._delay)
        await super().set_digest(key, digest)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def cache() -> InMemorySnapshotCache:
    return InMemorySnapshotCache()


@pytest.fixture
def emitter() -> RecordingEmitter:
    return RecordingEmitter()
