"""Per-account reconciliation of registry state against the snapshot cache.

For every image currently listed for an account the reconciler decides,
independently and concurrently, whether the image is new or has a changed
digest.  Flagged images get a change event (subject to the emission guard)
and their current digest recorded as the new baseline.

Rules:

* A key absent from the snapshot is new and is always recorded.
* A key present in the snapshot is only re-examined when the account tracks
  digests.  A digest change counts only when both the recorded and current
  digests are known: a None on either side means a manifest fetch failed in
  this or an earlier cycle.
* Keys in the snapshot that are no longer listed are left alone.  A partial
  or empty listing must never wipe the snapshot.

Emission guard: events are withheld, while snapshots are still recorded,
when the account's snapshot was empty at the start of the cycle (a flushed
cache would otherwise report every image as new) or when no emitter is
configured.
"""

from __future__ import annotations

import asyncio

import structlog

from tagwatch.cache.base import SnapshotCache
from tagwatch.concurrency import run_all
from tagwatch.models.events import ImageChangeEvent
from tagwatch.models.images import RegistryAccount, TaggedImage
from tagwatch.models.results import ImageDecision, ImageOutcome
from tagwatch.notifications.base import EventEmitter
from tagwatch.observability.metrics import events_emitted_total, image_decisions_total

_log = structlog.get_logger(component="monitor.reconciler")

_UPDATE_DECISIONS = frozenset({ImageDecision.NEW, ImageDecision.DIGEST_CHANGED})


class AccountReconciler:
    """Computes and applies change decisions for one account at a time.

    Args:
        cache:             Snapshot cache; the only state the reconciler mutates.
        emitter:           Optional event emitter.  None disables emission.
        image_concurrency: Upper bound on images evaluated in parallel.
    """

    def __init__(
        self,
        cache: SnapshotCache,
        emitter: EventEmitter | None = None,
        image_concurrency: int = 16,
    ) -> None:
        self._cache = cache
        self._emitter = emitter
        self._image_concurrency = max(1, image_concurrency)

    async def reconcile(self, account: RegistryAccount, images: list[TaggedImage]) -> list[ImageOutcome]:
        """Reconcile *images* listed for *account* against its snapshot."""
        cached_keys = await self._cache.keys_for_account(account.name)

        # Evaluated fresh on every cycle.
        emit_allowed = bool(cached_keys) and self._emitter is not None
        if not cached_keys:
            _log.info("empty_snapshot_events_suppressed", account=account.name)

        # Last write wins when the registry reports the same tag twice.
        current: dict[str, TaggedImage] = {}
        for image in images:
            key = self._cache.make_key(account.name, image.registry, image.repository, image.tag)
            current[key] = image

        semaphore = asyncio.Semaphore(self._image_concurrency)

        async def _bounded(key: str, image: TaggedImage) -> ImageOutcome:
            async with semaphore:
                return await self._reconcile_image(account, key, image, cached_keys, emit_allowed)

        outcomes = await run_all(_bounded(key, image) for key, image in current.items())
        for outcome in outcomes:
            image_decisions_total.labels(account=account.name, decision=outcome.decision.value).inc()
        return list(outcomes)

    async def _reconcile_image(
        self,
        account: RegistryAccount,
        key: str,
        image: TaggedImage,
        cached_keys: set[str],
        emit_allowed: bool,
    ) -> ImageOutcome:
        decision, previous = await self._decide(account, key, image, cached_keys)
        if decision not in _UPDATE_DECISIONS:
            return ImageOutcome(key=key, decision=decision, updated=False)

        emitted = False
        if emit_allowed:
            emitted = await self._emit(account, key, image, previous)

        # Recorded even if delivery failed; a lost event is not re-detected.
        await self._cache.set_digest(key, image.digest)
        return ImageOutcome(key=key, decision=decision, updated=True, emitted=emitted)

    async def _decide(
        self,
        account: RegistryAccount,
        key: str,
        image: TaggedImage,
        cached_keys: set[str],
    ) -> tuple[ImageDecision, str | None]:
        if key not in cached_keys:
            _log.info("new_tagged_image", account=account.name, image=key, digest=image.digest)
            return ImageDecision.NEW, None

        if not account.track_digests:
            return ImageDecision.UNCHANGED, None

        last_digest = await self._cache.get_digest(key)
        if last_digest == image.digest:
            return ImageDecision.UNCHANGED, last_digest

        if last_digest is None or image.digest is None:
            _log.info(
                "tagged_image_digest_unknown",
                account=account.name,
                image=key,
                previous_digest=last_digest,
                digest=image.digest,
            )
            return ImageDecision.DIGEST_UNKNOWN, last_digest

        _log.info(
            "updated_tagged_image",
            account=account.name,
            image=key,
            previous_digest=last_digest,
            digest=image.digest,
        )
        return ImageDecision.DIGEST_CHANGED, last_digest

    async def _emit(
        self,
        account: RegistryAccount,
        key: str,
        image: TaggedImage,
        previous_digest: str | None,
    ) -> bool:
        assert self._emitter is not None
        event = ImageChangeEvent.from_image(image, previous_digest=previous_digest)
        _log.info(
            "sending_tagged_image_event",
            account=account.name,
            image=key,
            emitter=self._emitter.emitter_name,
            event_id=event.event_id,
        )
        try:
            await self._emitter.emit(event)
        except Exception as exc:  # noqa: BLE001
            _log.error(
                "tagged_image_event_failed",
                account=account.name,
                image=key,
                event_id=event.event_id,
                error=str(exc),
            )
            events_emitted_total.labels(account=account.name, success="false").inc()
            return False
        events_emitted_total.labels(account=account.name, success="true").inc()
        return True
