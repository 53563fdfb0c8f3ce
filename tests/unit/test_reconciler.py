"""Unit tests for AccountReconciler decisions, emission guard and updates."""

from __future__ import annotations

import asyncio

import pytest

from tagwatch.cache.memory import InMemorySnapshotCache
from tagwatch.exceptions import CacheError
from tagwatch.models.results import ImageDecision
from tagwatch.monitor.reconciler import AccountReconciler

from .conftest import (
    PartlyBrokenCache,
    RecordingEmitter,
    SlowDigestCache,
    key_for,
    make_account,
    make_image,
    seed,
)

# An unrelated image that keeps the account's snapshot non-empty so the
# empty-snapshot guard does not suppress emission.
_ANCHOR = make_image(repository="anchor", tag="stable", digest="sha-anchor")


# ---------------------------------------------------------------------------
# New images
# ---------------------------------------------------------------------------


class TestNewImages:
    async def test_new_image_on_empty_snapshot_is_recorded_without_event(
        self,
        cache: InMemorySnapshotCache,
        emitter: RecordingEmitter,
    ) -> None:
        """First sight of an account only baselines; nothing is emitted."""
        image = make_image(digest="sha1")
        outcomes = await AccountReconciler(cache, emitter).reconcile(make_account(), [image])

        assert len(outcomes) == 1
        assert outcomes[0].decision == ImageDecision.NEW
        assert outcomes[0].updated is True
        assert outcomes[0].emitted is False
        assert emitter.events == []
        assert await cache.get_digest(key_for(image)) == "sha1"

    async def test_new_image_with_existing_snapshot_emits(
        self,
        cache: InMemorySnapshotCache,
        emitter: RecordingEmitter,
    ) -> None:
        await seed(cache, _ANCHOR)
        image = make_image(repository="svc", tag="v2", digest="sha9")

        outcomes = await AccountReconciler(cache, emitter).reconcile(make_account(), [_ANCHOR, image])

        by_key = {o.key: o for o in outcomes}
        assert by_key[key_for(image)].decision == ImageDecision.NEW
        assert by_key[key_for(image)].emitted is True
        assert by_key[key_for(_ANCHOR)].decision == ImageDecision.UNCHANGED
        assert len(emitter.events) == 1
        event = emitter.events[0]
        assert event.account == "a1"
        assert event.repository == "svc"
        assert event.tag == "v2"
        assert event.digest == "sha9"
        assert event.previous_digest is None
        assert event.artifact.reference == "svc:v2"
        assert event.artifact.location == "registry.example.com/svc:v2"
        assert await cache.get_digest(key_for(image)) == "sha9"

    async def test_new_image_without_emitter_is_still_recorded(
        self,
        cache: InMemorySnapshotCache,
    ) -> None:
        await seed(cache, _ANCHOR)
        image = make_image(tag="v2", digest="sha2")

        outcomes = await AccountReconciler(cache, emitter=None).reconcile(make_account(), [image])

        assert outcomes[0].updated is True
        assert outcomes[0].emitted is False
        assert await cache.get_digest(key_for(image)) == "sha2"

    async def test_new_image_recorded_when_digests_untracked(
        self,
        cache: InMemorySnapshotCache,
        emitter: RecordingEmitter,
    ) -> None:
        """The digest, even None, becomes the baseline regardless of tracking."""
        await seed(cache, _ANCHOR)
        image = make_image(tag="v3", digest=None)

        outcomes = await AccountReconciler(cache, emitter).reconcile(make_account(track_digests=False), [image])

        assert outcomes[0].decision == ImageDecision.NEW
        assert outcomes[0].emitted is True
        assert key_for(image) in await cache.keys_for_account("a1")
        assert await cache.get_digest(key_for(image)) is None


# ---------------------------------------------------------------------------
# Known images
# ---------------------------------------------------------------------------


class TestKnownImages:
    async def test_untracked_account_ignores_digest_changes(
        self,
        cache: InMemorySnapshotCache,
        emitter: RecordingEmitter,
    ) -> None:
        await seed(cache, make_image(digest="sha1"))

        outcomes = await AccountReconciler(cache, emitter).reconcile(
            make_account(track_digests=False),
            [make_image(digest="sha2")],
        )

        assert outcomes[0].decision == ImageDecision.UNCHANGED
        assert outcomes[0].updated is False
        assert emitter.events == []
        assert await cache.get_digest(key_for(make_image())) == "sha1"

    @pytest.mark.parametrize(
        ("cached", "current", "decision", "fires"),
        [
            ("sha1", "sha2", ImageDecision.DIGEST_CHANGED, True),
            ("sha1", "sha1", ImageDecision.UNCHANGED, False),
            ("sha1", None, ImageDecision.DIGEST_UNKNOWN, False),
            (None, "sha2", ImageDecision.DIGEST_UNKNOWN, False),
            (None, None, ImageDecision.UNCHANGED, False),
        ],
    )
    async def test_tracked_digest_comparison(
        self,
        cache: InMemorySnapshotCache,
        emitter: RecordingEmitter,
        cached: str | None,
        current: str | None,
        decision: ImageDecision,
        fires: bool,
    ) -> None:
        """A change fires only when both digests are known and differ."""
        await seed(cache, make_image(digest=cached))

        outcomes = await AccountReconciler(cache, emitter).reconcile(make_account(), [make_image(digest=current)])

        assert outcomes[0].decision == decision
        assert outcomes[0].updated is fires
        assert outcomes[0].emitted is fires
        assert len(emitter.events) == (1 if fires else 0)
        expected = current if fires else cached
        assert await cache.get_digest(key_for(make_image())) == expected

    async def test_digest_change_event_carries_previous_digest(
        self,
        cache: InMemorySnapshotCache,
        emitter: RecordingEmitter,
    ) -> None:
        await seed(cache, make_image(digest="sha1"))

        await AccountReconciler(cache, emitter).reconcile(make_account(), [make_image(digest="sha2")])

        assert emitter.events[0].previous_digest == "sha1"
        assert emitter.events[0].digest == "sha2"


# ---------------------------------------------------------------------------
# Snapshot hygiene
# ---------------------------------------------------------------------------


class TestSnapshotHygiene:
    async def test_stale_keys_are_never_evicted(
        self,
        cache: InMemorySnapshotCache,
        emitter: RecordingEmitter,
    ) -> None:
        gone = make_image(repository="retired", tag="old")
        await seed(cache, gone, _ANCHOR)

        await AccountReconciler(cache, emitter).reconcile(make_account(), [])

        assert await cache.keys_for_account("a1") == {key_for(gone), key_for(_ANCHOR)}

    async def test_duplicate_observations_last_write_wins(
        self,
        cache: InMemorySnapshotCache,
        emitter: RecordingEmitter,
    ) -> None:
        await seed(cache, _ANCHOR)
        first = make_image(tag="dup", digest="sha-a")
        second = make_image(tag="dup", digest="sha-b")

        outcomes = await AccountReconciler(cache, emitter).reconcile(make_account(), [first, second])

        assert len(outcomes) == 1
        assert len(emitter.events) == 1
        assert await cache.get_digest(key_for(second)) == "sha-b"

    async def test_other_accounts_snapshot_does_not_lift_guard(
        self,
        cache: InMemorySnapshotCache,
        emitter: RecordingEmitter,
    ) -> None:
        await seed(cache, make_image(account="other", digest="sha1"))

        await AccountReconciler(cache, emitter).reconcile(make_account(), [make_image(tag="v9")])

        assert emitter.events == []


# ---------------------------------------------------------------------------
# Failure handling
# ---------------------------------------------------------------------------


class TestFailures:
    async def test_emitter_failure_still_records_and_continues(
        self,
        cache: InMemorySnapshotCache,
    ) -> None:
        await seed(cache, _ANCHOR)
        emitter = RecordingEmitter(fail_tags={"bad"})
        bad = make_image(tag="bad", digest="sha-bad")
        good = make_image(tag="good", digest="sha-good")

        outcomes = await AccountReconciler(cache, emitter).reconcile(make_account(), [bad, good])

        by_key = {o.key: o for o in outcomes}
        assert by_key[key_for(bad)].updated is True
        assert by_key[key_for(bad)].emitted is False
        assert by_key[key_for(good)].emitted is True
        assert [e.tag for e in emitter.events] == ["good"]
        assert await cache.get_digest(key_for(bad)) == "sha-bad"

    async def test_cache_write_failure_propagates(
        self,
        emitter: RecordingEmitter,
    ) -> None:
        class BrokenCache(InMemorySnapshotCache):
            async def set_digest(self, key: str, digest: str | None) -> None:
                raise CacheError("disk full")

        with pytest.raises(CacheError):
            await AccountReconciler(BrokenCache(), emitter).reconcile(make_account(), [make_image()])

    async def test_failed_write_cancels_sibling_writes(self, emitter: RecordingEmitter) -> None:
        cache = PartlyBrokenCache(fail_tags={"bad"})
        await seed(cache, _ANCHOR)
        images = [make_image(tag="bad")] + [make_image(tag=f"t{i}") for i in range(5)]

        with pytest.raises(CacheError):
            await AccountReconciler(cache, emitter).reconcile(make_account(), images)
        writes_at_failure = len(cache)
        await asyncio.sleep(0.2)

        assert writes_at_failure == 1
        assert len(cache) == writes_at_failure


# ---------------------------------------------------------------------------
# Concurrency
# ---------------------------------------------------------------------------


class TestConcurrency:
    async def test_image_fan_out_is_bounded(self) -> None:
        cache = SlowDigestCache()
        images = [make_image(tag=f"t{i}", digest="sha") for i in range(20)]
        await seed(cache, *images)

        outcomes = await AccountReconciler(cache, image_concurrency=3).reconcile(make_account(), images)

        assert len(outcomes) == 20
        assert 1 < cache.peak <= 3
