"""Poll driver: one reconciliation pass over every registry account.

Each account is processed in isolation.  Any failure while listing or
reconciling an account is logged with the account name and recorded in the
cycle summary; other accounts carry on.  There is no retry within a cycle:
the next scheduled poll is the retry.

Polls of the same account are serialized with a per-account lock, so a
manually triggered poll overlapping a scheduled one never writes the same
snapshot concurrently.  Different accounts share no locks.
"""

from __future__ import annotations

import asyncio
import time
from datetime import UTC, datetime

import structlog

from tagwatch.accounts.source import AccountSource
from tagwatch.cache.base import SnapshotCache
from tagwatch.concurrency import run_all
from tagwatch.models.images import RegistryAccount
from tagwatch.models.results import AccountPollResult, PollResult
from tagwatch.monitor.reconciler import AccountReconciler
from tagwatch.notifications.base import EventEmitter
from tagwatch.observability.logging import poll_context
from tagwatch.observability.metrics import (
    account_polls_total,
    images_listed,
    polls_total,
    registry_list_seconds,
)

_log = structlog.get_logger(component="monitor.driver")


class TagMonitor:
    """Drives poll cycles across all configured accounts.

    Args:
        accounts:            Account source refreshed at the start of each cycle.
        cache:               Snapshot cache shared by every account.
        emitter:             Optional event emitter.
        account_concurrency: Accounts reconciled in parallel.
        image_concurrency:   Images evaluated in parallel within one account.
    """

    name = "tag_monitor"

    def __init__(
        self,
        accounts: AccountSource,
        cache: SnapshotCache,
        emitter: EventEmitter | None = None,
        account_concurrency: int = 4,
        image_concurrency: int = 16,
    ) -> None:
        self._accounts = accounts
        self._reconciler = AccountReconciler(cache, emitter, image_concurrency=image_concurrency)
        self._account_concurrency = max(1, account_concurrency)
        self._account_locks: dict[str, asyncio.Lock] = {}
        self.last_result: PollResult | None = None

    @property
    def accounts(self) -> list[RegistryAccount]:
        return self._accounts.accounts

    async def poll_once(self) -> PollResult:
        """Refresh accounts and reconcile each one once."""
        with poll_context():
            return await self._poll_cycle()

    async def _poll_cycle(self) -> PollResult:
        result = PollResult(started_at=datetime.now(tz=UTC))

        try:
            await self._accounts.refresh()
        except Exception as exc:  # noqa: BLE001
            _log.error("account_refresh_failed", error=str(exc), exc_info=True)
        self._prune_account_locks()

        semaphore = asyncio.Semaphore(self._account_concurrency)

        async def _bounded(account: RegistryAccount) -> AccountPollResult:
            async with semaphore:
                return await self.poll_account(account)

        result.accounts = await run_all(_bounded(a) for a in self._accounts.accounts)
        result.finished_at = datetime.now(tz=UTC)
        self.last_result = result

        failed = result.failed_accounts
        polls_total.labels(outcome="partial" if failed else "ok").inc()
        _log.info(
            "poll_completed",
            accounts=len(result.accounts),
            failed_accounts=failed,
            updated=sum(r.updated for r in result.accounts),
            emitted=sum(r.emitted for r in result.accounts),
        )
        return result

    def _prune_account_locks(self) -> None:
        live = {a.name for a in self._accounts.accounts}
        for name, lock in list(self._account_locks.items()):
            # A removed account may still be mid-poll from a manual trigger.
            if name not in live and not lock.locked():
                del self._account_locks[name]

    async def poll_account(self, account: RegistryAccount) -> AccountPollResult:
        """List and reconcile a single account, containing any failure."""
        lock = self._account_locks.setdefault(account.name, asyncio.Lock())
        async with lock:
            t_start = time.monotonic()
            _log.debug("checking_for_new_tags", account=account.name)
            try:
                lister = self._accounts.lister_for(account)
                images = await lister.list_images(account)
                list_seconds = time.monotonic() - t_start
                registry_list_seconds.labels(account=account.name).observe(list_seconds)
                images_listed.labels(account=account.name).set(len(images))
                _log.debug(
                    "images_retrieved",
                    account=account.name,
                    images=len(images),
                    took_ms=int(list_seconds * 1000),
                )
                outcomes = await self._reconciler.reconcile(account, images)
            except Exception as exc:  # noqa: BLE001
                _log.error("account_poll_failed", account=account.name, error=str(exc), exc_info=True)
                account_polls_total.labels(account=account.name, outcome="error").inc()
                return AccountPollResult(
                    account=account.name,
                    succeeded=False,
                    error=str(exc),
                    duration_ms=(time.monotonic() - t_start) * 1000.0,
                )

            account_polls_total.labels(account=account.name, outcome="ok").inc()
            return AccountPollResult(
                account=account.name,
                succeeded=True,
                images_listed=len(images),
                outcomes=outcomes,
                duration_ms=(time.monotonic() - t_start) * 1000.0,
            )
