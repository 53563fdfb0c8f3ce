"""Fixed-interval scheduler invoking TagMonitor.poll_once."""

from __future__ import annotations

import asyncio

import structlog

from tagwatch.monitor.driver import TagMonitor

_log = structlog.get_logger(component="monitor.scheduler")


class PollScheduler:
    """Runs ``monitor.poll_once()`` every *interval_seconds* in the background.

    A cycle that raises is logged and the loop keeps going; the interval is
    measured from the end of one cycle to the start of the next so cycles
    never overlap.
    """

    def __init__(self, monitor: TagMonitor, interval_seconds: float) -> None:
        self._monitor = monitor
        self._interval = interval_seconds
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._loop(), name="poll-scheduler")
        _log.info("poll_scheduler_started", interval_seconds=self._interval)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        await asyncio.gather(self._task, return_exceptions=True)
        self._task = None
        _log.info("poll_scheduler_stopped")

    async def _loop(self) -> None:
        while True:
            try:
                await self._monitor.poll_once()
            except Exception as exc:  # noqa: BLE001
                _log.error("poll_cycle_error", error=str(exc), exc_info=True)
            await asyncio.sleep(self._interval)
