"""Application bootstrap for TagWatch.

Wires all components in dependency order and manages the asyncio lifecycle.
Startup order: config → logging → snapshot cache → event emitter
              → account source → monitor → scheduler → REST

Shutdown is fully graceful: components are stopped in reverse startup order.
Each component's stop error is caught and logged independently so that
a single component failure does not prevent the rest from shutting down cleanly.
"""

from __future__ import annotations

import asyncio
import signal
from typing import TYPE_CHECKING

from tagwatch.accounts import FileAccountSource
from tagwatch.cache import SnapshotCache, build_snapshot_cache
from tagwatch.config import load_config
from tagwatch.models.config import TagWatchConfig
from tagwatch.models.images import RegistryAccount
from tagwatch.monitor import PollScheduler, TagMonitor
from tagwatch.notifications import EventEmitter, build_event_emitter
from tagwatch.observability.logging import get_logger, setup_logging
from tagwatch.registry import DockerRegistryV2Lister

if TYPE_CHECKING:
    import structlog

_SHUTDOWN_GRACE_SECONDS = 15
_RUN_CHECK_SECONDS = 1.0


class _ComponentError(Exception):
    """Raised when a mandatory component fails to start."""

    def __init__(self, component: str, cause: Exception) -> None:
        super().__init__(f"Component '{component}' failed to start: {cause}")
        self.component = component
        self.cause = cause


def build_monitor(
    config: TagWatchConfig,
) -> tuple[TagMonitor, SnapshotCache, EventEmitter | None, FileAccountSource]:
    """Construct the monitor and the collaborators it owns.

    Shared by the long-running service and the one-shot ``tagwatch poll``
    command.
    """
    cache = build_snapshot_cache(config.cache)
    emitter = build_event_emitter(config.notifications)

    def _lister_factory(account: RegistryAccount) -> DockerRegistryV2Lister:
        return DockerRegistryV2Lister(account, timeout=config.registry.timeout_seconds)

    accounts = FileAccountSource(config.accounts.file, lister_factory=_lister_factory)
    monitor = TagMonitor(
        accounts=accounts,
        cache=cache,
        emitter=emitter,
        account_concurrency=config.monitor.account_concurrency,
        image_concurrency=config.monitor.image_concurrency,
    )
    return monitor, cache, emitter, accounts


class TagWatchApp:
    """Application root.  Owns every component and coordinates their lifecycle.

    Calling ``stop()`` on an app that was never started (or already stopped)
    is safe.
    """

    def __init__(self) -> None:
        self.config: TagWatchConfig | None = None

        self._cache: SnapshotCache | None = None
        self._emitter: EventEmitter | None = None
        self._accounts: FileAccountSource | None = None
        self._monitor: TagMonitor | None = None
        self._scheduler: PollScheduler | None = None
        self._rest_server: object | None = None

        # Background tasks that must be cancelled on shutdown
        self._background_tasks: list[asyncio.Task[None]] = []

        self._running = False
        self._log: structlog.stdlib.BoundLogger | None = None
        self._shutdown_task: asyncio.Task[None] | None = None

    # ------------------------------------------------------------------
    # Startup
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Start all components in dependency order.

        Raises _ComponentError if a mandatory component cannot start.
        """
        # --- 1. Configuration -------------------------------------------
        self.config = load_config()

        # --- 2. Logging -------------------------------------------------
        setup_logging(self.config.log.level)
        self._log = get_logger("app")
        self._log.info("tagwatch starting", version=_tagwatch_version())

        # --- 3. Monitor and collaborators --------------------------------
        await self._start_monitor()

        # --- 4. Scheduler -------------------------------------------------
        await self._start_scheduler()

        # --- 5. REST API --------------------------------------------------
        await self._start_rest()

        self._running = True
        self._log.info("tagwatch started", poll_interval_seconds=self.config.monitor.poll_interval_seconds)

    async def _start_monitor(self) -> None:
        """Build cache, emitter, account source and monitor."""
        assert self._log is not None
        assert self.config is not None
        self._log.debug("starting monitor")
        try:
            monitor, cache, emitter, accounts = build_monitor(self.config)
        except Exception as exc:
            raise _ComponentError("monitor", exc) from exc
        self._monitor = monitor
        self._cache = cache
        self._emitter = emitter
        self._accounts = accounts
        self._log.info(
            "monitor started",
            cache_backend=self.config.cache.backend,
            emitter=emitter.emitter_name if emitter else None,
        )

    async def _start_scheduler(self) -> None:
        assert self._log is not None
        assert self.config is not None
        assert self._monitor is not None
        scheduler = PollScheduler(self._monitor, self.config.monitor.poll_interval_seconds)
        await scheduler.start()
        self._scheduler = scheduler

    async def _start_rest(self) -> None:
        """Start the uvicorn REST server."""
        assert self._log is not None
        assert self.config is not None
        if not self.config.api.enabled:
            self._log.info("rest api disabled (api.enabled=false)")
            return
        self._log.debug("starting rest api")
        try:
            import uvicorn

            from tagwatch.api import build_app

            fastapi_app = build_app(monitor=self._monitor, scheduler=self._scheduler)
            uv_config = uvicorn.Config(
                app=fastapi_app,
                host="0.0.0.0",
                port=self.config.api.port,
                log_config=None,  # structlog handles all logging
                access_log=False,
            )
            server = uvicorn.Server(uv_config)
            task = asyncio.create_task(server.serve(), name="rest-server")
            self._background_tasks.append(task)
            self._rest_server = server
            self._log.info("rest api started", port=self.config.api.port)
        except Exception as exc:
            raise _ComponentError("rest", exc) from exc

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------

    def request_shutdown(self) -> None:
        """Schedule ``stop()`` once.  Later requests are ignored."""
        if self._shutdown_task is None:
            self._shutdown_task = asyncio.create_task(self.stop(), name="shutdown")

    async def wait_stopped(self) -> None:
        """Block until a requested shutdown has closed every component."""
        while self._running:
            await asyncio.sleep(_RUN_CHECK_SECONDS)
        if self._shutdown_task is not None:
            await self._shutdown_task

    async def stop(self) -> None:
        """Gracefully stop all components in reverse startup order."""
        if not self._running and self._log is None:
            return

        log = self._log or get_logger("app")
        log.info("tagwatch shutting down")

        self._running = False

        await self._stop_component("scheduler", self._scheduler)

        for task in reversed(self._background_tasks):
            if not task.done():
                task.cancel()
        if self._background_tasks:
            await asyncio.gather(*self._background_tasks, return_exceptions=True)
        self._background_tasks.clear()

        await self._stop_component("accounts", self._accounts, method="close")
        await self._stop_component("emitter", self._emitter, method="close")
        await self._stop_component("cache", self._cache, method="close")

        log.info("tagwatch stopped")

    async def _stop_component(self, name: str, component: object | None, method: str = "stop") -> None:
        """Call the component's stop/close method, catching all errors."""
        if component is None:
            return
        log = self._log or get_logger("app")
        stop_fn = getattr(component, method, None)
        if stop_fn is None:
            return
        try:
            result = stop_fn()
            if asyncio.iscoroutine(result):
                await asyncio.wait_for(result, timeout=_SHUTDOWN_GRACE_SECONDS)
        except TimeoutError:
            log.warning("component stop timed out", component=name, timeout=_SHUTDOWN_GRACE_SECONDS)
        except Exception as exc:
            log.error("component stop raised an error", component=name, error=str(exc))


def _tagwatch_version() -> str:
    from tagwatch import __version__

    return __version__


# ---------------------------------------------------------------------------
# Async entrypoint
# ---------------------------------------------------------------------------


async def main() -> None:
    """Create the app, register OS signals, run until shutdown is requested."""
    app = TagWatchApp()
    loop = asyncio.get_running_loop()

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, app.request_shutdown)

    try:
        await app.start()
        await app.wait_stopped()
    except _ComponentError as exc:
        log = get_logger("app")
        log.critical(
            "fatal startup error",
            component=exc.component,
            error=str(exc.cause),
        )
        await app.stop()
        raise SystemExit(1) from exc
    finally:
        if app._running:
            await app.stop()
