"""FastAPI application factory for TagWatch.

Usage::

    from tagwatch.api.app import create_app

    app = create_app(monitor=monitor, scheduler=scheduler)

The factory is designed for use by both the production bootstrap
(``tagwatch.app``) and unit tests.
"""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from tagwatch.api.routes import router
from tagwatch.api.schemas import ErrorResponse
from tagwatch.exceptions import TagWatchError

_log = structlog.get_logger(component="api.app")

_API_PREFIX = "/api/v1"


def create_app(monitor: Any, scheduler: Any = None) -> FastAPI:
    """Create and configure the TagWatch FastAPI application.

    Args:
        monitor:   TagMonitor instance.
        scheduler: Optional PollScheduler, reported by /health.

    Returns:
        Configured FastAPI application, ready to be served by uvicorn.
    """
    from tagwatch import __version__

    app = FastAPI(
        title="TagWatch",
        summary="Container registry tag change monitor",
        version=__version__,
        docs_url="/api/v1/docs",
        redoc_url="/api/v1/redoc",
        openapi_url="/api/v1/openapi.json",
    )

    app.state.monitor = monitor
    app.state.scheduler = scheduler

    app.include_router(router, prefix=_API_PREFIX)

    @app.exception_handler(TagWatchError)
    async def tagwatch_error_handler(request: Request, exc: TagWatchError) -> JSONResponse:
        _log.warning(
            "request_failed",
            path=str(request.url.path),
            error_type=type(exc).__name__,
            error=str(exc),
        )
        return JSONResponse(
            status_code=503,
            content=ErrorResponse(error=type(exc).__name__, detail=str(exc)).model_dump(),
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(
        request: Request,
        exc: Exception,
    ) -> JSONResponse:
        """Catch-all for unhandled exceptions; never expose stack traces."""
        _log.error(
            "unhandled_exception",
            path=str(request.url.path),
            method=request.method,
            error=str(exc),
        )
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(
                error="INTERNAL_ERROR",
                detail="An unexpected error occurred.",
            ).model_dump(),
        )

    return app
