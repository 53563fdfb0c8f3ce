"""REST route handlers for TagWatch.

All handlers read their collaborators from ``request.app.state`` which the
application factory populates.
"""

from __future__ import annotations

from fastapi import APIRouter, Request, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from tagwatch.api.schemas import (
    AccountInfo,
    HealthResponse,
    PollSummary,
    StatusResponse,
)
from tagwatch.models.results import PollResult

router = APIRouter()


def _summary(result: PollResult | None) -> PollSummary | None:
    if result is None:
        return None
    return PollSummary.model_validate(result.to_dict())


@router.get("/health", response_model=HealthResponse)
async def health(request: Request) -> HealthResponse:
    from tagwatch import __version__

    scheduler = request.app.state.scheduler
    return HealthResponse(
        version=__version__,
        scheduler_running=bool(scheduler is not None and scheduler.running),
    )


@router.get("/status", response_model=StatusResponse)
async def status(request: Request) -> StatusResponse:
    from tagwatch import __version__

    monitor = request.app.state.monitor
    accounts = [
        AccountInfo(
            name=a.name,
            registry=a.registry,
            track_digests=a.track_digests,
            repositories=list(a.repositories),
        )
        for a in monitor.accounts
    ]
    return StatusResponse(
        version=__version__,
        accounts=accounts,
        last_poll=_summary(monitor.last_result),
    )


@router.post("/poll", response_model=PollSummary)
async def trigger_poll(request: Request) -> PollSummary:
    """Run one poll cycle now and return its summary."""
    result = await request.app.state.monitor.poll_once()
    summary = _summary(result)
    assert summary is not None
    return summary


@router.get("/metrics")
async def metrics() -> Response:
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
