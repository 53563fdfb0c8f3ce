"""Pydantic response models for the TagWatch REST API."""

from __future__ import annotations

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    error: str
    detail: str


class HealthResponse(BaseModel):
    status: str = "ok"
    version: str
    scheduler_running: bool


class AccountInfo(BaseModel):
    name: str
    registry: str
    track_digests: bool
    repositories: list[str] = Field(default_factory=list)


class AccountPollSummary(BaseModel):
    account: str
    succeeded: bool
    images_listed: int
    updated: int
    emitted: int
    error: str | None = None
    duration_ms: float


class PollSummary(BaseModel):
    started_at: str
    finished_at: str | None = None
    accounts: list[AccountPollSummary] = Field(default_factory=list)
    failed_accounts: list[str] = Field(default_factory=list)


class StatusResponse(BaseModel):
    version: str
    accounts: list[AccountInfo]
    last_poll: PollSummary | None = None
