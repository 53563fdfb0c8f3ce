"""Poll cycle outcome structures."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum


class ImageDecision(StrEnum):
    """Reconciler verdict for one tagged image."""

    NEW = "new"
    DIGEST_CHANGED = "digest_changed"
    UNCHANGED = "unchanged"
    DIGEST_UNKNOWN = "digest_unknown"


@dataclass(frozen=True)
class ImageOutcome:
    """What the reconciler decided and did for one image key."""

    key: str
    decision: ImageDecision
    updated: bool
    emitted: bool = False


@dataclass
class AccountPollResult:
    """Summary of one account's reconciliation within a poll cycle."""

    account: str
    succeeded: bool
    images_listed: int = 0
    outcomes: list[ImageOutcome] = field(default_factory=list)
    error: str | None = None
    duration_ms: float = 0.0

    @property
    def updated(self) -> int:
        return sum(1 for o in self.outcomes if o.updated)

    @property
    def emitted(self) -> int:
        return sum(1 for o in self.outcomes if o.emitted)

    def to_dict(self) -> dict[str, object]:
        return {
            "account": self.account,
            "succeeded": self.succeeded,
            "images_listed": self.images_listed,
            "updated": self.updated,
            "emitted": self.emitted,
            "error": self.error,
            "duration_ms": round(self.duration_ms, 1),
        }


@dataclass
class PollResult:
    """Summary of a full poll cycle across all accounts."""

    started_at: datetime
    finished_at: datetime | None = None
    accounts: list[AccountPollResult] = field(default_factory=list)

    @property
    def failed_accounts(self) -> list[str]:
        return [r.account for r in self.accounts if not r.succeeded]

    def to_dict(self) -> dict[str, object]:
        return {
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "accounts": [r.to_dict() for r in self.accounts],
            "failed_accounts": self.failed_accounts,
        }
