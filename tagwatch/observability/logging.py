"""Structured logging for TagWatch.

Every record is a single JSON line on stderr carrying ``service`` and
``version``.  Records emitted during a poll cycle also carry the cycle's
``poll_id`` (see :func:`poll_context`), including those logged from the
per-account tasks the cycle fans out to.
"""

from __future__ import annotations

import logging
import sys
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import structlog

from tagwatch import __version__

_SERVICE = "tagwatch"


def _add_service(_logger: Any, _method: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    event_dict.setdefault("service", _SERVICE)
    event_dict.setdefault("version", __version__)
    return event_dict


def setup_logging(level: str = "info") -> None:
    """Configure structlog for JSON output to stderr at *level*."""
    log_level = getattr(logging, level.upper(), logging.INFO)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            _add_service,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.format_exc_info,
            structlog.processors.TimeStamper(fmt="iso", utc=True, key="ts"),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


@contextmanager
def poll_context(poll_id: str | None = None) -> Iterator[str]:
    """Bind a ``poll_id`` to every record logged inside the block.

    Tasks created inside the block inherit the binding.  Yields the id.
    """
    poll_id = poll_id or uuid.uuid4().hex[:12]
    with structlog.contextvars.bound_contextvars(poll_id=poll_id):
        yield poll_id


def get_logger(component: str) -> structlog.stdlib.BoundLogger:
    """Get a logger bound with a component name."""
    return structlog.get_logger(component=component)  # type: ignore[return-value]
