"""Event delivery for TagWatch.

Exports:
    EventEmitter         -- Abstract base for all emitter implementations.
    WebhookEventEmitter  -- Generic JSON POST webhook emitter.
    build_event_emitter  -- Factory used by the application bootstrap.
"""

from __future__ import annotations

import os
from typing import TYPE_CHECKING

import structlog

from tagwatch.notifications.base import EventEmitter
from tagwatch.notifications.webhook import WebhookEventEmitter

if TYPE_CHECKING:
    from tagwatch.models.config import NotificationConfig

_log = structlog.get_logger(component="notifications")

__all__ = [
    "EventEmitter",
    "WebhookEventEmitter",
    "build_event_emitter",
]


def build_event_emitter(config: NotificationConfig) -> EventEmitter | None:
    """Build the event emitter from environment-resolved secrets.

    ``webhook_secret_ref`` is the name of an environment variable whose
    value is the webhook URL.  Returns None when delivery is not configured,
    which disables emission without affecting snapshot updates.
    """
    webhook_ref = config.webhook_secret_ref
    if not webhook_ref:
        _log.info("event_emitter_disabled", reason="no webhook secret ref configured")
        return None

    webhook_url = os.environ.get(webhook_ref, "")
    if not webhook_url:
        _log.warning("event_emitter_disabled", reason="secret ref env var is empty", secret_ref=webhook_ref)
        return None

    _log.info("webhook_emitter_enabled")
    return WebhookEventEmitter(url=webhook_url)
