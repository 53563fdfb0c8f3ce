"""Generic JSON webhook event emitter.

Posts ImageChangeEvent payloads to any configured HTTP endpoint.  The body
is ``ImageChangeEvent.to_payload()`` so consumers can parse it without
TagWatch-specific knowledge.
"""

from __future__ import annotations

import httpx
import structlog

from tagwatch.exceptions import EmitError
from tagwatch.models.events import ImageChangeEvent
from tagwatch.notifications.base import EventEmitter

_log = structlog.get_logger(component="notifications.webhook")


class WebhookEventEmitter(EventEmitter):
    """Delivers events by POSTing a JSON payload to a configurable URL.

    Args:
        url:       Full endpoint URL (must be HTTPS in production).
        headers:   Optional extra headers (e.g. Authorization).
        timeout:   HTTP request timeout in seconds. Defaults to 10.
        transport: Optional httpx transport (tests use MockTransport).
    """

    def __init__(
        self,
        url: str,
        headers: dict[str, str] | None = None,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not url:
            raise ValueError("Webhook url must not be empty")
        self._url = url
        self._client = httpx.AsyncClient(
            timeout=timeout,
            transport=transport,
            headers={"Content-Type": "application/json", **(headers or {})},
        )

    @property
    def emitter_name(self) -> str:
        return "webhook"

    async def emit(self, event: ImageChangeEvent) -> None:
        """POST *event* as JSON to the configured endpoint.

        Raises:
            EmitError: on a non-2xx response, timeout or transport error.
        """
        try:
            response = await self._client.post(self._url, json=event.to_payload())
        except httpx.TimeoutException as exc:
            raise EmitError(f"Webhook request timed out for event {event.event_id}") from exc
        except httpx.HTTPError as exc:
            raise EmitError(f"Webhook request failed for event {event.event_id}: {exc}") from exc

        if not response.is_success:
            _log.warning(
                "webhook_non_2xx_response",
                status_code=response.status_code,
                body=response.text[:200],
                event_id=event.event_id,
            )
            raise EmitError(f"Webhook returned HTTP {response.status_code} for event {event.event_id}")

    async def close(self) -> None:
        await self._client.aclose()
