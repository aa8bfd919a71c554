"""Alert sinks: where low-stock alerts are delivered.

Delivery is fire-and-forget from the caller's point of view. Sinks may raise;
the usage workflow logs and swallows those errors so a failed notification
never undoes the ledger write that triggered it.
"""

from __future__ import annotations

from typing import Any, Protocol

import httpx

from buildledger.domain.alerts import AlertKind
from buildledger.runtime.logging import get_logger
from buildledger.runtime.settings import NotificationSettings

logger = get_logger(__name__)


class AlertSink(Protocol):
    def emit(self, item_id: str, kind: AlertKind, payload: dict[str, Any]) -> None: ...


class LoggingAlertSink:
    """Default sink: writes the alert to the log."""

    def emit(self, item_id: str, kind: AlertKind, payload: dict[str, Any]) -> None:
        logger.warning("[%s] %s: %s", kind.value, item_id, payload.get("message", ""))


class WebhookAlertSink:
    """POST alerts as JSON to a webhook URL."""

    def __init__(
        self,
        url: str,
        *,
        timeout: float = 10.0,
        client: httpx.Client | None = None,
    ) -> None:
        self.url = url
        self._client = client or httpx.Client(timeout=timeout)

    def emit(self, item_id: str, kind: AlertKind, payload: dict[str, Any]) -> None:
        body = {"item_id": item_id, "kind": kind.value, "payload": payload}
        response = self._client.post(self.url, json=body)
        response.raise_for_status()
        logger.debug("Delivered %s alert for %s (HTTP %d)", kind.value, item_id, response.status_code)

    def close(self) -> None:
        self._client.close()


def create_alert_sink(settings: NotificationSettings) -> AlertSink:
    """Webhook sink when a URL is configured, logging sink otherwise."""
    if settings.webhook_url:
        return WebhookAlertSink(settings.webhook_url, timeout=settings.timeout_seconds)
    return LoggingAlertSink()
