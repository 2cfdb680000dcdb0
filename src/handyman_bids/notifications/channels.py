"""Notification channels: in-app outbox, HTTP webhook, log."""

import logging
from typing import Any, Optional

import httpx

from handyman_bids.models.notification import Notification, NotificationKind
from handyman_bids.store.notification_store import NotificationStore

from .base import Notifier

logger = logging.getLogger(__name__)


class OutboxNotifier(Notifier):
    """Writes events to the notifications table (the in-app inbox)."""

    channel = "outbox"

    def __init__(self, store: NotificationStore):
        self._store = store

    def notify(self, user_id: str, kind: NotificationKind, payload: dict[str, Any]) -> None:
        self._store.add(Notification(user_id=user_id, kind=kind, payload=payload))


class WebhookNotifier(Notifier):
    """POSTs events as JSON to a push gateway. Timeouts are bounded by the client."""

    channel = "webhook"

    def __init__(
        self,
        url: str,
        *,
        client: Optional[httpx.Client] = None,
        timeout: float = 10.0,
    ):
        self._url = url
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=timeout)

    def notify(self, user_id: str, kind: NotificationKind, payload: dict[str, Any]) -> None:
        resp = self._client.post(
            self._url,
            json={"userId": user_id, "kind": kind, "payload": payload},
        )
        resp.raise_for_status()

    def close(self) -> None:
        if self._owns_client:
            self._client.close()


class LoggingNotifier(Notifier):
    """Logs events; the default channel when nothing else is configured."""

    channel = "log"

    def notify(self, user_id: str, kind: NotificationKind, payload: dict[str, Any]) -> None:
        logger.info("notify user=%s kind=%s payload=%s", user_id, kind, payload)
