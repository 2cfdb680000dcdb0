"""Post-commit fan-out of notification events to every configured channel."""

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable

from handyman_bids.models.notification import NotificationKind

from .base import Notifier

logger = logging.getLogger(__name__)


@dataclass
class PendingEvent:
    user_id: str
    kind: NotificationKind
    payload: dict[str, Any] = field(default_factory=dict)


class FanOut:
    """
    Dispatches events to notifiers. Failures are logged per channel and never
    raised: the state change that produced the event is already committed.
    """

    def __init__(self, notifiers: Iterable[Notifier]):
        self._notifiers = list(notifiers)

    @property
    def notifiers(self) -> list[Notifier]:
        return list(self._notifiers)

    def dispatch(self, events: Iterable[PendingEvent]) -> int:
        """Deliver events; returns the number of failed deliveries."""
        failures = 0
        for event in events:
            for notifier in self._notifiers:
                try:
                    notifier.notify(event.user_id, event.kind, event.payload)
                except Exception:
                    failures += 1
                    logger.exception(
                        "Notification %s to %s failed on channel %s",
                        event.kind,
                        event.user_id,
                        notifier.channel or type(notifier).__name__,
                    )
        return failures

    def close(self) -> None:
        for notifier in self._notifiers:
            notifier.close()
