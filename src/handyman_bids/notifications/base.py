"""Abstract base class for notification channels."""

from abc import ABC, abstractmethod
from typing import Any

from handyman_bids.models.notification import NotificationKind


class Notifier(ABC):
    """
    Delivery channel for fan-out events. Fire-and-forget: the return value is
    never consumed and callers treat any exception as a delivery failure.
    """

    channel: str = ""

    @abstractmethod
    def notify(self, user_id: str, kind: NotificationKind, payload: dict[str, Any]) -> None:
        """Deliver one event to one user."""
        pass

    def close(self) -> None:
        """Release any connection the channel holds."""
