"""Registry for discovering and instantiating notification channels."""

from typing import Type

from .base import Notifier
from .channels import LoggingNotifier, OutboxNotifier, WebhookNotifier


class NotifierRegistry:
    """Maps channel names to notifier classes."""

    _notifiers: dict[str, Type[Notifier]] = {
        "outbox": OutboxNotifier,
        "webhook": WebhookNotifier,
        "log": LoggingNotifier,
    }

    @classmethod
    def get(cls, channel: str, **kwargs) -> Notifier:
        """Get a notifier instance for the channel. kwargs passed to the notifier __init__."""
        notifier_cls = cls._notifiers.get(channel.lower())
        if not notifier_cls:
            raise ValueError(f"Unknown channel: {channel}. Available: {list(cls._notifiers.keys())}")
        return notifier_cls(**kwargs)

    @classmethod
    def available_channels(cls) -> list[str]:
        return list(cls._notifiers.keys())
