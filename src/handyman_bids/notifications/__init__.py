"""Notification fan-out interface and channels."""

from .base import Notifier
from .channels import LoggingNotifier, OutboxNotifier, WebhookNotifier
from .fanout import FanOut, PendingEvent
from .registry import NotifierRegistry

__all__ = [
    "FanOut",
    "LoggingNotifier",
    "Notifier",
    "NotifierRegistry",
    "OutboxNotifier",
    "PendingEvent",
    "WebhookNotifier",
]
