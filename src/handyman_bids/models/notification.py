"""Notification events emitted to affected users."""

from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, Field

from handyman_bids.models.job_offer import new_id

NotificationKind = Literal[
    "outbid",
    "new-high-bid",
    "bid-accepted",
    "budget-updated",
    "job-assigned",
]


class Notification(BaseModel):
    """One fan-out event addressed to a single user."""

    id: str = Field(default_factory=new_id)
    user_id: str
    kind: NotificationKind
    payload: dict[str, Any] = Field(default_factory=dict)
    is_read: bool = False
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
