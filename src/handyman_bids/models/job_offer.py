"""Job offer, location, budget and assignment models."""

import uuid
from datetime import datetime, timezone
from typing import Literal, Optional

from pydantic import BaseModel, Field, model_validator

JobType = Literal["fixed_price", "bids_allowed"]
JobStatus = Literal["open", "in_progress", "completed", "cancelled"]
Urgency = Literal["low", "medium", "high"]


def _now() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return uuid.uuid4().hex


class Location(BaseModel):
    """Where the work happens."""

    latitude: float
    longitude: float
    address: str = ""
    city: str = ""
    country: str = ""


class Budget(BaseModel):
    """Client budget range in a single currency."""

    min: float = Field(..., ge=0)
    max: float = Field(..., ge=0)
    currency: str = "USD"


class JobOffer(BaseModel):
    """A posted task, open for bidding or for direct fixed-price assignment."""

    id: str = Field(default_factory=new_id)
    client_id: str

    title: str
    description: str = ""
    category: str = ""
    location: Location

    job_type: JobType = "bids_allowed"
    budget: Budget
    fixed_price: Optional[float] = None
    urgency: Urgency = "medium"
    required_skills: list[str] = Field(default_factory=list)
    estimated_duration: str = ""
    accepts_bids: bool = True
    target_categories: list[str] = Field(default_factory=list)

    deadline: Optional[datetime] = None
    scheduled_for: Optional[datetime] = None
    alert_start_time: Optional[datetime] = None
    alert_end_time: Optional[datetime] = None

    status: JobStatus = "open"
    assigned_to: Optional[str] = None

    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)

    @model_validator(mode="after")
    def _check_invariants(self) -> "JobOffer":
        if self.job_type == "fixed_price":
            if not self.fixed_price:
                raise ValueError("fixed_price is required for fixed price jobs")
            if self.accepts_bids:
                raise ValueError("fixed price jobs do not accept bids")
        has_assignee = self.assigned_to is not None
        if has_assignee != (self.status in ("in_progress", "completed")):
            raise ValueError(f"assigned_to inconsistent with status {self.status}")
        return self

    @property
    def is_biddable(self) -> bool:
        return self.status == "open" and self.accepts_bids and self.job_type == "bids_allowed"


class JobAssignment(BaseModel):
    """Record linking a job offer to the bidder who got the work."""

    id: str = Field(default_factory=new_id)
    job_offer_id: str
    bidder_id: str
    client_id: str
    bid_id: Optional[str] = None
    status: Literal["assigned", "accepted", "in_progress", "completed", "cancelled"] = "assigned"
    assigned_at: datetime = Field(default_factory=_now)
