"""Bid model with amounts normalized into every tracked currency."""

from datetime import datetime, timezone
from typing import Literal, Optional

from pydantic import BaseModel, Field

from handyman_bids.models.job_offer import new_id

BidStatus = Literal["active", "outbid", "accepted", "rejected", "withdrawn"]

# Bids still in contention for the job (counted in pricing, rejected on acceptance)
LIVE_STATUSES: tuple[str, ...] = ("active", "outbid")
TERMINAL_STATUSES: tuple[str, ...] = ("accepted", "rejected", "withdrawn")


class Bid(BaseModel):
    """A bidder's proposed price and terms for one job offer."""

    id: str = Field(default_factory=new_id)
    job_offer_id: str
    bidder_id: str

    bid_amount: float = Field(..., gt=0)
    currency: str
    normalized_amounts: dict[str, float] = Field(
        default_factory=dict,
        description="Currency -> amount at the rate in effect at submission",
    )
    exchange_rate_used: float = 1.0
    rate_is_fallback: bool = False

    message: str = ""
    estimated_duration: str = ""
    proposed_start_date: Optional[datetime] = None
    availability: str = ""

    status: BidStatus = "active"
    is_current_highest: bool = False

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def amount_in(self, currency: str) -> float:
        """Normalized amount in the given currency. KeyError if not tracked."""
        if currency == self.currency:
            return self.bid_amount
        return self.normalized_amounts[currency]

    @property
    def bid_amount_usd(self) -> float:
        return self.amount_in("USD")

    @property
    def bid_amount_cop(self) -> float:
        return self.amount_in("COP")

    @property
    def is_live(self) -> bool:
        return self.status in LIVE_STATUSES
