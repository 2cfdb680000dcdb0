"""Derived price recommendation for a job offer."""

from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, Field

MarketTrend = Literal["low", "average", "high"]


class PriceRecommendation(BaseModel):
    """Bid statistics and suggested budget. Overwritten on every recompute."""

    job_offer_id: str

    average_bid_usd: int
    average_bid_cop: int
    highest_bid_usd: int
    highest_bid_cop: int
    lowest_bid_usd: int
    lowest_bid_cop: int
    recommended_budget_usd: int
    recommended_budget_cop: int

    total_bids: int
    quality_score: float = Field(..., description="Mean bidder rating, 2 decimals")
    market_trend: MarketTrend
    last_calculated: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
