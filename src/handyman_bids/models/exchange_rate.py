"""Exchange rate rows and conversion results."""

from datetime import datetime, timezone
from typing import Literal, Optional

from pydantic import BaseModel, Field

RateTrend = Literal["rising", "falling", "stable"]


class ExchangeRate(BaseModel):
    """One rate observation for a currency pair, as written by the rate feed."""

    id: Optional[int] = None
    from_currency: str
    to_currency: str
    rate: float = Field(..., gt=0)
    source: str = "manual"
    last_updated: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    is_active: bool = True


class RateQuote(BaseModel):
    """
    Rate in effect for a pair. is_fallback marks the hardcoded default path,
    taken when no active row exists.
    """

    from_currency: str
    to_currency: str
    rate: float
    source: str
    is_fallback: bool = False
    last_updated: Optional[datetime] = None


class Conversion(BaseModel):
    """Result of converting an amount between two currencies."""

    amount: float
    converted_amount: float
    from_currency: str
    to_currency: str
    rate: float
    source: str
    is_fallback: bool = False


class CurrencyStats(BaseModel):
    """Rate statistics over a trailing window."""

    average: float = 0.0
    highest: float = 0.0
    lowest: float = 0.0
    current: float = 0.0
    trend: RateTrend = "stable"
    percent_change: float = 0.0
    data_points: int = 0
