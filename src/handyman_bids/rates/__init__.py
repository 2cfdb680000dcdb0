"""Exchange rate feed that populates the rate table."""

from .feed import ExchangeRateFeed, RateFeedError

__all__ = ["ExchangeRateFeed", "RateFeedError"]
