"""Bid record operations and bid attempt limiting."""

from .ratelimit import BidAttemptLimiter
from .service import BiddingService, pick_highest

__all__ = ["BidAttemptLimiter", "BiddingService", "pick_highest"]
