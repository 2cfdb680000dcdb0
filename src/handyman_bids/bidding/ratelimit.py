"""Bid attempt limiter backed by an injected TTL store."""

import logging

from handyman_bids.errors import RateLimitedError
from handyman_bids.store.attempt_store import AttemptStore

logger = logging.getLogger(__name__)


class BidAttemptLimiter:
    """At most max_attempts bid submissions per bidder within window_seconds."""

    def __init__(self, store: AttemptStore, max_attempts: int, window_seconds: int = 3600):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._store = store
        self._max_attempts = max_attempts
        self._window_seconds = window_seconds

    def check(self, bidder_id: str) -> None:
        """Count this attempt; raise RateLimitedError once the bidder exceeds the limit."""
        attempts = self._store.hit(f"bid:{bidder_id}", self._window_seconds)
        if attempts > self._max_attempts:
            logger.warning("Bidder %s exceeded %d bid attempts", bidder_id, self._max_attempts)
            raise RateLimitedError(
                f"Too many bid attempts; limit is {self._max_attempts} per {self._window_seconds}s"
            )
