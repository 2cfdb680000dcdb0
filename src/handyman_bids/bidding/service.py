"""Bid placement, withdrawal and current-highest tracking for job offers."""

import logging
import math
from datetime import datetime, timezone
from typing import Optional

from handyman_bids.config import Settings
from handyman_bids.currency.service import CurrencyService
from handyman_bids.errors import (
    BidNotAvailableError,
    DuplicateBidError,
    InvalidAmountError,
    JobNotBiddableError,
    NotFoundError,
    UnauthorizedError,
    UnsupportedCurrencyError,
)
from handyman_bids.models.bid import LIVE_STATUSES, Bid
from handyman_bids.models.recommendation import PriceRecommendation
from handyman_bids.notifications.fanout import FanOut, PendingEvent
from handyman_bids.pricing.engine import PriceRecommendationEngine
from handyman_bids.store.market_store import MarketStore

from .ratelimit import BidAttemptLimiter

logger = logging.getLogger(__name__)


def pick_highest(bids: list[Bid], currency: str) -> Optional[Bid]:
    """Bid with the greatest amount in `currency`; the earliest wins ties."""
    best: Optional[Bid] = None
    for bid in bids:
        if best is None or bid.amount_in(currency) > best.amount_in(currency):
            best = bid
    return best


class BiddingService:
    """
    Authoritative bid set per job offer.
    Invariants after every call: one active bid per (job offer, bidder); at most
    one active bid flagged current highest, with the greatest comparison amount.
    """

    def __init__(
        self,
        store: MarketStore,
        currency: CurrencyService,
        pricing: PriceRecommendationEngine,
        fanout: FanOut,
        settings: Optional[Settings] = None,
        limiter: Optional[BidAttemptLimiter] = None,
    ):
        self._store = store
        self._currency = currency
        self._pricing = pricing
        self._fanout = fanout
        self._settings = settings or Settings()
        self._limiter = limiter

    @property
    def comparison_currency(self) -> str:
        return self._settings.comparison_currency

    def place_bid(
        self,
        job_offer_id: str,
        bidder_id: str,
        amount: float,
        currency: str,
        message: str = "",
        estimated_duration: str = "",
        proposed_start_date: Optional[datetime] = None,
        availability: str = "",
    ) -> Bid:
        """
        Submit a bid. The new bid supersedes the current highest only when its
        comparison amount is strictly greater; ties keep the earlier bid.
        Raises InvalidAmountError, UnsupportedCurrencyError, RateLimitedError,
        JobNotBiddableError, DuplicateBidError.
        """
        if amount is None or not math.isfinite(amount) or amount <= 0:
            raise InvalidAmountError(f"Bid amount must be positive, got {amount}")
        currency = (currency or "").upper()
        if currency not in self._settings.supported_currencies:
            raise UnsupportedCurrencyError(
                f"Unsupported currency {currency!r}. Supported: {self._settings.supported_currencies}"
            )
        if self._limiter is not None:
            self._limiter.check(bidder_id)

        amounts, rate_used, is_fallback = self._currency.normalize(amount, currency)
        cmp_currency = self.comparison_currency
        events: list[PendingEvent] = []

        with self._store.transaction() as session:
            offer = session.get_job_offer(job_offer_id)
            if offer is None or not offer.is_biddable:
                raise JobNotBiddableError("Job offer does not accept bids or is not available")
            if session.find_active_bid(job_offer_id, bidder_id) is not None:
                raise DuplicateBidError("You already have an active bid for this job")

            now = datetime.now(timezone.utc)
            bid = Bid(
                job_offer_id=job_offer_id,
                bidder_id=bidder_id,
                bid_amount=amount,
                currency=currency,
                normalized_amounts=amounts,
                exchange_rate_used=rate_used,
                rate_is_fallback=is_fallback,
                message=message,
                estimated_duration=estimated_duration,
                proposed_start_date=proposed_start_date,
                availability=availability,
                created_at=now,
                updated_at=now,
            )

            current = session.find_current_highest(job_offer_id)
            bid.is_current_highest = current is None or (
                bid.amount_in(cmp_currency) > current.amount_in(cmp_currency)
            )
            if bid.is_current_highest and current is not None:
                current.status = "outbid"
                current.is_current_highest = False
                current.updated_at = now
                session.save_bid(current)
                events.append(
                    PendingEvent(
                        user_id=current.bidder_id,
                        kind="outbid",
                        payload={
                            "jobOfferId": job_offer_id,
                            "bidId": current.id,
                            "newHighestAmount": bid.amount_in(cmp_currency),
                            "currency": cmp_currency,
                        },
                    )
                )

            session.save_bid(bid)
            self._pricing.recompute(session, job_offer_id)

            if bid.is_current_highest:
                events.append(
                    PendingEvent(
                        user_id=offer.client_id,
                        kind="new-high-bid",
                        payload={
                            "bidId": bid.id,
                            "jobOfferId": job_offer_id,
                            "bidderId": bidder_id,
                            "bidAmount": amount,
                            "currency": currency,
                            "bidAmountUSD": bid.normalized_amounts.get("USD"),
                            "bidAmountCOP": bid.normalized_amounts.get("COP"),
                        },
                    )
                )

        logger.info(
            "Bid %s placed on %s by %s: %s %s (highest=%s)",
            bid.id,
            job_offer_id,
            bidder_id,
            amount,
            currency,
            bid.is_current_highest,
        )
        self._fanout.dispatch(events)
        return bid

    def withdraw_bid(self, bid_id: str, bidder_id: str) -> Bid:
        """
        Withdraw a live bid. If it was the current highest, the highest remaining
        active bid is promoted so an offer with active bids always has one flagged.
        """
        with self._store.transaction() as session:
            bid = session.get_bid(bid_id)
            if bid is None:
                raise NotFoundError(f"Bid {bid_id} not found")
            if bid.bidder_id != bidder_id:
                raise UnauthorizedError("Only the bidder can withdraw this bid")
            if bid.status not in LIVE_STATUSES:
                raise BidNotAvailableError(f"Bid is {bid.status} and cannot be withdrawn")

            now = datetime.now(timezone.utc)
            was_highest = bid.is_current_highest
            bid.status = "withdrawn"
            bid.is_current_highest = False
            bid.updated_at = now
            session.save_bid(bid)

            if was_highest:
                remaining = session.find_bids(bid.job_offer_id, statuses=["active"])
                promoted = pick_highest(remaining, self.comparison_currency)
                if promoted is not None:
                    promoted.is_current_highest = True
                    promoted.updated_at = now
                    session.save_bid(promoted)
                    logger.info("Bid %s promoted to current highest on %s", promoted.id, bid.job_offer_id)

            self._pricing.recompute(session, bid.job_offer_id)

        logger.info("Bid %s withdrawn by %s", bid_id, bidder_id)
        return bid

    def get_bid(self, bid_id: str) -> Bid:
        with self._store.snapshot() as session:
            bid = session.get_bid(bid_id)
        if bid is None:
            raise NotFoundError(f"Bid {bid_id} not found")
        return bid

    def list_bids(self, job_offer_id: str, include_outbid: bool = False) -> list[Bid]:
        """Active bids (or every bid when include_outbid), highest comparison amount first."""
        statuses = None if include_outbid else ["active"]
        with self._store.snapshot() as session:
            bids = session.find_bids(job_offer_id, statuses=statuses)
        cmp_currency = self.comparison_currency
        return sorted(bids, key=lambda b: b.amount_in(cmp_currency), reverse=True)

    def bids_by_bidder(self, bidder_id: str) -> list[Bid]:
        with self._store.snapshot() as session:
            return session.bids_by_bidder(bidder_id)

    def current_highest(self, job_offer_id: str) -> Optional[Bid]:
        with self._store.snapshot() as session:
            return session.find_current_highest(job_offer_id)

    def get_recommendation(self, job_offer_id: str) -> Optional[PriceRecommendation]:
        """Stored recommendation, computed on first request. None while there are no live bids."""
        with self._store.snapshot() as session:
            rec = session.get_recommendation(job_offer_id)
        if rec is not None:
            return rec
        with self._store.transaction() as session:
            return self._pricing.recompute(session, job_offer_id)
