"""Price recommendations derived from the live bid set of a job offer."""

import logging
import math
from typing import Optional

from handyman_bids.config import Settings
from handyman_bids.models.bid import LIVE_STATUSES, Bid
from handyman_bids.models.recommendation import MarketTrend, PriceRecommendation
from handyman_bids.profiles import RatingLookup
from handyman_bids.store.market_store import MarketSession

logger = logging.getLogger(__name__)


def round_half_up(value: float) -> int:
    """Nearest integer, halves rounded up (100.5 -> 101)."""
    return math.floor(value + 0.5)


def quality_score(ratings: list[Optional[float]], default: float = 3.5) -> float:
    """Mean of known ratings; unrated bidders are left out. Default when nobody is rated."""
    known = [r for r in ratings if r]
    if not known:
        return default
    return sum(known) / len(known)


def quality_multiplier(score: float, settings: Settings) -> float:
    if score > settings.high_quality_threshold:
        return settings.high_quality_multiplier
    if score > settings.default_quality_score:
        return settings.mid_quality_multiplier
    return 1.0


def market_trend(average: float, highest: float, lowest: float) -> MarketTrend:
    """'high' is checked first; it wins when both could hold (single-bid case)."""
    if average > highest * 0.8:
        return "high"
    if average < lowest * 1.2:
        return "low"
    return "average"


def compute_recommendation(
    job_offer_id: str,
    bids: list[Bid],
    ratings: list[Optional[float]],
    settings: Optional[Settings] = None,
) -> Optional[PriceRecommendation]:
    """
    Build a recommendation from bids (one rating per bid, None if unrated).
    Returns None for an empty bid set rather than a degenerate zero recommendation.
    """
    if not bids:
        return None
    settings = settings or Settings()

    usd = [b.bid_amount_usd for b in bids]
    cop = [b.bid_amount_cop for b in bids]
    avg_usd = sum(usd) / len(usd)
    avg_cop = sum(cop) / len(cop)
    high_usd, low_usd = max(usd), min(usd)

    score = quality_score(ratings, settings.default_quality_score)
    multiplier = quality_multiplier(score, settings)

    return PriceRecommendation(
        job_offer_id=job_offer_id,
        average_bid_usd=round_half_up(avg_usd),
        average_bid_cop=round_half_up(avg_cop),
        highest_bid_usd=round_half_up(high_usd),
        highest_bid_cop=round_half_up(max(cop)),
        lowest_bid_usd=round_half_up(low_usd),
        lowest_bid_cop=round_half_up(min(cop)),
        recommended_budget_usd=round_half_up(avg_usd * multiplier),
        recommended_budget_cop=round_half_up(avg_cop * multiplier),
        total_bids=len(bids),
        quality_score=round(score, 2),
        market_trend=market_trend(avg_usd, high_usd, low_usd),
    )


class PriceRecommendationEngine:
    """Recomputes and stores the recommendation for a job offer."""

    def __init__(self, ratings: RatingLookup, settings: Optional[Settings] = None):
        self._ratings = ratings
        self._settings = settings or Settings()

    def recompute(self, session: MarketSession, job_offer_id: str) -> Optional[PriceRecommendation]:
        """
        Overwrite the stored recommendation from the live bids, inside the
        caller's transaction. No-op (prior recommendation kept) when no live bids.
        """
        bids = session.find_bids(job_offer_id, statuses=LIVE_STATUSES)
        ratings = [self._ratings.get_rating(b.bidder_id) for b in bids]
        rec = compute_recommendation(job_offer_id, bids, ratings, self._settings)
        if rec is None:
            logger.debug("No live bids for %s; keeping prior recommendation", job_offer_id)
            return None
        session.save_recommendation(rec)
        return rec
