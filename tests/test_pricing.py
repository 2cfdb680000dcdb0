"""Unit tests for price recommendations."""

from typing import Optional

import pytest

from handyman_bids.config import Settings
from handyman_bids.models import Bid
from handyman_bids.pricing import compute_recommendation, market_trend, quality_multiplier, quality_score


def _bid(amount_usd: float, bidder_id: str = "h") -> Bid:
    return Bid(
        job_offer_id="j1",
        bidder_id=bidder_id,
        bid_amount=amount_usd,
        currency="USD",
        normalized_amounts={"USD": amount_usd, "COP": amount_usd * 4000},
    )


def _recommend(amounts: list[float], ratings: Optional[list[Optional[float]]] = None):
    bids = [_bid(a, f"h{i}") for i, a in enumerate(amounts)]
    return compute_recommendation("j1", bids, ratings or [None] * len(bids), Settings())


class TestQuality:
    """Tests for quality_score and quality_multiplier."""

    def test_unrated_uses_default(self) -> None:
        """Nobody rated gives 3.5."""
        assert quality_score([None, None]) == 3.5
        assert quality_score([]) == 3.5

    def test_mean_of_known_ratings(self) -> None:
        """Unrated bidders are left out of the mean."""
        assert quality_score([4.8, None, 4.4]) == pytest.approx(4.6)

    def test_multiplier_tiers(self) -> None:
        """Above 4.0 -> 1.15, above 3.5 -> 1.05, else 1.0."""
        s = Settings()
        assert quality_multiplier(4.6, s) == 1.15
        assert quality_multiplier(4.0, s) == 1.05
        assert quality_multiplier(3.8, s) == 1.05
        assert quality_multiplier(3.5, s) == 1.0


class TestMarketTrend:
    """Tests for market_trend."""

    def test_high_checked_first(self) -> None:
        """A single bid satisfies both bounds; 'high' wins."""
        assert market_trend(100, 100, 100) == "high"

    def test_low_and_average(self) -> None:
        """Average near the lowest is low; in between is average."""
        assert market_trend(110, 300, 100) == "low"
        assert market_trend(200, 300, 100) == "average"


class TestComputeRecommendation:
    """Tests for compute_recommendation."""

    def test_empty_bid_set_returns_none(self) -> None:
        """No bids, no recommendation."""
        assert compute_recommendation("j1", [], [], Settings()) is None

    def test_three_bid_statistics(self) -> None:
        """100/150/120 USD: average 123, highest 150, lowest 100."""
        rec = _recommend([100, 150, 120])
        assert rec.average_bid_usd == 123
        assert rec.highest_bid_usd == 150
        assert rec.lowest_bid_usd == 100
        assert rec.average_bid_cop == 493333
        assert rec.total_bids == 3
        assert rec.quality_score == 3.5
        assert rec.recommended_budget_usd == 123
        assert rec.market_trend == "high"

    def test_halves_round_up(self) -> None:
        """100 and 101 USD average to 100.5, stored as 101."""
        rec = _recommend([100, 101])
        assert rec.average_bid_usd == 101
        assert rec.recommended_budget_usd == 101
        assert rec.average_bid_cop == 402000

    def test_quality_raises_recommended_budget(self) -> None:
        """Highly rated bidders push the recommended budget up 15%."""
        rec = _recommend([100, 150, 120], ratings=[4.8, 4.4, None])
        assert rec.quality_score == 4.6
        assert rec.recommended_budget_usd == 142

    @pytest.mark.parametrize("extra", [10, 50, 80, 123])
    def test_low_bid_does_not_raise_recommendation(self, extra: float) -> None:
        """A bid below the average never raises the recommended budget."""
        base = _recommend([100, 150, 120])
        after = _recommend([100, 150, 120, extra])
        assert after.recommended_budget_usd <= base.recommended_budget_usd

    @pytest.mark.parametrize("extra", [151, 200, 1000])
    def test_high_bid_does_not_lower_recommendation(self, extra: float) -> None:
        """A bid above the highest never lowers the recommended budget."""
        base = _recommend([100, 150, 120])
        after = _recommend([100, 150, 120, extra])
        assert after.recommended_budget_usd >= base.recommended_budget_usd
