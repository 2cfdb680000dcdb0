"""Unit tests for distance, offer matching and alert selection."""

from datetime import datetime, timedelta, timezone

import pytest

from handyman_bids.geo import OfferMatcher, SeekerProfile, haversine_km, offers_for_alerts, skill_matches, within_radius
from handyman_bids.marketplace import Marketplace
from handyman_bids.models import Location

BOGOTA = (4.711, -74.0721)
MEDELLIN = Location(latitude=6.2442, longitude=-75.5812, city="Medellín", country="CO")
CHAPINERO = Location(latitude=4.6486, longitude=-74.0628, city="Bogotá", country="CO")


def _seeker(**overrides) -> SeekerProfile:
    data = {
        "latitude": BOGOTA[0],
        "longitude": BOGOTA[1],
        "city": "Bogotá",
        "country": "CO",
        "skills": ["plumb"],
        "categories": ["plumber"],
    }
    data.update(overrides)
    return SeekerProfile(**data)


class TestHaversine:
    """Tests for haversine_km."""

    def test_same_point_is_zero(self) -> None:
        """distance(A, A) = 0."""
        assert haversine_km(*BOGOTA, *BOGOTA) == 0

    def test_one_degree_latitude(self) -> None:
        """One degree of latitude is about 111 km."""
        d = haversine_km(BOGOTA[0], BOGOTA[1], BOGOTA[0] + 1, BOGOTA[1])
        assert d == pytest.approx(111.0, rel=0.01)

    def test_symmetric(self) -> None:
        """Distance does not depend on direction."""
        there = haversine_km(*BOGOTA, MEDELLIN.latitude, MEDELLIN.longitude)
        back = haversine_km(MEDELLIN.latitude, MEDELLIN.longitude, *BOGOTA)
        assert there == pytest.approx(back)
        assert 200 < there < 260

    def test_within_radius_nearest_first(self) -> None:
        """within_radius keeps close items sorted by distance."""
        places = {"medellin": MEDELLIN, "chapinero": CHAPINERO}
        hits = within_radius(
            places.items(),
            BOGOTA,
            10,
            coords=lambda item: (item[1].latitude, item[1].longitude),
        )
        assert [name for (name, _), _ in hits] == ["chapinero"]
        assert hits[0][1] < 10


class TestSkills:
    """Tests for skill_matches."""

    def test_containment_either_way(self) -> None:
        """'plumb' matches 'Plumbing' and vice versa; blanks never match."""
        assert skill_matches("plumb", "Plumbing")
        assert skill_matches("Plumbing repair", "plumbing")
        assert not skill_matches("painting", "plumbing")
        assert not skill_matches("", "plumbing")


class TestOfferMatcher:
    """Tests for OfferMatcher."""

    def test_close_matching_offer_scores(self, make_offer) -> None:
        """Proximity, urgency and skills add up in the relevance score."""
        offer = make_offer(urgency="high", required_skills=["Plumbing"])
        result = OfferMatcher(_seeker()).match(offer)
        assert result.passed
        assert result.excluded_by_rule is None
        assert result.distance_km == pytest.approx(0)
        assert result.relevance_score == pytest.approx(145)

    def test_far_offer_excluded_by_radius(self, make_offer) -> None:
        """Offers beyond the radius fail the radius rule."""
        offer = make_offer(location=MEDELLIN)
        result = OfferMatcher(_seeker(city="", country="")).match(offer)
        assert not result.passed
        assert result.excluded_by_rule == "radius"
        assert any(e.startswith("Excluded:") for e in result.explanations)

    def test_first_failing_rule_reported(self, make_offer) -> None:
        """City is checked before radius."""
        offer = make_offer(location=MEDELLIN)
        result = OfferMatcher(_seeker()).match(offer)
        assert result.excluded_by_rule == "city"
        assert len(result.explanations) == 7

    def test_category_targeting(self, make_offer) -> None:
        """Targeted offers only reach matching categories."""
        offer = make_offer(target_categories=["electrician"])
        assert OfferMatcher(_seeker()).match(offer).excluded_by_rule == "category"
        assert OfferMatcher(_seeker(categories=["electrician"])).match(offer).passed

    def test_missing_skills(self, make_offer) -> None:
        """Required skills must overlap."""
        offer = make_offer(required_skills=["Electrical"])
        assert OfferMatcher(_seeker()).match(offer).excluded_by_rule == "skills"

    def test_nearby_sorted_by_relevance(self, market: Marketplace, make_offer) -> None:
        """nearby_job_offers returns passing offers, most relevant first."""
        low = make_offer(title="Low urgency", urgency="low", location=CHAPINERO)
        high = make_offer(title="Urgent leak", urgency="high", required_skills=["plumbing"])
        make_offer(title="Far away", location=MEDELLIN)
        closed = make_offer(title="Cancelled")
        market.jobs.cancel_job(closed.id, "c1")

        results = market.nearby_job_offers(_seeker())
        assert [r.offer.id for r in results] == [high.id, low.id]
        assert len(market.nearby_job_offers(_seeker(), limit=1)) == 1

    def test_seeker_radius_overrides_default(self, make_offer) -> None:
        """A wide seeker radius reaches another city when no city filter is set."""
        offer = make_offer(location=MEDELLIN)
        seeker = _seeker(city="", country="", radius_km=300)
        assert OfferMatcher(seeker).match(offer).passed


class TestOffersForAlerts:
    """Tests for offers_for_alerts."""

    def test_alert_window(self, market: Marketplace, make_offer) -> None:
        """Offers alert between start delay and end, in the same city."""
        posted = datetime(2026, 5, 4, 9, 0, tzinfo=timezone.utc)
        offer = make_offer(now=posted)
        make_offer(now=posted, location=MEDELLIN)

        def alerts(at: datetime) -> list[str]:
            found = market.job_offers_for_alerts("Bogotá", "CO", "plumber", now=at)
            return [o.id for o in found]

        assert alerts(posted + timedelta(minutes=1)) == []
        assert alerts(posted + timedelta(hours=1)) == [offer.id]
        assert alerts(posted + timedelta(hours=25)) == []

    def test_target_categories_filter(self, make_offer) -> None:
        """Targeted offers alert only their categories."""
        posted = datetime(2026, 5, 4, 9, 0, tzinfo=timezone.utc)
        offer = make_offer(now=posted, target_categories=["electrician"])
        at = posted + timedelta(hours=1)
        kwargs = {"city": "Bogotá", "country": "CO", "now": at}
        assert offers_for_alerts([offer], category="plumber", **kwargs) == []
        assert offers_for_alerts([offer], category="electrician", **kwargs) == [offer]

    def test_past_deadline_excluded(self, make_offer) -> None:
        """Offers past their deadline do not alert."""
        posted = datetime(2026, 5, 4, 9, 0, tzinfo=timezone.utc)
        offer = make_offer(now=posted, deadline=posted + timedelta(minutes=30))
        at = posted + timedelta(minutes=45)
        assert offers_for_alerts([offer], city="Bogotá", country="CO", category="plumber", now=at) == []
