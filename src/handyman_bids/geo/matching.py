"""Offer matcher with pluggable rules, explanation trail and relevance scoring."""

from datetime import datetime, timezone
from typing import Callable, Optional

from pydantic import BaseModel, Field

from handyman_bids.models.job_offer import JobOffer

from .rules import (
    SeekerProfile,
    apply_category_rule,
    apply_city_rule,
    apply_job_type_rule,
    apply_radius_rule,
    apply_skills_rule,
    apply_status_rule,
    apply_urgency_rule,
    distance_to,
    matched_skills,
)

DEFAULT_RADIUS_KM = 25.0

_URGENCY_POINTS = {"low": 10, "medium": 20, "high": 30}
_POINTS_PER_SKILL = 15


class MatchResult(BaseModel):
    """Result of matching one job offer against a seeker."""

    passed: bool = Field(..., description="All rules passed")
    offer: JobOffer
    distance_km: float
    relevance_score: float = 0.0
    explanations: list[str] = Field(default_factory=list)
    excluded_by_rule: Optional[str] = None


RuleFn = Callable[[JobOffer, SeekerProfile, float], tuple[bool, str, str]]


def relevance_score(offer: JobOffer, seeker: SeekerProfile, distance_km: float) -> float:
    """Closer, more urgent and better skill-matched offers score higher."""
    score = max(0.0, 100 - distance_km * 4)
    score += _URGENCY_POINTS.get(offer.urgency, 0)
    score += len(matched_skills(offer, seeker)) * _POINTS_PER_SKILL
    return score


class OfferMatcher:
    """
    Decides which job offers are relevant to a handyman.
    Every rule runs so the explanation trail is complete; the first failing
    rule is reported as excluded_by_rule.
    """

    def __init__(self, seeker: SeekerProfile, default_radius_km: float = DEFAULT_RADIUS_KM):
        self.seeker = seeker
        self.radius_km = seeker.radius_km or default_radius_km
        self._rules: list[RuleFn] = [
            apply_status_rule,
            apply_city_rule,
            apply_radius_rule,
            apply_job_type_rule,
            apply_urgency_rule,
            apply_category_rule,
            apply_skills_rule,
        ]

    def match(self, offer: JobOffer) -> MatchResult:
        explanations: list[str] = []
        all_passed = True
        excluded_by: Optional[str] = None
        for rule_fn in self._rules:
            passed, explanation, rule_id = rule_fn(offer, self.seeker, self.radius_km)
            explanations.append(explanation)
            if not passed:
                all_passed = False
                if excluded_by is None:
                    excluded_by = rule_id

        distance = distance_to(offer, self.seeker)
        return MatchResult(
            passed=all_passed,
            offer=offer,
            distance_km=distance,
            relevance_score=relevance_score(offer, self.seeker, distance) if all_passed else 0.0,
            explanations=explanations,
            excluded_by_rule=excluded_by,
        )

    def match_many(self, offers: list[JobOffer]) -> list[MatchResult]:
        return [self.match(o) for o in offers]

    def nearby_job_offers(self, offers: list[JobOffer], limit: Optional[int] = None) -> list[MatchResult]:
        """Passing offers sorted by relevance, best first."""
        results = [r for r in self.match_many(offers) if r.passed]
        results.sort(key=lambda r: r.relevance_score, reverse=True)
        return results[:limit] if limit else results


def offers_for_alerts(
    offers: list[JobOffer],
    *,
    city: str,
    country: str,
    category: str,
    now: Optional[datetime] = None,
) -> list[JobOffer]:
    """
    Open offers currently inside their alert window, in the given city, that
    target the category (or target nobody in particular) and have not passed their deadline.
    """
    now = now or datetime.now(timezone.utc)
    selected: list[JobOffer] = []
    for offer in offers:
        if offer.status != "open":
            continue
        if offer.alert_start_time is None or offer.alert_end_time is None:
            continue
        if not (offer.alert_start_time <= now <= offer.alert_end_time):
            continue
        if offer.deadline is not None and offer.deadline <= now:
            continue
        if offer.location.city != city or offer.location.country != country:
            continue
        if offer.target_categories and category not in offer.target_categories:
            continue
        selected.append(offer)
    return selected
