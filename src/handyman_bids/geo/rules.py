"""Match rules: each returns (passed, explanation, rule_id)."""

from typing import Optional

from pydantic import BaseModel, Field

from handyman_bids.models.job_offer import JobOffer, JobType, Urgency

from .distance import haversine_km


class SeekerProfile(BaseModel):
    """A handyman looking for work: position, skills and filters."""

    latitude: float
    longitude: float
    city: str = ""
    country: str = ""
    skills: list[str] = Field(default_factory=list)
    categories: list[str] = Field(default_factory=list)
    job_type: Optional[JobType] = None
    urgency: Optional[Urgency] = None
    radius_km: Optional[float] = None


def _norm(text: Optional[str]) -> str:
    return (text or "").lower().strip()


def skill_matches(user_skill: str, required: str) -> bool:
    """Case-insensitive containment in either direction ('plumb' ~ 'Plumbing')."""
    a, b = _norm(user_skill), _norm(required)
    if not a or not b:
        return False
    return a in b or b in a


def matched_skills(offer: JobOffer, seeker: SeekerProfile) -> list[str]:
    """Required skills of the offer covered by the seeker."""
    return [
        req for req in offer.required_skills if any(skill_matches(s, req) for s in seeker.skills)
    ]


def distance_to(offer: JobOffer, seeker: SeekerProfile) -> float:
    return haversine_km(
        seeker.latitude, seeker.longitude, offer.location.latitude, offer.location.longitude
    )


def apply_status_rule(offer: JobOffer, seeker: SeekerProfile, radius_km: float) -> tuple[bool, str, str]:
    if offer.status != "open":
        return False, f"Excluded: offer is {offer.status}", "status"
    return True, "Offer is open", "status"


def apply_city_rule(offer: JobOffer, seeker: SeekerProfile, radius_km: float) -> tuple[bool, str, str]:
    """Same city and country when the seeker states them."""
    if not seeker.city and not seeker.country:
        return True, "City filter not set", "city"
    if seeker.city and _norm(offer.location.city) != _norm(seeker.city):
        return False, f"Excluded: offer in {offer.location.city or 'unknown city'}", "city"
    if seeker.country and _norm(offer.location.country) != _norm(seeker.country):
        return False, f"Excluded: offer in {offer.location.country or 'unknown country'}", "city"
    return True, f"Same city: {offer.location.city}", "city"


def apply_radius_rule(offer: JobOffer, seeker: SeekerProfile, radius_km: float) -> tuple[bool, str, str]:
    distance = distance_to(offer, seeker)
    if distance > radius_km:
        return False, f"Excluded: {distance:.1f} km away (max {radius_km:g} km)", "radius"
    return True, f"{distance:.1f} km away (within {radius_km:g} km)", "radius"


def apply_job_type_rule(offer: JobOffer, seeker: SeekerProfile, radius_km: float) -> tuple[bool, str, str]:
    if seeker.job_type is None:
        return True, "Job type filter not set", "job_type"
    if offer.job_type != seeker.job_type:
        return False, f"Excluded: job type {offer.job_type}", "job_type"
    return True, f"Job type {offer.job_type}", "job_type"


def apply_urgency_rule(offer: JobOffer, seeker: SeekerProfile, radius_km: float) -> tuple[bool, str, str]:
    if seeker.urgency is None:
        return True, "Urgency filter not set", "urgency"
    if offer.urgency != seeker.urgency:
        return False, f"Excluded: urgency {offer.urgency}", "urgency"
    return True, f"Urgency {offer.urgency}", "urgency"


def apply_category_rule(offer: JobOffer, seeker: SeekerProfile, radius_km: float) -> tuple[bool, str, str]:
    """Offers with no target categories are open to everyone."""
    if not offer.target_categories:
        return True, "Offer targets all categories", "category"
    overlap = set(offer.target_categories) & set(seeker.categories)
    if not overlap:
        return False, f"Excluded: targets {offer.target_categories}", "category"
    return True, f"Matches category: {sorted(overlap)[0]}", "category"


def apply_skills_rule(offer: JobOffer, seeker: SeekerProfile, radius_km: float) -> tuple[bool, str, str]:
    """At least one required skill covered; offers without requirements pass."""
    if not offer.required_skills:
        return True, "No required skills", "skills"
    matched = matched_skills(offer, seeker)
    if not matched:
        return False, f"Excluded: no skill among {offer.required_skills}", "skills"
    return True, f"Matches skills: {', '.join(matched)}", "skills"
