"""Distance-based matching of job offers to handymen."""

from .distance import EARTH_RADIUS_KM, haversine_km, within_radius
from .matching import MatchResult, OfferMatcher, offers_for_alerts, relevance_score
from .rules import SeekerProfile, skill_matches

__all__ = [
    "EARTH_RADIUS_KM",
    "MatchResult",
    "OfferMatcher",
    "SeekerProfile",
    "haversine_km",
    "offers_for_alerts",
    "relevance_score",
    "skill_matches",
    "within_radius",
]
