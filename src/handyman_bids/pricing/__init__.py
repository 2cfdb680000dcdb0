"""Price recommendation engine."""

from .engine import (
    PriceRecommendationEngine,
    compute_recommendation,
    market_trend,
    quality_multiplier,
    quality_score,
)

__all__ = [
    "PriceRecommendationEngine",
    "compute_recommendation",
    "market_trend",
    "quality_multiplier",
    "quality_score",
]
