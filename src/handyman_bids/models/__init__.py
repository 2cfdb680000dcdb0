"""Data models for job offers, bids, pricing, rates and notifications."""

from handyman_bids.models.bid import LIVE_STATUSES, Bid
from handyman_bids.models.exchange_rate import Conversion, CurrencyStats, ExchangeRate, RateQuote
from handyman_bids.models.job_offer import Budget, JobAssignment, JobOffer, Location
from handyman_bids.models.notification import Notification
from handyman_bids.models.recommendation import PriceRecommendation

__all__ = [
    "Bid",
    "Budget",
    "Conversion",
    "CurrencyStats",
    "ExchangeRate",
    "JobAssignment",
    "JobOffer",
    "LIVE_STATUSES",
    "Location",
    "Notification",
    "PriceRecommendation",
    "RateQuote",
]
