"""Marketplace wiring: build every service from Settings and run cross-service queries."""

import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional

from handyman_bids.bidding import BidAttemptLimiter, BiddingService
from handyman_bids.config import Settings
from handyman_bids.currency import CurrencyService
from handyman_bids.geo import MatchResult, OfferMatcher, SeekerProfile, offers_for_alerts, within_radius
from handyman_bids.lifecycle import JobOfferService
from handyman_bids.models.job_offer import JobOffer
from handyman_bids.notifications import FanOut, Notifier, NotifierRegistry
from handyman_bids.pricing import PriceRecommendationEngine
from handyman_bids.profiles import ProfileDirectory, RatingLookup
from handyman_bids.rates import ExchangeRateFeed
from handyman_bids.store import ExchangeRateStore, MarketStore, NotificationStore, SqliteAttemptStore

logger = logging.getLogger(__name__)


@dataclass
class Marketplace:
    """All services sharing one database."""

    settings: Settings
    store: MarketStore
    rates: ExchangeRateStore
    notifications: NotificationStore
    currency: CurrencyService
    pricing: PriceRecommendationEngine
    fanout: FanOut
    bidding: BiddingService
    jobs: JobOfferService
    feed: Optional[ExchangeRateFeed] = None

    def nearby_job_offers(self, seeker: SeekerProfile, limit: Optional[int] = None) -> list[MatchResult]:
        """Open offers around the seeker, most relevant first."""
        matcher = OfferMatcher(seeker, default_radius_km=self.settings.nearby_radius_km)
        return matcher.nearby_job_offers(self.jobs.list_open_offers(), limit=limit)

    def job_offers_for_alerts(
        self,
        city: str,
        country: str,
        category: str,
        now: Optional[datetime] = None,
    ) -> list[JobOffer]:
        return offers_for_alerts(
            self.jobs.list_open_offers(),
            city=city,
            country=country,
            category=category,
            now=now,
        )

    def alert_recipients(
        self,
        offer: JobOffer,
        seekers: list[SeekerProfile],
    ) -> list[tuple[SeekerProfile, float]]:
        """Handymen within the alert radius of the offer, nearest first."""
        return within_radius(
            seekers,
            (offer.location.latitude, offer.location.longitude),
            self.settings.alert_radius_km,
            coords=lambda s: (s.latitude, s.longitude),
        )

    def refresh_rates(self):
        """Pull the current rate from the configured feed. Raises RateFeedError."""
        if self.feed is None:
            raise RuntimeError("No rate feed configured (set rate_feed_url)")
        return self.feed.refresh(self.currency)

    def close(self) -> None:
        """Close HTTP clients held by notification channels and the rate feed."""
        self.fanout.close()
        if self.feed is not None:
            self.feed.close()

    def __enter__(self) -> "Marketplace":
        return self

    def __exit__(self, *exc) -> None:
        self.close()


def build_marketplace(
    settings: Optional[Settings] = None,
    *,
    ratings: Optional[RatingLookup] = None,
    notifiers: Optional[list[Notifier]] = None,
    db_path: Optional[Path] = None,
) -> Marketplace:
    """
    Wire the services. Notification channels come from notify_channels (the
    webhook is added when notify_webhook_url is set) unless explicit notifiers
    are given. Ratings load from profiles_path when no lookup is passed.
    """
    settings = settings or Settings.from_env()
    db_path = Path(db_path or settings.db_path)
    busy = settings.store_busy_timeout

    store = MarketStore(db_path, busy_timeout=busy)
    rate_store = ExchangeRateStore(db_path, busy_timeout=busy)
    notification_store = NotificationStore(db_path, busy_timeout=busy)
    currency = CurrencyService(rate_store, settings)
    if ratings is None:
        ratings = ProfileDirectory.from_yaml(settings.profiles_path) if settings.profiles_path else ProfileDirectory()
    pricing = PriceRecommendationEngine(ratings, settings)

    if notifiers is None:
        channels = [c.lower() for c in settings.notify_channels]
        if settings.notify_webhook_url and "webhook" not in channels:
            channels.append("webhook")
        channel_kwargs = {
            "outbox": {"store": notification_store},
            "webhook": {"url": settings.notify_webhook_url, "timeout": settings.http_timeout},
        }
        notifiers = [NotifierRegistry.get(c, **channel_kwargs.get(c, {})) for c in channels]
    fanout = FanOut(notifiers)

    limiter = None
    if settings.max_bid_attempts:
        limiter = BidAttemptLimiter(
            SqliteAttemptStore(db_path, busy_timeout=busy),
            settings.max_bid_attempts,
            settings.bid_attempt_window_seconds,
        )

    feed = None
    if settings.rate_feed_url:
        feed = ExchangeRateFeed(settings.rate_feed_url, timeout=settings.http_timeout)

    logger.debug(
        "Marketplace on %s (channels=%s, limiter=%s, feed=%s)",
        db_path,
        [n.channel for n in notifiers],
        limiter is not None,
        feed is not None,
    )
    return Marketplace(
        settings=settings,
        store=store,
        rates=rate_store,
        notifications=notification_store,
        currency=currency,
        pricing=pricing,
        fanout=fanout,
        bidding=BiddingService(store, currency, pricing, fanout, settings, limiter=limiter),
        jobs=JobOfferService(store, currency, fanout, settings),
        feed=feed,
    )
