"""Local storage for marketplace documents, exchange rates, notifications and bid attempts."""

from handyman_bids.store.attempt_store import AttemptStore, SqliteAttemptStore
from handyman_bids.store.market_store import MarketSession, MarketStore
from handyman_bids.store.notification_store import NotificationStore
from handyman_bids.store.rate_store import ExchangeRateStore

__all__ = [
    "AttemptStore",
    "ExchangeRateStore",
    "MarketSession",
    "MarketStore",
    "NotificationStore",
    "SqliteAttemptStore",
]
