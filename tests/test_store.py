"""Unit tests for the SQLite stores."""

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from handyman_bids.models import Bid, Budget, ExchangeRate, JobOffer, Location, Notification
from handyman_bids.store import ExchangeRateStore, MarketStore, NotificationStore, SqliteAttemptStore

LOC = Location(latitude=4.711, longitude=-74.0721, city="Bogotá", country="CO")


def _make_offer(offer_id: str = "j1", client_id: str = "c1", created_at: datetime | None = None) -> JobOffer:
    return JobOffer(
        id=offer_id,
        client_id=client_id,
        title="Fix sink",
        location=LOC,
        budget=Budget(min=50, max=200),
        created_at=created_at or datetime.now(timezone.utc),
    )


def _make_bid(
    bid_id: str,
    bidder_id: str = "h1",
    amount: float = 100.0,
    status: str = "active",
    highest: bool = False,
    job_offer_id: str = "j1",
) -> Bid:
    return Bid(
        id=bid_id,
        job_offer_id=job_offer_id,
        bidder_id=bidder_id,
        bid_amount=amount,
        currency="USD",
        normalized_amounts={"USD": amount, "COP": amount * 4000},
        status=status,
        is_current_highest=highest,
    )


@pytest.fixture
def store(temp_db: Path) -> MarketStore:
    """MarketStore with temporary database."""
    return MarketStore(temp_db)


class TestMarketStoreTransactions:
    """Tests for transaction() and snapshot()."""

    def test_commit_persists(self, store: MarketStore) -> None:
        """Writes inside a transaction are visible afterwards."""
        with store.transaction() as session:
            session.save_job_offer(_make_offer())
        with store.snapshot() as session:
            assert session.get_job_offer("j1") is not None

    def test_exception_rolls_back(self, store: MarketStore) -> None:
        """Any exception inside the transaction discards every write."""
        with pytest.raises(RuntimeError):
            with store.transaction() as session:
                session.save_job_offer(_make_offer())
                session.save_bid(_make_bid("b1"))
                raise RuntimeError("boom")
        with store.snapshot() as session:
            assert session.get_job_offer("j1") is None
            assert session.get_bid("b1") is None

    def test_upsert_overwrites(self, store: MarketStore) -> None:
        """Saving the same id twice keeps one row with the latest data."""
        bid = _make_bid("b1")
        with store.transaction() as session:
            session.save_bid(bid)
            bid.status = "outbid"
            session.save_bid(bid)
        with store.snapshot() as session:
            bids = session.find_bids("j1")
        assert [b.status for b in bids] == ["outbid"]


class TestMarketStoreQueries:
    """Tests for bid and offer lookups."""

    def test_find_bids_filters_status_in_submission_order(self, store: MarketStore) -> None:
        """find_bids returns matching statuses oldest first."""
        with store.transaction() as session:
            session.save_bid(_make_bid("b1", "h1", status="outbid"))
            session.save_bid(_make_bid("b2", "h2", status="active"))
            session.save_bid(_make_bid("b3", "h3", status="withdrawn"))
        with store.snapshot() as session:
            live = session.find_bids("j1", statuses=["active", "outbid"])
            everything = session.find_bids("j1")
        assert [b.id for b in live] == ["b1", "b2"]
        assert len(everything) == 3

    def test_find_active_bid_ignores_other_statuses(self, store: MarketStore) -> None:
        """Only an active bid counts as the bidder's active bid."""
        with store.transaction() as session:
            session.save_bid(_make_bid("b1", "h1", status="withdrawn"))
        with store.snapshot() as session:
            assert session.find_active_bid("j1", "h1") is None
        with store.transaction() as session:
            session.save_bid(_make_bid("b2", "h1"))
        with store.snapshot() as session:
            assert session.find_active_bid("j1", "h1").id == "b2"

    def test_find_current_highest(self, store: MarketStore) -> None:
        """Current highest is the active bid carrying the flag."""
        with store.transaction() as session:
            session.save_bid(_make_bid("b1", "h1", amount=100))
            session.save_bid(_make_bid("b2", "h2", amount=150, highest=True))
        with store.snapshot() as session:
            assert session.find_current_highest("j1").id == "b2"
            assert session.find_current_highest("other") is None

    def test_list_job_offers_newest_first(self, store: MarketStore) -> None:
        """list_job_offers filters by client and sorts newest first."""
        now = datetime.now(timezone.utc)
        with store.transaction() as session:
            session.save_job_offer(_make_offer("old", created_at=now - timedelta(hours=2)))
            session.save_job_offer(_make_offer("new", created_at=now))
            session.save_job_offer(_make_offer("theirs", client_id="c2"))
        with store.snapshot() as session:
            mine = session.list_job_offers(client_id="c1")
        assert [o.id for o in mine] == ["new", "old"]

    def test_bids_by_bidder(self, store: MarketStore) -> None:
        """bids_by_bidder spans job offers."""
        with store.transaction() as session:
            session.save_bid(_make_bid("b1", "h1", job_offer_id="j1"))
            session.save_bid(_make_bid("b2", "h1", job_offer_id="j2"))
            session.save_bid(_make_bid("b3", "h2", job_offer_id="j1"))
        with store.snapshot() as session:
            assert {b.id for b in session.bids_by_bidder("h1")} == {"b1", "b2"}


class TestExchangeRateStore:
    """Tests for ExchangeRateStore."""

    def test_record_deactivates_previous(self, temp_db: Path) -> None:
        """Only the newest row for a pair stays active."""
        rates = ExchangeRateStore(temp_db)
        first = rates.record(ExchangeRate(from_currency="USD", to_currency="COP", rate=3900))
        rates.record(ExchangeRate(from_currency="USD", to_currency="COP", rate=4100))
        assert first.id is not None
        assert rates.latest_active("USD", "COP").rate == 4100
        history = rates.history("USD", "COP")
        assert [r.rate for r in history] == [4100, 3900]
        assert [r.is_active for r in history] == [True, False]

    def test_latest_active_missing_pair(self, temp_db: Path) -> None:
        """No row for the pair returns None."""
        assert ExchangeRateStore(temp_db).latest_active("EUR", "USD") is None

    def test_since_oldest_first(self, temp_db: Path) -> None:
        """since returns rows after the cutoff in ascending time."""
        rates = ExchangeRateStore(temp_db)
        now = datetime.now(timezone.utc)
        for days_ago, value in ((10, 3800), (3, 3900), (1, 4000)):
            rates.record(
                ExchangeRate(
                    from_currency="USD",
                    to_currency="COP",
                    rate=value,
                    last_updated=now - timedelta(days=days_ago),
                )
            )
        rows = rates.since("USD", "COP", now - timedelta(days=7))
        assert [r.rate for r in rows] == [3900, 4000]


class TestNotificationStore:
    """Tests for NotificationStore."""

    def test_add_list_and_mark_read(self, temp_db: Path) -> None:
        """Notifications are listed per user and can be marked read."""
        notes = NotificationStore(temp_db)
        n = Notification(user_id="h1", kind="outbid", payload={"jobOfferId": "j1"})
        notes.add(n)
        notes.add(Notification(user_id="h2", kind="bid-accepted"))
        listed = notes.list_for_user("h1")
        assert len(listed) == 1
        assert listed[0].payload == {"jobOfferId": "j1"}
        notes.mark_read(n.id)
        assert notes.list_for_user("h1", unread_only=True) == []


class TestSqliteAttemptStore:
    """Tests for the TTL attempt counter."""

    def test_counts_within_ttl(self, temp_db: Path) -> None:
        """hit returns the number of live attempts for the key."""
        clock = [1000.0]
        attempts = SqliteAttemptStore(temp_db, clock=lambda: clock[0])
        assert attempts.hit("bid:h1", 60) == 1
        assert attempts.hit("bid:h1", 60) == 2
        assert attempts.hit("bid:h2", 60) == 1
        assert attempts.count("bid:h1") == 2

    def test_expired_attempts_are_dropped(self, temp_db: Path) -> None:
        """Attempts older than the TTL no longer count."""
        clock = [1000.0]
        attempts = SqliteAttemptStore(temp_db, clock=lambda: clock[0])
        attempts.hit("bid:h1", 60)
        attempts.hit("bid:h1", 60)
        clock[0] += 61
        assert attempts.count("bid:h1") == 0
        assert attempts.hit("bid:h1", 60) == 1
