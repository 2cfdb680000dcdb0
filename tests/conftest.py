"""Pytest fixtures for handyman-bids tests."""

import tempfile
from pathlib import Path
from typing import Any, Callable

import pytest

from handyman_bids.config import Settings
from handyman_bids.marketplace import Marketplace, build_marketplace
from handyman_bids.models.job_offer import Budget, JobOffer, Location
from handyman_bids.notifications import Notifier
from handyman_bids.profiles import HandymanProfile, ProfileDirectory

BOGOTA = Location(latitude=4.711, longitude=-74.0721, address="Cra 7 #32-16", city="Bogotá", country="CO")


class RecordingNotifier(Notifier):
    """Keeps every delivered event in memory, in delivery order."""

    channel = "recording"

    def __init__(self) -> None:
        self.events: list[tuple[str, str, dict[str, Any]]] = []

    def notify(self, user_id, kind, payload) -> None:
        self.events.append((user_id, kind, payload))

    def kinds_for(self, user_id: str) -> list[str]:
        return [kind for uid, kind, _ in self.events if uid == user_id]


@pytest.fixture
def temp_db() -> Path:
    """Temporary database path for isolated tests."""
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        path = Path(f.name)
    yield path
    path.unlink(missing_ok=True)


@pytest.fixture
def settings(temp_db: Path) -> Settings:
    return Settings(db_path=temp_db)


@pytest.fixture
def recorder() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def profiles() -> ProfileDirectory:
    return ProfileDirectory(
        [
            HandymanProfile(user_id="h1", name="Ana", rating=4.8, skills=["plumbing"]),
            HandymanProfile(user_id="h2", name="Luis", rating=4.4, skills=["electrical"]),
            HandymanProfile(user_id="h3", name="Sofía", rating=0, skills=["painting"]),
        ]
    )


@pytest.fixture
def market(settings: Settings, recorder: RecordingNotifier, profiles: ProfileDirectory) -> Marketplace:
    """Marketplace on a temp db with USD->COP at 4000 and a recording notifier."""
    m = build_marketplace(settings, ratings=profiles, notifiers=[recorder])
    m.currency.update_rates(4000.0, "test")
    return m


@pytest.fixture
def make_offer(market: Marketplace) -> Callable[..., JobOffer]:
    """Factory posting a job offer for client c1 in Bogotá (budget 50-200 USD)."""

    def _make(**overrides) -> JobOffer:
        kwargs: dict[str, Any] = {
            "client_id": "c1",
            "title": "Fix kitchen sink",
            "location": BOGOTA,
            "budget": Budget(min=50, max=200, currency="USD"),
        }
        kwargs.update(overrides)
        return market.jobs.create_job_offer(
            kwargs.pop("client_id"),
            kwargs.pop("title"),
            kwargs.pop("location"),
            kwargs.pop("budget"),
            **kwargs,
        )

    return _make
