"""Runtime settings: YAML file plus HANDYMAN_BIDS_* environment overrides."""

import os
from pathlib import Path
from typing import Optional

try:
    import yaml
except ModuleNotFoundError as e:
    raise ModuleNotFoundError(
        "PyYAML is required for settings loading. Run: poetry install"
    ) from e
from pydantic import BaseModel, Field, model_validator

ENV_PREFIX = "HANDYMAN_BIDS_"


class Settings(BaseModel):
    """Marketplace settings. Defaults match the production marketplace."""

    db_path: Path = Field(default=Path("handyman_bids.db"))

    # Currencies
    supported_currencies: list[str] = Field(default_factory=lambda: ["USD", "COP"])
    comparison_currency: str = Field(
        default="USD",
        description="Currency used to rank bids (current highest)",
    )
    normalized_currencies: list[str] = Field(
        default_factory=lambda: ["USD", "COP"],
        description="Every bid amount is stored converted into each of these",
    )
    fallback_rates: dict[str, float] = Field(
        default_factory=lambda: {"USD:COP": 4000.0, "COP:USD": 0.00025},
        description="FROM:TO -> rate used when no active rate row exists",
    )

    # Bidder ratings export (YAML list of profiles); empty directory when unset
    profiles_path: Optional[Path] = None

    # Pricing
    default_quality_score: float = 3.5
    high_quality_threshold: float = 4.0
    high_quality_multiplier: float = 1.15
    mid_quality_multiplier: float = 1.05

    # Alerts and geo
    alert_start_delay_minutes: int = 5
    alert_duration_hours: int = 24
    nearby_radius_km: float = 25.0
    alert_radius_km: float = 10.0

    # Bid attempts (None disables the limiter)
    max_bid_attempts: Optional[int] = None
    bid_attempt_window_seconds: int = 3600

    # Notification channels by name: outbox, webhook, log
    notify_channels: list[str] = Field(default_factory=lambda: ["outbox"])

    # External services
    rate_feed_url: Optional[str] = None
    notify_webhook_url: Optional[str] = None
    http_timeout: float = 10.0
    store_busy_timeout: float = 5.0

    @model_validator(mode="after")
    def _check_consistency(self) -> "Settings":
        # recommendations are kept in USD and COP
        normalized = {c.upper() for c in self.normalized_currencies}
        missing = {"USD", "COP", self.comparison_currency.upper()} - normalized
        if missing:
            raise ValueError(f"normalized_currencies must include {sorted(missing)}")
        unsupported = normalized - {c.upper() for c in self.supported_currencies}
        if unsupported:
            raise ValueError(f"normalized_currencies not in supported_currencies: {sorted(unsupported)}")
        if "webhook" in {c.lower() for c in self.notify_channels} and not self.notify_webhook_url:
            raise ValueError("notify_channels includes webhook but notify_webhook_url is not set")
        return self

    def fallback_rate(self, from_currency: str, to_currency: str) -> Optional[float]:
        """Configured fallback for an exact pair, if any."""
        return self.fallback_rates.get(f"{from_currency.upper()}:{to_currency.upper()}")

    @classmethod
    def from_yaml(cls, path: str | Path) -> "Settings":
        """Load settings from YAML. Supports nested sections (currency/pricing/geo/services) or flat keys."""
        data = yaml.safe_load(Path(path).read_text()) or {}
        flat: dict = {}
        for key, value in data.items():
            if isinstance(value, dict) and key in ("currency", "pricing", "geo", "services", "store", "bids"):
                flat.update(value)
            else:
                flat[key] = value
        settings = cls.model_validate(flat)
        return settings.with_env_overrides()

    @classmethod
    def from_env(cls) -> "Settings":
        """Defaults plus environment overrides. HANDYMAN_BIDS_CONFIG points to a YAML file."""
        config_path = os.environ.get(f"{ENV_PREFIX}CONFIG")
        if config_path:
            return cls.from_yaml(config_path)
        return cls().with_env_overrides()

    def with_env_overrides(self) -> "Settings":
        updates: dict = {}
        db_path = os.environ.get(f"{ENV_PREFIX}DB_PATH")
        if db_path:
            updates["db_path"] = Path(db_path)
        feed_url = os.environ.get(f"{ENV_PREFIX}RATE_FEED_URL")
        if feed_url:
            updates["rate_feed_url"] = feed_url
        webhook = os.environ.get(f"{ENV_PREFIX}NOTIFY_WEBHOOK_URL")
        if webhook:
            updates["notify_webhook_url"] = webhook
        profiles = os.environ.get(f"{ENV_PREFIX}PROFILES_PATH")
        if profiles:
            updates["profiles_path"] = Path(profiles)
        channels = os.environ.get(f"{ENV_PREFIX}NOTIFY_CHANNELS")
        if channels:
            updates["notify_channels"] = [c.strip() for c in channels.split(",") if c.strip()]
        timeout = os.environ.get(f"{ENV_PREFIX}HTTP_TIMEOUT")
        if timeout:
            updates["http_timeout"] = float(timeout)
        if not updates:
            return self
        return self.model_validate({**self.model_dump(), **updates})
