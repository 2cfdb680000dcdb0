"""Unit tests for Settings loading."""

from pathlib import Path

import pytest
from pydantic import ValidationError as PydanticValidationError

from handyman_bids.config import Settings


class TestSettingsDefaults:
    """Tests for default values."""

    def test_currency_defaults(self) -> None:
        """USD and COP supported, bids ranked in USD."""
        s = Settings()
        assert s.supported_currencies == ["USD", "COP"]
        assert s.comparison_currency == "USD"
        assert s.fallback_rate("usd", "cop") == 4000.0
        assert s.fallback_rate("COP", "USD") == 0.00025
        assert s.fallback_rate("EUR", "USD") is None

    def test_pricing_and_alert_defaults(self) -> None:
        """Multipliers and alert windows match the marketplace defaults."""
        s = Settings()
        assert s.high_quality_multiplier == 1.15
        assert s.mid_quality_multiplier == 1.05
        assert s.alert_start_delay_minutes == 5
        assert s.alert_duration_hours == 24
        assert s.max_bid_attempts is None


class TestSettingsFromYaml:
    """Tests for from_yaml."""

    def test_nested_sections(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Nested sections are flattened into settings."""
        monkeypatch.delenv("HANDYMAN_BIDS_DB_PATH", raising=False)
        path = tmp_path / "settings.yaml"
        path.write_text(
            "db_path: market.db\n"
            "pricing:\n"
            "  high_quality_multiplier: 1.2\n"
            "bids:\n"
            "  max_bid_attempts: 3\n"
            "services:\n"
            "  rate_feed_url: https://rates.example.com/latest/USD\n"
        )
        s = Settings.from_yaml(path)
        assert s.db_path == Path("market.db")
        assert s.high_quality_multiplier == 1.2
        assert s.max_bid_attempts == 3
        assert s.rate_feed_url == "https://rates.example.com/latest/USD"

    def test_env_overrides_yaml(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """HANDYMAN_BIDS_* variables win over file values."""
        path = tmp_path / "settings.yaml"
        path.write_text("db_path: from_file.db\nhttp_timeout: 3\n")
        monkeypatch.setenv("HANDYMAN_BIDS_DB_PATH", "from_env.db")
        monkeypatch.setenv("HANDYMAN_BIDS_HTTP_TIMEOUT", "7.5")
        s = Settings.from_yaml(path)
        assert s.db_path == Path("from_env.db")
        assert s.http_timeout == 7.5

    def test_from_env_reads_config_path(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """HANDYMAN_BIDS_CONFIG points from_env at a YAML file."""
        path = tmp_path / "settings.yaml"
        path.write_text("geo:\n  nearby_radius_km: 40\n")
        monkeypatch.setenv("HANDYMAN_BIDS_CONFIG", str(path))
        assert Settings.from_env().nearby_radius_km == 40

    def test_empty_file_gives_defaults(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """An empty YAML file yields default settings."""
        monkeypatch.delenv("HANDYMAN_BIDS_DB_PATH", raising=False)
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert Settings.from_yaml(path).db_path == Path("handyman_bids.db")


class TestSettingsValidation:
    """Tests for cross-field checks."""

    def test_normalized_currencies_must_cover_usd_and_cop(self) -> None:
        """Dropping COP from the normalized set is refused up front."""
        with pytest.raises(PydanticValidationError, match="COP"):
            Settings(normalized_currencies=["USD"])

    def test_comparison_currency_must_be_normalized(self) -> None:
        """Bids cannot be ranked in a currency they are not normalized into."""
        with pytest.raises(PydanticValidationError, match="EUR"):
            Settings(supported_currencies=["USD", "COP", "EUR"], comparison_currency="EUR")

    def test_normalized_must_be_supported(self) -> None:
        """Normalized currencies must also be accepted currencies."""
        with pytest.raises(PydanticValidationError, match="supported_currencies"):
            Settings(normalized_currencies=["USD", "COP", "EUR"])

    def test_webhook_channel_needs_url(self) -> None:
        """The webhook channel requires notify_webhook_url."""
        with pytest.raises(PydanticValidationError, match="notify_webhook_url"):
            Settings(notify_channels=["outbox", "webhook"])

    def test_env_overrides_profiles_and_channels(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Profiles path and channel list come from the environment."""
        monkeypatch.setenv("HANDYMAN_BIDS_PROFILES_PATH", "profiles.yaml")
        monkeypatch.setenv("HANDYMAN_BIDS_NOTIFY_CHANNELS", "outbox, log")
        s = Settings().with_env_overrides()
        assert s.profiles_path == Path("profiles.yaml")
        assert s.notify_channels == ["outbox", "log"]
