"""Currency conversion over the exchange rate table, with an observable fallback path."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from handyman_bids.config import Settings
from handyman_bids.models.exchange_rate import Conversion, CurrencyStats, ExchangeRate, RateQuote
from handyman_bids.store.rate_store import ExchangeRateStore

logger = logging.getLogger(__name__)

# Legacy defaults for pairs with no configured fallback (approx. COP per USD)
_DEFAULT_FROM_USD = 4000.0
_DEFAULT_OTHER = 0.00025

# Half-over-half change (percent) beyond which a rate is rising/falling
_TREND_THRESHOLD_PCT = 2.0


class CurrencyService:
    """
    Reads exchange rates and converts amounts. Lookups never fail: a missing
    pair degrades to a fallback rate, tagged is_fallback and logged.
    """

    def __init__(self, rate_store: ExchangeRateStore, settings: Optional[Settings] = None):
        self._rates = rate_store
        self._settings = settings or Settings()

    def get_rate(self, from_currency: str, to_currency: str) -> RateQuote:
        """Rate in effect for (from, to). Same currency is 1 without a lookup."""
        from_currency = from_currency.upper()
        to_currency = to_currency.upper()
        if from_currency == to_currency:
            return RateQuote(
                from_currency=from_currency,
                to_currency=to_currency,
                rate=1.0,
                source="same_currency",
            )

        row = self._rates.latest_active(from_currency, to_currency)
        if row is not None:
            return RateQuote(
                from_currency=from_currency,
                to_currency=to_currency,
                rate=row.rate,
                source=row.source,
                last_updated=row.last_updated,
            )

        fallback = self._settings.fallback_rate(from_currency, to_currency)
        if fallback is None:
            fallback = _DEFAULT_FROM_USD if from_currency == "USD" else _DEFAULT_OTHER
        logger.warning(
            "No active exchange rate for %s->%s; using fallback rate %s",
            from_currency,
            to_currency,
            fallback,
        )
        return RateQuote(
            from_currency=from_currency,
            to_currency=to_currency,
            rate=fallback,
            source="fallback",
            is_fallback=True,
        )

    def convert(self, amount: float, from_currency: str, to_currency: str) -> Conversion:
        """Convert amount; result carries the rate and whether it was a fallback."""
        quote = self.get_rate(from_currency, to_currency)
        return Conversion(
            amount=amount,
            converted_amount=amount * quote.rate,
            from_currency=quote.from_currency,
            to_currency=quote.to_currency,
            rate=quote.rate,
            source=quote.source,
            is_fallback=quote.is_fallback,
        )

    def convert_amount(self, amount: float, from_currency: str, to_currency: str) -> float:
        return self.convert(amount, from_currency, to_currency).converted_amount

    def normalize(self, amount: float, currency: str) -> tuple[dict[str, float], float, bool]:
        """
        Convert amount into every normalized currency.
        Returns (amounts, exchange_rate_used, any_fallback). exchange_rate_used is
        the rate from `currency` to the first normalized currency it is not already in.
        """
        currency = currency.upper()
        amounts: dict[str, float] = {}
        rate_used: Optional[float] = None
        any_fallback = False
        for target in self._settings.normalized_currencies:
            conversion = self.convert(amount, currency, target)
            amounts[target] = conversion.converted_amount
            any_fallback = any_fallback or conversion.is_fallback
            if rate_used is None and target != currency:
                rate_used = conversion.rate
        return amounts, rate_used if rate_used is not None else 1.0, any_fallback

    def update_rates(
        self,
        usd_to_cop: float,
        source: str,
        *,
        at: Optional[datetime] = None,
    ) -> tuple[ExchangeRate, ExchangeRate]:
        """Record USD->COP and its inverse as the active rates."""
        if usd_to_cop <= 0:
            raise ValueError("usd_to_cop must be positive")
        at = at or datetime.now(timezone.utc)
        forward = self._rates.record(
            ExchangeRate(from_currency="USD", to_currency="COP", rate=usd_to_cop, source=source, last_updated=at)
        )
        inverse = self._rates.record(
            ExchangeRate(from_currency="COP", to_currency="USD", rate=1 / usd_to_cop, source=source, last_updated=at)
        )
        logger.info("Exchange rates updated from %s: USD->COP %s", source, usd_to_cop)
        return forward, inverse

    def history(self, from_currency: str, to_currency: str, limit: int = 30) -> list[ExchangeRate]:
        return self._rates.history(from_currency.upper(), to_currency.upper(), limit)

    def stats(
        self,
        from_currency: str,
        to_currency: str,
        days: int = 7,
        *,
        now: Optional[datetime] = None,
    ) -> CurrencyStats:
        """Average/high/low/current and half-over-half trend over the last `days` days."""
        now = now or datetime.now(timezone.utc)
        rows = self._rates.since(from_currency.upper(), to_currency.upper(), now - timedelta(days=days))
        if not rows:
            return CurrencyStats()

        values = [r.rate for r in rows]
        average = sum(values) / len(values)
        half = len(values) // 2
        first_half = values[:half] or values
        second_half = values[half:]
        first_avg = sum(first_half) / len(first_half)
        second_avg = sum(second_half) / len(second_half)
        percent_change = (second_avg - first_avg) / first_avg * 100

        trend = "stable"
        if percent_change > _TREND_THRESHOLD_PCT:
            trend = "rising"
        elif percent_change < -_TREND_THRESHOLD_PCT:
            trend = "falling"

        return CurrencyStats(
            average=round(average, 4),
            highest=round(max(values), 4),
            lowest=round(min(values), 4),
            current=round(values[-1], 4),
            trend=trend,
            percent_change=round(percent_change, 2),
            data_points=len(values),
        )
