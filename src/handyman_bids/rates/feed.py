"""External exchange rate feed: fetch the current USD->COP rate and record it."""

import logging
from typing import Optional

import httpx

from handyman_bids.currency.service import CurrencyService
from handyman_bids.models.exchange_rate import ExchangeRate

logger = logging.getLogger(__name__)


class RateFeedError(RuntimeError):
    """Feed unreachable or returned an unusable payload."""


class ExchangeRateFeed:
    """
    Pulls rates from a JSON endpoint shaped like exchangerate-api responses:
    {"base": "USD", "rates": {"COP": 3950.5, ...}}.
    """

    DEFAULT_HEADERS = {
        "User-Agent": "handyman-bids/0.1 (rate feed)",
        "Accept": "application/json",
    }

    def __init__(
        self,
        url: str,
        *,
        source: Optional[str] = None,
        client: Optional[httpx.Client] = None,
        timeout: float = 10.0,
    ):
        self._url = url
        self._source = source or httpx.URL(url).host or "rate-feed"
        self._owns_client = client is None
        self._client = client or httpx.Client(
            timeout=timeout,
            follow_redirects=True,
            headers=self.DEFAULT_HEADERS,
        )

    def fetch_usd_to_cop(self) -> float:
        """Current USD->COP rate from the feed."""
        try:
            resp = self._client.get(self._url)
            resp.raise_for_status()
            payload = resp.json()
        except httpx.HTTPStatusError as e:
            raise RateFeedError(f"HTTP {e.response.status_code} from rate feed") from e
        except httpx.RequestError as e:
            raise RateFeedError(str(e)) from e
        except ValueError as e:
            raise RateFeedError("Rate feed returned invalid JSON") from e

        base = (payload.get("base") or "USD").upper()
        if base != "USD":
            raise RateFeedError(f"Unsupported feed base currency: {base}")
        rate = (payload.get("rates") or {}).get("COP")
        if not isinstance(rate, (int, float)) or rate <= 0:
            raise RateFeedError(f"Rate feed has no usable COP rate: {rate!r}")
        return float(rate)

    def refresh(self, currency: CurrencyService) -> tuple[ExchangeRate, ExchangeRate]:
        """Fetch and record both directions. Raises RateFeedError; existing rates stay active."""
        rate = self.fetch_usd_to_cop()
        logger.info("Fetched USD->COP %s from %s", rate, self._source)
        return currency.update_rates(rate, self._source)

    def close(self) -> None:
        """Close the HTTP client if this feed created it."""
        if self._owns_client:
            self._client.close()
