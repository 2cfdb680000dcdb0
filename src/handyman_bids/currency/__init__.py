"""Currency conversion service."""

from .service import CurrencyService

__all__ = ["CurrencyService"]
