"""Market data providers and the factory selecting one from settings."""

from __future__ import annotations

from breakout_scanner.config import Settings, get_settings

from .base import MarketDataProvider, empty_candles, normalize_symbol
from .ccxt_provider import CcxtDataProvider
from .coinbase_provider import CoinbaseDataProvider


def build_provider(settings: Settings | None = None) -> MarketDataProvider:
    """Instantiate the provider configured through ``DATA_SOURCE``."""
    resolved = settings or get_settings()
    if resolved.data_source == "ccxt":
        return CcxtDataProvider(resolved.exchange)
    return CoinbaseDataProvider(resolved.market_data_base_url, timeout=resolved.market_data_timeout)


__all__ = [
    "CcxtDataProvider",
    "CoinbaseDataProvider",
    "MarketDataProvider",
    "build_provider",
    "empty_candles",
    "normalize_symbol",
]
