"""Helpers for clients embedding third-party price charts."""

from __future__ import annotations

from breakout_scanner.services.data_providers.base import normalize_symbol

CHART_EXCHANGE_PREFIX = "COINBASE"


def chart_symbol(symbol: str, *, exchange: str = CHART_EXCHANGE_PREFIX) -> str:
    """Return the chart widget identifier of a product (``BTC-USD`` -> ``COINBASE:BTCUSD``)."""
    return f"{exchange}:{normalize_symbol(symbol).replace('-', '')}"


__all__ = ["chart_symbol"]
