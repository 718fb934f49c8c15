"""Symbol universe: tradable USD products reported online by the exchange."""

from __future__ import annotations

from typing import Iterable, List, Mapping

from loguru import logger

from breakout_scanner.services.data_providers.base import MarketDataProvider
from breakout_scanner.utils.errors import DataSourceError


def filter_trading_pairs(products: Iterable[Mapping[str, object]]) -> List[str]:
    """Keep online USD-quoted products and return ``BASE-QUOTE`` identifiers.

    Input order is preserved; duplicates are dropped.
    """
    pairs: List[str] = []
    for product in products:
        if product.get("quote_currency") != "USD" or product.get("status") != "online":
            continue
        pair = f"{product.get('base_currency')}-{product.get('quote_currency')}"
        if pair not in pairs:
            pairs.append(pair)
    return pairs


async def fetch_trading_pairs(provider: MarketDataProvider) -> List[str]:
    """Return the filtered universe reported by ``provider``."""
    products = await provider.list_products()
    return filter_trading_pairs(products)


async def resolve_universe(provider: MarketDataProvider, fallback: Iterable[str]) -> List[str]:
    """Return the live universe, or ``fallback`` when the listing is unavailable."""
    try:
        pairs = await fetch_trading_pairs(provider)
    except DataSourceError as exc:
        logger.bind(reason=exc.code).warning("universe.fallback")
        return list(fallback)
    if not pairs:
        logger.warning("universe.empty")
        return list(fallback)
    return pairs


__all__ = ["fetch_trading_pairs", "filter_trading_pairs", "resolve_universe"]
