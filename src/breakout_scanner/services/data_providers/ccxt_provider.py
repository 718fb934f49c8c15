"""CCXT-backed implementation of the market data provider.

Lets the scanner run against any exchange supported by CCXT. Pacing and the
bounded 429 retry come from :class:`MarketDataProvider`, so CCXT's own
``enableRateLimit`` throttling is switched off to avoid double waiting.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Protocol

import ccxt  # type: ignore[import-untyped]
import pandas as pd

from breakout_scanner.config import settings
from breakout_scanner.services.data_providers.base import (
    CANDLE_COLUMNS,
    CircuitBreaker,
    MarketDataProvider,
    RetryPolicy,
    empty_candles,
    normalize_symbol,
)
from breakout_scanner.utils.cancellation import CancellationToken
from breakout_scanner.utils.errors import DataSourceError, MalformedPayload, RateLimited
from breakout_scanner.utils.ratelimit import Sleep, TokenBucket
from breakout_scanner.utils.timeframes import timeframe_label

if TYPE_CHECKING:

    class _ExchangeLike(Protocol):
        """Structural type describing the ccxt client used at runtime."""

        id: str

        def fetch_ohlcv(
            self,
            symbol: str,
            timeframe: str,
            since: Optional[int] = None,
            limit: Optional[int] = None,
            params: Optional[Dict[str, Any]] = None,
        ) -> list[list[float | int]]: ...

        def load_markets(self) -> Dict[str, Dict[str, Any]]: ...


def to_ccxt_symbol(symbol: str) -> str:
    """Return the ``BASE/QUOTE`` market identifier CCXT expects."""
    return normalize_symbol(symbol).replace("-", "/")


def _rows_to_frame(raw: object) -> pd.DataFrame:
    """Convert CCXT ``[ms, open, high, low, close, volume]`` rows to a frame."""
    if not isinstance(raw, list):
        raise MalformedPayload("CCXT returned a non list OHLCV payload")
    if not raw:
        return empty_candles()
    if any(not isinstance(row, (list, tuple)) or len(row) != 6 for row in raw):
        raise MalformedPayload("CCXT OHLCV rows must hold 6 fields")
    frame = pd.DataFrame(raw, columns=CANDLE_COLUMNS)
    try:
        frame = frame.astype(float)
    except (TypeError, ValueError) as exc:
        raise MalformedPayload("CCXT OHLCV rows contain non numeric values") from exc
    frame["ts"] = frame["ts"].astype("int64") // 1000
    frame.sort_values("ts", inplace=True, kind="stable")
    frame.reset_index(drop=True, inplace=True)
    return frame


class CcxtDataProvider(MarketDataProvider):
    """Fetch candles and markets from exchanges using CCXT."""

    name = "ccxt"

    def __init__(
        self,
        exchange_id: Optional[str] = None,
        *,
        limiter: TokenBucket | None = None,
        retry_policy: RetryPolicy | None = None,
        breaker: CircuitBreaker | None = None,
        sleep: Sleep | None = None,
    ) -> None:
        super().__init__(limiter=limiter, retry_policy=retry_policy, breaker=breaker, sleep=sleep)
        exchange_name = exchange_id or settings.exchange
        try:
            exchange_class = getattr(ccxt, exchange_name)
        except AttributeError as exc:
            raise DataSourceError(f"Unknown exchange '{exchange_name}'") from exc
        self.client: "_ExchangeLike" = exchange_class({"enableRateLimit": False})

    async def fetch_candles(
        self,
        symbol: str,
        granularity: int,
        *,
        limit: int,
        cancel_token: CancellationToken | None = None,
    ) -> pd.DataFrame:
        """Return up to ``limit`` candles of ``granularity`` seconds for ``symbol``."""
        market = to_ccxt_symbol(symbol)
        timeframe = timeframe_label(granularity)

        async def _request() -> pd.DataFrame:
            try:
                raw = await asyncio.to_thread(
                    self.client.fetch_ohlcv, market, timeframe, None, limit
                )
            except ccxt.RateLimitExceeded as exc:
                raise RateLimited() from exc
            except ccxt.BadRequest as exc:
                raise DataSourceError(str(exc), upstream_status=400) from exc
            except ccxt.BaseError as exc:
                raise DataSourceError(str(exc)) from exc
            return _rows_to_frame(raw)

        return await self._call_with_backoff(
            _request, what=f"{market} candles", cancel_token=cancel_token
        )

    async def list_products(self) -> List[Dict[str, object]]:
        """Return the exchange markets shaped like Coinbase product descriptors."""

        async def _request() -> List[Dict[str, object]]:
            try:
                markets = await asyncio.to_thread(self.client.load_markets)
            except ccxt.RateLimitExceeded as exc:
                raise RateLimited() from exc
            except ccxt.BaseError as exc:
                raise DataSourceError(str(exc)) from exc
            products: List[Dict[str, object]] = []
            for market in markets.values():
                base = str(market.get("base", ""))
                quote = str(market.get("quote", ""))
                products.append(
                    {
                        "id": f"{base}-{quote}",
                        "base_currency": base,
                        "quote_currency": quote,
                        "status": "offline" if market.get("active") is False else "online",
                    }
                )
            return products

        return await self._call_with_backoff(_request, what="markets")


__all__ = ["CcxtDataProvider", "to_ccxt_symbol"]
