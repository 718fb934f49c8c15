"""Coinbase Exchange REST implementation of the market data provider."""

from __future__ import annotations

import math
from typing import Dict, List, Mapping

import httpx
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

# Position of each field inside a wire candle. The endpoint does NOT follow the
# OHLC order: rows are ``[time, low, high, open, close, volume]``.
_WIRE_TIME, _WIRE_LOW, _WIRE_HIGH, _WIRE_OPEN, _WIRE_CLOSE, _WIRE_VOLUME = range(6)


def _wire_number(value: object) -> float:
    """Convert one wire field to ``float``, rejecting anything non numeric."""
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise MalformedPayload(f"Unexpected candle field {value!r}")
    try:
        number = float(value)
    except ValueError as exc:
        raise MalformedPayload(f"Unexpected candle field {value!r}") from exc
    if math.isnan(number):
        raise MalformedPayload("Candle field is NaN")
    return number


def parse_candle_payload(payload: object) -> pd.DataFrame:
    """Map the wire candle array into the canonical, ascending DataFrame.

    The endpoint usually returns the newest candle first; the result is
    always re-sorted by timestamp. An empty array yields an empty series, any
    other unexpected shape raises :class:`MalformedPayload`.
    """
    if not isinstance(payload, list):
        raise MalformedPayload("Candle payload is not an array")
    if not payload:
        return empty_candles()
    records: List[Dict[str, float]] = []
    for row in payload:
        if not isinstance(row, (list, tuple)) or len(row) != 6:
            raise MalformedPayload(f"Candle row must hold 6 fields, got {row!r}")
        values = [_wire_number(value) for value in row]
        records.append(
            {
                "ts": values[_WIRE_TIME],
                "o": values[_WIRE_OPEN],
                "h": values[_WIRE_HIGH],
                "l": values[_WIRE_LOW],
                "c": values[_WIRE_CLOSE],
                "v": values[_WIRE_VOLUME],
            }
        )
    frame = pd.DataFrame.from_records(records, columns=CANDLE_COLUMNS)
    frame["ts"] = frame["ts"].astype("int64")
    frame.sort_values("ts", inplace=True, kind="stable")
    frame.reset_index(drop=True, inplace=True)
    return frame


def _retry_after(response: httpx.Response) -> float | None:
    raw = response.headers.get("retry-after")
    if raw is None:
        return None
    try:
        return max(0.0, float(raw))
    except ValueError:
        return None


class CoinbaseDataProvider(MarketDataProvider):
    """Fetch candles and products from a Coinbase Exchange compatible API.

    Each request opens a short-lived :class:`httpx.AsyncClient`; tests inject
    an :class:`httpx.MockTransport` through ``transport``.
    """

    name = "coinbase"

    def __init__(
        self,
        base_url: str | None = None,
        *,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        limiter: TokenBucket | None = None,
        retry_policy: RetryPolicy | None = None,
        breaker: CircuitBreaker | None = None,
        sleep: Sleep | None = None,
    ) -> None:
        super().__init__(limiter=limiter, retry_policy=retry_policy, breaker=breaker, sleep=sleep)
        resolved = base_url or settings.market_data_base_url
        if not resolved:
            raise ValueError("base_url must be provided for CoinbaseDataProvider")
        self._base_url = resolved.rstrip("/")
        self._timeout = timeout or settings.market_data_timeout
        self._transport = transport

    async def _get_json(self, path: str, params: Mapping[str, str | int] | None = None) -> object:
        """Issue one GET request and classify the answer."""
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as http_client:
                response = await http_client.get(
                    f"{self._base_url}{path}",
                    params=dict(params or {}),
                    headers={"Accept": "application/json"},
                )
        except httpx.HTTPError as exc:
            raise DataSourceError(f"Failed to query market data endpoint: {exc}") from exc
        if response.status_code == 429:
            raise RateLimited(_retry_after(response))
        if not response.is_success:
            raise DataSourceError(
                f"Market data endpoint responded with {response.status_code}",
                upstream_status=response.status_code,
            )
        try:
            return response.json()
        except ValueError as exc:
            raise MalformedPayload(
                "Market data endpoint returned a non JSON body",
                upstream_status=response.status_code,
            ) from exc

    async def fetch_candles(
        self,
        symbol: str,
        granularity: int,
        *,
        limit: int,
        cancel_token: CancellationToken | None = None,
    ) -> pd.DataFrame:
        """Return up to ``limit`` candles of ``granularity`` seconds for ``symbol``."""
        product = normalize_symbol(symbol)
        params = {"granularity": granularity, "limit": limit}

        async def _request() -> pd.DataFrame:
            payload = await self._get_json(f"/products/{product}/candles", params)
            return parse_candle_payload(payload)

        return await self._call_with_backoff(
            _request, what=f"{product} candles", cancel_token=cancel_token
        )

    async def list_products(self) -> List[Dict[str, object]]:
        """Return the raw product listing."""

        async def _request() -> List[Dict[str, object]]:
            payload = await self._get_json("/products")
            if not isinstance(payload, list) or not all(isinstance(item, dict) for item in payload):
                raise MalformedPayload("Product payload is not an array of objects")
            return list(payload)

        return await self._call_with_backoff(_request, what="products")


__all__ = ["CoinbaseDataProvider", "parse_candle_payload"]
