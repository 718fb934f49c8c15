"""Routes exposing market data endpoints."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated, cast

from fastapi import APIRouter, Depends, Query, Request

from breakout_scanner.routes.auth import require_token
from breakout_scanner.schemas.market import CandlesResponse, OhlcvRow, ProductsResponse
from breakout_scanner.services.data_providers.base import MarketDataProvider, normalize_symbol
from breakout_scanner.services.universe import fetch_trading_pairs
from breakout_scanner.utils.logging import set_request_metadata
from breakout_scanner.utils.timeframes import parse_timeframe

router = APIRouter(
    prefix="/api/v1/market",
    tags=["market"],
    dependencies=[Depends(require_token)],
)


def get_provider(request: Request) -> MarketDataProvider:
    """Access the shared market data provider from app state."""
    return cast(MarketDataProvider, request.app.state.provider)


@router.get(
    "/products",
    response_model=ProductsResponse,
    summary="List the tradable universe",
    description="Return the online USD products reported by the market data provider.",
)
async def list_products(
    provider: Annotated[MarketDataProvider, Depends(get_provider)],
) -> ProductsResponse:
    """Return the filtered product universe."""
    symbols = await fetch_trading_pairs(provider)
    return ProductsResponse(source=provider.name, symbols=symbols, count=len(symbols))


@router.get(
    "/candles",
    response_model=CandlesResponse,
    summary="Retrieve normalized candles",
    description="Return candles for one symbol and timeframe sorted by ascending timestamp.",
    response_description="Normalized OHLCV series.",
)
async def get_candles(
    provider: Annotated[MarketDataProvider, Depends(get_provider)],
    symbol: str = Query(..., min_length=3, max_length=20),
    timeframe: str = Query("1d", min_length=2, max_length=3),
    limit: int = Query(300, ge=1, le=300),
) -> CandlesResponse:
    """Return normalized candles for ``symbol`` at ``timeframe``."""
    granularity = parse_timeframe(timeframe)
    normalized_symbol = normalize_symbol(symbol)
    set_request_metadata(symbol=normalized_symbol, timeframe=timeframe)
    frame = await provider.fetch_candles(normalized_symbol, granularity, limit=limit)
    return CandlesResponse(
        symbol=normalized_symbol,
        timeframe=timeframe.strip().lower(),
        granularity=granularity,
        source=provider.name,
        rows=OhlcvRow.rows_from_frame(frame),
        fetched_at=datetime.now(timezone.utc),
    )


__all__ = ["router", "get_provider"]
