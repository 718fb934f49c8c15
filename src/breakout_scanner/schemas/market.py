"""Pydantic models shared by the market data API endpoints."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import List

import pandas as pd
from pydantic import BaseModel, ConfigDict, Field, field_validator


class OhlcvRow(BaseModel):
    """Single OHLCV datapoint (timestamps in seconds)."""

    model_config = ConfigDict(extra="forbid")

    ts: int = Field(..., ge=0, description="Candle open timestamp expressed in seconds since epoch.")
    o: float = Field(..., description="Opening price for the candle.")
    h: float = Field(..., description="Highest traded price during the candle.")
    l: float = Field(..., description="Lowest traded price during the candle.")  # noqa: E741
    c: float = Field(..., description="Closing price for the candle.")
    v: float = Field(..., ge=0.0, description="Total traded volume over the candle period.")

    @classmethod
    def rows_from_frame(cls, frame: pd.DataFrame) -> List["OhlcvRow"]:
        """Convert a canonical candle frame into response rows."""
        return [
            cls(
                ts=int(row.ts),
                o=float(row.o),
                h=float(row.h),
                l=float(row.l),
                c=float(row.c),
                v=float(row.v),
            )
            for row in frame.itertuples(index=False)
        ]


class CandlesResponse(BaseModel):
    """Response body returned by the candles endpoint."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    symbol: str = Field(..., min_length=3, max_length=20, description="Product identifier (BASE-QUOTE).")
    timeframe: str = Field(..., min_length=2, max_length=3, description="Timeframe label (1h, 6h, 1d).")
    granularity: int = Field(..., gt=0, description="Candle duration in seconds.")
    source: str = Field(..., description="Identifier of the market data provider.")
    rows: List[OhlcvRow] = Field(..., description="Chronologically ordered candle records.")
    fetched_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Timestamp indicating when the snapshot was retrieved.",
    )

    @field_validator("symbol", mode="before")
    @classmethod
    def uppercase_symbol(cls, value: str) -> str:
        """Normalize symbols to uppercase."""
        return value.upper()


class ProductsResponse(BaseModel):
    """Tradable universe reported by the market data provider."""

    model_config = ConfigDict(extra="forbid")

    source: str = Field(..., description="Identifier of the market data provider.")
    symbols: List[str] = Field(..., description="Online USD products formatted as BASE-QUOTE.")
    count: int = Field(..., ge=0, description="Number of symbols in the universe.")


__all__ = ["CandlesResponse", "OhlcvRow", "ProductsResponse"]
