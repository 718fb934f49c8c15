"""Schemas modelling the multi-timeframe pattern analysis."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from breakout_scanner.services.timeframes_analyzer import MultiTimeframeResult


class PatternModel(BaseModel):
    """Detected pattern on one timeframe."""

    model_config = ConfigDict(extra="forbid", from_attributes=True)

    pattern: str = Field(..., description="Pattern identifier (ascending_triangle, cup_and_handle).")
    confidence: float = Field(..., ge=0.0, le=100.0, description="Detector confidence (0-100).")
    details: str = Field(..., description="Measurements behind the detection.")
    timeframe: Optional[str] = Field(None, description="Timeframe label the window came from.")


class TimeframeWindowModel(BaseModel):
    """Time span covered by the candles of one timeframe (``0, 0`` without data)."""

    model_config = ConfigDict(extra="forbid", from_attributes=True)

    start: int = Field(0, ge=0, description="Timestamp of the oldest candle in seconds.")
    end: int = Field(0, ge=0, description="Timestamp of the newest candle in seconds.")


class TimeframeAnalysisModel(BaseModel):
    """Patterns and window for a single timeframe."""

    model_config = ConfigDict(extra="forbid")

    timeframe: str = Field(..., description="Timeframe label (1h, 6h, 1d).")
    window: TimeframeWindowModel
    patterns: List[PatternModel] = Field(default_factory=list)
    candles: int = Field(0, ge=0, description="Number of candles analysed.")
    error: Optional[str] = Field(None, description="Fetch failure that emptied this timeframe.")


class PatternsResponse(BaseModel):
    """Response payload returned by the patterns route."""

    model_config = ConfigDict(extra="forbid")

    symbol: str = Field(..., min_length=3, max_length=20, description="Symbol analysed.")
    source: str = Field(..., description="Identifier of the market data provider.")
    timeframes: List[TimeframeAnalysisModel] = Field(
        ..., description="Per-timeframe results ordered from the fastest interval."
    )
    detected: List[str] = Field(
        default_factory=list, description="Pattern names found on at least one timeframe."
    )

    @classmethod
    def from_result(cls, result: MultiTimeframeResult, *, source: str) -> "PatternsResponse":
        """Build the response from an analyzer result."""
        timeframes = [
            TimeframeAnalysisModel(
                timeframe=label,
                window=TimeframeWindowModel.model_validate(result.windows[label]),
                patterns=[PatternModel.model_validate(item) for item in patterns],
                candles=len(result.frames.get(label, ())),
                error=result.errors.get(label),
            )
            for label, patterns in result.results.items()
        ]
        return cls(
            symbol=result.symbol,
            source=source,
            timeframes=timeframes,
            detected=sorted(result.detected_patterns),
        )


__all__ = [
    "PatternModel",
    "PatternsResponse",
    "TimeframeAnalysisModel",
    "TimeframeWindowModel",
]
