"""Schemas for breakout analyses and the scan lifecycle endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from breakout_scanner.services.data_providers.base import normalize_symbol
from breakout_scanner.services.scanner import ScanSnapshot


class _FromAttributes(BaseModel):
    model_config = ConfigDict(extra="forbid", from_attributes=True)


class VolumeModel(_FromAttributes):
    anomalies: bool
    trend: str = Field(..., description="increasing, neutral or decreasing.")
    whale_activity: bool
    score: float = Field(..., ge=0.0, le=100.0)


class MacdModel(_FromAttributes):
    histogram: float
    signal: float
    trend: str = Field(..., description="bullish, neutral or bearish.")


class MovingAveragesModel(_FromAttributes):
    ema20: float
    ema50: float
    ema200: float
    golden_cross: bool
    death_cross: bool


class IndicatorsModel(_FromAttributes):
    rsi: float = Field(..., ge=0.0, le=100.0)
    macd: MacdModel
    moving_averages: MovingAveragesModel


class MarketModel(_FromAttributes):
    sentiment: str
    volatility: str
    trend_strength: float = Field(..., ge=0.0, le=100.0)


class MomentumModel(_FromAttributes):
    hourly: float
    six_hour: float
    daily: float


class TargetsModel(_FromAttributes):
    conservative: float
    moderate: float
    aggressive: float


class BreakoutModel(_FromAttributes):
    probability: float
    timeframes: MomentumModel
    support: float
    resistance: float
    stop_loss: float
    targets: TargetsModel
    risk_reward_ratio: float


class SocialTrendPointModel(_FromAttributes):
    date: str
    mentions: int
    sentiment: float


class SocialModel(_FromAttributes):
    mention_volume: int
    volume_change: float
    sentiment_score: float = Field(..., ge=-1.0, le=1.0)
    trending_score: float = Field(..., ge=0.0, le=100.0)
    weekly_trend: List[SocialTrendPointModel] = Field(
        default_factory=list, description="Daily points ordered from the oldest day."
    )


class AnalysisModel(_FromAttributes):
    """Complete breakout assessment of one symbol."""

    symbol: str
    confidence: float = Field(..., description="Ranking score blending every signal.")
    patterns: Dict[str, bool] = Field(..., description="Pattern flags across timeframes.")
    volume: VolumeModel
    indicators: IndicatorsModel
    market: MarketModel
    breakout: BreakoutModel
    social: SocialModel
    reasoning: List[str] = Field(default_factory=list)


class ScanRequest(BaseModel):
    """Optional body of ``POST /api/v1/scan``."""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    symbols: Optional[List[str]] = Field(
        None,
        max_length=500,
        description="Symbols to scan; the exchange universe is used when omitted.",
    )
    top_n: Optional[int] = Field(None, ge=1, le=100, description="Number of candidates returned.")

    @field_validator("symbols")
    @classmethod
    def normalize_symbols(cls, value: Optional[List[str]]) -> Optional[List[str]]:
        """Normalise every symbol to ``BASE-QUOTE`` and drop duplicates."""
        if value is None:
            return None
        normalized: List[str] = []
        for symbol in value:
            if not symbol.strip():
                raise ValueError("symbols cannot contain empty values")
            candidate = normalize_symbol(symbol)
            if candidate not in normalized:
                normalized.append(candidate)
        return normalized


class ScanResponse(BaseModel):
    """Ranked candidates produced by a completed scan."""

    model_config = ConfigDict(extra="forbid")

    trace_id: Optional[str] = None
    count: int = Field(..., ge=0)
    results: List[AnalysisModel]


class ScanSnapshotResponse(BaseModel):
    """Current state of the scan service and the latest results."""

    model_config = ConfigDict(extra="forbid")

    state: str = Field(..., description="idle or scanning.")
    trace_id: Optional[str] = None
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    last_error: Optional[str] = None
    symbols: List[str] = Field(default_factory=list, description="Universe of the latest scan.")
    results: List[AnalysisModel] = Field(default_factory=list)

    @classmethod
    def from_snapshot(cls, snapshot: ScanSnapshot) -> "ScanSnapshotResponse":
        return cls(
            state=snapshot.state.value,
            trace_id=snapshot.trace_id,
            started_at=snapshot.started_at,
            finished_at=snapshot.finished_at,
            last_error=snapshot.last_error,
            symbols=list(snapshot.symbols),
            results=[AnalysisModel.model_validate(item) for item in snapshot.results],
        )


class CancelResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    cancelled: bool = Field(..., description="Whether a running scan received the request.")


__all__ = [
    "AnalysisModel",
    "CancelResponse",
    "ScanRequest",
    "ScanResponse",
    "ScanSnapshotResponse",
]
