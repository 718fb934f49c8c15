"""Auxiliary market signals feeding the breakout score.

The aggregator never produces volume, indicator, market or price-level
values itself: it asks a :class:`SignalSource`. Two strategies ship with the
package:

* :class:`SimulatedSignalSource` draws every value from a seeded
  :class:`numpy.random.Generator` using the same distributions as the demo
  dashboard the scanner grew out of. A fixed seed makes scans reproducible.
* :class:`CandleSignalSource` computes the same structures from the daily
  candle series fetched during the multi-timeframe analysis.

Momentum multipliers (how the base breakout probability is scaled per
timeframe) stay random in both strategies, bounded by
:data:`MOMENTUM_BOUNDS`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Literal, Optional, Protocol, Tuple

import numpy as np
import pandas as pd

from breakout_scanner.services.indicators import (
    crossed_above,
    exponential_moving_average,
    macd,
    relative_strength_index,
)

Trend = Literal["increasing", "neutral", "decreasing"]
Direction = Literal["bullish", "neutral", "bearish"]
Volatility = Literal["high", "medium", "low"]
MomentumKey = Literal["hourly", "six_hour", "daily"]

MOMENTUM_BOUNDS: Dict[str, Tuple[float, float]] = {
    "daily": (0.8, 1.2),
    "six_hour": (0.7, 1.1),
    "hourly": (0.6, 1.0),
}


@dataclass(frozen=True)
class VolumeAnalysis:
    anomalies: bool
    trend: Trend
    whale_activity: bool
    score: float


@dataclass(frozen=True)
class MacdState:
    histogram: float
    signal: float
    trend: Direction


@dataclass(frozen=True)
class MovingAverages:
    ema20: float
    ema50: float
    ema200: float
    golden_cross: bool
    death_cross: bool


@dataclass(frozen=True)
class TechnicalIndicators:
    rsi: float
    macd: MacdState
    moving_averages: MovingAverages


@dataclass(frozen=True)
class MarketConditions:
    sentiment: Direction
    volatility: Volatility
    trend_strength: float


@dataclass(frozen=True)
class PriceTargets:
    conservative: float
    moderate: float
    aggressive: float


@dataclass(frozen=True)
class PriceLevels:
    """Support, resistance, stop loss and targets for a breakout trade."""

    support: float
    resistance: float
    stop_loss: float
    targets: PriceTargets
    risk_reward_ratio: float


def macd_trend_from_rsi(rsi: float) -> Direction:
    """Classify momentum from the oscillator: oversold reads bullish."""
    if rsi < 40:
        return "bullish"
    if rsi > 60:
        return "bearish"
    return "neutral"


class SignalSource(Protocol):
    """Strategy producing the auxiliary signals of one symbol.

    ``candles`` is the daily series fetched for the symbol, or ``None`` when
    no multi-timeframe analysis ran.
    """

    def volume(self, symbol: str, candles: Optional[pd.DataFrame]) -> VolumeAnalysis: ...

    def indicators(self, symbol: str, candles: Optional[pd.DataFrame]) -> TechnicalIndicators: ...

    def market(self, symbol: str, candles: Optional[pd.DataFrame]) -> MarketConditions: ...

    def price_levels(self, symbol: str, candles: Optional[pd.DataFrame]) -> PriceLevels: ...

    def momentum_multiplier(self, key: MomentumKey) -> float: ...


def _bounded_multiplier(rng: np.random.Generator, key: MomentumKey) -> float:
    low, high = MOMENTUM_BOUNDS[key]
    return low + float(rng.random()) * (high - low)


class SimulatedSignalSource:
    """Random signals drawn from the dashboard distributions."""

    def __init__(self, rng: Optional[np.random.Generator] = None, *, seed: Optional[int] = None) -> None:
        self.rng = rng if rng is not None else np.random.default_rng(seed)

    def _uniform(self, low: float, width: float) -> float:
        return low + float(self.rng.random()) * width

    def _three_way(self, first: str, second: str, third: str) -> str:
        # Two successive draws: p(first)=0.4, p(second)=0.6*0.7, p(third)=0.6*0.3.
        if self.rng.random() > 0.6:
            return first
        if self.rng.random() > 0.3:
            return second
        return third

    def volume(self, symbol: str, candles: Optional[pd.DataFrame]) -> VolumeAnalysis:
        return VolumeAnalysis(
            anomalies=bool(self.rng.random() > 0.7),
            trend=self._three_way("increasing", "neutral", "decreasing"),  # type: ignore[arg-type]
            whale_activity=bool(self.rng.random() > 0.8),
            score=self._uniform(0.0, 100.0),
        )

    def indicators(self, symbol: str, candles: Optional[pd.DataFrame]) -> TechnicalIndicators:
        rsi = self._uniform(30.0, 40.0)
        return TechnicalIndicators(
            rsi=rsi,
            macd=MacdState(
                histogram=self._uniform(-1.0, 2.0),
                signal=self._uniform(-1.0, 2.0),
                trend=macd_trend_from_rsi(rsi),
            ),
            moving_averages=MovingAverages(
                ema20=self._uniform(100.0, 20.0),
                ema50=self._uniform(90.0, 30.0),
                ema200=self._uniform(80.0, 40.0),
                golden_cross=bool(self.rng.random() > 0.7),
                death_cross=bool(self.rng.random() > 0.9),
            ),
        )

    def market(self, symbol: str, candles: Optional[pd.DataFrame]) -> MarketConditions:
        return MarketConditions(
            sentiment=self._three_way("bullish", "neutral", "bearish"),  # type: ignore[arg-type]
            volatility=self._three_way("high", "medium", "low"),  # type: ignore[arg-type]
            trend_strength=self._uniform(0.0, 100.0),
        )

    def price_levels(self, symbol: str, candles: Optional[pd.DataFrame]) -> PriceLevels:
        # Values are expressed against a normalised baseline of 100.
        return PriceLevels(
            support=self._uniform(90.0, 20.0),
            resistance=self._uniform(110.0, 20.0),
            stop_loss=self._uniform(85.0, 10.0),
            targets=PriceTargets(
                conservative=self._uniform(115.0, 10.0),
                moderate=self._uniform(130.0, 20.0),
                aggressive=self._uniform(150.0, 50.0),
            ),
            risk_reward_ratio=self._uniform(2.0, 3.0),
        )

    def momentum_multiplier(self, key: MomentumKey) -> float:
        return _bounded_multiplier(self.rng, key)


# Candle-derived thresholds.
VOLUME_BASELINE = 20
VOLUME_ANOMALY_RATIO = 2.0
WHALE_RATIO = 3.0
CROSS_LOOKBACK = 5
MIN_INDICATOR_CANDLES = 35
LEVEL_LOOKBACK = 20
STOP_LOSS_BUFFER = 0.97


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


class CandleSignalSource:
    """Signals computed from the daily candle series.

    Every method falls back to a neutral, zero-score reading when the series is
    missing or too short, so a symbol without data sinks to the bottom of the
    ranking instead of failing the scan.
    """

    def __init__(self, rng: Optional[np.random.Generator] = None, *, seed: Optional[int] = None) -> None:
        self.rng = rng if rng is not None else np.random.default_rng(seed)

    def volume(self, symbol: str, candles: Optional[pd.DataFrame]) -> VolumeAnalysis:
        if candles is None or len(candles) <= VOLUME_BASELINE:
            return VolumeAnalysis(anomalies=False, trend="neutral", whale_activity=False, score=0.0)
        volumes = candles["v"].astype(float).to_numpy()
        baseline = float(volumes[-(VOLUME_BASELINE + 1) : -1].mean())
        last = float(volumes[-1])
        ratio = last / baseline if baseline > 0 else 1.0
        recent = float(volumes[-5:].mean())
        earlier = float(volumes[-(VOLUME_BASELINE + 1) : -5].mean())
        trend: Trend = "neutral"
        if earlier > 0 and recent > earlier * 1.1:
            trend = "increasing"
        elif earlier > 0 and recent < earlier * 0.9:
            trend = "decreasing"
        return VolumeAnalysis(
            anomalies=ratio >= VOLUME_ANOMALY_RATIO,
            trend=trend,
            whale_activity=ratio >= WHALE_RATIO,
            score=_clamp(ratio * 50.0, 0.0, 100.0),
        )

    def indicators(self, symbol: str, candles: Optional[pd.DataFrame]) -> TechnicalIndicators:
        if candles is None or len(candles) < MIN_INDICATOR_CANDLES:
            last_close = float(candles["c"].iloc[-1]) if candles is not None and len(candles) else 0.0
            return TechnicalIndicators(
                rsi=50.0,
                macd=MacdState(histogram=0.0, signal=0.0, trend="neutral"),
                moving_averages=MovingAverages(
                    ema20=last_close,
                    ema50=last_close,
                    ema200=last_close,
                    golden_cross=False,
                    death_cross=False,
                ),
            )
        rsi = float(relative_strength_index(candles).iloc[-1])
        macd_frame = macd(candles)
        ema20 = exponential_moving_average(candles, 20)
        ema50 = exponential_moving_average(candles, 50) if len(candles) >= 50 else ema20
        ema200 = exponential_moving_average(candles, 200) if len(candles) >= 200 else ema50
        crosses_available = len(candles) >= 200
        return TechnicalIndicators(
            rsi=rsi,
            macd=MacdState(
                histogram=float(macd_frame["macd_hist"].iloc[-1]),
                signal=float(macd_frame["macd_signal"].iloc[-1]),
                trend=macd_trend_from_rsi(rsi),
            ),
            moving_averages=MovingAverages(
                ema20=float(ema20.iloc[-1]),
                ema50=float(ema50.iloc[-1]),
                ema200=float(ema200.iloc[-1]),
                golden_cross=crosses_available and crossed_above(ema50, ema200, CROSS_LOOKBACK),
                death_cross=crosses_available and crossed_above(ema200, ema50, CROSS_LOOKBACK),
            ),
        )

    def market(self, symbol: str, candles: Optional[pd.DataFrame]) -> MarketConditions:
        if candles is None or len(candles) <= VOLUME_BASELINE:
            return MarketConditions(sentiment="neutral", volatility="low", trend_strength=0.0)
        returns = candles["c"].astype(float).pct_change().dropna().tail(VOLUME_BASELINE)
        deviation = float(returns.std())
        volatility: Volatility = "low"
        if deviation > 0.05:
            volatility = "high"
        elif deviation > 0.02:
            volatility = "medium"
        ema20 = exponential_moving_average(candles, 20).to_numpy()
        reference = float(ema20[-10])
        slope_pct = (float(ema20[-1]) - reference) / reference * 100 if reference else 0.0
        sentiment: Direction = "neutral"
        if slope_pct > 1.0:
            sentiment = "bullish"
        elif slope_pct < -1.0:
            sentiment = "bearish"
        return MarketConditions(
            sentiment=sentiment,
            volatility=volatility,
            trend_strength=_clamp(abs(slope_pct) * 10.0, 0.0, 100.0),
        )

    def price_levels(self, symbol: str, candles: Optional[pd.DataFrame]) -> PriceLevels:
        if candles is None or len(candles) < LEVEL_LOOKBACK:
            return PriceLevels(
                support=0.0,
                resistance=0.0,
                stop_loss=0.0,
                targets=PriceTargets(conservative=0.0, moderate=0.0, aggressive=0.0),
                risk_reward_ratio=0.0,
            )
        window = candles.tail(LEVEL_LOOKBACK)
        support = float(window["l"].min())
        resistance = float(window["h"].max())
        close = float(window["c"].iloc[-1])
        height = resistance - support
        stop_loss = support * STOP_LOSS_BUFFER
        targets = PriceTargets(
            conservative=resistance + 0.5 * height,
            moderate=resistance + height,
            aggressive=resistance + 2.0 * height,
        )
        risk = close - stop_loss
        reward = targets.moderate - close
        return PriceLevels(
            support=support,
            resistance=resistance,
            stop_loss=stop_loss,
            targets=targets,
            risk_reward_ratio=reward / risk if risk > 0 else 0.0,
        )

    def momentum_multiplier(self, key: MomentumKey) -> float:
        return _bounded_multiplier(self.rng, key)


__all__ = [
    "CandleSignalSource",
    "MOMENTUM_BOUNDS",
    "MacdState",
    "MarketConditions",
    "MomentumKey",
    "MovingAverages",
    "PriceLevels",
    "PriceTargets",
    "SignalSource",
    "SimulatedSignalSource",
    "TechnicalIndicators",
    "VolumeAnalysis",
    "macd_trend_from_rsi",
]
