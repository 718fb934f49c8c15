"""Blend pattern, technical, market and social signals into one assessment."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from breakout_scanner.services.patterns import PATTERN_NAMES
from breakout_scanner.services.signals import (
    MarketConditions,
    PriceTargets,
    SignalSource,
    SimulatedSignalSource,
    TechnicalIndicators,
    VolumeAnalysis,
)
from breakout_scanner.services.social import (
    SimulatedSocialSource,
    SocialMetrics,
    SocialMetricsSource,
    social_breakout_score,
)
from breakout_scanner.services.timeframes_analyzer import MultiTimeframeResult

SIGNAL_TIMEFRAME = "1d"


@dataclass(frozen=True)
class MomentumByTimeframe:
    hourly: float
    six_hour: float
    daily: float


@dataclass(frozen=True)
class BreakoutAnalysis:
    """Breakout probability with the price plan attached to it."""

    probability: float
    timeframes: MomentumByTimeframe
    support: float
    resistance: float
    stop_loss: float
    targets: PriceTargets
    risk_reward_ratio: float


@dataclass
class DetailedPatternAnalysis:
    """Complete per-symbol assessment produced once per scan."""

    symbol: str
    confidence: float
    patterns: Dict[str, bool]
    volume: VolumeAnalysis
    indicators: TechnicalIndicators
    market: MarketConditions
    breakout: BreakoutAnalysis
    social: SocialMetrics
    reasoning: List[str] = field(default_factory=list)
    timeframes: Optional[MultiTimeframeResult] = field(default=None, repr=False)


def breakout_probability(
    volume: VolumeAnalysis,
    indicators: TechnicalIndicators,
    market: MarketConditions,
    social_score: float,
) -> float:
    """Return the base breakout probability before momentum scaling."""
    return (
        volume.score * 0.3
        + (20 if indicators.rsi < 40 else 0)
        + (15 if indicators.macd.trend == "bullish" else 0)
        + (15 if indicators.moving_averages.golden_cross else 0)
        + market.trend_strength * 0.2
        + social_score * 0.2
    )


def overall_confidence(
    volume: VolumeAnalysis,
    indicators: TechnicalIndicators,
    market: MarketConditions,
    probability: float,
    social_score: float,
) -> float:
    """Return the ranking confidence of a symbol."""
    return (
        volume.score * 0.25
        + (15 if indicators.rsi < 40 else 0)
        + (15 if indicators.macd.trend == "bullish" else 0)
        + (15 if indicators.moving_averages.golden_cross else 0)
        + market.trend_strength * 0.15
        + probability * 0.15
        + social_score * 0.15
    )


def generate_reasoning(
    volume: VolumeAnalysis,
    indicators: TechnicalIndicators,
    market: MarketConditions,
    breakout: BreakoutAnalysis,
    social: SocialMetrics,
) -> List[str]:
    """Return the triggered explanations, always in the same order."""
    reasons: List[str] = []
    if volume.anomalies:
        reasons.append(
            "Significant volume anomalies detected indicating potential institutional interest"
        )
    if volume.whale_activity:
        reasons.append("Whale wallet accumulation observed in recent periods")
    if indicators.rsi < 40:
        reasons.append("RSI indicating oversold conditions with potential for reversal")
    if indicators.macd.trend == "bullish":
        reasons.append("MACD showing bullish momentum with positive histogram expansion")
    if indicators.moving_averages.golden_cross:
        reasons.append("Recent golden cross formation on moving averages")
    if market.sentiment == "bullish" and market.trend_strength > 70:
        reasons.append("Strong bullish market sentiment with robust trend strength")
    if breakout.risk_reward_ratio > 3:
        reasons.append("Favorable risk-reward ratio at current levels")
    if social.volume_change > 50:
        reasons.append(
            f"Social mention volume up {social.volume_change:.1f}% over the past week"
        )
    if social.sentiment_score > 0.3:
        reasons.append("Highly positive social sentiment with strong community engagement")
    if social.trending_score > 70:
        reasons.append("Significant social media momentum building")
    return reasons


class SignalAggregator:
    """Produce a :class:`DetailedPatternAnalysis` for one symbol."""

    def __init__(
        self,
        signal_source: Optional[SignalSource] = None,
        social_source: Optional[SocialMetricsSource] = None,
    ) -> None:
        self.signal_source = signal_source or SimulatedSignalSource()
        self.social_source = social_source or SimulatedSocialSource()

    async def aggregate(
        self, symbol: str, timeframes: Optional[MultiTimeframeResult] = None
    ) -> DetailedPatternAnalysis:
        """Score ``symbol``.

        Pattern flags come from ``timeframes`` when it is supplied; its daily
        series also feeds the candle-derived signals. Without it every flag is
        false and the signal source receives no candles.
        """
        candles = None
        if timeframes is not None:
            candles = timeframes.frames.get(SIGNAL_TIMEFRAME)
        source = self.signal_source
        volume = source.volume(symbol, candles)
        indicators = source.indicators(symbol, candles)
        market = source.market(symbol, candles)

        social = await self.social_source.fetch(symbol)
        social_score = social_breakout_score(social)

        probability = breakout_probability(volume, indicators, market, social_score)
        momentum = MomentumByTimeframe(
            daily=probability * source.momentum_multiplier("daily"),
            six_hour=probability * source.momentum_multiplier("six_hour"),
            hourly=probability * source.momentum_multiplier("hourly"),
        )
        levels = source.price_levels(symbol, candles)
        breakout = BreakoutAnalysis(
            probability=probability,
            timeframes=momentum,
            support=levels.support,
            resistance=levels.resistance,
            stop_loss=levels.stop_loss,
            targets=levels.targets,
            risk_reward_ratio=levels.risk_reward_ratio,
        )

        detected = timeframes.detected_patterns if timeframes is not None else set()
        return DetailedPatternAnalysis(
            symbol=symbol,
            confidence=overall_confidence(volume, indicators, market, probability, social_score),
            patterns={name: name in detected for name in PATTERN_NAMES},
            volume=volume,
            indicators=indicators,
            market=market,
            breakout=breakout,
            social=social,
            reasoning=generate_reasoning(volume, indicators, market, breakout, social),
            timeframes=timeframes,
        )


__all__ = [
    "BreakoutAnalysis",
    "DetailedPatternAnalysis",
    "MomentumByTimeframe",
    "SignalAggregator",
    "breakout_probability",
    "generate_reasoning",
    "overall_confidence",
]
