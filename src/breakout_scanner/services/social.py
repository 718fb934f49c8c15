"""Social sentiment feed behind a pluggable capability.

The scanner treats social data as an opaque numeric feed: a
:class:`SocialMetricsSource` returns :class:`SocialMetrics` for a symbol. The
default :class:`SimulatedSocialSource` generates seven days of mention counts
with a recency boost, which is enough to exercise the scoring and reasoning
paths until a real feed is wired in.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, List, Optional, Protocol, Sequence

import numpy as np

HISTORY_DAYS = 7
SECONDS_PER_DAY = 24 * 60 * 60


@dataclass(frozen=True)
class SentimentDay:
    """Mention counts for one day; ``timestamp`` is epoch seconds."""

    positive: int
    negative: int
    neutral: int
    total: int
    timestamp: float


@dataclass(frozen=True)
class SocialTrendPoint:
    date: str
    mentions: int
    sentiment: float


@dataclass(frozen=True)
class SocialMetrics:
    """Summary of the social activity around a symbol.

    ``weekly_trend`` runs from the oldest day to the most recent one.
    """

    mention_volume: int
    volume_change: float
    sentiment_score: float
    trending_score: float
    weekly_trend: List[SocialTrendPoint] = field(default_factory=list)


class SocialMetricsSource(Protocol):
    async def fetch(self, symbol: str) -> SocialMetrics: ...


def _day_sentiment(day: SentimentDay) -> float:
    if day.total <= 0:
        return 0.0
    return (day.positive - day.negative) / day.total


def summarize_social_history(days: Sequence[SentimentDay]) -> SocialMetrics:
    """Reduce daily counts (most recent first) to :class:`SocialMetrics`."""
    if not days:
        return SocialMetrics(mention_volume=0, volume_change=0.0, sentiment_score=0.0, trending_score=0.0)
    recent = days[0].total
    oldest = days[-1].total
    volume_change = (recent - oldest) / oldest * 100 if oldest > 0 else 0.0

    total_mentions = sum(day.total for day in days)
    weighted_sentiment = 0.0
    if total_mentions > 0:
        weighted_sentiment = sum(
            _day_sentiment(day) * (day.total / total_mentions) for day in days
        )

    trending = volume_change * 0.7 + weighted_sentiment * 50 + recent / 1000 * 30
    trending = min(100.0, max(0.0, trending))

    weekly_trend = [
        SocialTrendPoint(
            date=datetime.fromtimestamp(day.timestamp, tz=timezone.utc).date().isoformat(),
            mentions=day.total,
            sentiment=_day_sentiment(day),
        )
        for day in reversed(days)
    ]
    return SocialMetrics(
        mention_volume=recent,
        volume_change=volume_change,
        sentiment_score=weighted_sentiment,
        trending_score=trending,
        weekly_trend=weekly_trend,
    )


def social_breakout_score(social: SocialMetrics) -> float:
    """Blend social metrics into a 0-100 breakout contribution."""
    volume_score = min(100.0, max(0.0, social.volume_change)) * 0.4
    sentiment_score = (social.sentiment_score + 1) * 50 * 0.3
    trending_score = social.trending_score * 0.3
    return volume_score + sentiment_score + trending_score


class SimulatedSocialSource:
    """Generate plausible mention histories from a seeded generator."""

    def __init__(
        self,
        rng: Optional[np.random.Generator] = None,
        clock: Optional[Callable[[], float]] = None,
        *,
        seed: Optional[int] = None,
    ) -> None:
        self.rng = rng if rng is not None else np.random.default_rng(seed)
        self.clock = clock or time.time

    def generate_history(self) -> List[SentimentDay]:
        """Return seven days of counts, most recent day first."""
        now = self.clock()
        days: List[SentimentDay] = []
        for offset in range(HISTORY_DAYS):
            base_volume = float(self.rng.random()) * 1000 + 500
            multiplier = float(self.rng.random()) * 0.5 + 0.75
            recency_boost = (HISTORY_DAYS - offset) / HISTORY_DAYS
            total = int(base_volume * multiplier * (1 + recency_boost))
            positive = int(total * (0.3 + float(self.rng.random()) * 0.2))
            negative = int(total * (0.2 + float(self.rng.random()) * 0.15))
            days.append(
                SentimentDay(
                    positive=positive,
                    negative=negative,
                    neutral=total - positive - negative,
                    total=total,
                    timestamp=now - offset * SECONDS_PER_DAY,
                )
            )
        return days

    async def fetch(self, symbol: str) -> SocialMetrics:
        return summarize_social_history(self.generate_history())


__all__ = [
    "SentimentDay",
    "SimulatedSocialSource",
    "SocialMetrics",
    "SocialMetricsSource",
    "SocialTrendPoint",
    "social_breakout_score",
    "summarize_social_history",
]
