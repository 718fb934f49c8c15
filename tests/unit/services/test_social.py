"""Unit tests for the social metrics summary and score."""

from __future__ import annotations

import pytest

from breakout_scanner.services.social import (
    SentimentDay,
    SimulatedSocialSource,
    SocialMetrics,
    social_breakout_score,
    summarize_social_history,
)

DAY = 86_400


def _day(total: int, positive: int, negative: int, offset: int) -> SentimentDay:
    return SentimentDay(
        positive=positive,
        negative=negative,
        neutral=total - positive - negative,
        total=total,
        timestamp=1_700_000_000 - offset * DAY,
    )


def test_summary_uses_most_recent_day_first() -> None:
    days = [_day(2000, 1000, 200, 0)] + [_day(1000, 400, 300, offset) for offset in range(1, 7)]
    metrics = summarize_social_history(days)

    assert metrics.mention_volume == 2000
    assert metrics.volume_change == pytest.approx(100.0)
    # Weighted mean of per-day (positive - negative) / total.
    expected_sentiment = (0.4 * 2000 + 0.1 * 6000) / 8000
    assert metrics.sentiment_score == pytest.approx(expected_sentiment)
    assert metrics.trending_score == 100.0
    assert len(metrics.weekly_trend) == 7
    assert metrics.weekly_trend[0].mentions == 1000
    assert metrics.weekly_trend[-1].mentions == 2000
    assert metrics.weekly_trend[-1].sentiment == pytest.approx(0.4)
    assert metrics.weekly_trend[0].date < metrics.weekly_trend[-1].date


def test_trending_score_is_clamped_at_zero() -> None:
    days = [_day(100, 10, 80, 0)] + [_day(1000, 300, 300, offset) for offset in range(1, 7)]
    assert summarize_social_history(days).trending_score == 0.0


def test_social_breakout_score_formula() -> None:
    metrics = SocialMetrics(
        mention_volume=1200,
        volume_change=150.0,
        sentiment_score=0.2,
        trending_score=60.0,
    )
    # 0.4 * clamp(150) + 0.3 * (1.2 * 50) + 0.3 * 60
    assert social_breakout_score(metrics) == pytest.approx(40.0 + 18.0 + 18.0)


def test_negative_volume_change_contributes_nothing() -> None:
    metrics = SocialMetrics(mention_volume=10, volume_change=-40.0, sentiment_score=-1.0, trending_score=0.0)
    assert social_breakout_score(metrics) == 0.0


@pytest.mark.anyio
async def test_simulated_source_is_reproducible_with_a_seed() -> None:
    first = await SimulatedSocialSource(seed=3, clock=lambda: 1_700_000_000.0).fetch("BTC-USD")
    second = await SimulatedSocialSource(seed=3, clock=lambda: 1_700_000_000.0).fetch("BTC-USD")
    assert first == second


def test_simulated_history_follows_the_dashboard_generator() -> None:
    source = SimulatedSocialSource(seed=11, clock=lambda: 1_700_000_000.0)
    days = source.generate_history()
    assert len(days) == 7
    assert [day.timestamp for day in days] == [1_700_000_000.0 - offset * DAY for offset in range(7)]
    for offset, day in enumerate(days):
        boost = 1 + (7 - offset) / 7
        assert 500 * 0.75 * boost - 1 <= day.total <= 1500 * 1.25 * boost
        assert day.positive + day.negative + day.neutral == day.total
        assert 0.3 * day.total - 1 <= day.positive <= 0.5 * day.total
        assert 0.2 * day.total - 1 <= day.negative <= 0.35 * day.total
    summary = summarize_social_history(days)
    assert -1.0 <= summary.sentiment_score <= 1.0
    assert 0.0 <= summary.trending_score <= 100.0
