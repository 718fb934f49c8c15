"""Unit tests for the indicator helpers used by the candle signal source."""

from __future__ import annotations

import numpy as np
import pytest

from breakout_scanner.services.indicators import (
    crossed_above,
    exponential_moving_average,
    macd,
    relative_strength_index,
)
from breakout_scanner.utils.errors import BadRequest


def test_ema_matches_pandas_span_convention(frame_factory) -> None:
    frame = frame_factory([1.0, 2.0, 3.0, 4.0])
    ema = exponential_moving_average(frame, 3)
    alpha = 2 / (3 + 1)
    expected = [1.0]
    for value in [2.0, 3.0, 4.0]:
        expected.append(alpha * value + (1 - alpha) * expected[-1])
    assert ema.tolist() == pytest.approx(expected)
    assert ema.name == "ema_3"


def test_ema_requires_enough_rows(frame_factory) -> None:
    with pytest.raises(BadRequest):
        exponential_moving_average(frame_factory([1.0, 2.0]), 5)


def test_rsi_saturates_for_pure_uptrend_and_is_neutral_when_flat(frame_factory) -> None:
    rising = relative_strength_index(frame_factory(np.arange(1.0, 31.0)))
    flat = relative_strength_index(frame_factory([10.0] * 30))
    assert rising.iloc[-1] == pytest.approx(100.0)
    assert flat.iloc[-1] == pytest.approx(50.0)


def test_rsi_stays_within_bounds(ohlcv_frame) -> None:
    rsi = relative_strength_index(ohlcv_frame)
    assert rsi.between(0, 100).all()


def test_macd_columns_and_validation(ohlcv_frame) -> None:
    result = macd(ohlcv_frame)
    assert list(result.columns) == ["macd", "macd_signal", "macd_hist"]
    assert np.allclose(result["macd_hist"], result["macd"] - result["macd_signal"])
    with pytest.raises(BadRequest):
        macd(ohlcv_frame, fast=26, slow=12)


def test_crossed_above_detects_recent_cross() -> None:
    import pandas as pd

    fast = pd.Series([1.0, 1.0, 1.0, 3.0, 3.0])
    slow = pd.Series([2.0, 2.0, 2.0, 2.0, 2.0])
    assert crossed_above(fast, slow, lookback=3)
    assert not crossed_above(fast, slow, lookback=1)
    assert not crossed_above(slow, fast, lookback=3)
