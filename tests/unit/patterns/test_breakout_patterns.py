"""Unit tests for the ascending triangle and cup-and-handle detectors."""

from __future__ import annotations

import pandas as pd

from breakout_scanner.services.patterns import (
    PatternsService,
    detect_ascending_triangle,
    detect_cup_and_handle,
)


def _triangle_frame(frame_factory, *, touches: int = 3, last_close: float = 101.0) -> pd.DataFrame:
    highs = [95.0 + i * 0.1 for i in range(20)]
    for position in range(touches):
        highs[5 + position * 5] = 100.0
    lows = [80.0 + i * 0.5 for i in range(20)]
    closes = [(high + low) / 2 for high, low in zip(highs, lows)]
    # The breakout close exceeds the highest high of the window.
    closes[-1] = last_close
    return frame_factory(closes, highs=highs, lows=lows)


def _cup_frame(frame_factory, *, handle_open: float | None = None) -> pd.DataFrame:
    closes = [130.0 - 2 * i for i in range(15)]
    closes += [100.0 + 2 * i for i in range(10)]
    closes += [119.0, 119.5, 120.0, 120.0, 120.5]
    opens = [close - 0.2 for close in closes]
    if handle_open is not None:
        opens[25] = handle_open
    highs = [close + 0.5 for close in closes]
    lows = [close - 0.5 for close in closes]
    return frame_factory(closes, highs=highs, lows=lows, opens=opens)


def test_triangle_with_three_touches_rising_lows_and_breakout_scores_ninety(frame_factory) -> None:
    result = detect_ascending_triangle(_triangle_frame(frame_factory))
    assert result is not None
    assert result.pattern == "ascending_triangle"
    assert result.confidence == 90
    assert "3 times" in result.details


def test_triangle_with_two_touches_is_not_reported(frame_factory) -> None:
    assert detect_ascending_triangle(_triangle_frame(frame_factory, touches=2)) is None


def test_triangle_without_breakout_is_not_reported(frame_factory) -> None:
    assert detect_ascending_triangle(_triangle_frame(frame_factory, last_close=99.0)) is None


def test_triangle_rejects_falling_low(frame_factory) -> None:
    frame = _triangle_frame(frame_factory)
    frame.loc[10, "l"] = 70.0
    assert detect_ascending_triangle(frame) is None


def test_triangle_needs_twenty_candles(frame_factory) -> None:
    frame = _triangle_frame(frame_factory).tail(19).reset_index(drop=True)
    assert detect_ascending_triangle(frame) is None


def test_triangle_uses_trailing_window(frame_factory) -> None:
    frame = _triangle_frame(frame_factory)
    prefix = frame_factory([500.0] * 10, start=1_600_000_000)
    combined = pd.concat([prefix, frame], ignore_index=True)
    result = detect_ascending_triangle(combined)
    assert result is not None
    assert result.confidence == 90


def test_cup_and_handle_scores_ninety(frame_factory) -> None:
    result = detect_cup_and_handle(_cup_frame(frame_factory))
    assert result is not None
    assert result.pattern == "cup_and_handle"
    assert result.confidence == 90


def test_cup_without_up_close_is_not_reported(frame_factory) -> None:
    assert detect_cup_and_handle(_cup_frame(frame_factory, handle_open=125.0)) is None


def test_cup_with_wide_handle_is_not_reported(frame_factory) -> None:
    frame = _cup_frame(frame_factory)
    frame.loc[27, "h"] = 140.0
    assert detect_cup_and_handle(frame) is None


def test_cup_needs_thirty_candles(frame_factory) -> None:
    frame = _cup_frame(frame_factory).tail(29).reset_index(drop=True)
    assert detect_cup_and_handle(frame) is None


def test_detectors_ignore_empty_series(frame_factory) -> None:
    empty = frame_factory([])
    assert detect_ascending_triangle(empty) is None
    assert detect_cup_and_handle(empty) is None


def test_patterns_service_tags_results_with_timeframe(frame_factory) -> None:
    service = PatternsService()
    results = service.detect(_triangle_frame(frame_factory), "6h")
    assert [(item.pattern, item.timeframe) for item in results] == [("ascending_triangle", "6h")]
    untagged = service.detect(_cup_frame(frame_factory))
    assert [(item.pattern, item.timeframe) for item in untagged] == [("cup_and_handle", None)]
