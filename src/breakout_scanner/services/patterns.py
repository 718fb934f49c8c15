"""Geometric breakout pattern detectors.

Both detectors are deterministic heuristics with explicit thresholds working
on a trailing window of a candle frame (``ts, o, h, l, c, v`` columns sorted
by ascending timestamp). Each condition contributes a fixed number of points
to a 0-100 confidence and a pattern is only reported once the confidence
reaches :data:`MIN_REPORTED_CONFIDENCE`. Below that bar, or when the window is
too short, the detectors return ``None`` rather than a zero-confidence result.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import List, Literal, Optional

import numpy as np
import pandas as pd

from breakout_scanner.utils.timeframes import TimeframeLabel

PatternName = Literal["ascending_triangle", "cup_and_handle"]

PATTERN_NAMES: tuple[PatternName, ...] = ("ascending_triangle", "cup_and_handle")

MIN_REPORTED_CONFIDENCE = 90.0

TRIANGLE_WINDOW = 20
TRIANGLE_TOUCH_TOLERANCE = 0.005
TRIANGLE_MIN_TOUCHES = 3

CUP_WINDOW = 30
HANDLE_WINDOW = 5
HANDLE_MAX_RANGE_RATIO = 0.3


@dataclass(frozen=True)
class PatternResult:
    """Immutable detection outcome.

    Attributes
    ----------
    pattern:
        Pattern family identifier.
    confidence:
        Points accumulated by the detector, in ``[0, 100]``.
    details:
        Human readable summary of the measurements behind the detection.
    timeframe:
        Label of the candle granularity the window came from; ``None`` until
        the result is tagged by :class:`PatternsService`.
    """

    pattern: PatternName
    confidence: float
    details: str
    timeframe: Optional[TimeframeLabel] = None

    def with_timeframe(self, timeframe: TimeframeLabel) -> "PatternResult":
        """Return a copy tagged with ``timeframe``."""
        return replace(self, timeframe=timeframe)


def _non_decreasing(values: np.ndarray) -> bool:
    return bool(np.all(np.diff(values) >= 0))


def _non_increasing(values: np.ndarray) -> bool:
    return bool(np.all(np.diff(values) <= 0))


def detect_ascending_triangle(frame: pd.DataFrame) -> Optional[PatternResult]:
    """Detect a flat resistance tested repeatedly while lows keep rising.

    On the last 20 candles:

    * ``resistance`` is the highest high;
    * a touch is a high within 0.5 % of the resistance (40 points for 3+);
    * lows must be non-decreasing across every consecutive pair (40 points);
    * the last close must exceed the resistance (10 points).
    """
    if len(frame) < TRIANGLE_WINDOW:
        return None
    window = frame.tail(TRIANGLE_WINDOW)
    highs = window["h"].to_numpy(dtype=float)
    lows = window["l"].to_numpy(dtype=float)
    last_close = float(window["c"].iloc[-1])

    resistance = float(highs.max())
    tolerance = TRIANGLE_TOUCH_TOLERANCE * resistance
    touches = int(np.count_nonzero(np.abs(highs - resistance) <= tolerance))
    higher_lows = _non_decreasing(lows)
    breakout_confirmed = last_close > resistance

    confidence = 0.0
    if touches >= TRIANGLE_MIN_TOUCHES:
        confidence += 40
    if higher_lows:
        confidence += 40
    if breakout_confirmed:
        confidence += 10
    if confidence < MIN_REPORTED_CONFIDENCE:
        return None
    return PatternResult(
        pattern="ascending_triangle",
        confidence=confidence,
        details=(
            f"Resistance {resistance:.6g} touched {touches} times with rising lows; "
            f"close {last_close:.6g} broke above it"
        ),
    )


def detect_cup_and_handle(frame: pd.DataFrame) -> Optional[PatternResult]:
    """Detect a rounded bottom followed by a tight consolidation.

    On the last 30 candles split at ``n // 2``:

    * closes fall (non-increasing) through the first half and recover
      (non-decreasing) through the second half (50 points);
    * the last 5 candles span at most 30 % of the 30-candle close range
      (30 points);
    * the last close exceeds the open of the first handle candle (10 points).
    """
    if len(frame) < CUP_WINDOW:
        return None
    window = frame.tail(CUP_WINDOW)
    closes = window["c"].to_numpy(dtype=float)
    middle = len(closes) // 2
    u_shape = _non_increasing(closes[:middle]) and _non_decreasing(closes[middle:])

    price_range = float(closes.max() - closes.min())
    handle = window.tail(HANDLE_WINDOW)
    handle_range = float(handle["h"].max() - handle["l"].min())
    has_handle = handle_range <= HANDLE_MAX_RANGE_RATIO * price_range
    up_close = float(closes[-1]) > float(handle["o"].iloc[0])

    confidence = 0.0
    if u_shape:
        confidence += 50
    if has_handle:
        confidence += 30
    if up_close:
        confidence += 10
    if confidence < MIN_REPORTED_CONFIDENCE:
        return None
    return PatternResult(
        pattern="cup_and_handle",
        confidence=confidence,
        details=(
            f"U-shaped closes over {CUP_WINDOW} candles (range {price_range:.6g}) "
            f"with a {handle_range:.6g} handle and an up close"
        ),
    )


class PatternsService:
    """Run every detector on a candle frame."""

    def detect(
        self, frame: pd.DataFrame, timeframe: Optional[TimeframeLabel] = None
    ) -> List[PatternResult]:
        """Return the detected patterns, tagged with ``timeframe`` when given."""
        results: List[PatternResult] = []
        for detector in (detect_ascending_triangle, detect_cup_and_handle):
            result = detector(frame)
            if result is None:
                continue
            results.append(result.with_timeframe(timeframe) if timeframe else result)
        return results


__all__ = [
    "MIN_REPORTED_CONFIDENCE",
    "PATTERN_NAMES",
    "PatternName",
    "PatternResult",
    "PatternsService",
    "detect_ascending_triangle",
    "detect_cup_and_handle",
]
