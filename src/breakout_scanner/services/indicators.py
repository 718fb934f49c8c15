"""Technical indicator computations using pandas/numpy primitives.

The helpers work on the canonical candle frame (``c`` close column) and feed
the candle-derived signal source. Default parameters follow technical
analysis conventions.
"""

from __future__ import annotations

import numpy as np
import pandas as pd

from breakout_scanner.utils.errors import BadRequest

DEFAULT_RSI_WINDOW = 14
DEFAULT_MACD_FAST = 12
DEFAULT_MACD_SLOW = 26
DEFAULT_MACD_SIGNAL = 9


def _validate_window(window: int, *, name: str) -> int:
    """Ensure that the sliding window parameter is strictly positive."""
    if window <= 0:
        raise BadRequest(f"{name} window must be a positive integer")
    return window


def _validate_min_length(frame: pd.DataFrame, window: int) -> None:
    """Ensure the caller provides at least ``window`` rows of candle data."""
    if len(frame) < window:
        raise BadRequest("Not enough data points for indicator computation")


def exponential_moving_average(frame: pd.DataFrame, window: int) -> pd.Series:
    """Return the Exponential Moving Average of the closing price.

    ``alpha`` is derived from the window through :meth:`pandas.Series.ewm`
    with ``span=window``, the convention used by trading platforms.
    """
    window = _validate_window(window, name="EMA")
    _validate_min_length(frame, window)
    close_series = frame["c"].astype(float)
    return close_series.ewm(span=window, adjust=False).mean().rename(f"ema_{window}")


def relative_strength_index(frame: pd.DataFrame, window: int = DEFAULT_RSI_WINDOW) -> pd.Series:
    """Compute the Relative Strength Index using Wilder's smoothing method."""
    window = _validate_window(window, name="RSI")
    if window < 2:
        raise BadRequest("RSI window must be >= 2 to compute price deltas")
    _validate_min_length(frame, window)
    close_series = frame["c"].astype(float)
    delta = close_series.diff().to_numpy()
    gain = np.where(delta > 0, delta, 0.0).astype(float)
    loss = np.where(delta < 0, -delta, 0.0).astype(float)
    gain_series = pd.Series(gain, index=frame.index, dtype=float)
    loss_series = pd.Series(loss, index=frame.index, dtype=float)
    avg_gain = gain_series.ewm(alpha=1 / window, adjust=False).mean()
    avg_loss = loss_series.ewm(alpha=1 / window, adjust=False).mean()
    rs = avg_gain / avg_loss.replace({0.0: np.nan})
    rs = rs.replace([np.inf, -np.inf], np.nan)
    rsi = 100 - (100 / (1 + rs))
    # Without losses the ratio is undefined: a pure uptrend saturates at 100,
    # a flat series stays neutral.
    rsi = rsi.mask((avg_loss == 0) & (avg_gain > 0), 100.0)
    return rsi.fillna(50.0).rename(f"rsi_{window}")


def macd(
    frame: pd.DataFrame,
    fast: int = DEFAULT_MACD_FAST,
    slow: int = DEFAULT_MACD_SLOW,
    signal: int = DEFAULT_MACD_SIGNAL,
) -> pd.DataFrame:
    """Compute Moving Average Convergence Divergence (MACD).

    The result exposes ``macd`` (fast EMA minus slow EMA), ``macd_signal``
    (EMA of the MACD line) and ``macd_hist`` (their difference).
    """
    fast = _validate_window(fast, name="MACD fast")
    slow = _validate_window(slow, name="MACD slow")
    signal = _validate_window(signal, name="MACD signal")
    if slow <= fast:
        raise BadRequest("Slow period must be greater than fast period")
    macd_line = exponential_moving_average(frame, fast) - exponential_moving_average(frame, slow)
    signal_line = macd_line.ewm(span=signal, adjust=False).mean()
    hist = macd_line - signal_line
    return pd.DataFrame({"macd": macd_line, "macd_signal": signal_line, "macd_hist": hist})


def crossed_above(fast: pd.Series, slow: pd.Series, lookback: int) -> bool:
    """Return ``True`` when ``fast`` moved from <= ``slow`` to > ``slow`` recently."""
    above = (fast > slow).to_numpy()
    if len(above) < 2:
        return False
    recent = above[-(lookback + 1) :]
    return bool(recent[-1] and not recent.all())


__all__ = [
    "crossed_above",
    "exponential_moving_average",
    "macd",
    "relative_strength_index",
]
