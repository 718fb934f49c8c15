"""Timeframe registry used by the multi-timeframe analysis.

Only three granularities take part in a scan. They are ordered from the
fastest to the slowest interval so consumers iterating over
``SCAN_TIMEFRAMES`` see an intuitive progression.
"""

from __future__ import annotations

from typing import Dict, Literal, Tuple

from breakout_scanner.utils.errors import BadRequest

TimeframeLabel = Literal["1h", "6h", "1d"]

_TIMEFRAME_DEFINITIONS: Tuple[Tuple[TimeframeLabel, int], ...] = (
    ("1h", 3_600),
    ("6h", 21_600),
    ("1d", 86_400),
)

_TIMEFRAME_TO_SECONDS: Dict[str, int] = {alias: seconds for alias, seconds in _TIMEFRAME_DEFINITIONS}

SCAN_TIMEFRAMES: Tuple[TimeframeLabel, ...] = tuple(alias for alias, _ in _TIMEFRAME_DEFINITIONS)


def parse_timeframe(value: str) -> int:
    """Convert a timeframe label to its granularity in seconds."""
    cleaned = value.strip().lower()
    if not cleaned:
        raise BadRequest("Timeframe cannot be empty")
    try:
        return _TIMEFRAME_TO_SECONDS[cleaned]
    except KeyError as exc:
        raise BadRequest(f"Unsupported timeframe '{value}'") from exc


def timeframe_label(granularity: int) -> TimeframeLabel:
    """Return the label of a supported granularity expressed in seconds."""
    for alias, seconds in _TIMEFRAME_DEFINITIONS:
        if seconds == granularity:
            return alias
    raise BadRequest(f"Unsupported granularity '{granularity}'")


__all__ = [
    "SCAN_TIMEFRAMES",
    "TimeframeLabel",
    "parse_timeframe",
    "timeframe_label",
]
