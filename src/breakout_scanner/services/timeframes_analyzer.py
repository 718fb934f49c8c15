"""Multi-timeframe pattern analysis for a single symbol."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Set

import pandas as pd
from loguru import logger

from breakout_scanner.config import settings
from breakout_scanner.services.data_providers.base import MarketDataProvider, empty_candles
from breakout_scanner.services.patterns import PatternResult, PatternsService
from breakout_scanner.utils.cancellation import CancellationToken
from breakout_scanner.utils.errors import DataSourceError
from breakout_scanner.utils.logging import set_request_metadata
from breakout_scanner.utils.timeframes import SCAN_TIMEFRAMES, TimeframeLabel, parse_timeframe


@dataclass(frozen=True)
class TimeframeWindow:
    """Span (epoch seconds) covered by the candles of one timeframe."""

    start: int = 0
    end: int = 0

    @classmethod
    def of(cls, frame: pd.DataFrame) -> "TimeframeWindow":
        """Return the ``(min ts, max ts)`` span, zeroed for an empty frame."""
        if frame.empty:
            return cls()
        timestamps = frame["ts"]
        return cls(start=int(timestamps.min()), end=int(timestamps.max()))


@dataclass
class MultiTimeframeResult:
    """Pattern results and windows for every analysed timeframe.

    ``frames`` keeps the fetched series so candle-derived signals can reuse
    them without another round trip; ``errors`` maps a timeframe to the
    failure message when its fetch degraded to an empty series.
    """

    symbol: str
    results: Dict[str, List[PatternResult]] = field(default_factory=dict)
    windows: Dict[str, TimeframeWindow] = field(default_factory=dict)
    frames: Dict[str, pd.DataFrame] = field(default_factory=dict, repr=False)
    errors: Dict[str, str] = field(default_factory=dict)

    @property
    def detected_patterns(self) -> Set[str]:
        """Names of the patterns found on at least one timeframe."""
        return {result.pattern for results in self.results.values() for result in results}


class MultiTimeframeAnalyzer:
    """Fetch each scan timeframe in turn and run the pattern detectors on it."""

    def __init__(
        self,
        provider: MarketDataProvider,
        patterns_service: Optional[PatternsService] = None,
        *,
        limit: Optional[int] = None,
        timeframes: Sequence[TimeframeLabel] = SCAN_TIMEFRAMES,
    ) -> None:
        self.provider = provider
        self.patterns_service = patterns_service or PatternsService()
        self.limit = limit or settings.candle_limit
        self.timeframes = tuple(timeframes)

    async def analyze(
        self, symbol: str, cancel_token: Optional[CancellationToken] = None
    ) -> MultiTimeframeResult:
        """Analyse ``symbol`` on every timeframe, sequentially.

        A :class:`DataSourceError` on one timeframe is logged and degrades that
        timeframe to an empty result list and a zeroed window; the remaining
        timeframes are still processed.
        """
        outcome = MultiTimeframeResult(symbol=symbol)
        for label in self.timeframes:
            if cancel_token is not None:
                cancel_token.raise_if_cancelled()
            set_request_metadata(symbol=symbol, timeframe=label)
            try:
                frame = await self.provider.fetch_candles(
                    symbol,
                    parse_timeframe(label),
                    limit=self.limit,
                    cancel_token=cancel_token,
                )
            except DataSourceError as exc:
                logger.bind(
                    symbol=symbol,
                    timeframe=label,
                    reason=exc.code,
                    upstream_status=exc.upstream_status,
                ).warning("timeframe.fetch_failed")
                frame = empty_candles()
                outcome.errors[label] = exc.message
            outcome.frames[label] = frame
            outcome.results[label] = self.patterns_service.detect(frame, label)
            outcome.windows[label] = TimeframeWindow.of(frame)
        return outcome


__all__ = ["MultiTimeframeAnalyzer", "MultiTimeframeResult", "TimeframeWindow"]
