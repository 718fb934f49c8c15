"""Rank breakout candidates across a symbol universe."""

from __future__ import annotations

from typing import Iterable, List, Optional

from loguru import logger

from breakout_scanner.config import settings
from breakout_scanner.services.aggregator import DetailedPatternAnalysis, SignalAggregator
from breakout_scanner.services.metrics import metrics
from breakout_scanner.services.timeframes_analyzer import MultiTimeframeAnalyzer
from breakout_scanner.utils.cancellation import CancellationToken
from breakout_scanner.utils.errors import DataSourceError
from breakout_scanner.utils.logging import set_request_metadata


class BreakoutRanker:
    """Score every symbol sequentially and keep the most confident ones.

    When an ``analyzer`` is configured each symbol first goes through the
    multi-timeframe pattern analysis, whose result feeds the aggregator.
    """

    def __init__(
        self,
        aggregator: SignalAggregator,
        analyzer: Optional[MultiTimeframeAnalyzer] = None,
        *,
        top_n: Optional[int] = None,
    ) -> None:
        self.aggregator = aggregator
        self.analyzer = analyzer
        self.top_n = top_n if top_n is not None else settings.top_n

    async def analyze_symbol(
        self, symbol: str, cancel_token: Optional[CancellationToken] = None
    ) -> DetailedPatternAnalysis:
        timeframes = None
        if self.analyzer is not None:
            timeframes = await self.analyzer.analyze(symbol, cancel_token)
        return await self.aggregator.aggregate(symbol, timeframes)

    async def rank(
        self,
        symbols: Iterable[str],
        cancel_token: Optional[CancellationToken] = None,
        *,
        top_n: Optional[int] = None,
    ) -> List[DetailedPatternAnalysis]:
        """Return at most ``top_n`` analyses sorted by descending confidence.

        The sort is stable, so symbols with equal confidence keep their input
        order. A symbol failing with :class:`DataSourceError` is skipped.
        """
        analyses: List[DetailedPatternAnalysis] = []
        for symbol in symbols:
            if cancel_token is not None:
                cancel_token.raise_if_cancelled()
            set_request_metadata(symbol=symbol)
            try:
                analysis = await self.analyze_symbol(symbol, cancel_token)
            except DataSourceError as exc:
                logger.bind(symbol=symbol, reason=exc.code).warning("symbol.skipped")
                metrics.record_symbol("failed")
                continue
            metrics.record_symbol("analyzed")
            analyses.append(analysis)
        analyses.sort(key=lambda item: item.confidence, reverse=True)
        limit = top_n if top_n is not None else self.top_n
        return analyses[:limit]


__all__ = ["BreakoutRanker"]
