"""Single-flight scan orchestration.

Only one scan runs at a time. The guard is a synchronous check-and-set on the
event loop, so no lock is needed: :meth:`ScanService.start` either moves the
service from ``IDLE`` to ``SCANNING`` or raises :class:`ScanInProgress`.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional, Sequence

import numpy as np
from loguru import logger

from breakout_scanner.config import Settings, get_settings, settings
from breakout_scanner.services.aggregator import DetailedPatternAnalysis, SignalAggregator
from breakout_scanner.services.data_providers import build_provider
from breakout_scanner.services.data_providers.base import MarketDataProvider
from breakout_scanner.services.metrics import metrics
from breakout_scanner.services.ranker import BreakoutRanker
from breakout_scanner.services.signals import (
    CandleSignalSource,
    SignalSource,
    SimulatedSignalSource,
)
from breakout_scanner.services.social import SimulatedSocialSource
from breakout_scanner.services.timeframes_analyzer import MultiTimeframeAnalyzer
from breakout_scanner.services.universe import resolve_universe
from breakout_scanner.utils.cancellation import CancellationToken
from breakout_scanner.utils.errors import ScanCancelled, ScanInProgress
from breakout_scanner.utils.logging import log_stage, new_trace_id


class ScanState(str, Enum):
    IDLE = "idle"
    SCANNING = "scanning"


@dataclass
class ScanSnapshot:
    """Latest scan state exposed to API clients."""

    state: ScanState = ScanState.IDLE
    trace_id: Optional[str] = None
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    last_error: Optional[str] = None
    symbols: List[str] = field(default_factory=list)
    results: List[DetailedPatternAnalysis] = field(default_factory=list)


class ScanService:
    """Run ranked scans one at a time and keep the latest results."""

    def __init__(
        self,
        provider: MarketDataProvider,
        ranker: BreakoutRanker,
        *,
        fallback_symbols: Optional[Sequence[str]] = None,
    ) -> None:
        self.provider = provider
        self.ranker = ranker
        self.fallback_symbols = list(
            fallback_symbols if fallback_symbols is not None else settings.default_symbols
        )
        self._snapshot = ScanSnapshot()
        self._token: Optional[CancellationToken] = None

    @property
    def state(self) -> ScanState:
        return self._snapshot.state

    @property
    def snapshot(self) -> ScanSnapshot:
        return self._snapshot

    def start(self) -> CancellationToken:
        """Enter ``SCANNING`` and return the token of the new scan."""
        if self._snapshot.state is ScanState.SCANNING:
            raise ScanInProgress("A scan is already running")
        self._snapshot.state = ScanState.SCANNING
        self._snapshot.started_at = datetime.now(timezone.utc)
        self._snapshot.finished_at = None
        self._snapshot.last_error = None
        self._token = CancellationToken()
        return self._token

    def cancel(self) -> bool:
        """Request cancellation of the running scan.

        Returns ``False`` when no scan is running.
        """
        if self._snapshot.state is not ScanState.SCANNING or self._token is None:
            return False
        self._token.cancel()
        logger.bind(trace_id=self._snapshot.trace_id).info("scan.cancel_requested")
        return True

    async def run(
        self, symbols: Optional[Sequence[str]] = None, top_n: Optional[int] = None
    ) -> List[DetailedPatternAnalysis]:
        """Run one guarded scan and replace the stored results.

        Without ``symbols`` the universe comes from the product listing, with
        the configured fallback when the listing is unavailable. Results of a
        cancelled or failed scan are discarded; the service always returns to
        ``IDLE``.
        """
        token = self.start()
        trace_id = new_trace_id()
        self._snapshot.trace_id = trace_id
        started = time.perf_counter()
        outcome = "failed"
        try:
            with log_stage("scan"):
                if symbols:
                    universe = list(symbols)
                else:
                    universe = await resolve_universe(self.provider, self.fallback_symbols)
                token.raise_if_cancelled()
                self._snapshot.symbols = universe
                results = await self.ranker.rank(universe, token, top_n=top_n)
                token.raise_if_cancelled()
            self._snapshot.results = results
            outcome = "completed"
            logger.bind(trace_id=trace_id, symbols=len(universe), results=len(results)).info(
                "scan.completed"
            )
            return results
        except ScanCancelled as exc:
            outcome = "cancelled"
            self._snapshot.last_error = exc.message
            raise
        except Exception as exc:
            self._snapshot.last_error = str(exc)
            raise
        finally:
            metrics.observe_scan_duration(outcome, time.perf_counter() - started)
            self._snapshot.state = ScanState.IDLE
            self._snapshot.finished_at = datetime.now(timezone.utc)
            self._token = None


def build_scan_service(
    provider: Optional[MarketDataProvider] = None, *, config: Optional[Settings] = None
) -> ScanService:
    """Wire provider, analyzer, signal sources and ranker from settings.

    The signal and social sources share one generator so a ``SIGNAL_SEED``
    makes a whole scan reproducible.
    """
    resolved = config or get_settings()
    provider = provider or build_provider(resolved)
    rng = np.random.default_rng(resolved.signal_seed)
    signal_source: SignalSource
    if resolved.signal_source == "candles":
        signal_source = CandleSignalSource(rng)
    else:
        signal_source = SimulatedSignalSource(rng)
    aggregator = SignalAggregator(signal_source, SimulatedSocialSource(rng))
    analyzer = MultiTimeframeAnalyzer(provider, limit=resolved.candle_limit)
    ranker = BreakoutRanker(aggregator, analyzer, top_n=resolved.top_n)
    return ScanService(provider, ranker, fallback_symbols=resolved.default_symbols)


__all__ = ["ScanService", "ScanSnapshot", "ScanState", "build_scan_service"]
