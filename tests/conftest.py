"""Test fixtures for breakout_scanner."""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Set, Tuple

import numpy as np
import pandas as pd
import pytest
from fastapi.testclient import TestClient

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
sys.path.insert(0, str(SRC))

os.environ.setdefault("API_TOKEN", "testingtoken")
os.environ.setdefault("PLAYWRIGHT", "true")
os.environ.setdefault("ALLOWED_ORIGINS", "http://localhost:3000")
os.environ.setdefault("INTER_CALL_DELAY_MS", "0")
os.environ.setdefault("SIGNAL_SEED", "7")

from breakout_scanner.app import create_app  # noqa: E402
from breakout_scanner.services.aggregator import SignalAggregator  # noqa: E402
from breakout_scanner.services.data_providers.base import (  # noqa: E402
    MarketDataProvider,
    empty_candles,
)
from breakout_scanner.services.metrics import metrics  # noqa: E402
from breakout_scanner.services.ranker import BreakoutRanker  # noqa: E402
from breakout_scanner.services.scanner import ScanService  # noqa: E402
from breakout_scanner.services.signals import SimulatedSignalSource  # noqa: E402
from breakout_scanner.services.social import SimulatedSocialSource  # noqa: E402
from breakout_scanner.services.timeframes_analyzer import MultiTimeframeAnalyzer  # noqa: E402
from breakout_scanner.utils.cancellation import CancellationToken  # noqa: E402
from breakout_scanner.utils.errors import DataSourceError  # noqa: E402
from breakout_scanner.utils.ratelimit import TokenBucket  # noqa: E402

FrameFactory = Callable[..., pd.DataFrame]


def build_frame(
    closes: Sequence[float],
    *,
    highs: Optional[Sequence[float]] = None,
    lows: Optional[Sequence[float]] = None,
    opens: Optional[Sequence[float]] = None,
    volumes: Optional[Sequence[float]] = None,
    start: int = 1_700_000_000,
    step: int = 3_600,
) -> pd.DataFrame:
    """Return a canonical candle frame; missing columns derive from ``closes``."""
    close_values = np.asarray(closes, dtype=float)
    size = len(close_values)
    return pd.DataFrame(
        {
            "ts": np.arange(start, start + step * size, step, dtype="int64")[:size],
            "o": np.asarray(opens, dtype=float) if opens is not None else close_values,
            "h": np.asarray(highs, dtype=float) if highs is not None else close_values + 1,
            "l": np.asarray(lows, dtype=float) if lows is not None else close_values - 1,
            "c": close_values,
            "v": np.asarray(volumes, dtype=float) if volumes is not None else np.full(size, 100.0),
        }
    )


class FakeProvider(MarketDataProvider):
    """Deterministic provider serving canned frames without network access."""

    name = "fake"

    def __init__(
        self,
        frames: Optional[Dict[Tuple[str, int], pd.DataFrame]] = None,
        *,
        default: Optional[pd.DataFrame] = None,
        failing: Iterable[Tuple[str, int]] = (),
        failing_symbols: Iterable[str] = (),
        products: Optional[List[Dict[str, object]]] = None,
        products_error: bool = False,
    ) -> None:
        super().__init__(limiter=TokenBucket(0))
        self.frames = dict(frames or {})
        self.default = default
        self.failing: Set[Tuple[str, int]] = set(failing)
        self.failing_symbols = set(failing_symbols)
        self.products = products if products is not None else []
        self.products_error = products_error
        self.calls: List[Tuple[str, int, int]] = []

    async def fetch_candles(
        self,
        symbol: str,
        granularity: int,
        *,
        limit: int,
        cancel_token: Optional[CancellationToken] = None,
    ) -> pd.DataFrame:
        self.calls.append((symbol, granularity, limit))
        if (symbol, granularity) in self.failing or symbol in self.failing_symbols:
            raise DataSourceError("boom", upstream_status=500)
        frame = self.frames.get((symbol, granularity), self.default)
        if frame is None:
            return empty_candles()
        return frame.tail(limit).reset_index(drop=True)

    async def list_products(self) -> List[Dict[str, object]]:
        if self.products_error:
            raise DataSourceError("listing unavailable", upstream_status=503)
        return list(self.products)


@pytest.fixture()
def anyio_backend() -> str:
    """Run ``@pytest.mark.anyio`` tests on asyncio only."""
    return "asyncio"


@pytest.fixture()
def frame_factory() -> FrameFactory:
    return build_frame


@pytest.fixture(scope="session")
def ohlcv_frame() -> pd.DataFrame:
    rng = np.random.default_rng(42)
    size = 300
    prices = 100 + np.sin(np.linspace(0, 6 * np.pi, size)) * 5
    return build_frame(
        prices,
        opens=prices + rng.uniform(-0.5, 0.5, size),
        volumes=rng.uniform(50, 150, size),
    )


@pytest.fixture()
def fake_provider(ohlcv_frame: pd.DataFrame) -> FakeProvider:
    return FakeProvider(
        default=ohlcv_frame,
        products=[
            {"id": "BTC-USD", "base_currency": "BTC", "quote_currency": "USD", "status": "online"},
            {"id": "ETH-USD", "base_currency": "ETH", "quote_currency": "USD", "status": "online"},
            {"id": "ETH-EUR", "base_currency": "ETH", "quote_currency": "EUR", "status": "online"},
        ],
    )


def build_test_scan_service(provider: MarketDataProvider, *, seed: int = 7) -> ScanService:
    rng = np.random.default_rng(seed)
    aggregator = SignalAggregator(SimulatedSignalSource(rng), SimulatedSocialSource(rng))
    analyzer = MultiTimeframeAnalyzer(provider, limit=300)
    ranker = BreakoutRanker(aggregator, analyzer, top_n=10)
    return ScanService(provider, ranker, fallback_symbols=["BTC-USD", "ETH-USD"])


@pytest.fixture()
def test_app(fake_provider: FakeProvider):
    metrics.reset()
    app = create_app()
    scan_service = build_test_scan_service(fake_provider)
    app.state.provider = fake_provider
    app.state.analyzer = scan_service.ranker.analyzer
    app.state.scan_service = scan_service
    return app


@pytest.fixture()
def client(test_app):
    with TestClient(test_app) as client:
        client.headers.update({"Authorization": "Bearer testingtoken"})
        yield client


@pytest.fixture()
def provider_factory() -> Callable[..., FakeProvider]:
    return FakeProvider


@pytest.fixture()
def scan_service_factory() -> Callable[..., ScanService]:
    return build_test_scan_service
