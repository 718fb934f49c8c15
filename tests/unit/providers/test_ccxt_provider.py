"""Unit tests ensuring the CCXT data provider is normalised like the REST one."""

from __future__ import annotations

import types
from typing import Any, Dict, List, Tuple

import pytest

from breakout_scanner.services.data_providers import ccxt_provider
from breakout_scanner.services.data_providers.base import CircuitBreaker, RetryPolicy
from breakout_scanner.services.data_providers.ccxt_provider import CcxtDataProvider, to_ccxt_symbol
from breakout_scanner.utils.errors import DataSourceError
from breakout_scanner.utils.ratelimit import TokenBucket


class _DummyRateLimit(Exception):
    """Local stand-in for :class:`ccxt.RateLimitExceeded`."""


class _DummyBaseError(Exception):
    """Local stand-in for :class:`ccxt.BaseError`."""


class _DummyBadRequest(_DummyBaseError):
    """Local stand-in for :class:`ccxt.BadRequest` (unknown symbols)."""


class _RecordingExchange:
    """Exchange double storing calls so assertions stay trivial."""

    id = "test-exchange"

    def __init__(
        self,
        ohlcv: List[List[float]],
        *,
        rate_limited: int = 0,
        broken: bool = False,
        bad_symbols: tuple[str, ...] = (),
    ) -> None:
        self.ohlcv = ohlcv
        self.bad_symbols = bad_symbols
        self.calls: List[Tuple[Any, ...]] = []
        self.rate_limited = rate_limited
        self.broken = broken

    def fetch_ohlcv(
        self,
        symbol: str,
        timeframe: str,
        since: int | None = None,
        limit: int | None = None,
        params: dict[str, Any] | None = None,
    ) -> List[List[float]]:
        self.calls.append((symbol, timeframe, since, limit))
        if symbol in self.bad_symbols:
            raise _DummyBadRequest(f"unknown market {symbol}")
        if self.broken:
            raise _DummyBaseError("exchange down")
        if self.rate_limited:
            self.rate_limited -= 1
            raise _DummyRateLimit("slow down")
        return self.ohlcv

    def load_markets(self) -> Dict[str, Dict[str, Any]]:
        return {
            "BTC/USD": {"base": "BTC", "quote": "USD", "active": True},
            "LUNA/USD": {"base": "LUNA", "quote": "USD", "active": False},
            "ETH/EUR": {"base": "ETH", "quote": "EUR", "active": None},
        }


@pytest.fixture()
def install_exchange(monkeypatch: pytest.MonkeyPatch):
    def _install(exchange: _RecordingExchange) -> None:
        def _factory(config: dict[str, Any]) -> _RecordingExchange:
            assert config == {"enableRateLimit": False}
            return exchange

        stub = types.SimpleNamespace(
            testexchange=_factory,
            RateLimitExceeded=_DummyRateLimit,
            BadRequest=_DummyBadRequest,
            BaseError=_DummyBaseError,
        )
        monkeypatch.setattr(ccxt_provider, "ccxt", stub)

    return _install


def _provider(sleeps: List[float]) -> CcxtDataProvider:
    async def _sleep(seconds: float) -> None:
        sleeps.append(seconds)

    return CcxtDataProvider(
        "testexchange",
        limiter=TokenBucket(0),
        retry_policy=RetryPolicy(initial_delay=0.5, factor=2.0, max_retries=3),
        sleep=_sleep,
    )


def test_to_ccxt_symbol_uses_slash_separator() -> None:
    assert to_ccxt_symbol("btc-usd") == "BTC/USD"
    assert to_ccxt_symbol("ETHUSDT") == "ETH/USDT"


@pytest.mark.anyio
async def test_fetch_candles_converts_milliseconds_and_sorts(install_exchange) -> None:
    exchange = _RecordingExchange(
        [
            [7_200_000, 2.0, 3.0, 1.5, 2.5, 11.0],
            [3_600_000, 1.0, 2.0, 0.5, 1.5, 10.0],
        ]
    )
    install_exchange(exchange)
    frame = await _provider([]).fetch_candles("BTC-USD", 3600, limit=300)

    assert frame["ts"].tolist() == [3600, 7200]
    assert frame["o"].tolist() == [1.0, 2.0]
    assert exchange.calls == [("BTC/USD", "1h", None, 300)]


@pytest.mark.anyio
async def test_rate_limit_is_retried_with_backoff(install_exchange) -> None:
    exchange = _RecordingExchange([[3_600_000, 1.0, 2.0, 0.5, 1.5, 10.0]], rate_limited=2)
    install_exchange(exchange)
    sleeps: List[float] = []
    frame = await _provider(sleeps).fetch_candles("BTC-USD", 86400, limit=10)

    assert len(frame) == 1
    assert sleeps == [0.5, 1.0]
    assert len(exchange.calls) == 3
    assert exchange.calls[0][1] == "1d"


@pytest.mark.anyio
async def test_exchange_errors_become_data_source_errors(install_exchange) -> None:
    install_exchange(_RecordingExchange([], broken=True))
    with pytest.raises(DataSourceError):
        await _provider([]).fetch_candles("BTC-USD", 3600, limit=10)


@pytest.mark.anyio
async def test_list_products_maps_markets_to_product_descriptors(install_exchange) -> None:
    install_exchange(_RecordingExchange([]))
    products = await _provider([]).list_products()
    assert products == [
        {"id": "BTC-USD", "base_currency": "BTC", "quote_currency": "USD", "status": "online"},
        {"id": "LUNA-USD", "base_currency": "LUNA", "quote_currency": "USD", "status": "offline"},
        {"id": "ETH-EUR", "base_currency": "ETH", "quote_currency": "EUR", "status": "online"},
    ]


def test_unknown_exchange_is_rejected(install_exchange) -> None:
    install_exchange(_RecordingExchange([]))
    with pytest.raises(DataSourceError):
        CcxtDataProvider("does-not-exist", limiter=TokenBucket(0))


@pytest.mark.anyio
async def test_unknown_market_is_a_client_error_that_spares_the_breaker(install_exchange) -> None:
    install_exchange(_RecordingExchange([[3_600_000, 1.0, 2.0, 0.5, 1.5, 10.0]], bad_symbols=("BAD/USD",)))
    provider = CcxtDataProvider(
        "testexchange",
        limiter=TokenBucket(0),
        breaker=CircuitBreaker(1, 30.0),
    )

    with pytest.raises(DataSourceError) as excinfo:
        await provider.fetch_candles("BAD-USD", 3600, limit=10)
    assert excinfo.value.upstream_status == 400
    assert not provider.breaker.is_open

    frame = await provider.fetch_candles("BTC-USD", 3600, limit=10)
    assert len(frame) == 1
