"""Base interface for market data providers.

Providers return candle series as pandas DataFrames with the canonical
``ts, o, h, l, c, v`` columns, sorted by ascending timestamp (seconds). The
shared :meth:`MarketDataProvider._call_with_backoff` helper implements the
outbound pacing, the bounded HTTP 429 retry and the circuit breaker so every
concrete provider behaves identically under the external rate limit.
"""

from __future__ import annotations

import asyncio
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, List, TypeVar

import pandas as pd
from loguru import logger

from breakout_scanner.config import settings
from breakout_scanner.services.metrics import metrics
from breakout_scanner.utils.cancellation import CancellationToken
from breakout_scanner.utils.errors import BadRequest, DataSourceError, RateLimited
from breakout_scanner.utils.ratelimit import Clock, Sleep, TokenBucket

CANDLE_COLUMNS: List[str] = ["ts", "o", "h", "l", "c", "v"]

KNOWN_QUOTES: tuple[str, ...] = ("USDT", "USDC", "USD", "EUR", "GBP", "BTC", "ETH")
"""Accepted quote assets used to detect compact symbol inputs."""

T = TypeVar("T")


def empty_candles() -> pd.DataFrame:
    """Return the empty series used when a timeframe has no usable data."""
    return pd.DataFrame({column: pd.Series(dtype=float) for column in CANDLE_COLUMNS})


def normalize_symbol(symbol: str) -> str:
    """Return a product identifier formatted as ``BASE-QUOTE``.

    Inputs are trimmed and upper-cased; ``BTC/USD`` and the compact ``BTCUSD``
    form are converted when the suffix matches a known quote asset. Unknown
    shapes are returned cleaned but otherwise unchanged.
    """
    cleaned = symbol.strip().upper()
    if not cleaned:
        raise BadRequest("Symbol cannot be empty")
    if "-" in cleaned:
        return cleaned
    if "/" in cleaned:
        return cleaned.replace("/", "-")
    for quote in KNOWN_QUOTES:
        if cleaned.endswith(quote) and len(cleaned) > len(quote):
            return f"{cleaned[: -len(quote)]}-{quote}"
    return cleaned


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded exponential backoff applied to HTTP 429 answers."""

    initial_delay: float = 1.0
    factor: float = 2.0
    max_retries: int = 5

    def delay_for(self, attempt: int) -> float:
        """Return the delay awaited before retry number ``attempt`` (0-based)."""
        return self.initial_delay * (self.factor**attempt)

    @classmethod
    def from_settings(cls) -> "RetryPolicy":
        """Build the policy configured through environment variables."""
        return cls(
            initial_delay=settings.rate_limit_retry_delay_ms / 1000,
            factor=settings.rate_limit_backoff_factor,
            max_retries=settings.rate_limit_max_retries,
        )


class CircuitBreaker:
    """Fail fast after repeated terminal failures of the data source.

    The circuit opens once ``threshold`` consecutive failures were recorded and
    stays open for ``reset_seconds``. The first call after that window is let
    through; a failure reopens the circuit immediately, a success closes it.
    """

    def __init__(self, threshold: int, reset_seconds: float, *, clock: Clock | None = None) -> None:
        if threshold <= 0:
            raise ValueError("threshold must be positive")
        self._threshold = threshold
        self._reset_seconds = reset_seconds
        self._clock: Clock = clock or time.monotonic
        self._failures = 0
        self._opened_at: float | None = None

    @property
    def is_open(self) -> bool:
        """Return whether calls are currently short-circuited."""
        if self._opened_at is None:
            return False
        return self._clock() - self._opened_at < self._reset_seconds

    def before_call(self) -> None:
        """Raise :class:`DataSourceError` while the circuit is open."""
        if self._opened_at is None:
            return
        if self.is_open:
            raise DataSourceError("Market data circuit breaker is open")
        # Half-open: a single failure is enough to trip the breaker again.
        self._opened_at = None
        self._failures = self._threshold - 1

    def record_failure(self) -> None:
        self._failures += 1
        if self._failures >= self._threshold:
            self._opened_at = self._clock()

    def record_success(self) -> None:
        self._failures = 0
        self._opened_at = None


class MarketDataProvider(ABC):
    """Abstract provider retrieving candles and the product listing."""

    name = "custom"

    def __init__(
        self,
        *,
        limiter: TokenBucket | None = None,
        retry_policy: RetryPolicy | None = None,
        breaker: CircuitBreaker | None = None,
        sleep: Sleep | None = None,
    ) -> None:
        self.limiter = limiter or TokenBucket(settings.inter_call_delay_ms / 1000)
        self.retry_policy = retry_policy or RetryPolicy.from_settings()
        self.breaker = breaker or CircuitBreaker(
            settings.circuit_breaker_threshold, settings.circuit_breaker_reset_seconds
        )
        self._sleep: Sleep = sleep or asyncio.sleep

    @abstractmethod
    async def fetch_candles(
        self,
        symbol: str,
        granularity: int,
        *,
        limit: int,
        cancel_token: CancellationToken | None = None,
    ) -> pd.DataFrame:
        """Return the candle series for ``symbol`` sorted by ascending timestamp."""

    @abstractmethod
    async def list_products(self) -> List[Dict[str, object]]:
        """Return raw product descriptors (``id``, ``base_currency``, ...)."""

    async def _pause(self, delay: float, cancel_token: CancellationToken | None) -> None:
        """Sleep ``delay`` seconds, waking up early when the scan is cancelled."""
        if cancel_token is None:
            await self._sleep(delay)
            return
        sleeper = asyncio.ensure_future(self._sleep(delay))
        watcher = asyncio.ensure_future(cancel_token.wait())
        _, pending = await asyncio.wait({sleeper, watcher}, return_when=asyncio.FIRST_COMPLETED)
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
        cancel_token.raise_if_cancelled()

    async def _call_with_backoff(
        self,
        operation: Callable[[], Awaitable[T]],
        *,
        what: str,
        cancel_token: CancellationToken | None = None,
    ) -> T:
        """Run ``operation`` under pacing, bounded 429 retry and the circuit breaker.

        Exactly one backoff delay is awaited per :class:`RateLimited` signal.
        Once ``retry_policy.max_retries`` retries are spent a terminal
        :class:`DataSourceError` carrying status 429 is raised. The cancel
        token is checked before every attempt and interrupts backoff delays.
        """
        self.breaker.before_call()
        attempt = 0
        while True:
            if cancel_token is not None:
                cancel_token.raise_if_cancelled()
            await self.limiter.acquire()
            if cancel_token is not None:
                cancel_token.raise_if_cancelled()
            try:
                result = await operation()
            except RateLimited as exc:
                if attempt >= self.retry_policy.max_retries:
                    metrics.record_provider_error(self.name, "rate_limit")
                    self.breaker.record_failure()
                    raise DataSourceError(
                        f"Rate limit exceeded repeatedly while fetching {what}",
                        upstream_status=429,
                    ) from exc
                delay = max(self.retry_policy.delay_for(attempt), exc.retry_after or 0.0)
                attempt += 1
                metrics.record_rate_limit_retry(self.name)
                logger.bind(provider=self.name, attempt=attempt, delay_s=delay).warning(
                    "provider.rate_limited"
                )
                await self._pause(delay, cancel_token)
                continue
            except DataSourceError as exc:
                metrics.record_provider_error(self.name, exc.code)
                if trips_breaker(exc):
                    self.breaker.record_failure()
                raise
            self.breaker.record_success()
            return result


def trips_breaker(exc: DataSourceError) -> bool:
    """Return whether ``exc`` counts as a failure of the data source itself.

    Client errors such as 404 for an unknown product concern a single symbol
    and leave the breaker untouched; transport failures, 5xx answers and
    exhausted rate limits count.
    """
    status = exc.upstream_status
    if status is None or status == 429:
        return True
    return not 400 <= status < 500


__all__ = [
    "CANDLE_COLUMNS",
    "CircuitBreaker",
    "MarketDataProvider",
    "RetryPolicy",
    "empty_candles",
    "normalize_symbol",
    "trips_breaker",
]
