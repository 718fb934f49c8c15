"""Rate limiting primitives.

Two limiters live here:

* :class:`RateLimiter` guards the public HTTP API with a per-minute sliding
  window, applied by :class:`RateLimitMiddleware`.
* :class:`TokenBucket` paces *outbound* market data requests. A single bucket
  is shared by every fetch so the spacing between calls holds regardless of
  which symbol or timeframe issued them.
"""

from __future__ import annotations

import asyncio
import time
from collections import defaultdict, deque
from threading import Lock
from typing import Awaitable, Callable, DefaultDict, Deque

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response
from starlette.types import ASGIApp

from breakout_scanner.utils.errors import TooManyRequests

Clock = Callable[[], float]
Sleep = Callable[[float], Awaitable[None]]


class RateLimiter:
    """Sliding window limiter that enforces a per-minute quota."""

    def __init__(
        self,
        requests_per_minute: int,
        *,
        bypass: bool = False,
        clock: Clock | None = None,
    ) -> None:
        """Configure the limiter and storage buckets."""
        if requests_per_minute <= 0:
            raise ValueError("requests_per_minute must be positive")
        self._limit = requests_per_minute
        self._window_seconds = 60.0
        self._bypass = bypass
        self._clock: Clock = clock or time.monotonic
        self._hits: DefaultDict[str, Deque[float]] = defaultdict(deque)
        self._lock = Lock()

    def acquire(self, key: str) -> int:
        """Record a call for *key* and return the remaining budget.

        Timestamps older than the last minute are evicted before the current
        access is appended. Raises :class:`TooManyRequests` once the budget is
        consumed.
        """
        if self._bypass:
            return self._limit
        now = self._clock()
        window_start = now - self._window_seconds
        with self._lock:
            bucket = self._hits[key]
            while bucket and bucket[0] <= window_start:
                bucket.popleft()
            if len(bucket) >= self._limit:
                raise TooManyRequests("Rate limit exceeded for caller")
            bucket.append(now)
            remaining = self._limit - len(bucket)
        return remaining


class TokenBucket:
    """Async token bucket releasing one token every ``refill_interval`` seconds.

    With ``capacity=1`` the bucket degenerates into a strict minimum spacing
    between consecutive acquisitions, which is how the market data endpoint
    is paced by default. ``refill_interval <= 0`` disables pacing entirely.
    """

    def __init__(
        self,
        refill_interval: float,
        *,
        capacity: int = 1,
        clock: Clock | None = None,
        sleep: Sleep | None = None,
    ) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self._interval = max(0.0, float(refill_interval))
        self._capacity = float(capacity)
        self._clock: Clock = clock or time.monotonic
        self._sleep: Sleep = sleep or asyncio.sleep
        self._tokens = float(capacity)
        self._updated_at = self._clock()
        self._lock = asyncio.Lock()

    @property
    def refill_interval(self) -> float:
        """Seconds needed to regenerate one token."""
        return self._interval

    def _refill(self) -> None:
        now = self._clock()
        elapsed = max(0.0, now - self._updated_at)
        self._updated_at = now
        self._tokens = min(self._capacity, self._tokens + elapsed / self._interval)

    async def acquire(self) -> float:
        """Wait for a token and consume it; return the seconds spent waiting."""
        if self._interval <= 0:
            return 0.0
        waited = 0.0
        async with self._lock:
            while True:
                self._refill()
                if self._tokens >= 1.0:
                    self._tokens -= 1.0
                    return waited
                deficit = (1.0 - self._tokens) * self._interval
                await self._sleep(deficit)
                waited += deficit


KeyFunc = Callable[[Request], str]


class RateLimitMiddleware(BaseHTTPMiddleware):
    """FastAPI middleware that applies :class:`RateLimiter` to HTTP requests."""

    def __init__(
        self,
        app: ASGIApp,
        limiter: RateLimiter,
        *,
        key_func: KeyFunc | None = None,
    ) -> None:
        super().__init__(app)
        self._limiter = limiter
        self._key_func: KeyFunc = key_func or self._client_host_key

    @staticmethod
    def _client_host_key(request: Request) -> str:
        """Map a request to a stable key derived from its client address."""
        client = request.client
        return client.host if client else "global"

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        """Gate each request through the configured limiter."""
        key = self._key_func(request)
        try:
            remaining = self._limiter.acquire(key)
        except TooManyRequests as exc:
            response = JSONResponse(status_code=exc.status_code, content=exc.to_payload())
            response.headers["X-RateLimit-Remaining"] = "0"
            return response
        response = await call_next(request)
        response.headers.setdefault("X-RateLimit-Remaining", str(remaining))
        return response


__all__ = ["RateLimiter", "RateLimitMiddleware", "TokenBucket"]
