"""Loguru configuration and the scan-aware logging context.

Every record carries the trace identifier of the HTTP request or scan that
produced it. Scans additionally track the symbol and timeframe being
processed so a warning emitted deep inside a provider can be tied back to its
position in the universe.
"""

from __future__ import annotations

import sys
import time
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Iterator, TextIO

from fastapi import Request, Response
from loguru import logger

from breakout_scanner.config import get_settings


@dataclass
class ScanLogContext:
    """Mutable position of the current request or scan."""

    symbol: str | None = None
    timeframe: str | None = None
    stage: str | None = None
    stage_started_at: float | None = None


_TRACE_ID: ContextVar[str] = ContextVar("trace_id", default="unknown")
_LOG_CONTEXT: ContextVar[ScanLogContext | None] = ContextVar("log_context", default=None)


def configure_logging(sink: TextIO = sys.stdout) -> None:
    """Send JSON records at ``LOG_LEVEL`` to ``sink``."""
    settings = get_settings()
    logger.remove()
    logger.add(sink, level=settings.log_level.upper(), serialize=True)


def get_trace_id() -> str:
    return _TRACE_ID.get()


def get_request_context() -> ScanLogContext:
    """Return the context bound to the running task, creating it on first use."""
    context = _LOG_CONTEXT.get()
    if context is None:
        context = ScanLogContext()
        _LOG_CONTEXT.set(context)
    return context


def set_request_metadata(*, symbol: str | None = None, timeframe: str | None = None) -> None:
    context = get_request_context()
    if symbol is not None:
        context.symbol = symbol
    if timeframe is not None:
        context.timeframe = timeframe


def _stage_fields(stage: str, context: ScanLogContext) -> Dict[str, Any]:
    latency_ms = 0.0
    if context.stage_started_at is not None:
        latency_ms = (time.perf_counter() - context.stage_started_at) * 1000
    return {
        "trace_id": get_trace_id(),
        "stage": stage,
        "latency_ms": latency_ms,
        "symbol": context.symbol,
        "timeframe": context.timeframe,
    }


@contextmanager
def log_stage(stage: str) -> Iterator[None]:
    """Log ``stage.completed`` or ``stage.failed`` with the stage latency.

    Stages nest; the enclosing stage is restored on exit.
    """
    context = get_request_context()
    previous = (context.stage, context.stage_started_at)
    context.stage = stage
    context.stage_started_at = time.perf_counter()
    try:
        yield
    except Exception:
        logger.bind(**_stage_fields(stage, context)).exception("stage.failed")
        raise
    else:
        logger.bind(**_stage_fields(stage, context)).info("stage.completed")
    finally:
        context.stage, context.stage_started_at = previous


def new_trace_id() -> str:
    """Start a fresh trace and context for a scan run outside HTTP requests."""
    trace_id = str(uuid.uuid4())
    _TRACE_ID.set(trace_id)
    _LOG_CONTEXT.set(ScanLogContext())
    return trace_id


async def logging_middleware(
    request: Request, call_next: Callable[[Request], Awaitable[Response]]
) -> Response:
    """Bind a trace id per request and log one ``request.completed`` record.

    The id comes from ``X-Trace-Id`` when the client sends one and is echoed
    back in the response headers. Request headers are never logged.
    """
    trace_id = request.headers.get("x-trace-id") or str(uuid.uuid4())
    trace_token = _TRACE_ID.set(trace_id)
    context_token = _LOG_CONTEXT.set(ScanLogContext())
    started = time.perf_counter()
    status_code = 500
    try:
        response = await call_next(request)
        status_code = response.status_code
    finally:
        context = get_request_context()
        logger.bind(
            trace_id=trace_id,
            method=request.method,
            path=request.url.path,
            status_code=status_code,
            duration_ms=(time.perf_counter() - started) * 1000,
            symbol=context.symbol,
            timeframe=context.timeframe,
        ).info("request.completed")
        _TRACE_ID.reset(trace_token)
        _LOG_CONTEXT.reset(context_token)
    response.headers["X-Trace-Id"] = trace_id
    return response


__all__ = [
    "ScanLogContext",
    "configure_logging",
    "get_request_context",
    "get_trace_id",
    "log_stage",
    "logging_middleware",
    "new_trace_id",
    "set_request_metadata",
]
