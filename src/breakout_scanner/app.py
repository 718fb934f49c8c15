"""FastAPI application factory for breakout_scanner."""

from __future__ import annotations

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import ORJSONResponse

from breakout_scanner import __version__
from breakout_scanner.config import get_settings
from breakout_scanner.routes import health, market, metrics, patterns, scan
from breakout_scanner.services.scanner import build_scan_service
from breakout_scanner.utils.errors import (
    ApiError,
    api_error_handler,
    http_exception_handler,
    request_validation_exception_handler,
    unexpected_exception_handler,
)
from breakout_scanner.utils.logging import configure_logging, logging_middleware
from breakout_scanner.utils.ratelimit import RateLimiter, RateLimitMiddleware

OPENAPI_TAGS: list[dict[str, str]] = [
    {
        "name": "health",
        "description": "Monitoring endpoints exposing uptime and build metadata.",
    },
    {
        "name": "market",
        "description": "Product universe and normalized candles from the market data provider.",
    },
    {
        "name": "patterns",
        "description": "Ascending triangle and cup-and-handle detection on 1h, 6h and 1d candles.",
    },
    {
        "name": "scan",
        "description": "Single-flight breakout scans ranking the most promising symbols.",
    },
]


def create_app() -> FastAPI:
    """Instantiate FastAPI application with configured routes and services."""
    configure_logging()
    settings = get_settings()
    app = FastAPI(
        title="breakout-scanner",
        description=(
            "Rank crypto breakout candidates from multi-timeframe chart patterns,"
            " technical indicators and social signals."
        ),
        version=__version__,
        default_response_class=ORJSONResponse,
        openapi_tags=OPENAPI_TAGS,
    )
    allowed_origins = list(settings.allowed_origins)
    if not allowed_origins:
        if settings.playwright_mode:
            # Local runs may omit ALLOWED_ORIGINS; fall back to the dashboard origin.
            allowed_origins = ["http://localhost:3000"]
        else:
            raise RuntimeError(
                "ALLOWED_ORIGINS must define at least one origin for production deployments"
            )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=1000)
    limiter = RateLimiter(
        settings.rate_limit_per_minute,
        bypass=settings.playwright_mode,
    )
    app.add_middleware(RateLimitMiddleware, limiter=limiter)
    app.middleware("http")(logging_middleware)

    scan_service = build_scan_service(config=settings)
    app.state.provider = scan_service.provider
    app.state.analyzer = scan_service.ranker.analyzer
    app.state.scan_service = scan_service

    app.include_router(health.router)
    app.include_router(metrics.router)
    app.include_router(market.router)
    app.include_router(patterns.router)
    app.include_router(scan.router)

    app.add_exception_handler(Exception, unexpected_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_exception_handler)

    return app


__all__ = ["create_app"]
