"""Health endpoint reporting service status."""

from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Dict

from fastapi import APIRouter

from breakout_scanner import __version__
from breakout_scanner.config import settings

_router_start = time.time()

router = APIRouter(tags=["health"])


@router.get(
    "/health",
    summary="Report service health",
    description="Expose service status, uptime and the configured market data source.",
    response_description="Current backend status.",
)
def health() -> Dict[str, object]:
    """Return uptime, version and configured data source."""
    uptime = time.time() - _router_start
    return {
        "status": "ok",
        "version": __version__,
        "uptime": uptime,
        "data_source": settings.data_source,
        "exchange": settings.exchange if settings.data_source == "ccxt" else "coinbase",
        "checked_at": datetime.now(timezone.utc).isoformat(),
    }


__all__ = ["router", "health"]
