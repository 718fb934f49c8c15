"""Routes exposing the multi-timeframe pattern analysis."""

from __future__ import annotations

from typing import Annotated, cast

from fastapi import APIRouter, Depends, Query, Request

from breakout_scanner.routes.auth import require_token
from breakout_scanner.schemas.patterns import PatternsResponse
from breakout_scanner.services.data_providers.base import normalize_symbol
from breakout_scanner.services.timeframes_analyzer import MultiTimeframeAnalyzer
from breakout_scanner.utils.logging import log_stage, set_request_metadata

router = APIRouter(
    prefix="/api/v1/patterns",
    tags=["patterns"],
    dependencies=[Depends(require_token)],
)


def get_analyzer(request: Request) -> MultiTimeframeAnalyzer:
    """Return the shared analyzer from the application state."""
    return cast(MultiTimeframeAnalyzer, request.app.state.analyzer)


@router.get(
    "",
    response_model=PatternsResponse,
    summary="Detect breakout patterns",
    description=(
        "Fetch the 1h, 6h and 1d series of a symbol and run the ascending triangle"
        " and cup-and-handle detectors on each of them."
    ),
    response_description="Per-timeframe patterns and candle windows.",
)
async def list_patterns(
    analyzer: Annotated[MultiTimeframeAnalyzer, Depends(get_analyzer)],
    symbol: str = Query(..., min_length=3, max_length=20),
) -> PatternsResponse:
    """Run the multi-timeframe analysis for ``symbol``."""
    normalized_symbol = normalize_symbol(symbol)
    set_request_metadata(symbol=normalized_symbol)
    with log_stage("patterns"):
        result = await analyzer.analyze(normalized_symbol)
    return PatternsResponse.from_result(result, source=analyzer.provider.name)


__all__ = ["router"]
