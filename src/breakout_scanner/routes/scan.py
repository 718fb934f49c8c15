"""Routes driving the single-flight breakout scan."""

from __future__ import annotations

from typing import Annotated, Optional, cast

from fastapi import APIRouter, Body, Depends, Request

from breakout_scanner.routes.auth import require_token
from breakout_scanner.schemas.scan import (
    AnalysisModel,
    CancelResponse,
    ScanRequest,
    ScanResponse,
    ScanSnapshotResponse,
)
from breakout_scanner.services.scanner import ScanService

router = APIRouter(
    prefix="/api/v1/scan",
    tags=["scan"],
    dependencies=[Depends(require_token)],
)


def get_scan_service(request: Request) -> ScanService:
    """Return the scan service stored on the application state."""
    return cast(ScanService, request.app.state.scan_service)


@router.post(
    "",
    response_model=ScanResponse,
    summary="Run a breakout scan",
    description=(
        "Rank breakout candidates across the requested symbols, or the exchange"
        " universe when none are given. Answers 409 while another scan runs."
    ),
)
async def run_scan(
    service: Annotated[ScanService, Depends(get_scan_service)],
    payload: Annotated[Optional[ScanRequest], Body()] = None,
) -> ScanResponse:
    """Run one scan and return the ranked candidates."""
    request = payload or ScanRequest()
    results = await service.run(request.symbols, request.top_n)
    return ScanResponse(
        trace_id=service.snapshot.trace_id,
        count=len(results),
        results=[AnalysisModel.model_validate(item) for item in results],
    )


@router.get(
    "",
    response_model=ScanSnapshotResponse,
    summary="Latest scan snapshot",
)
def scan_snapshot(
    service: Annotated[ScanService, Depends(get_scan_service)],
) -> ScanSnapshotResponse:
    """Return the scan state and the results of the last completed scan."""
    return ScanSnapshotResponse.from_snapshot(service.snapshot)


@router.post(
    "/cancel",
    response_model=CancelResponse,
    summary="Cancel the running scan",
)
def cancel_scan(
    service: Annotated[ScanService, Depends(get_scan_service)],
) -> CancelResponse:
    """Request cancellation; the scan stops at its next checkpoint."""
    return CancelResponse(cancelled=service.cancel())


__all__ = ["router"]
