"""Sync API endpoints: trigger runs and read the run ledger."""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Query

from fleetsync.api.deps import get_orchestrator, require_api_token
from fleetsync.schemas.sync import (
    SyncAllResponse,
    SyncRequest,
    SyncResultResponse,
    SyncRunResponse,
    SyncStatusResponse,
)
from fleetsync.services.sync_service import DEFAULT_HISTORY_LIMIT, SyncOrchestrator

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/sync", tags=["sync"], dependencies=[Depends(require_api_token)]
)


def _trigger(body: SyncRequest | None) -> str:
    return body.triggered_by if body and body.triggered_by else "api"


@router.post("/drivers", response_model=SyncResultResponse)
async def sync_drivers(
    orchestrator: Annotated[SyncOrchestrator, Depends(get_orchestrator)],
    body: SyncRequest | None = None,
) -> SyncResultResponse:
    """Synchronise drivers from Factorial."""
    result = await orchestrator.sync_drivers(_trigger(body))
    return SyncResultResponse.model_validate(result)


@router.post("/vehicles", response_model=SyncResultResponse)
async def sync_vehicles(
    orchestrator: Annotated[SyncOrchestrator, Depends(get_orchestrator)],
    body: SyncRequest | None = None,
) -> SyncResultResponse:
    """Synchronise vehicles from MyRentACar."""
    result = await orchestrator.sync_vehicles(_trigger(body))
    return SyncResultResponse.model_validate(result)


@router.post("/all", response_model=SyncAllResponse)
async def sync_all(
    orchestrator: Annotated[SyncOrchestrator, Depends(get_orchestrator)],
    body: SyncRequest | None = None,
) -> SyncAllResponse:
    """Run both pipelines concurrently; each result reports its own outcome."""
    results = await orchestrator.sync_all(_trigger(body))
    return SyncAllResponse(
        drivers=SyncResultResponse.model_validate(results["drivers"]),
        vehicles=SyncResultResponse.model_validate(results["vehicles"]),
    )


@router.get("/status", response_model=SyncStatusResponse)
async def sync_status(
    orchestrator: Annotated[SyncOrchestrator, Depends(get_orchestrator)],
) -> SyncStatusResponse:
    return SyncStatusResponse.model_validate(await orchestrator.get_status())


@router.get("/history", response_model=list[SyncRunResponse])
async def sync_history(
    orchestrator: Annotated[SyncOrchestrator, Depends(get_orchestrator)],
    limit: Annotated[int, Query(ge=1, le=100)] = DEFAULT_HISTORY_LIMIT,
) -> list[SyncRunResponse]:
    runs = await orchestrator.get_history(limit)
    return [SyncRunResponse.model_validate(run) for run in runs]
