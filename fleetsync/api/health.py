"""Health check endpoint."""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from fleetsync.api.deps import get_orchestrator, get_session
from fleetsync.services.sync_service import SyncOrchestrator

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])

VERSION = "0.1.0"


class HealthResponse(BaseModel):
    status: str
    version: str
    database: str
    running_syncs: list[str]


@router.get("/api/health", response_model=HealthResponse)
async def health_check(
    session: Annotated[AsyncSession, Depends(get_session)],
    orchestrator: Annotated[SyncOrchestrator, Depends(get_orchestrator)],
) -> HealthResponse:
    """Health check endpoint for monitoring and load balancers."""
    db_status = "ok"
    try:
        await session.execute(text("SELECT 1"))
    except SQLAlchemyError:
        logger.warning("Health check database query failed", exc_info=True)
        db_status = "error"

    return HealthResponse(
        status="ok" if db_status == "ok" else "degraded",
        version=VERSION,
        database=db_status,
        running_syncs=[
            entity for entity in ("drivers", "vehicles") if orchestrator.is_running(entity)
        ],
    )
