"""Driver cache endpoints."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from fleetsync.api.deps import get_session, require_api_token
from fleetsync.schemas.driver import (
    DriverListResponse,
    DriverResponse,
    DriverStats,
    DriverStatus,
    DriverUpdate,
)
from fleetsync.services.driver_service import (
    get_driver,
    get_driver_stats,
    list_drivers,
    update_driver,
)

router = APIRouter(
    prefix="/api/drivers", tags=["drivers"], dependencies=[Depends(require_api_token)]
)


@router.get("", response_model=DriverListResponse)
async def list_drivers_endpoint(
    session: Annotated[AsyncSession, Depends(get_session)],
    page: Annotated[int, Query(ge=1)] = 1,
    per_page: Annotated[int, Query(ge=1, le=500)] = 50,
    status: DriverStatus | None = None,
    team_name: str | None = None,
    agence: str | None = None,
    search: Annotated[str | None, Query(max_length=200)] = None,
) -> DriverListResponse:
    return await list_drivers(
        session,
        page=page,
        per_page=per_page,
        status=status,
        team_name=team_name,
        agence=agence,
        search=search,
    )


@router.get("/stats", response_model=DriverStats)
async def driver_stats_endpoint(
    session: Annotated[AsyncSession, Depends(get_session)],
) -> DriverStats:
    return await get_driver_stats(session)


@router.get("/{driver_id}", response_model=DriverResponse)
async def get_driver_endpoint(
    driver_id: int,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> DriverResponse:
    return DriverResponse.model_validate(await get_driver(session, driver_id))


@router.patch("/{driver_id}", response_model=DriverResponse)
async def update_driver_endpoint(
    driver_id: int,
    body: DriverUpdate,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> DriverResponse:
    """Update operator-owned fields of a cached driver."""
    return DriverResponse.model_validate(await update_driver(session, driver_id, body))
