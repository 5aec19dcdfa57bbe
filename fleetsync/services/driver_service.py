"""Driver cache queries and operator updates."""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

from sqlalchemy import func, or_, select

from fleetsync.exceptions import NotFoundError
from fleetsync.models.driver import DRIVER_MANUAL_FIELDS, DRIVER_STATUSES, DriverCache
from fleetsync.schemas.driver import (
    DriverListResponse,
    DriverResponse,
    DriverStats,
)
from fleetsync.services.datetime_service import now_stamp

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from fleetsync.schemas.driver import DriverUpdate


async def list_drivers(
    session: AsyncSession,
    *,
    page: int = 1,
    per_page: int = 50,
    status: str | None = None,
    team_name: str | None = None,
    agence: str | None = None,
    search: str | None = None,
) -> DriverListResponse:
    """List cached drivers ordered by name, with filtering and pagination."""
    stmt = select(DriverCache)

    if status:
        stmt = stmt.where(DriverCache.status == status)
    if team_name:
        stmt = stmt.where(DriverCache.team_name == team_name)
    if agence:
        stmt = stmt.where(DriverCache.agence == agence)
    if search:
        pattern = f"%{search.strip()}%"
        stmt = stmt.where(
            or_(
                DriverCache.first_name.ilike(pattern),
                DriverCache.last_name.ilike(pattern),
                DriverCache.matricule.ilike(pattern),
                DriverCache.email.ilike(pattern),
            )
        )

    total = (
        await session.execute(select(func.count()).select_from(stmt.subquery()))
    ).scalar() or 0

    stmt = (
        stmt.order_by(DriverCache.last_name, DriverCache.first_name, DriverCache.id)
        .offset((page - 1) * per_page)
        .limit(per_page)
    )
    drivers = (await session.execute(stmt)).scalars().all()

    return DriverListResponse(
        drivers=[DriverResponse.model_validate(driver) for driver in drivers],
        total=total,
        page=page,
        per_page=per_page,
        total_pages=max(1, math.ceil(total / per_page)),
    )


async def get_driver(session: AsyncSession, driver_id: int) -> DriverCache:
    driver = await session.get(DriverCache, driver_id)
    if driver is None:
        msg = f"Driver {driver_id} not found"
        raise NotFoundError(msg)
    return driver


async def get_driver_stats(session: AsyncSession) -> DriverStats:
    """Totals per status and per team, plus the most recent sync time."""
    by_status = dict.fromkeys(DRIVER_STATUSES, 0)
    by_status.update(
        (
            await session.execute(
                select(DriverCache.status, func.count()).group_by(DriverCache.status)
            )
        ).all()
    )
    by_team_rows = (
        await session.execute(
            select(DriverCache.team_name, func.count()).group_by(DriverCache.team_name)
        )
    ).all()
    last_synced_at = (
        await session.execute(select(func.max(DriverCache.synced_at)))
    ).scalar()
    return DriverStats(
        total=sum(by_status.values()),
        by_status=by_status,
        by_team={team or "": count for team, count in by_team_rows},
        last_synced_at=last_synced_at,
    )


async def update_driver(
    session: AsyncSession, driver_id: int, update: DriverUpdate
) -> DriverCache:
    """Apply an operator update; only manual fields are writable."""
    driver = await get_driver(session, driver_id)
    changes = update.model_dump(exclude_unset=True)
    for name, value in changes.items():
        if name not in DRIVER_MANUAL_FIELDS:
            msg = f"Field {name} is managed by the Factorial sync"
            raise ValueError(msg)
        if name == "status" and value is None:
            msg = "status cannot be null"
            raise ValueError(msg)
        if name in ("permits", "certifications") and value is None:
            value = []
        setattr(driver, name, value)
    if changes.get("status") and changes["status"] != "indisponible" and (
        "indisponibilite_raison" not in changes
    ):
        driver.indisponibilite_raison = None
    driver.updated_at = now_stamp()
    await session.commit()
    return driver
