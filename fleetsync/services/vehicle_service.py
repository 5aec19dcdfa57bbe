"""Vehicle cache queries and operator updates."""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

from sqlalchemy import func, or_, select

from fleetsync.exceptions import NotFoundError
from fleetsync.models.vehicle import VEHICLE_MANUAL_FIELDS, VEHICLE_STATUSES, VehicleCache
from fleetsync.schemas.vehicle import (
    VehicleListResponse,
    VehicleResponse,
    VehicleStats,
)
from fleetsync.services.datetime_service import now_stamp

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from fleetsync.schemas.vehicle import VehicleUpdate


async def list_vehicles(
    session: AsyncSession,
    *,
    page: int = 1,
    per_page: int = 50,
    status: str | None = None,
    vehicle_type: str | None = None,
    energie: str | None = None,
    data_source: str | None = None,
    categorie: str | None = None,
    search: str | None = None,
) -> VehicleListResponse:
    """List cached vehicles ordered by registration, with filtering and pagination."""
    stmt = select(VehicleCache)

    if status:
        stmt = stmt.where(VehicleCache.status == status)
    if vehicle_type:
        stmt = stmt.where(VehicleCache.type == vehicle_type)
    if energie:
        stmt = stmt.where(
            or_(VehicleCache.energie == energie, VehicleCache.energie_vehicule == energie)
        )
    if data_source:
        stmt = stmt.where(VehicleCache.data_source == data_source)
    if categorie:
        stmt = stmt.where(
            or_(
                VehicleCache.categorie_vehicule == categorie,
                VehicleCache.category_code == categorie,
            )
        )
    if search:
        pattern = f"%{search.strip()}%"
        stmt = stmt.where(
            or_(
                VehicleCache.immatriculation.ilike(pattern),
                VehicleCache.marque_modele.ilike(pattern),
                VehicleCache.marque_vehicule.ilike(pattern),
                VehicleCache.numero.ilike(pattern),
                VehicleCache.wincpl_code.ilike(pattern),
            )
        )

    total = (
        await session.execute(select(func.count()).select_from(stmt.subquery()))
    ).scalar() or 0

    stmt = (
        stmt.order_by(VehicleCache.immatriculation, VehicleCache.id)
        .offset((page - 1) * per_page)
        .limit(per_page)
    )
    vehicles = (await session.execute(stmt)).scalars().all()

    return VehicleListResponse(
        vehicles=[VehicleResponse.model_validate(vehicle) for vehicle in vehicles],
        total=total,
        page=page,
        per_page=per_page,
        total_pages=max(1, math.ceil(total / per_page)),
    )


async def get_vehicle(session: AsyncSession, vehicle_id: int) -> VehicleCache:
    vehicle = await session.get(VehicleCache, vehicle_id)
    if vehicle is None:
        msg = f"Vehicle {vehicle_id} not found"
        raise NotFoundError(msg)
    return vehicle


async def get_vehicle_stats(session: AsyncSession) -> VehicleStats:
    by_status = dict.fromkeys(VEHICLE_STATUSES, 0)
    by_status.update(
        (
            await session.execute(
                select(VehicleCache.status, func.count()).group_by(VehicleCache.status)
            )
        ).all()
    )
    by_source = dict(
        (
            await session.execute(
                select(VehicleCache.data_source, func.count()).group_by(
                    VehicleCache.data_source
                )
            )
        ).all()
    )
    last_synced_at = (
        await session.execute(select(func.max(VehicleCache.synced_at)))
    ).scalar()
    return VehicleStats(
        total=sum(by_status.values()),
        by_status=by_status,
        by_source=by_source,
        last_synced_at=last_synced_at,
    )


async def update_vehicle(
    session: AsyncSession, vehicle_id: int, update: VehicleUpdate
) -> VehicleCache:
    """Apply an operator update; only manual fields are writable."""
    vehicle = await get_vehicle(session, vehicle_id)
    for name, value in update.model_dump(exclude_unset=True).items():
        if name not in VEHICLE_MANUAL_FIELDS:
            msg = f"Field {name} is managed by the fleet sync"
            raise ValueError(msg)
        if name == "status" and value is None:
            msg = "status cannot be null"
            raise ValueError(msg)
        if name in ("semi_compatibles", "equipements") and value is None:
            value = []
        setattr(vehicle, name, value)
    vehicle.updated_at = now_stamp()
    await session.commit()
    return vehicle
