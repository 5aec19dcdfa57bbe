"""Driver reconciliation: Factorial employees -> driver_cache."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import httpx
from sqlalchemy import select

from fleetsync.models.driver import (
    DRIVER_STATUS_AVAILABLE,
    DRIVER_STATUS_OCCUPIED,
    DRIVER_STATUS_UNAVAILABLE,
    DRIVER_UPSTREAM_FIELDS,
    DriverCache,
)
from fleetsync.services.cleanup_service import delete_orphans
from fleetsync.services.datetime_service import now_stamp, parse_date, today_utc
from fleetsync.services.field_resolver import (
    DEFAULT_FIELD_CONFIG,
    FieldResolutionConfig,
    build_field_map,
    build_option_labels,
    build_owner_maps,
    index_values_by_owner,
    resolve_custom_fields,
)
from fleetsync.services.sync_counts import SyncCounts, UpsertOutcome

if TYPE_CHECKING:
    from collections.abc import Iterable
    from datetime import date

    from sqlalchemy.ext.asyncio import AsyncSession

    from fleetsync.config import Settings
    from fleetsync.sources.factorial import (
        Employee,
        FactorialClient,
        Leave,
        Membership,
        Team,
    )

logger = logging.getLogger(__name__)

DEFAULT_LEAVE_REASON = "Absence"


@dataclass
class TeamInfo:
    team_id: int
    team_name: str


@dataclass
class DriverScope:
    """Employees treated as drivers for one run.

    ``fallback`` is set when no team matched the keyword and every employee
    was taken in.
    """

    employee_ids: set[int] = field(default_factory=set)
    team_by_employee: dict[int, TeamInfo] = field(default_factory=dict)
    fallback: bool = False


def collect_driver_scope(
    employees: Iterable[Employee],
    teams: Iterable[Team],
    memberships: Iterable[Membership],
    keyword: str,
) -> DriverScope:
    """Select driver employees from teams whose name contains ``keyword``.

    Team members come from membership records when the team has any, else
    from the team's embedded id list. An employee in several driver teams
    keeps the last one. With no matching team every employee is a driver.
    """
    employees = list(employees)
    teams = list(teams)
    memberships = list(memberships)
    needle = keyword.upper()
    driver_teams = [team for team in teams if needle in (team.name or "").upper()]

    scope = DriverScope()
    if not driver_teams:
        logger.warning(
            "No team name contains %r; every employee is treated as a driver", keyword
        )
        scope.fallback = True
        scope.employee_ids = {employee.id for employee in employees}
        for employee_id in scope.employee_ids:
            team = next((t for t in teams if employee_id in t.employee_ids), None)
            if team is not None:
                scope.team_by_employee[employee_id] = TeamInfo(team.id, (team.name or "").strip())
        return scope

    for team in driver_teams:
        member_ids = [
            m.employee_id
            for m in memberships
            if m.team_id == team.id and m.employee_id is not None
        ]
        if not member_ids:
            member_ids = list(team.employee_ids)
        team_info = TeamInfo(team.id, (team.name or "").strip())
        for employee_id in member_ids:
            scope.employee_ids.add(employee_id)
            scope.team_by_employee[employee_id] = team_info
        logger.info(
            "Driver team %r (id=%d): %d members", team_info.team_name, team.id, len(member_ids)
        )

    logger.info(
        "%d driver teams, %d distinct drivers", len(driver_teams), len(scope.employee_ids)
    )
    return scope


def leaves_today(leaves: Iterable[Leave], today: date) -> dict[int, str]:
    """Map employee id -> leave reason for leaves covering ``today``.

    Leaves explicitly marked ``approved=False`` are ignored. When a leave
    carries dates they must cover ``today``.
    """
    on_leave: dict[int, str] = {}
    for leave in leaves:
        if leave.approved is False:
            continue
        start = parse_date(leave.start_on)
        end = parse_date(leave.finish_on) or start
        if start is not None and start > today:
            continue
        if end is not None and end < today:
            continue
        on_leave[leave.employee_id] = leave.leave_type_name or DEFAULT_LEAVE_REASON
    return on_leave


def build_address(employee: Employee) -> str | None:
    """Single-line postal address, or None when nothing is known."""
    parts: list[str] = []
    if employee.address_line_1:
        parts.append(employee.address_line_1)
    if employee.postal_code and employee.city:
        parts.append(f"{employee.postal_code} {employee.city}")
    elif employee.city:
        parts.append(employee.city)
    if employee.country:
        parts.append(employee.country)
    return ", ".join(parts) if parts else None


def build_driver_payload(
    employee: Employee,
    team: TeamInfo | None,
    custom_fields: dict[str, str | None],
) -> dict[str, Any]:
    """Upstream-owned driver columns for one employee."""
    payload: dict[str, Any] = {
        "factorial_id": employee.id,
        "first_name": employee.first_name or "",
        "last_name": employee.last_name or "",
        "email": employee.email,
        "login_email": employee.login_email,
        "phone": employee.phone_number,
        "address": build_address(employee),
        "address_line_2": employee.address_line_2,
        "postal_code": employee.postal_code,
        "city": employee.city,
        "state": employee.state,
        "country": employee.country,
        "birthday": employee.birthday_on,
        "team_id": team.team_id if team else None,
        "team_name": team.team_name if team else None,
    }
    payload.update(custom_fields)
    payload["available_weekends"] = custom_fields.get("forfait_weekend") or custom_fields.get(
        "shift"
    )
    return payload


def _apply_leave(driver: DriverCache, on_leave_reason: str | None) -> None:
    if on_leave_reason is not None:
        if driver.status != DRIVER_STATUS_OCCUPIED:
            driver.status = DRIVER_STATUS_UNAVAILABLE
            driver.indisponibilite_raison = on_leave_reason
    elif driver.status == DRIVER_STATUS_UNAVAILABLE:
        driver.status = DRIVER_STATUS_AVAILABLE
        driver.indisponibilite_raison = None


async def upsert_driver(
    session: AsyncSession,
    payload: dict[str, Any],
    on_leave_reason: str | None,
    *,
    leaves_known: bool = True,
) -> UpsertOutcome:
    """Insert or refresh one cached driver keyed by ``factorial_id``.

    Upstream columns are always overwritten; manual columns are never
    touched except availability. ``occupe`` is an operational assignment and
    survives a leave; ``indisponible`` is lifted once the leave is over.
    Without ``leaves_known`` an existing driver's availability is left as is.
    """
    stamp = now_stamp()
    existing = (
        await session.execute(
            select(DriverCache).where(DriverCache.factorial_id == payload["factorial_id"])
        )
    ).scalar_one_or_none()
    upstream = {name: payload.get(name) for name in DRIVER_UPSTREAM_FIELDS}

    if existing is None:
        on_leave = on_leave_reason is not None
        session.add(
            DriverCache(
                factorial_id=payload["factorial_id"],
                **upstream,
                matricule="",
                permits=[],
                certifications=[],
                status=DRIVER_STATUS_UNAVAILABLE if on_leave else DRIVER_STATUS_AVAILABLE,
                indisponibilite_raison=on_leave_reason,
                synced_at=stamp,
                created_at=stamp,
                updated_at=stamp,
            )
        )
        await session.flush()
        return UpsertOutcome.CREATED

    for name, value in upstream.items():
        setattr(existing, name, value)
    if leaves_known:
        _apply_leave(existing, on_leave_reason)
    existing.synced_at = stamp
    existing.updated_at = stamp
    await session.flush()
    return UpsertOutcome.UPDATED


async def _fetch_leaves_or_none(factorial: FactorialClient, today: date) -> list[Leave] | None:
    try:
        return await factorial.fetch_leaves(today, today)
    except httpx.HTTPError as exc:
        logger.warning("Leave fetch failed, driver availability is left unchanged: %s", exc)
        return None


async def sync_drivers(
    session: AsyncSession,
    factorial: FactorialClient,
    settings: Settings,
    *,
    today: date | None = None,
    counts: SyncCounts | None = None,
    field_config: FieldResolutionConfig = DEFAULT_FIELD_CONFIG,
) -> SyncCounts:
    """Reconcile driver_cache with Factorial.

    Reference data is fetched concurrently, drivers are upserted one by one
    (each committed), then drivers no longer in scope are deleted.
    """
    counts = counts if counts is not None else SyncCounts()
    today = today or today_utc()

    (
        employees,
        teams,
        memberships,
        custom_fields,
        values,
        options,
        contract_versions,
        resource_values,
        leaves,
    ) = await asyncio.gather(
        factorial.fetch_employees(),
        factorial.fetch_teams(),
        factorial.fetch_memberships(),
        factorial.fetch_custom_fields(),
        factorial.fetch_custom_field_values(),
        factorial.fetch_custom_field_options(),
        factorial.fetch_contract_versions(),
        factorial.fetch_custom_resource_values(),
        _fetch_leaves_or_none(factorial, today),
    )

    scope = collect_driver_scope(employees, teams, memberships, settings.driver_team_keyword)
    drivers = [employee for employee in employees if employee.id in scope.employee_ids]
    logger.info("%d drivers to synchronise", len(drivers))

    resolution = build_field_map(custom_fields, field_config)
    option_labels = build_option_labels(options)
    owner_maps = build_owner_maps(contract_versions, resource_values)
    values_by_owner = index_values_by_owner(values, owner_maps)
    leaves_known = leaves is not None
    on_leave = leaves_today(leaves, today) if leaves is not None else {}
    if leaves_known:
        logger.info("%d employees on leave today", len(on_leave))

    for employee in drivers:
        custom = resolve_custom_fields(
            employee.id, resolution, values_by_owner, option_labels, field_config
        )
        payload = build_driver_payload(employee, scope.team_by_employee.get(employee.id), custom)
        outcome = await upsert_driver(
            session, payload, on_leave.get(employee.id), leaves_known=leaves_known
        )
        await session.commit()
        counts.record(outcome)

    cleanup = await delete_orphans(
        session,
        DriverCache.factorial_id,
        [employee.id for employee in drivers],
        batch_size=settings.cleanup_batch_size,
    )
    counts.deleted = cleanup.deleted

    logger.info(
        "Driver sync: %d synced, %d created, %d updated, %d deleted",
        counts.synced,
        counts.created,
        counts.updated,
        counts.deleted,
    )
    return counts
