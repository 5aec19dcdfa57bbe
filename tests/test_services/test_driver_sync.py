"""Tests for the Factorial driver reconciliation."""

from __future__ import annotations

from datetime import date
from typing import TYPE_CHECKING

import httpx
import pytest
from sqlalchemy import select

from fleetsync.models.driver import DRIVER_UPSTREAM_FIELDS, DriverCache
from fleetsync.services.driver_sync import (
    build_address,
    build_driver_payload,
    collect_driver_scope,
    leaves_today,
    sync_drivers,
    upsert_driver,
)
from fleetsync.services.sync_counts import SyncCounts, UpsertOutcome
from fleetsync.sources.factorial import Employee, FactorialClient, Leave, Membership, Team
from tests.conftest import FACTORIAL_BASE, FactorialStub, employee, route

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from fleetsync.config import Settings

TODAY = date(2026, 3, 10)


def _payload(factorial_id: int, **extra: object) -> dict[str, object]:
    return {"factorial_id": factorial_id, "first_name": "Jean", "last_name": "Martin", **extra}


async def _driver(session: AsyncSession, factorial_id: int) -> DriverCache:
    return (
        await session.execute(select(DriverCache).where(DriverCache.factorial_id == factorial_id))
    ).scalar_one()


async def _upstream_snapshot(session: AsyncSession) -> dict[int, dict[str, object]]:
    drivers = (await session.execute(select(DriverCache))).scalars().all()
    return {
        driver.factorial_id: {name: getattr(driver, name) for name in DRIVER_UPSTREAM_FIELDS}
        for driver in drivers
    }


class TestCollectDriverScope:
    def test_keyword_teams_only(self) -> None:
        employees = [Employee(id=1), Employee(id=2), Employee(id=3)]
        teams = [
            Team(id=10, name="Chauffeurs SPL", employee_ids=[1, 2]),
            Team(id=11, name="ADMIN", employee_ids=[3]),
        ]
        scope = collect_driver_scope(employees, teams, [], "CHAUFFEUR")
        assert scope.employee_ids == {1, 2}
        assert not scope.fallback
        assert scope.team_by_employee[1].team_name == "Chauffeurs SPL"

    def test_memberships_take_precedence(self) -> None:
        teams = [Team(id=10, name="CHAUFFEURS", employee_ids=[1])]
        memberships = [Membership(id=1, team_id=10, employee_id=2)]
        scope = collect_driver_scope([], teams, memberships, "CHAUFFEUR")
        assert scope.employee_ids == {2}

    def test_last_driver_team_wins(self) -> None:
        teams = [
            Team(id=10, name="CHAUFFEURS PL", employee_ids=[1]),
            Team(id=12, name="CHAUFFEURS SPL", employee_ids=[1]),
        ]
        scope = collect_driver_scope([Employee(id=1)], teams, [], "CHAUFFEUR")
        assert scope.team_by_employee[1].team_id == 12

    def test_fallback_takes_everyone(self) -> None:
        employees = [Employee(id=1), Employee(id=2)]
        teams = [Team(id=11, name="ADMIN", employee_ids=[2])]
        scope = collect_driver_scope(employees, teams, [], "CHAUFFEUR")
        assert scope.fallback
        assert scope.employee_ids == {1, 2}
        assert scope.team_by_employee[2].team_name == "ADMIN"
        assert 1 not in scope.team_by_employee


class TestLeavesToday:
    def test_covering_leave_counts(self) -> None:
        leaves = [
            Leave(
                id=1,
                employee_id=5,
                start_on="2026-03-09",
                finish_on="2026-03-12",
                leave_type_name="Congé payé",
            )
        ]
        assert leaves_today(leaves, TODAY) == {5: "Congé payé"}

    def test_unapproved_and_out_of_range_ignored(self) -> None:
        leaves = [
            Leave(id=1, employee_id=5, start_on="2026-03-10", approved=False),
            Leave(id=2, employee_id=6, start_on="2026-03-11", finish_on="2026-03-12"),
            Leave(id=3, employee_id=7, start_on="2026-03-01", finish_on="2026-03-09"),
        ]
        assert leaves_today(leaves, TODAY) == {}

    def test_default_reason_and_single_day(self) -> None:
        leaves = [Leave(id=1, employee_id=5, start_on="2026-03-10")]
        assert leaves_today(leaves, TODAY) == {5: "Absence"}


class TestPayload:
    def test_build_address(self) -> None:
        full = Employee(
            id=1, address_line_1="1 rue de Paris", postal_code="69001", city="Lyon", country="FR"
        )
        assert build_address(full) == "1 rue de Paris, 69001 Lyon, FR"
        assert build_address(Employee(id=1, city="Lyon")) == "Lyon"
        assert build_address(Employee(id=1)) is None

    def test_available_weekends_falls_back_to_shift(self) -> None:
        payload = build_driver_payload(
            Employee(id=1, first_name="A"), None, {"shift": "Nuit", "forfait_weekend": None}
        )
        assert payload["available_weekends"] == "Nuit"
        assert payload["team_name"] is None


class TestUpsertDriver:
    async def test_new_driver_on_leave_is_unavailable(self, db_session: AsyncSession) -> None:
        outcome = await upsert_driver(db_session, _payload(1), "Maladie")
        await db_session.commit()
        assert outcome is UpsertOutcome.CREATED
        driver = await _driver(db_session, 1)
        assert driver.status == "indisponible"
        assert driver.indisponibilite_raison == "Maladie"
        assert driver.matricule == ""
        assert driver.permits == []

    async def test_occupied_survives_leave(self, db_session: AsyncSession) -> None:
        await upsert_driver(db_session, _payload(1), None)
        driver = await _driver(db_session, 1)
        driver.status = "occupe"
        await db_session.commit()

        outcome = await upsert_driver(db_session, _payload(1), "Congé")
        assert outcome is UpsertOutcome.UPDATED
        driver = await _driver(db_session, 1)
        assert driver.status == "occupe"
        assert driver.indisponibilite_raison is None

    async def test_unavailable_reset_after_leave(self, db_session: AsyncSession) -> None:
        await upsert_driver(db_session, _payload(1), "Congé")
        await db_session.commit()
        await upsert_driver(db_session, _payload(1), None)
        driver = await _driver(db_session, 1)
        assert driver.status == "disponible"
        assert driver.indisponibilite_raison is None

    async def test_unknown_leaves_leave_availability_alone(
        self, db_session: AsyncSession
    ) -> None:
        await upsert_driver(db_session, _payload(1), "Congé")
        await db_session.commit()

        outcome = await upsert_driver(
            db_session, _payload(1, first_name="Jeanne"), None, leaves_known=False
        )
        assert outcome is UpsertOutcome.UPDATED
        driver = await _driver(db_session, 1)
        assert driver.first_name == "Jeanne"
        assert driver.status == "indisponible"
        assert driver.indisponibilite_raison == "Congé"

    async def test_manual_fields_preserved(self, db_session: AsyncSession) -> None:
        await upsert_driver(db_session, _payload(1), None)
        driver = await _driver(db_session, 1)
        driver.matricule = "M-042"
        driver.agence = "Lyon"
        await db_session.commit()

        await upsert_driver(db_session, _payload(1, first_name="Jeanne"), None)
        driver = await _driver(db_session, 1)
        assert driver.first_name == "Jeanne"
        assert driver.matricule == "M-042"
        assert driver.agence == "Lyon"


@pytest.fixture
def factorial_data(factorial_stub: FactorialStub) -> FactorialStub:
    factorial_stub.resources = {
        "employees/employees": [
            employee(1, "Jean", "Martin", city="Lyon"),
            employee(2, "Paul", "Durand"),
            employee(3, "Anne", "Petit"),
        ],
        "teams/teams": [
            {"id": 10, "name": "CHAUFFEURS SPL", "employee_ids": [1, 2]},
            {"id": 11, "name": "ADMIN", "employee_ids": [3]},
        ],
        "custom_fields/fields": [
            {"id": 100, "slug": "shift", "field_type": "single_choice"},
            {"id": 101, "label_text": "Visite médicale", "field_type": "date"},
        ],
        "custom_fields/values": [
            {"id": 1, "field_id": 100, "employee_id": 1, "option_id": 500},
            {"id": 2, "field_id": 101, "employee_id": 1, "date_value": "2026-09-01"},
        ],
        "custom_fields/options": [{"id": 500, "label": "Jour"}],
        "timeoff/leaves": [
            {
                "id": 1,
                "employee_id": 2,
                "start_on": "2026-03-09",
                "finish_on": "2026-03-11",
                "leave_type_name": "Congé",
            }
        ],
    }
    factorial_stub.status_overrides["teams/memberships"] = 403
    return factorial_stub


def _client(stub: FactorialStub) -> FactorialClient:
    return FactorialClient("test-key", FACTORIAL_BASE, page_size=2, transport=route(stub))


class TestSyncDrivers:
    async def test_end_to_end(
        self, db_session: AsyncSession, factorial_data: FactorialStub, test_settings: Settings
    ) -> None:
        counts = await sync_drivers(
            db_session, _client(factorial_data), test_settings, today=TODAY
        )
        assert counts == SyncCounts(synced=2, created=2, updated=0, deleted=0)

        drivers = (await db_session.execute(select(DriverCache))).scalars().all()
        assert {d.factorial_id for d in drivers} == {1, 2}

        jean = await _driver(db_session, 1)
        assert jean.team_name == "CHAUFFEURS SPL"
        assert jean.shift == "Jour"
        assert jean.visite_medicale == "2026-09-01"
        assert jean.status == "disponible"

        paul = await _driver(db_session, 2)
        assert paul.status == "indisponible"
        assert paul.indisponibilite_raison == "Congé"

    async def test_second_run_updates_and_deletes_orphans(
        self, db_session: AsyncSession, factorial_data: FactorialStub, test_settings: Settings
    ) -> None:
        client = _client(factorial_data)
        await sync_drivers(db_session, client, test_settings, today=TODAY)
        first = await _upstream_snapshot(db_session)

        counts = await sync_drivers(db_session, client, test_settings, today=TODAY)
        assert counts == SyncCounts(synced=2, created=0, updated=2, deleted=0)
        assert await _upstream_snapshot(db_session) == first

        factorial_data.resources["teams/teams"][0]["employee_ids"] = [1]
        counts = await sync_drivers(db_session, client, test_settings, today=TODAY)
        assert counts.deleted == 1
        remaining = (await db_session.execute(select(DriverCache.factorial_id))).scalars().all()
        assert remaining == [1]

    async def test_leave_fetch_failure_keeps_availability(
        self, db_session: AsyncSession, factorial_data: FactorialStub, test_settings: Settings
    ) -> None:
        client = _client(factorial_data)
        await sync_drivers(db_session, client, test_settings, today=TODAY)
        assert (await _driver(db_session, 2)).status == "indisponible"

        factorial_data.status_overrides["timeoff/leaves"] = 503
        factorial_data.resources["employees/employees"][1]["first_name"] = "Paulo"
        counts = await sync_drivers(db_session, client, test_settings, today=TODAY)
        assert counts.updated == 2

        paul = await _driver(db_session, 2)
        await db_session.refresh(paul)
        assert paul.first_name == "Paulo"
        assert paul.status == "indisponible"
        assert paul.indisponibilite_raison == "Congé"
        jean = await _driver(db_session, 1)
        assert jean.status == "disponible"

    async def test_leave_fetch_failure_new_driver_is_available(
        self, db_session: AsyncSession, factorial_data: FactorialStub, test_settings: Settings
    ) -> None:
        factorial_data.status_overrides["timeoff/leaves"] = 500
        await sync_drivers(db_session, _client(factorial_data), test_settings, today=TODAY)
        paul = await _driver(db_session, 2)
        assert paul.status == "disponible"

    async def test_required_resource_failure_propagates(
        self, db_session: AsyncSession, factorial_data: FactorialStub, test_settings: Settings
    ) -> None:
        factorial_data.status_overrides["employees/employees"] = 500
        with pytest.raises(httpx.HTTPStatusError):
            await sync_drivers(db_session, _client(factorial_data), test_settings, today=TODAY)
        assert (await db_session.execute(select(DriverCache))).scalars().all() == []

    async def test_empty_upstream_keeps_cache(
        self, db_session: AsyncSession, factorial_data: FactorialStub, test_settings: Settings
    ) -> None:
        client = _client(factorial_data)
        await sync_drivers(db_session, client, test_settings, today=TODAY)

        factorial_data.resources["employees/employees"] = []
        factorial_data.resources["teams/teams"] = []
        counts = await sync_drivers(db_session, client, test_settings, today=TODAY)
        assert counts.deleted == 0
        assert len((await db_session.execute(select(DriverCache))).scalars().all()) == 2
