"""Integration tests for the sync endpoints."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from tests.conftest import (
    FactorialStub,
    MyRentCarStub,
    create_test_client,
    employee,
    myrentcar_vehicle,
    route,
)

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from httpx import AsyncClient

    from fleetsync.config import Settings


@pytest.fixture
def upstreams(
    factorial_stub: FactorialStub, myrentcar_stub: MyRentCarStub
) -> tuple[FactorialStub, MyRentCarStub]:
    factorial_stub.resources = {
        "employees/employees": [employee(1, "Jean", "Martin"), employee(2, "Paul", "Durand")],
        "teams/teams": [{"id": 10, "name": "CHAUFFEURS SPL", "employee_ids": [1, 2]}],
    }
    myrentcar_stub.vehicles = [myrentcar_vehicle(1, "TR001", "AA-001-AA")]
    return factorial_stub, myrentcar_stub


@pytest.fixture
async def client(
    test_settings: Settings, upstreams: tuple[FactorialStub, MyRentCarStub]
) -> AsyncGenerator[AsyncClient]:
    """Create test HTTP client."""
    async with create_test_client(test_settings, route(*upstreams)) as ac:
        yield ac


class TestHealth:
    async def test_health(self, client: AsyncClient) -> None:
        resp = await client.get("/api/health")
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "ok"
        assert body["database"] == "ok"
        assert body["running_syncs"] == []


class TestTriggerSync:
    async def test_sync_drivers(self, client: AsyncClient) -> None:
        resp = await client.post("/api/sync/drivers", json={"triggered_by": "pytest"})
        assert resp.status_code == 200
        body = resp.json()
        assert body["entity_type"] == "drivers"
        assert body["status"] == "completed"
        assert body["records_created"] == 2

        history = (await client.get("/api/sync/history")).json()
        assert history[0]["triggered_by"] == "pytest"

    async def test_sync_without_body_defaults_trigger(self, client: AsyncClient) -> None:
        resp = await client.post("/api/sync/vehicles")
        assert resp.status_code == 200
        assert resp.json()["records_created"] == 1
        history = (await client.get("/api/sync/history")).json()
        assert history[0]["triggered_by"] == "api"

    async def test_failed_sync_returns_502_with_result(
        self, client: AsyncClient, upstreams: tuple[FactorialStub, MyRentCarStub]
    ) -> None:
        upstreams[0].status_overrides["employees/employees"] = 500
        resp = await client.post("/api/sync/drivers")
        assert resp.status_code == 502
        body = resp.json()
        assert body["result"]["status"] == "failed"
        assert body["result"]["error_message"]

        history = (await client.get("/api/sync/history")).json()
        assert history[0]["status"] == "failed"

    async def test_sync_all_reports_each_entity(
        self, client: AsyncClient, upstreams: tuple[FactorialStub, MyRentCarStub]
    ) -> None:
        upstreams[1].always_unauthorized = True
        resp = await client.post("/api/sync/all")
        assert resp.status_code == 200
        body = resp.json()
        assert body["drivers"]["status"] == "completed"
        assert body["vehicles"]["status"] == "failed"


class TestStatusAndHistory:
    async def test_status(self, client: AsyncClient) -> None:
        resp = await client.get("/api/sync/status")
        assert resp.status_code == 200
        assert resp.json() == {"drivers": None, "vehicles": None, "current_sync": None}

        await client.post("/api/sync/drivers")
        body = (await client.get("/api/sync/status")).json()
        assert body["drivers"]["last_sync_status"] == "completed"
        assert body["drivers"]["records_count"] == 2
        assert body["vehicles"] is None

    async def test_history_limit_validation(self, client: AsyncClient) -> None:
        for _ in range(3):
            await client.post("/api/sync/vehicles")
        resp = await client.get("/api/sync/history", params={"limit": 2})
        assert resp.status_code == 200
        assert len(resp.json()) == 2

        resp = await client.get("/api/sync/history", params={"limit": 0})
        assert resp.status_code == 422
        assert resp.json()["detail"][0]["field"] == "limit"


class TestApiToken:
    @pytest.fixture
    async def secured_client(
        self, test_settings: Settings, upstreams: tuple[FactorialStub, MyRentCarStub]
    ) -> AsyncGenerator[AsyncClient]:
        test_settings.api_token = "s3cret"
        async with create_test_client(test_settings, route(*upstreams)) as ac:
            yield ac

    async def test_token_required(self, secured_client: AsyncClient) -> None:
        resp = await secured_client.get("/api/sync/status")
        assert resp.status_code == 401

        resp = await secured_client.get(
            "/api/sync/status", headers={"Authorization": "Bearer wrong"}
        )
        assert resp.status_code == 401

        resp = await secured_client.get(
            "/api/sync/status", headers={"Authorization": "Bearer s3cret"}
        )
        assert resp.status_code == 200

    async def test_health_is_public(self, secured_client: AsyncClient) -> None:
        resp = await secured_client.get("/api/health")
        assert resp.status_code == 200
