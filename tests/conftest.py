"""Shared test fixtures for FleetSync."""

from __future__ import annotations

import json
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

import httpx
import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from fleetsync.config import Settings
from fleetsync.database import create_tables
from fleetsync.main import build_orchestrator, create_app

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator
    from pathlib import Path

FACTORIAL_BASE = "https://factorial.test/resources"
MYRENTCAR_BASE = "https://myrentcar.test/api"
MYRENTCAR_CREDENTIALS = {"Login": "fleet", "Password": "secret"}


def page(data: list[dict[str, Any]], *, has_next_page: bool = False) -> httpx.Response:
    """A Factorial list envelope."""
    return httpx.Response(200, json={"data": data, "meta": {"has_next_page": has_next_page}})


class FactorialStub:
    """In-memory Factorial: resource path -> records, served one page at a time."""

    def __init__(self, resources: dict[str, list[dict[str, Any]]] | None = None) -> None:
        self.resources: dict[str, list[dict[str, Any]]] = resources or {}
        self.status_overrides: dict[str, int] = {}
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path.removeprefix("/resources/")
        if path in self.status_overrides:
            return httpx.Response(self.status_overrides[path], json={"error": "unavailable"})
        records = self.resources.get(path, [])
        limit = int(request.url.params.get("limit", "100"))
        number = int(request.url.params.get("page", "1"))
        chunk = records[(number - 1) * limit : number * limit]
        return page(chunk, has_next_page=number * limit < len(records))


class MyRentCarStub:
    """In-memory MyRentACar with a cookie session that can be expired."""

    def __init__(self, vehicles: list[dict[str, Any]] | None = None) -> None:
        self.vehicles: list[dict[str, Any]] = vehicles or []
        self.logins = 0
        self.valid_cookie: str | None = None
        self.refuse_login = False
        self.always_unauthorized = False
        self.requests: list[httpx.Request] = []

    def expire_session(self) -> None:
        self.valid_cookie = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path.endswith("/Login/Login"):
            if self.refuse_login:
                return httpx.Response(401)
            self.logins += 1
            self.valid_cookie = f"ASP.NET_SessionId=session{self.logins}"
            return httpx.Response(
                200,
                json={"ok": True},
                headers={"Set-Cookie": f"{self.valid_cookie}; path=/; HttpOnly"},
            )
        if self.always_unauthorized or request.headers.get("Cookie") != self.valid_cookie:
            return httpx.Response(401)
        if path.endswith("/Vehicules/GetVehiculesWs"):
            return httpx.Response(
                200,
                json=[
                    {"ID": v["ID"], "Numero": v.get("Numero"), "Immatriculation": v.get("Immat1")}
                    for v in self.vehicles
                ],
            )
        if path.endswith("/Vehicules/GetVehiculesDetail"):
            wanted = {int(value) for value in request.url.params.get_list("ids")}
            return httpx.Response(200, json=[v for v in self.vehicles if v["ID"] in wanted])
        return httpx.Response(404)


def route(
    factorial: FactorialStub | None = None, myrentcar: MyRentCarStub | None = None
) -> httpx.MockTransport:
    """Build a MockTransport dispatching on host to the given stubs."""

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "factorial.test" and factorial is not None:
            return factorial(request)
        if request.url.host == "myrentcar.test" and myrentcar is not None:
            return myrentcar(request)
        return httpx.Response(404)

    return httpx.MockTransport(handler)


def employee(employee_id: int, first: str, last: str, **extra: Any) -> dict[str, Any]:
    return {
        "id": employee_id,
        "first_name": first,
        "last_name": last,
        "email": f"{first.lower()}.{last.lower()}@example.com",
        **extra,
    }


def myrentcar_vehicle(vehicle_id: int, numero: str, immat: str, **extra: Any) -> dict[str, Any]:
    return {
        "ID": vehicle_id,
        "Numero": numero,
        "Immat1": immat,
        "MarqueType": "RENAULT T480",
        "Carburant": {"ID": 1, "Intitule": "Gasoil"},
        "TypeVehicule": {"ID": 3, "Code": "TRR", "Intitule": "Tracteur"},
        "Categorie": {"ID": 7, "Code": "PL", "Intitule": "Poids lourd"},
        "DernierKm": 125000,
        **extra,
    }


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    """Create test settings with a temporary database and stub upstreams."""
    db_path = tmp_path / "test.db"
    return Settings(
        debug=True,
        database_url=f"sqlite+aiosqlite:///{db_path}",
        factorial_api_key="test-key",
        factorial_base_url=FACTORIAL_BASE,
        myrentcar_base_url=MYRENTCAR_BASE,
        myrentcar_login_credentials=json.dumps(MYRENTCAR_CREDENTIALS),
        page_size=2,
        vehicle_detail_batch_size=2,
        cleanup_batch_size=2,
    )


@pytest.fixture
async def db_engine(test_settings: Settings) -> AsyncGenerator[AsyncEngine]:
    """Create a test database engine with all tables."""
    engine = create_async_engine(
        test_settings.database_url,
        echo=False,
    )
    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession]:
    """Create a test database session."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def factorial_stub() -> FactorialStub:
    return FactorialStub()


@pytest.fixture
def myrentcar_stub() -> MyRentCarStub:
    return MyRentCarStub()


@asynccontextmanager
async def create_test_client(
    settings: Settings,
    transport: httpx.AsyncBaseTransport | None = None,
) -> AsyncGenerator[AsyncClient]:
    """Create an HTTP test client with a fully initialized app.

    Manually performs the work of the application lifespan (DB, adapters,
    orchestrator) because ASGITransport does not trigger it.
    """
    from fleetsync.database import create_engine as create_db_engine

    app = create_app(settings)

    engine, session_factory = create_db_engine(settings)
    app.state.engine = engine
    app.state.session_factory = session_factory
    app.state.settings = settings
    await create_tables(engine)
    app.state.orchestrator = build_orchestrator(settings, session_factory, transport=transport)

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    await engine.dispose()
