"""FastAPI application entry point."""

from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager
from dataclasses import asdict
from typing import TYPE_CHECKING

import httpx
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError

from fleetsync.api.drivers import router as drivers_router
from fleetsync.api.health import router as health_router
from fleetsync.api.sync import router as sync_router
from fleetsync.api.vehicles import router as vehicles_router
from fleetsync.config import Settings
from fleetsync.database import create_engine, create_tables
from fleetsync.exceptions import (
    NotFoundError,
    SourceAuthError,
    SyncFailedError,
    SyncInProgressError,
)
from fleetsync.services.sync_service import SyncOrchestrator
from fleetsync.sources.factorial import FactorialClient
from fleetsync.sources.myrentcar import MyRentCarClient

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

logger = logging.getLogger(__name__)


def _configure_logging(debug: bool) -> None:
    """Configure application logging."""
    level = logging.DEBUG if debug else logging.INFO
    fmt = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"
    logging.basicConfig(
        level=level,
        format=fmt,
        stream=sys.stdout,
        force=True,
    )
    # Quiet noisy libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO if debug else logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.INFO if debug else logging.WARNING)


def build_orchestrator(
    settings: Settings,
    session_factory: async_sessionmaker[AsyncSession],
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> SyncOrchestrator:
    """Wire the upstream adapters and the orchestrator from settings."""
    factorial = FactorialClient(
        settings.factorial_api_key,
        settings.factorial_base_url,
        page_size=settings.page_size,
        timeout=settings.http_timeout_seconds,
        transport=transport,
    )
    myrentcar = MyRentCarClient(
        settings.myrentcar_credentials(),
        settings.myrentcar_base_url,
        batch_size=settings.vehicle_detail_batch_size,
        timeout=settings.http_timeout_seconds,
        transport=transport,
    )
    return SyncOrchestrator(session_factory, settings, factorial, myrentcar)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Application lifespan: startup and shutdown."""
    settings: Settings = app.state.settings
    _configure_logging(settings.debug)
    logger.info("Starting FleetSync (debug=%s)", settings.debug)

    try:
        engine, session_factory = create_engine(settings)
        app.state.engine = engine
        app.state.session_factory = session_factory
    except Exception as exc:
        logger.critical(
            "Failed to initialize database: %s. Check database path and permissions.", exc
        )
        raise

    try:
        await create_tables(engine)
    except Exception as exc:
        logger.critical("Failed to create database schema: %s.", exc)
        raise

    app.state.orchestrator = build_orchestrator(settings, session_factory)

    yield

    try:
        await engine.dispose()
    except Exception as exc:
        logger.error("Error during engine disposal: %s", exc, exc_info=True)

    logger.info("FleetSync stopped")


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    if settings is None:
        settings = Settings()

    docs_enabled = settings.debug or settings.expose_docs

    app = FastAPI(
        title="FleetSync",
        description="Driver and vehicle cache synchronised from Factorial, MyRentACar and Wincpl",
        version="0.1.0",
        lifespan=lifespan,
        docs_url="/docs" if docs_enabled else None,
        redoc_url="/redoc" if docs_enabled else None,
        openapi_url="/openapi.json" if docs_enabled else None,
    )
    app.state.settings = settings

    app.include_router(health_router)
    app.include_router(sync_router)
    app.include_router(drivers_router)
    app.include_router(vehicles_router)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        errors = []
        for err in exc.errors():
            loc = err.get("loc", ())
            field = str(loc[-1]) if loc else "unknown"
            errors.append({"field": field, "message": err.get("msg", "Invalid value")})
        logger.warning(
            "RequestValidationError in %s %s: %s",
            request.method,
            request.url.path,
            errors,
        )
        return JSONResponse(status_code=422, content={"detail": errors})

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": str(exc) or "Not found"})

    @app.exception_handler(SyncInProgressError)
    async def sync_in_progress_handler(
        request: Request, exc: SyncInProgressError
    ) -> JSONResponse:
        logger.warning("Rejected %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=409, content={"detail": str(exc)})

    @app.exception_handler(SyncFailedError)
    async def sync_failed_handler(request: Request, exc: SyncFailedError) -> JSONResponse:
        return JSONResponse(
            status_code=502,
            content={"detail": str(exc), "result": asdict(exc.result)},
        )

    @app.exception_handler(SourceAuthError)
    async def source_auth_handler(request: Request, exc: SourceAuthError) -> JSONResponse:
        logger.error("SourceAuthError in %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(
            status_code=502,
            content={"detail": "Upstream authentication failed"},
        )

    @app.exception_handler(httpx.HTTPError)
    async def upstream_error_handler(request: Request, exc: httpx.HTTPError) -> JSONResponse:
        logger.error(
            "Upstream HTTP error in %s %s: %s", request.method, request.url.path, exc, exc_info=exc
        )
        return JSONResponse(
            status_code=502,
            content={"detail": "Upstream service unavailable"},
        )

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
        logger.error("ValueError in %s %s: %s", request.method, request.url.path, exc, exc_info=exc)
        message = str(exc) or "Invalid value"
        return JSONResponse(
            status_code=422,
            content={"detail": message},
        )

    @app.exception_handler(OperationalError)
    async def operational_error_handler(request: Request, exc: OperationalError) -> JSONResponse:
        logger.error(
            "OperationalError in %s %s: %s", request.method, request.url.path, exc, exc_info=exc
        )
        return JSONResponse(
            status_code=503,
            content={"detail": "Database temporarily unavailable"},
        )

    return app


app = create_app()


def cli_entry() -> None:
    """CLI entry point for running the server."""
    import uvicorn

    settings: Settings = app.state.settings
    uvicorn.run(
        "fleetsync.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
