"""Sync orchestration and the run ledger.

Every pipeline execution is recorded in ``sync_runs``: a row is created as
``in_progress`` before any upstream call and finished exactly once, as
``completed`` with its counts or as ``failed`` with the error message and the
counts reached so far. The orchestrator is the only place where pipeline
errors are turned into a terminal run state.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING

from sqlalchemy import func, select

from fleetsync.exceptions import SyncFailedError, SyncInProgressError
from fleetsync.models.driver import DriverCache
from fleetsync.models.sync import (
    ENTITY_DRIVERS,
    ENTITY_VEHICLES,
    RUN_COMPLETED,
    RUN_FAILED,
    RUN_IN_PROGRESS,
    SyncRun,
)
from fleetsync.models.vehicle import VehicleCache
from fleetsync.services import driver_sync, vehicle_sync
from fleetsync.services.datetime_service import now_stamp
from fleetsync.services.sync_counts import SyncCounts

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from fleetsync.config import Settings
    from fleetsync.sources.factorial import FactorialClient
    from fleetsync.sources.myrentcar import MyRentCarClient

    Pipeline = Callable[[AsyncSession, SyncCounts], Awaitable[object]]

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 10


@dataclass
class SyncResult:
    """Terminal outcome of one run."""

    run_id: int
    entity_type: str
    status: str
    records_synced: int
    records_created: int
    records_updated: int
    records_deleted: int
    started_at: str
    completed_at: str
    duration_ms: int
    error_message: str | None = None


@dataclass
class EntitySyncStatus:
    last_sync_at: str | None
    last_sync_status: str
    records_count: int


@dataclass
class CurrentSync:
    run_id: int
    entity_type: str
    status: str
    started_at: str
    records_synced: int


@dataclass
class SyncStatus:
    drivers: EntitySyncStatus | None = None
    vehicles: EntitySyncStatus | None = None
    current_sync: CurrentSync | None = None


class SyncOrchestrator:
    """Runs the driver and vehicle pipelines and keeps the run ledger.

    Only one run per entity type may execute at a time in this process; a
    second request while one is running raises SyncInProgressError.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        settings: Settings,
        factorial: FactorialClient,
        myrentcar: MyRentCarClient,
    ) -> None:
        self._session_factory = session_factory
        self._settings = settings
        self._factorial = factorial
        self._myrentcar = myrentcar
        self._locks = {
            ENTITY_DRIVERS: asyncio.Lock(),
            ENTITY_VEHICLES: asyncio.Lock(),
        }

    def is_running(self, entity_type: str) -> bool:
        return self._locks[entity_type].locked()

    async def sync_drivers(self, triggered_by: str | None = None) -> SyncResult:
        async def pipeline(session: AsyncSession, counts: SyncCounts) -> object:
            return await driver_sync.sync_drivers(
                session, self._factorial, self._settings, counts=counts
            )

        return await self._run(ENTITY_DRIVERS, triggered_by, pipeline)

    async def sync_vehicles(self, triggered_by: str | None = None) -> SyncResult:
        async def pipeline(session: AsyncSession, counts: SyncCounts) -> object:
            return await vehicle_sync.sync_vehicles(
                session, self._myrentcar, self._settings, counts=counts
            )

        return await self._run(ENTITY_VEHICLES, triggered_by, pipeline)

    async def sync_all(self, triggered_by: str | None = None) -> dict[str, SyncResult]:
        """Run both pipelines concurrently; one failing does not cancel the other."""
        outcomes = await asyncio.gather(
            self.sync_drivers(triggered_by),
            self.sync_vehicles(triggered_by),
            return_exceptions=True,
        )
        results: dict[str, SyncResult] = {}
        for entity_type, outcome in zip((ENTITY_DRIVERS, ENTITY_VEHICLES), outcomes, strict=True):
            if isinstance(outcome, SyncFailedError):
                results[entity_type] = outcome.result
            elif isinstance(outcome, BaseException):
                raise outcome
            else:
                results[entity_type] = outcome
        return results

    async def import_wincpl(
        self, xml_contents: list[str] | list[bytes]
    ) -> vehicle_sync.WincplImportResult:
        if not xml_contents:
            msg = "No Wincpl XML content provided"
            raise ValueError(msg)
        logger.info("Wincpl import of %d files started", len(xml_contents))
        async with self._session_factory() as session:
            return await vehicle_sync.import_wincpl(session, xml_contents)

    async def _run(
        self, entity_type: str, triggered_by: str | None, pipeline: Pipeline
    ) -> SyncResult:
        lock = self._locks[entity_type]
        if lock.locked():
            raise SyncInProgressError(entity_type)

        async with lock:
            started = time.monotonic()
            run = await self._start_run(entity_type, triggered_by)
            logger.info("Sync %s #%d started (trigger: %s)", entity_type, run.id, triggered_by)
            counts = SyncCounts()
            try:
                async with self._session_factory() as session:
                    await pipeline(session, counts)
            except Exception as exc:
                message = str(exc) or type(exc).__name__
                result = await self._finish_run(
                    run, RUN_FAILED, counts, started, error_message=message
                )
                logger.exception("Sync %s #%d failed", entity_type, run.id)
                raise SyncFailedError(result) from exc

            result = await self._finish_run(run, RUN_COMPLETED, counts, started)
            logger.info(
                "Sync %s #%d completed in %d ms", entity_type, run.id, result.duration_ms
            )
            return result

    async def _start_run(self, entity_type: str, triggered_by: str | None) -> SyncRun:
        async with self._session_factory() as session:
            run = SyncRun(
                entity_type=entity_type,
                status=RUN_IN_PROGRESS,
                started_at=now_stamp(),
                triggered_by=triggered_by,
            )
            session.add(run)
            await session.commit()
            return run

    async def _finish_run(
        self,
        run: SyncRun,
        status: str,
        counts: SyncCounts,
        started: float,
        *,
        error_message: str | None = None,
    ) -> SyncResult:
        completed_at = now_stamp()
        async with self._session_factory() as session:
            stored = await session.get(SyncRun, run.id)
            if stored is None:
                msg = f"Sync run {run.id} vanished from the ledger"
                raise RuntimeError(msg)
            stored.status = status
            stored.completed_at = completed_at
            stored.records_synced = counts.synced
            stored.records_created = counts.created
            stored.records_updated = counts.updated
            stored.records_deleted = counts.deleted
            stored.error_message = error_message
            await session.commit()

        return SyncResult(
            run_id=run.id,
            entity_type=run.entity_type,
            status=status,
            records_synced=counts.synced,
            records_created=counts.created,
            records_updated=counts.updated,
            records_deleted=counts.deleted,
            started_at=run.started_at,
            completed_at=completed_at,
            duration_ms=int((time.monotonic() - started) * 1000),
            error_message=error_message,
        )

    async def get_status(self) -> SyncStatus:
        """Last completed run per entity type, plus the newest run in progress."""
        status = SyncStatus()
        async with self._session_factory() as session:
            for entity_type, model in (
                (ENTITY_DRIVERS, DriverCache),
                (ENTITY_VEHICLES, VehicleCache),
            ):
                last = (
                    await session.execute(
                        select(SyncRun)
                        .where(
                            SyncRun.entity_type == entity_type,
                            SyncRun.status == RUN_COMPLETED,
                        )
                        .order_by(SyncRun.completed_at.desc(), SyncRun.id.desc())
                        .limit(1)
                    )
                ).scalar_one_or_none()
                if last is None:
                    continue
                count = (
                    await session.execute(select(func.count()).select_from(model))
                ).scalar_one()
                setattr(
                    status,
                    entity_type,
                    EntitySyncStatus(
                        last_sync_at=last.completed_at,
                        last_sync_status=last.status,
                        records_count=count,
                    ),
                )

            running = (
                await session.execute(
                    select(SyncRun)
                    .where(SyncRun.status == RUN_IN_PROGRESS)
                    .order_by(SyncRun.started_at.desc(), SyncRun.id.desc())
                    .limit(1)
                )
            ).scalar_one_or_none()
            if running is not None:
                status.current_sync = CurrentSync(
                    run_id=running.id,
                    entity_type=running.entity_type,
                    status=running.status,
                    started_at=running.started_at,
                    records_synced=running.records_synced,
                )
        return status

    async def get_history(self, limit: int = DEFAULT_HISTORY_LIMIT) -> list[SyncRun]:
        """Most recent runs across both entity types, newest first."""
        async with self._session_factory() as session:
            rows = await session.execute(
                select(SyncRun)
                .order_by(SyncRun.started_at.desc(), SyncRun.id.desc())
                .limit(limit)
            )
            return list(rows.scalars().all())
