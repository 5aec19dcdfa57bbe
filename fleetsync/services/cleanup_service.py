"""Orphan cleanup: delete cached rows whose upstream key disappeared."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from sqlalchemy.ext.asyncio import AsyncSession
    from sqlalchemy.orm import InstrumentedAttribute
    from sqlalchemy.sql.elements import ColumnElement

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 100


@dataclass
class CleanupResult:
    deleted: int = 0
    failed_batches: int = 0
    skipped: bool = False


async def delete_orphans(
    session: AsyncSession,
    column: InstrumentedAttribute[Any],
    keep_ids: Iterable[Any],
    *,
    batch_size: int = DEFAULT_BATCH_SIZE,
    where: ColumnElement[bool] | None = None,
) -> CleanupResult:
    """Delete rows of ``column``'s table whose ``column`` value is not kept.

    An empty ``keep_ids`` is a no-op: an upstream outage returning zero
    records must never wipe the cache. Rows are deleted by primary key in
    batches, each committed on its own; a failing batch is rolled back,
    logged and counted while later batches still run. ``where`` restricts
    the candidate rows.
    """
    model = column.class_
    table_name = model.__tablename__
    keep = set(keep_ids)
    if not keep:
        logger.warning("Cleanup of %s skipped: empty keep-set", table_name)
        return CleanupResult(skipped=True)

    stmt = select(model.id, column).order_by(model.id)
    if where is not None:
        stmt = stmt.where(where)
    rows = (await session.execute(stmt)).all()
    doomed = [row_id for row_id, key in rows if key not in keep]
    if not doomed:
        return CleanupResult()

    result = CleanupResult()
    for start in range(0, len(doomed), batch_size):
        batch = doomed[start : start + batch_size]
        try:
            await session.execute(delete(model).where(model.id.in_(batch)))
            await session.commit()
        except SQLAlchemyError:
            await session.rollback()
            result.failed_batches += 1
            logger.exception(
                "Cleanup of %s: batch of %d ids failed", table_name, len(batch)
            )
            continue
        result.deleted += len(batch)

    logger.info(
        "Cleanup of %s: %d deleted, %d failed batches",
        table_name,
        result.deleted,
        result.failed_batches,
    )
    return result
