"""Sync run schemas."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class SyncRequest(BaseModel):
    """Optional body of a sync trigger."""

    triggered_by: str | None = Field(default=None, max_length=200)


class SyncResultResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

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


class SyncAllResponse(BaseModel):
    drivers: SyncResultResponse
    vehicles: SyncResultResponse


class EntitySyncStatusResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    last_sync_at: str | None = None
    last_sync_status: str
    records_count: int


class CurrentSyncResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    run_id: int
    entity_type: str
    status: str
    started_at: str
    records_synced: int


class SyncStatusResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    drivers: EntitySyncStatusResponse | None = None
    vehicles: EntitySyncStatusResponse | None = None
    current_sync: CurrentSyncResponse | None = None


class SyncRunResponse(BaseModel):
    """One ledger row."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    entity_type: str
    status: str
    started_at: str
    completed_at: str | None = None
    records_synced: int
    records_created: int
    records_updated: int
    records_deleted: int
    error_message: str | None = None
    triggered_by: str | None = None
