"""Application-level exception types.

Convention:
- ``SourceAuthError`` - an upstream refused our credentials even after one
  re-authentication. Propagates to the orchestrator like any transport error.
- ``SyncFailedError`` - raised by the orchestrator once a run has been recorded
  as ``failed``. Carries the terminal result so the API can report it.
- ``SyncInProgressError`` - a run for the same entity type is already running
  in this process. The API answers 409.
- ``NotFoundError`` - a cached record does not exist. The API answers 404.
- ``ValueError`` - business validation errors safe to forward (422).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from fleetsync.services.sync_service import SyncResult


class SourceAuthError(Exception):
    """Raised when an upstream source rejects authentication."""


class SyncInProgressError(Exception):
    """Raised when a sync for the same entity type is already running."""

    def __init__(self, entity_type: str) -> None:
        super().__init__(f"A {entity_type} sync is already in progress")
        self.entity_type = entity_type


class SyncFailedError(Exception):
    """Raised after a sync run has been recorded as failed."""

    def __init__(self, result: SyncResult) -> None:
        super().__init__(f"Sync failed: {result.error_message}")
        self.result = result


class NotFoundError(Exception):
    """Raised when a cached driver or vehicle does not exist."""

