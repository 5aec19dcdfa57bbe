"""Counters shared by the reconciliation pipelines."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class UpsertOutcome(StrEnum):
    CREATED = "created"
    UPDATED = "updated"


@dataclass
class SyncCounts:
    """Running totals of one pipeline execution.

    Pipelines mutate the instance they are given so that a caller still sees
    the counts reached when a run aborts half-way.
    """

    synced: int = 0
    created: int = 0
    updated: int = 0
    deleted: int = 0

    def record(self, outcome: UpsertOutcome) -> None:
        self.synced += 1
        if outcome is UpsertOutcome.CREATED:
            self.created += 1
        else:
            self.updated += 1
