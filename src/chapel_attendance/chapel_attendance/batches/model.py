from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..uploads.model import AbsenteeRecord, AttendeeRecord


@dataclass(frozen=True)
class AttendanceBatch:
    """Logical reconciliation unit for one (service, level)."""

    batch_id: str
    service_id: str
    level_id: str


@dataclass(frozen=True)
class AttendanceBatchVersion:
    """Immutable snapshot written by one confirmation.

    Exactly one version per batch is current; older ones are kept for audit
    and point at their replacement through ``superseded_by``.
    """

    version_id: str
    batch_id: str
    upload_id: str
    service_id: str
    level_id: str
    version: int
    is_current: bool
    attendees: tuple[AttendeeRecord, ...]
    absentees: tuple[AbsenteeRecord, ...]
    unmatched: tuple[dict, ...]
    created_by: str
    created_at: datetime
    superseded_by: Optional[str] = None


@dataclass(frozen=True)
class ConfirmResult:
    batch_id: str
    version_id: str
    version: int
    records_processed: int
    matched_count: int
    unmatched_count: int

    def to_dict(self) -> dict:
        return {
            "batchId": self.batch_id,
            "versionId": self.version_id,
            "version": self.version,
            "recordsProcessed": self.records_processed,
            "matchedCount": self.matched_count,
            "unmatchedCount": self.unmatched_count,
        }
