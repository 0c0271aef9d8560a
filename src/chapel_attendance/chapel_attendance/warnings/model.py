from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Optional

from ..core.enums import WarningStatus


@dataclass(frozen=True)
class WarningWeeklySnapshot:
    """One row per (student, week_start); the unique key is enforced by storage."""

    snapshot_id: str
    student_id: str
    week_start: date
    absences: int
    status: WarningStatus
    first_created_at: datetime
    last_updated_at: datetime
    sent_at: Optional[datetime] = None
    sent_by: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "snapshot_id": self.snapshot_id,
            "student_id": self.student_id,
            "week_start": self.week_start.isoformat(),
            "absences": self.absences,
            "warning_status": self.status.value,
            "first_created_at": self.first_created_at.isoformat(),
            "last_updated_at": self.last_updated_at.isoformat(),
            "sent_at": self.sent_at.isoformat() if self.sent_at else None,
            "sent_by": self.sent_by,
        }


class UpsertOutcome(str, Enum):
    GENERATED = "generated"
    UPDATED = "updated"
    UNCHANGED = "unchanged"


@dataclass(frozen=True)
class GenerationResult:
    week_start: date
    threshold: int
    generated: int = 0
    updated: int = 0
    total_services: int = 0
    skipped_services: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "weekStart": self.week_start.isoformat(),
            "threshold": self.threshold,
            "generated": self.generated,
            "updated": self.updated,
            "totalServices": self.total_services,
            "skippedServices": list(self.skipped_services),
        }
