from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from ..core.enums import UnmatchedReason, UploadState


@dataclass(frozen=True)
class ScanEntry:
    """One row of a scan manifest, raw columns preserved verbatim."""

    position: int
    unique_id: str
    level: Optional[str]
    raw_data: dict[str, Any]


@dataclass(frozen=True)
class AttendeeRecord:
    student_id: str
    matric_number: str
    student_name: str
    level_id: str
    unique_id: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "student_id": self.student_id,
            "matric_number": self.matric_number,
            "student_name": self.student_name,
            "level_id": self.level_id,
            "unique_id": self.unique_id,
        }


@dataclass(frozen=True)
class AbsenteeRecord:
    student_id: str
    matric_number: str
    student_name: str
    level_id: str
    exempted: bool = False

    def to_dict(self) -> dict:
        return {
            "student_id": self.student_id,
            "matric_number": self.matric_number,
            "student_name": self.student_name,
            "level_id": self.level_id,
            "exempted": self.exempted,
        }


@dataclass(frozen=True)
class UnmatchedRow:
    position: int
    unique_id: str
    reason: UnmatchedReason
    raw_data: dict[str, Any]
    detail: str = ""

    def to_dict(self) -> dict:
        return {
            "position": self.position,
            "unique_id": self.unique_id,
            "reason": self.reason.value,
            "detail": self.detail,
            "raw_data": dict(self.raw_data),
        }


@dataclass(frozen=True)
class Reconciliation:
    """Outcome of matching a manifest against the directory for one level."""

    attendees: tuple[AttendeeRecord, ...] = ()
    absentees: tuple[AbsenteeRecord, ...] = ()
    unmatched: tuple[UnmatchedRow, ...] = ()

    @property
    def matched_count(self) -> int:
        return len(self.attendees)

    @property
    def unmatched_count(self) -> int:
        return len(self.unmatched)

    @property
    def absentee_count(self) -> int:
        return len(self.absentees)

    @property
    def records_processed(self) -> int:
        return self.matched_count + self.unmatched_count + self.absentee_count


@dataclass(frozen=True)
class AttendanceUpload:
    upload_id: str
    service_id: str
    level_id: str
    file_hash: str
    storage_path: str
    uploaded_by: str
    uploaded_at: datetime
    state: UploadState = UploadState.STAGED
    decided_by: Optional[str] = None
    decided_at: Optional[datetime] = None


@dataclass(frozen=True)
class ProcessResult:
    upload_id: str
    matched_count: int
    unmatched_count: int
    absentee_count: int
    error_rows: list[dict] = field(default_factory=list)
    duplicate: bool = False

    def to_dict(self) -> dict:
        return {
            "uploadId": self.upload_id,
            "matchedCount": self.matched_count,
            "unmatchedCount": self.unmatched_count,
            "absenteeCount": self.absentee_count,
            "errorRows": self.error_rows,
            "duplicate": self.duplicate,
        }
