from __future__ import annotations

import logging
from typing import Callable, Iterable, Optional, Sequence

from ..core.enums import ServiceStatus, UnmatchedReason
from ..core.exceptions import NotFoundError, ValidationError
from ..exeats.repository import ExeatRepository
from ..exeats.service import ExeatCoverage
from ..services.model import Service
from ..services.repository import ServiceRepository
from ..storage.repository import ObjectStore
from ..students.model import Level, Student
from ..students.repository import StudentRepository
from .manifest import parse_manifest
from .model import AbsenteeRecord, AttendeeRecord, AttendanceUpload, Reconciliation, ScanEntry, UnmatchedRow

logger = logging.getLogger(__name__)


def _level_token(value: Optional[str]) -> str:
    token = (value or "").strip().lower()
    if token.endswith("l"):
        token = token[:-1]
    return token.lstrip("0") or token


def reconcile(
    entries: Iterable[ScanEntry],
    *,
    level: Level,
    roster: Sequence[Student],
    lookup: Callable[[str], Optional[Student]],
    is_exempt: Optional[Callable[[Student], bool]] = None,
) -> Reconciliation:
    """Match scanned entries against the active roster of one level.

    Absentees are derived: the roster minus the attendees. Every entry that
    does not become an attendee is kept as an unmatched row with its raw data.
    """

    by_key: dict[str, Student] = {}
    for s in roster:
        by_key[s.matric_number.strip().lower()] = s
        by_key[s.student_id.strip().lower()] = s

    attendees: list[AttendeeRecord] = []
    unmatched: list[UnmatchedRow] = []
    seen: set[str] = set()

    for entry in entries:
        uid = entry.unique_id.strip()
        if not uid:
            unmatched.append(
                UnmatchedRow(entry.position, uid, UnmatchedReason.MISSING_ID, entry.raw_data, "Missing identifier")
            )
            continue

        student = by_key.get(uid.lower())
        if student is None:
            other = lookup(uid)
            if other is not None and other.is_active and other.level_id != level.level_id:
                unmatched.append(
                    UnmatchedRow(
                        entry.position,
                        uid,
                        UnmatchedReason.WRONG_LEVEL,
                        entry.raw_data,
                        f"Student is {other.level_code or other.level_id} but upload is for {level.code}",
                    )
                )
            else:
                unmatched.append(
                    UnmatchedRow(
                        entry.position, uid, UnmatchedReason.NOT_FOUND, entry.raw_data, "Student not found in directory"
                    )
                )
            continue

        if entry.level and student.level_code and _level_token(entry.level) != _level_token(student.level_code):
            unmatched.append(
                UnmatchedRow(
                    entry.position,
                    uid,
                    UnmatchedReason.WRONG_LEVEL,
                    entry.raw_data,
                    f"Level mismatch - student is {student.level_code} but scan shows {entry.level}",
                )
            )
            continue

        if student.student_id in seen:
            unmatched.append(
                UnmatchedRow(
                    entry.position, uid, UnmatchedReason.DUPLICATE_SCAN, entry.raw_data, "Repeated scan in this upload"
                )
            )
            continue

        seen.add(student.student_id)
        attendees.append(
            AttendeeRecord(
                student_id=student.student_id,
                matric_number=student.matric_number,
                student_name=student.full_name,
                level_id=student.level_id,
                unique_id=uid,
            )
        )

    absentees = tuple(
        AbsenteeRecord(
            student_id=s.student_id,
            matric_number=s.matric_number,
            student_name=s.full_name,
            level_id=s.level_id,
            exempted=bool(is_exempt(s)) if is_exempt else False,
        )
        for s in roster
        if s.student_id not in seen
    )
    return Reconciliation(attendees=tuple(attendees), absentees=absentees, unmatched=tuple(unmatched))


class UploadReconciler:
    """Loads everything reconciliation needs for a (service, level) pair."""

    def __init__(
        self,
        students: StudentRepository,
        services: ServiceRepository,
        store: ObjectStore,
        exeats: Optional[ExeatRepository] = None,
    ):
        self._students = students
        self._services = services
        self._store = store
        self._exeats = exeats

    def resolve_target(self, *, service_id: str, level_id: str) -> tuple[Service, Level]:
        service = self._services.get_by_id(service_id)
        if not service:
            raise NotFoundError(f"Service not found: {service_id}")
        if service.status == ServiceStatus.CANCELED:
            raise ValidationError(f"Invalid service: {service_id} is canceled")
        level = self._students.get_level(level_id)
        if not level:
            raise NotFoundError(f"Level not found: {level_id}")
        if service.level_ids and level_id not in service.level_ids:
            raise ValidationError(f"Invalid level {level.code} for service {service_id}")
        return service, level

    def reconcile_entries(self, entries: Sequence[ScanEntry], *, service: Service, level: Level) -> Reconciliation:
        roster = list(self._students.find_active_by_level(level.level_id))

        is_exempt = None
        if self._exeats is not None:
            coverage = ExeatCoverage(self._exeats)
            coverage.prefetch(s.student_id for s in roster)
            is_exempt = lambda s: coverage.is_covered(s.student_id, service.service_date)  # noqa: E731

        return reconcile(
            entries,
            level=level,
            roster=roster,
            lookup=self._students.find_by_identifier,
            is_exempt=is_exempt,
        )

    def reconcile_upload(self, upload: AttendanceUpload) -> Reconciliation:
        """Re-read the stored manifest and match it against today's directory."""

        service, level = self.resolve_target(service_id=upload.service_id, level_id=upload.level_id)
        entries = parse_manifest(self._store.get_bytes(upload.storage_path))
        result = self.reconcile_entries(entries, service=service, level=level)
        logger.debug(
            "Reconciled upload %s: matched=%d unmatched=%d absent=%d",
            upload.upload_id,
            result.matched_count,
            result.unmatched_count,
            result.absentee_count,
        )
        return result
