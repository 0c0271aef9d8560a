from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date, datetime
from typing import Optional

from ..audit.service import AuditLogger
from ..batches.repository import BatchRepository
from ..common.datetime_utils import now_local, parse_iso_date_field
from ..common.validators import require_non_empty, require_threshold
from ..core.constants import DEFAULT_WARNING_THRESHOLD, SNAPSHOT_UPSERT_ATTEMPTS
from ..core.enums import WarningStatus
from ..core.exceptions import BlobFormatError, ConcurrencyError, DuplicateKeyError, InvalidStateError, NotFoundError
from ..exeats.repository import ExeatRepository
from ..exeats.service import ExeatCoverage
from ..services.repository import ServiceRepository
from ..students.repository import StudentRepository
from .model import GenerationResult, UpsertOutcome, WarningWeeklySnapshot
from .repository import WarningRepository
from .week import week_range

logger = logging.getLogger(__name__)


class SnapshotWriter:
    """Single-writer-per-key upsert of weekly snapshots.

    Inserts lean on the (student_id, week_start) unique key; updates are
    compare-and-set against the row that was read. A lost race re-reads and
    tries again, up to a fixed number of attempts.
    """

    def __init__(self, warnings: WarningRepository, *, max_attempts: int = SNAPSHOT_UPSERT_ATTEMPTS):
        self._warnings = warnings
        self._max_attempts = max(1, int(max_attempts))

    def upsert(self, student_id: str, week_start: date, absences: int, now: Optional[datetime] = None) -> UpsertOutcome:
        now = now or now_local()

        for attempt in range(1, self._max_attempts + 1):
            existing = self._warnings.get_for_student_week(student_id, week_start)

            if existing is None:
                try:
                    self._warnings.insert(student_id=student_id, week_start=week_start, absences=absences, at=now)
                    return UpsertOutcome.GENERATED
                except DuplicateKeyError:
                    logger.info(
                        "Snapshot for %s/%s created concurrently (attempt %d); re-reading",
                        student_id,
                        week_start,
                        attempt,
                    )
                    continue

            # A sent warning keeps its send-state; anything else goes back to pending.
            status = WarningStatus.SENT if existing.status == WarningStatus.SENT else WarningStatus.PENDING
            if existing.absences == absences and existing.status == status:
                return UpsertOutcome.UNCHANGED

            if self._warnings.update_if_unchanged(
                snapshot_id=existing.snapshot_id,
                expected_absences=existing.absences,
                expected_status=existing.status,
                absences=absences,
                status=status,
                at=now,
            ):
                return UpsertOutcome.UPDATED

            logger.info(
                "Snapshot %s changed underneath us (attempt %d); re-reading", existing.snapshot_id, attempt
            )

        raise ConcurrencyError(
            f"Gave up writing warning for {student_id} week {week_start} after {self._max_attempts} attempts"
        )


class WarningGenerator:
    def __init__(
        self,
        services: ServiceRepository,
        students: StudentRepository,
        batches: BatchRepository,
        exeats: ExeatRepository,
        writer: SnapshotWriter,
        audit: Optional[AuditLogger] = None,
    ):
        self._services = services
        self._students = students
        self._batches = batches
        self._exeats = exeats
        self._writer = writer
        self._audit = audit

    def _count_absences(self, services, students_by_id, skipped: list[str]) -> tuple[dict[str, int], dict[str, list]]:
        counts: dict[str, int] = defaultdict(int)
        missed: dict[str, list] = defaultdict(list)
        coverage = ExeatCoverage(self._exeats)
        coverage.prefetch(students_by_id.keys())

        for service in services:
            try:
                versions = self._batches.get_current_versions(service.service_id)
            except BlobFormatError as e:
                logger.warning("Skipping service %s: %s", service.service_id, e)
                skipped.append(service.service_id)
                continue

            if not versions:
                logger.warning("Skipping service %s (%s): no confirmed attendance", service.service_id, service.service_date)
                skipped.append(service.service_id)
                continue

            for version in versions:
                for absentee in version.absentees:
                    if absentee.exempted:
                        continue
                    student = students_by_id.get(absentee.student_id)
                    if student is None:
                        continue
                    if not service.applies_to(student.level_id):
                        continue
                    if coverage.is_covered(student.student_id, service.service_date):
                        continue
                    counts[student.student_id] += 1
                    missed[student.student_id].append(service.service_date)

        return counts, missed

    def generate(
        self,
        week_start,
        threshold=DEFAULT_WARNING_THRESHOLD,
        *,
        actor_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> GenerationResult:
        start = parse_iso_date_field(week_start, "week_start")
        threshold = require_threshold(threshold)
        week = week_range(start)
        now = now or now_local()

        services = list(self._services.list_completed(start_date=week.start, end_date=week.end))
        if not services:
            logger.info("No completed services in %s (%s..%s)", week.week_id, week.start, week.end)
            return GenerationResult(week_start=start, threshold=threshold)

        students_by_id = {s.student_id: s for s in self._students.list_active()}
        skipped: list[str] = []
        counts, missed = self._count_absences(services, students_by_id, skipped)

        generated = 0
        updated = 0
        for student_id in sorted(counts):
            absences = counts[student_id]
            if absences < threshold:
                continue
            outcome = self._writer.upsert(student_id, start, absences, now)
            if outcome == UpsertOutcome.GENERATED:
                generated += 1
            elif outcome == UpsertOutcome.UPDATED:
                updated += 1
            logger.debug(
                "Warning %s for %s: %d absences on %s",
                outcome.value,
                student_id,
                absences,
                ", ".join(d.isoformat() for d in missed[student_id]),
            )

        result = GenerationResult(
            week_start=start,
            threshold=threshold,
            generated=generated,
            updated=updated,
            total_services=len(services),
            skipped_services=skipped,
        )
        logger.info(
            "Warnings for %s: generated=%d updated=%d services=%d skipped=%d",
            week.week_id,
            generated,
            updated,
            len(services),
            len(skipped),
        )
        if self._audit is not None and actor_id:
            self._audit.log(actor_id, "warnings.generate", "warning_week", week.week_id, result.to_dict())
        return result


class WarningService:
    def __init__(self, warnings: WarningRepository, audit: Optional[AuditLogger] = None):
        self._warnings = warnings
        self._audit = audit

    def list_for_week(self, week_start) -> list[WarningWeeklySnapshot]:
        start = parse_iso_date_field(week_start, "week_start")
        return list(self._warnings.list_for_week(start))

    def mark_sent(self, snapshot_id: str, actor_id: str, now: Optional[datetime] = None) -> WarningWeeklySnapshot:
        snapshot_id = require_non_empty(snapshot_id, "snapshot_id")
        actor_id = require_non_empty(actor_id, "actor_id")

        snapshot = self._warnings.get_by_id(snapshot_id)
        if not snapshot:
            raise NotFoundError(f"Warning not found: {snapshot_id}")
        if snapshot.status == WarningStatus.SENT:
            raise InvalidStateError(f"Invalid state: warning {snapshot_id} is already sent")

        if not self._warnings.mark_sent(snapshot_id=snapshot_id, actor_id=actor_id, at=now or now_local()):
            raise InvalidStateError(f"Invalid state: warning {snapshot_id} is already sent")

        logger.info("Warning %s marked sent by %s", snapshot_id, actor_id)
        if self._audit is not None:
            self._audit.log(actor_id, "warnings.mark_sent", "warning_snapshot", snapshot_id)
        return self._warnings.get_by_id(snapshot_id)
