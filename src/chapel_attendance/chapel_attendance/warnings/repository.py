from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import WarningStatus
from .model import WarningWeeklySnapshot


class WarningRepository(Protocol):
    def get_for_student_week(self, student_id: str, week_start: date) -> Optional[WarningWeeklySnapshot]:
        raise NotImplementedError

    def insert(
        self,
        *,
        student_id: str,
        week_start: date,
        absences: int,
        at: datetime,
    ) -> WarningWeeklySnapshot:
        """Insert a pending snapshot.

        Raises DuplicateKeyError when (student_id, week_start) already exists.
        """

        raise NotImplementedError

    def update_if_unchanged(
        self,
        *,
        snapshot_id: str,
        expected_absences: int,
        expected_status: WarningStatus,
        absences: int,
        status: WarningStatus,
        at: datetime,
    ) -> bool:
        """Compare-and-set on (absences, status). False when another writer got in first."""

        raise NotImplementedError

    def list_for_week(self, week_start: date) -> Sequence[WarningWeeklySnapshot]:
        raise NotImplementedError

    def get_by_id(self, snapshot_id: str) -> Optional[WarningWeeklySnapshot]:
        raise NotImplementedError

    def mark_sent(self, *, snapshot_id: str, actor_id: str, at: datetime) -> bool:
        """pending -> sent. False when the snapshot was not pending."""

        raise NotImplementedError
