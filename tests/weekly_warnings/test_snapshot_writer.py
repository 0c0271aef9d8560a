from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime

import pytest

from src.chapel_attendance.chapel_attendance.core.enums import WarningStatus
from src.chapel_attendance.chapel_attendance.core.exceptions import ConcurrencyError, is_retryable
from src.chapel_attendance.chapel_attendance.warnings.model import UpsertOutcome
from src.chapel_attendance.chapel_attendance.warnings.service import SnapshotWriter

from conftest import FakeWarningsRepo

WEEK = date(2024, 2, 5)
NOW = datetime(2024, 2, 11, 20, 0)


class RacingInsertRepo(FakeWarningsRepo):
    """Another generator inserts the row between our read and our insert."""

    def __init__(self, rival_absences: int):
        super().__init__()
        self._rival_absences = rival_absences
        self.raced = False

    def insert(self, *, student_id, week_start, absences, at):
        if not self.raced:
            self.raced = True
            super().insert(student_id=student_id, week_start=week_start, absences=self._rival_absences, at=at)
        return super().insert(student_id=student_id, week_start=week_start, absences=absences, at=at)


class AlwaysLosingRepo(FakeWarningsRepo):
    def update_if_unchanged(self, **kwargs):
        cur = self.rows[kwargs["snapshot_id"]]
        self.rows[cur.snapshot_id] = replace(cur, absences=cur.absences + 1)
        return False


def test_insert_then_unchanged():
    repo = FakeWarningsRepo()
    writer = SnapshotWriter(repo)

    assert writer.upsert("stu-1", WEEK, 2, NOW) == UpsertOutcome.GENERATED
    assert writer.upsert("stu-1", WEEK, 2, NOW) == UpsertOutcome.UNCHANGED
    assert repo.writes == 1


def test_pending_count_change_is_an_update():
    repo = FakeWarningsRepo()
    writer = SnapshotWriter(repo)
    writer.upsert("stu-1", WEEK, 2, NOW)

    assert writer.upsert("stu-1", WEEK, 4, NOW) == UpsertOutcome.UPDATED
    (snap,) = repo.list_for_week(WEEK)
    assert (snap.absences, snap.status) == (4, WarningStatus.PENDING)


def test_duplicate_key_on_insert_falls_back_to_update():
    repo = RacingInsertRepo(rival_absences=2)
    writer = SnapshotWriter(repo)

    outcome = writer.upsert("stu-1", WEEK, 3, NOW)

    assert outcome == UpsertOutcome.UPDATED
    (snap,) = repo.list_for_week(WEEK)
    assert snap.absences == 3


def test_duplicate_key_with_same_count_is_unchanged():
    repo = RacingInsertRepo(rival_absences=3)

    assert SnapshotWriter(repo).upsert("stu-1", WEEK, 3, NOW) == UpsertOutcome.UNCHANGED
    assert len(repo.rows) == 1


def test_gives_up_after_bounded_attempts():
    repo = AlwaysLosingRepo()
    repo.insert(student_id="stu-1", week_start=WEEK, absences=1, at=NOW)

    with pytest.raises(ConcurrencyError) as exc:
        SnapshotWriter(repo, max_attempts=3).upsert("stu-1", WEEK, 10, NOW)

    assert exc.value.code == "CONFLICT"
    assert is_retryable(exc.value) is True
    assert repo.get_for_student_week("stu-1", WEEK).absences == 4
