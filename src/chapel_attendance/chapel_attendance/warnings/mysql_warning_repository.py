from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Optional, Sequence

from ..core.enums import WarningStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import WarningWeeklySnapshot
from .repository import WarningRepository

_COLUMNS = """
    snapshot_id, student_id, week_start, absences, warning_status,
    first_created_at, last_updated_at, sent_at, sent_by
"""


def _to_snapshot(r: dict) -> WarningWeeklySnapshot:
    return WarningWeeklySnapshot(
        snapshot_id=str(r["snapshot_id"]),
        student_id=str(r["student_id"]),
        week_start=r["week_start"],
        absences=int(r["absences"]),
        status=WarningStatus(r["warning_status"]),
        first_created_at=r["first_created_at"],
        last_updated_at=r["last_updated_at"],
        sent_at=r.get("sent_at"),
        sent_by=r.get("sent_by"),
    )


class MySQLWarningRepository(WarningRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_for_student_week(self, student_id: str, week_start: date) -> Optional[WarningWeeklySnapshot]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM warning_weekly_snapshot WHERE student_id=%s AND week_start=%s",
                (student_id, week_start),
            )
            r = fetchone(cur)
        return _to_snapshot(r) if r else None

    def insert(self, *, student_id: str, week_start: date, absences: int, at: datetime) -> WarningWeeklySnapshot:
        snapshot_id = str(uuid.uuid4())
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO warning_weekly_snapshot(
                    snapshot_id, student_id, week_start, absences, warning_status,
                    first_created_at, last_updated_at
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s)
                """,
                (snapshot_id, student_id, week_start, int(absences), WarningStatus.PENDING.value, at, at),
            )
        return WarningWeeklySnapshot(
            snapshot_id=snapshot_id,
            student_id=student_id,
            week_start=week_start,
            absences=int(absences),
            status=WarningStatus.PENDING,
            first_created_at=at,
            last_updated_at=at,
        )

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
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE warning_weekly_snapshot
                SET absences=%s, warning_status=%s, last_updated_at=%s
                WHERE snapshot_id=%s AND absences=%s AND warning_status=%s
                """,
                (int(absences), status.value, at, snapshot_id, int(expected_absences), expected_status.value),
            )
            return cur.rowcount == 1

    def list_for_week(self, week_start: date) -> Sequence[WarningWeeklySnapshot]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM warning_weekly_snapshot
                WHERE week_start=%s
                ORDER BY absences DESC, student_id
                """,
                (week_start,),
            )
            rows = fetchall(cur)
        return [_to_snapshot(r) for r in rows]

    def get_by_id(self, snapshot_id: str) -> Optional[WarningWeeklySnapshot]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM warning_weekly_snapshot WHERE snapshot_id=%s", (snapshot_id,))
            r = fetchone(cur)
        return _to_snapshot(r) if r else None

    def mark_sent(self, *, snapshot_id: str, actor_id: str, at: datetime) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE warning_weekly_snapshot
                SET warning_status=%s, sent_at=%s, sent_by=%s
                WHERE snapshot_id=%s AND warning_status=%s
                """,
                (WarningStatus.SENT.value, at, actor_id, snapshot_id, WarningStatus.PENDING.value),
            )
            return cur.rowcount == 1
