from __future__ import annotations

import logging
from typing import Iterable, Mapping, Sequence

from ..core.enums import ExeatStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall
from .model import Exeat
from .repository import ExeatRepository

logger = logging.getLogger(__name__)

_CHUNK = 500


def _to_exeat(r: dict) -> Exeat:
    raw_status = str(r["status"])
    # Older rows were written with the British spelling.
    if raw_status == "cancelled":
        raw_status = ExeatStatus.CANCELED.value
    return Exeat(
        exeat_id=str(r["exeat_id"]),
        student_id=str(r["student_id"]),
        start_date=r["start_date"],
        end_date=r["end_date"],
        status=ExeatStatus(raw_status),
        reason=r.get("reason"),
    )


def _to_exeats(rows: Iterable[dict]) -> list[Exeat]:
    out: list[Exeat] = []
    for r in rows:
        try:
            out.append(_to_exeat(r))
        except ValueError:
            logger.warning("Skipping exeat %s with unknown status %r", r.get("exeat_id"), r.get("status"))
    return out


class MySQLExeatRepository(ExeatRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_for_student(self, student_id: str) -> Sequence[Exeat]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT exeat_id, student_id, start_date, end_date, status, reason
                FROM exeats
                WHERE student_id=%s
                ORDER BY start_date DESC
                """,
                (student_id,),
            )
            return _to_exeats(fetchall(cur))

    def list_for_students(self, student_ids: Iterable[str]) -> Mapping[str, Sequence[Exeat]]:
        ids = sorted({str(s) for s in student_ids})
        out: dict[str, list[Exeat]] = {sid: [] for sid in ids}
        if not ids:
            return out

        with db_cursor(self._conn_factory) as (_, cur):
            for i in range(0, len(ids), _CHUNK):
                chunk = ids[i : i + _CHUNK]
                placeholders = ",".join(["%s"] * len(chunk))
                cur.execute(
                    f"""
                    SELECT exeat_id, student_id, start_date, end_date, status, reason
                    FROM exeats
                    WHERE student_id IN ({placeholders})
                    """,
                    tuple(chunk),
                )
                for exeat in _to_exeats(fetchall(cur)):
                    out.setdefault(exeat.student_id, []).append(exeat)
        return out
