from __future__ import annotations

from typing import Optional, Sequence

from ..core.enums import StudentStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import Level, Student
from .repository import StudentRepository

_STUDENT_COLUMNS = """
    s.student_id, s.matric_number, s.full_name, s.level_id, s.status, l.code AS level_code
"""


def _to_student(r: dict) -> Student:
    return Student(
        student_id=str(r["student_id"]),
        matric_number=r["matric_number"],
        full_name=r["full_name"],
        level_id=str(r["level_id"]),
        status=StudentStatus(r["status"]),
        level_code=r.get("level_code"),
    )


class MySQLStudentRepository(StudentRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def find_active_by_level(self, level_id: str) -> Sequence[Student]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_STUDENT_COLUMNS}
                FROM students s
                LEFT JOIN levels l ON l.level_id = s.level_id
                WHERE s.level_id=%s AND s.status=%s
                ORDER BY s.matric_number
                """,
                (level_id, StudentStatus.ACTIVE.value),
            )
            return [_to_student(r) for r in fetchall(cur)]

    def find_by_identifier(self, identifier: str) -> Optional[Student]:
        key = (identifier or "").strip()
        if not key:
            return None
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_STUDENT_COLUMNS}
                FROM students s
                LEFT JOIN levels l ON l.level_id = s.level_id
                WHERE s.student_id=%s OR LOWER(s.matric_number)=LOWER(%s)
                LIMIT 1
                """,
                (key, key),
            )
            r = fetchone(cur)
            return _to_student(r) if r else None

    def list_active(self) -> Sequence[Student]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_STUDENT_COLUMNS}
                FROM students s
                LEFT JOIN levels l ON l.level_id = s.level_id
                WHERE s.status=%s
                """,
                (StudentStatus.ACTIVE.value,),
            )
            return [_to_student(r) for r in fetchall(cur)]

    def get_level(self, level_id: str) -> Optional[Level]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT level_id, code, name FROM levels WHERE level_id=%s", (level_id,))
            r = fetchone(cur)
            if not r:
                return None
            return Level(level_id=str(r["level_id"]), code=r["code"], name=r.get("name"))
