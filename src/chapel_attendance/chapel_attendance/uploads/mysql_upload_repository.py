from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional, Sequence

from ..core.enums import UploadState
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import AttendanceUpload
from .repository import UploadRepository

_COLUMNS = """
    upload_id, service_id, level_id, file_hash, storage_path,
    uploaded_by, uploaded_at, state, decided_by, decided_at
"""


def to_upload(r: dict) -> AttendanceUpload:
    return AttendanceUpload(
        upload_id=str(r["upload_id"]),
        service_id=str(r["service_id"]),
        level_id=str(r["level_id"]),
        file_hash=r["file_hash"],
        storage_path=r["storage_path"],
        uploaded_by=str(r["uploaded_by"]),
        uploaded_at=r["uploaded_at"],
        state=UploadState(r["state"]),
        decided_by=r.get("decided_by"),
        decided_at=r.get("decided_at"),
    )


class MySQLUploadRepository(UploadRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def create_unless_duplicate(
        self,
        *,
        service_id: str,
        level_id: str,
        file_hash: str,
        storage_path: str,
        uploaded_by: str,
        uploaded_at: datetime,
    ) -> tuple[AttendanceUpload, bool]:
        upload_id = str(uuid.uuid4())
        with db_cursor(self._conn_factory, transactional=True) as (_, cur):
            # The (service, level) batch row is the lock that serializes staging.
            cur.execute(
                "INSERT IGNORE INTO attendance_batches(batch_id, service_id, level_id) VALUES(%s,%s,%s)",
                (str(uuid.uuid4()), service_id, level_id),
            )
            cur.execute(
                "SELECT batch_id FROM attendance_batches WHERE service_id=%s AND level_id=%s FOR UPDATE",
                (service_id, level_id),
            )
            fetchone(cur)

            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_uploads
                WHERE service_id=%s AND level_id=%s AND file_hash=%s AND state<>%s
                ORDER BY uploaded_at DESC
                LIMIT 1
                """,
                (service_id, level_id, file_hash, UploadState.CANCELED.value),
            )
            r = fetchone(cur)
            if r:
                return to_upload(r), False

            cur.execute(
                """
                INSERT INTO attendance_uploads(
                    upload_id, service_id, level_id, file_hash, storage_path, uploaded_by, uploaded_at, state
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    upload_id,
                    service_id,
                    level_id,
                    file_hash,
                    storage_path,
                    uploaded_by,
                    uploaded_at,
                    UploadState.STAGED.value,
                ),
            )
        upload = AttendanceUpload(
            upload_id=upload_id,
            service_id=service_id,
            level_id=level_id,
            file_hash=file_hash,
            storage_path=storage_path,
            uploaded_by=uploaded_by,
            uploaded_at=uploaded_at,
        )
        return upload, True

    def get_by_id(self, upload_id: str) -> Optional[AttendanceUpload]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM attendance_uploads WHERE upload_id=%s", (upload_id,))
            r = fetchone(cur)
            return to_upload(r) if r else None

    def find_by_hash(self, *, service_id: str, level_id: str, file_hash: str) -> Optional[AttendanceUpload]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_uploads
                WHERE service_id=%s AND level_id=%s AND file_hash=%s AND state<>%s
                ORDER BY uploaded_at DESC
                LIMIT 1
                """,
                (service_id, level_id, file_hash, UploadState.CANCELED.value),
            )
            r = fetchone(cur)
            return to_upload(r) if r else None

    def mark_canceled(self, *, upload_id: str, actor_id: str, at: datetime) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendance_uploads
                SET state=%s, decided_by=%s, decided_at=%s
                WHERE upload_id=%s AND state=%s
                """,
                (UploadState.CANCELED.value, actor_id, at, upload_id, UploadState.STAGED.value),
            )
            return cur.rowcount > 0

    def list_for_service(self, service_id: str) -> Sequence[AttendanceUpload]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_uploads
                WHERE service_id=%s
                ORDER BY uploaded_at DESC
                """,
                (service_id,),
            )
            return [to_upload(r) for r in fetchall(cur)]
