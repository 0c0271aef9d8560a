from __future__ import annotations

import uuid
from datetime import datetime
from typing import Sequence

from ..core.enums import UploadState
from ..core.exceptions import InvalidStateError, NotFoundError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, dump_json_column, fetchall, fetchone
from ..uploads.model import Reconciliation
from .blob import parse_absentees, parse_attendees, parse_unmatched
from .model import AttendanceBatchVersion
from .repository import BatchRepository

_VERSION_COLUMNS = """
    v.version_id, v.batch_id, v.upload_id, b.service_id, b.level_id, v.version, v.is_current,
    v.attendees, v.absentees, v.unmatched, v.created_by, v.created_at, v.superseded_by
"""


def _to_version(r: dict) -> AttendanceBatchVersion:
    source = f"batch version {r['version_id']}"
    level_id = str(r["level_id"])
    return AttendanceBatchVersion(
        version_id=str(r["version_id"]),
        batch_id=str(r["batch_id"]),
        upload_id=str(r["upload_id"]),
        service_id=str(r["service_id"]),
        level_id=level_id,
        version=int(r["version"]),
        is_current=bool(r["is_current"]),
        attendees=tuple(parse_attendees(r.get("attendees"), source=source, default_level_id=level_id)),
        absentees=tuple(parse_absentees(r.get("absentees"), source=source, default_level_id=level_id)),
        unmatched=tuple(parse_unmatched(r.get("unmatched"), source=source)),
        created_by=str(r["created_by"]),
        created_at=r["created_at"],
        superseded_by=r.get("superseded_by"),
    )


class MySQLBatchRepository(BatchRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def promote_upload(
        self,
        *,
        upload_id: str,
        actor_id: str,
        reconciliation: Reconciliation,
        at: datetime,
    ) -> AttendanceBatchVersion:
        version_id = str(uuid.uuid4())

        with db_cursor(self._conn_factory, transactional=True) as (_, cur):
            cur.execute(
                "SELECT upload_id, service_id, level_id, state FROM attendance_uploads WHERE upload_id=%s FOR UPDATE",
                (upload_id,),
            )
            upload = fetchone(cur)
            if not upload:
                raise NotFoundError(f"Upload not found: {upload_id}")
            if upload["state"] != UploadState.STAGED.value:
                raise InvalidStateError(f"Invalid state: upload {upload_id} is already {upload['state']}")

            service_id = str(upload["service_id"])
            level_id = str(upload["level_id"])

            cur.execute(
                "INSERT IGNORE INTO attendance_batches(batch_id, service_id, level_id) VALUES(%s,%s,%s)",
                (str(uuid.uuid4()), service_id, level_id),
            )
            cur.execute(
                "SELECT batch_id FROM attendance_batches WHERE service_id=%s AND level_id=%s FOR UPDATE",
                (service_id, level_id),
            )
            batch_id = str(fetchone(cur)["batch_id"])

            cur.execute(
                "SELECT COALESCE(MAX(version), 0) AS max_version FROM attendance_batch_versions WHERE batch_id=%s",
                (batch_id,),
            )
            next_version = int(fetchone(cur)["max_version"]) + 1

            cur.execute(
                """
                UPDATE attendance_batch_versions
                SET is_current=0, superseded_by=%s
                WHERE batch_id=%s AND is_current=1
                """,
                (version_id, batch_id),
            )

            attendees = [a.to_dict() for a in reconciliation.attendees]
            absentees = [a.to_dict() for a in reconciliation.absentees]
            unmatched = [u.to_dict() for u in reconciliation.unmatched]
            cur.execute(
                """
                INSERT INTO attendance_batch_versions(
                    version_id, batch_id, upload_id, version, is_current,
                    attendees, absentees, unmatched, created_by, created_at
                )
                VALUES(%s,%s,%s,%s,1,%s,%s,%s,%s,%s)
                """,
                (
                    version_id,
                    batch_id,
                    upload_id,
                    next_version,
                    dump_json_column(attendees),
                    dump_json_column(absentees),
                    dump_json_column(unmatched),
                    actor_id,
                    at,
                ),
            )

            if unmatched:
                cur.executemany(
                    """
                    INSERT INTO attendance_issues(version_id, issue_type, unique_id, raw_data)
                    VALUES(%s,%s,%s,%s)
                    """,
                    [(version_id, u["reason"], u["unique_id"] or None, dump_json_column(u)) for u in unmatched],
                )

            cur.execute(
                """
                UPDATE attendance_uploads
                SET state=%s, decided_by=%s, decided_at=%s
                WHERE upload_id=%s AND state=%s
                """,
                (UploadState.CONFIRMED.value, actor_id, at, upload_id, UploadState.STAGED.value),
            )
            if cur.rowcount != 1:
                raise InvalidStateError(f"Invalid state: upload {upload_id} changed during confirmation")

        return AttendanceBatchVersion(
            version_id=version_id,
            batch_id=batch_id,
            upload_id=upload_id,
            service_id=service_id,
            level_id=level_id,
            version=next_version,
            is_current=True,
            attendees=reconciliation.attendees,
            absentees=reconciliation.absentees,
            unmatched=tuple(unmatched),
            created_by=actor_id,
            created_at=at,
        )

    def get_current_versions(self, service_id: str) -> Sequence[AttendanceBatchVersion]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_VERSION_COLUMNS}
                FROM attendance_batch_versions v
                JOIN attendance_batches b ON b.batch_id = v.batch_id
                WHERE b.service_id=%s AND v.is_current=1
                ORDER BY b.level_id
                """,
                (service_id,),
            )
            rows = fetchall(cur)
        return [_to_version(r) for r in rows]

    def list_versions(self, batch_id: str) -> Sequence[AttendanceBatchVersion]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_VERSION_COLUMNS}
                FROM attendance_batch_versions v
                JOIN attendance_batches b ON b.batch_id = v.batch_id
                WHERE v.batch_id=%s
                ORDER BY v.version DESC
                """,
                (batch_id,),
            )
            rows = fetchall(cur)
        return [_to_version(r) for r in rows]
