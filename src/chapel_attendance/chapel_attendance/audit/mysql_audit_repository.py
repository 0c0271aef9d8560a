from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping, Optional

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, dump_json_column
from .repository import AuditRepository


class MySQLAuditRepository(AuditRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def record(
        self,
        *,
        actor_id: str,
        action: str,
        object_type: str,
        object_id: str,
        details: Optional[Mapping[str, Any]],
        at: datetime,
    ) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO admin_actions(admin_id, action, object_type, object_id, details, created_at)
                VALUES(%s,%s,%s,%s,%s,%s)
                """,
                (
                    actor_id,
                    action,
                    object_type,
                    object_id,
                    dump_json_column(dict(details)) if details is not None else None,
                    at,
                ),
            )
