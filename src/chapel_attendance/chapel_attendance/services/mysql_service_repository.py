from __future__ import annotations

from datetime import date
from typing import Optional, Sequence

from ..core.enums import ServiceStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, normalize_mysql_time
from .model import Service
from .repository import ServiceRepository


class MySQLServiceRepository(ServiceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    @staticmethod
    def _levels_for(cur, service_ids: list[str]) -> dict[str, set[str]]:
        if not service_ids:
            return {}
        placeholders = ",".join(["%s"] * len(service_ids))
        cur.execute(
            f"SELECT service_id, level_id FROM service_levels WHERE service_id IN ({placeholders})",
            tuple(service_ids),
        )
        out: dict[str, set[str]] = {}
        for r in fetchall(cur):
            out.setdefault(str(r["service_id"]), set()).add(str(r["level_id"]))
        return out

    @staticmethod
    def _to_service(r: dict, level_ids: set[str]) -> Service:
        return Service(
            service_id=str(r["service_id"]),
            service_date=r["service_date"],
            service_type=r["service_type"],
            status=ServiceStatus(r["status"]),
            level_ids=frozenset(level_ids),
            service_time=normalize_mysql_time(r.get("service_time")),
            name=r.get("name"),
        )

    def get_by_id(self, service_id: str) -> Optional[Service]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT service_id, service_date, service_time, service_type, name, status
                FROM services
                WHERE service_id=%s
                """,
                (service_id,),
            )
            r = fetchone(cur)
            if not r:
                return None
            levels = self._levels_for(cur, [str(r["service_id"])])
            return self._to_service(r, levels.get(str(r["service_id"]), set()))

    def list_completed(self, *, start_date: date, end_date: date) -> Sequence[Service]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT service_id, service_date, service_time, service_type, name, status
                FROM services
                WHERE service_date BETWEEN %s AND %s AND status=%s
                ORDER BY service_date ASC, service_time ASC
                """,
                (start_date, end_date, ServiceStatus.COMPLETED.value),
            )
            rows = fetchall(cur)
            levels = self._levels_for(cur, [str(r["service_id"]) for r in rows])
            return [self._to_service(r, levels.get(str(r["service_id"]), set())) for r in rows]
