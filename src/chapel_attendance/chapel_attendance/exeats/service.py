from __future__ import annotations

from datetime import date
from typing import Iterable, Optional, Sequence

from ..common.datetime_utils import now_local
from .model import Exeat, derived_status
from .repository import ExeatRepository


def covering_exeats(exeats: Iterable[Exeat], on_date: date) -> list[Exeat]:
    return [e for e in exeats if e.covers(on_date)]


class ExeatCoverage:
    """Decides whether an approved leave covers a student on a given date.

    A student is covered iff some non-canceled exeat satisfies
    ``start_date <= on_date <= end_date``. Exeats that have not started yet
    never cover a date before their start, so "upcoming" leave only matters
    once the service date falls inside its range.
    """

    def __init__(self, exeats: ExeatRepository):
        self._exeats = exeats
        self._cache: dict[str, Sequence[Exeat]] = {}

    def prefetch(self, student_ids: Iterable[str]) -> None:
        """Load exeats for many students at once; later lookups hit the cache."""

        missing = [s for s in {str(x) for x in student_ids} if s not in self._cache]
        if not missing:
            return
        loaded = self._exeats.list_for_students(missing)
        for sid in missing:
            self._cache[sid] = list(loaded.get(sid, []))

    def _exeats_for(self, student_id: str) -> Sequence[Exeat]:
        cached = self._cache.get(student_id)
        if cached is not None:
            return cached
        return self._exeats.list_for_student(student_id)

    def covering(self, student_id: str, on_date: date) -> list[Exeat]:
        return covering_exeats(self._exeats_for(str(student_id)), on_date)

    def is_covered(self, student_id: str, on_date: date) -> bool:
        return bool(self.covering(student_id, on_date))

    def list_with_status(self, student_id: str, *, today: Optional[date] = None) -> list[dict]:
        today = today or now_local().date()
        return [
            {
                "exeat_id": e.exeat_id,
                "student_id": e.student_id,
                "start_date": e.start_date.isoformat(),
                "end_date": e.end_date.isoformat(),
                "status": e.status.value,
                "derived_status": derived_status(e, today).value,
                "reason": e.reason,
            }
            for e in self._exeats.list_for_student(str(student_id))
        ]
