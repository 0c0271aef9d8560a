from __future__ import annotations

from typing import Iterable, Mapping, Protocol, Sequence

from .model import Exeat


class ExeatRepository(Protocol):
    def list_for_student(self, student_id: str) -> Sequence[Exeat]:
        raise NotImplementedError

    def list_for_students(self, student_ids: Iterable[str]) -> Mapping[str, Sequence[Exeat]]:
        raise NotImplementedError
