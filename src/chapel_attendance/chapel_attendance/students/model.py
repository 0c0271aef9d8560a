from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..core.enums import StudentStatus


@dataclass(frozen=True)
class Level:
    level_id: str
    code: str
    name: Optional[str] = None


@dataclass(frozen=True)
class Student:
    """Domain entity: a registered student.

    Owned by the student directory; the attendance core only reads it.
    """

    student_id: str
    matric_number: str
    full_name: str
    level_id: str
    status: StudentStatus = StudentStatus.ACTIVE
    level_code: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return self.status == StudentStatus.ACTIVE
