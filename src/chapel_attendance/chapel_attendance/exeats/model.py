from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional

from ..core.enums import DerivedExeatStatus, ExeatStatus


@dataclass(frozen=True)
class Exeat:
    """An approved leave of absence over a closed date range."""

    exeat_id: str
    student_id: str
    start_date: date
    end_date: date
    status: ExeatStatus = ExeatStatus.ACTIVE
    reason: Optional[str] = None

    def covers(self, on_date: date) -> bool:
        """Raw range containment; ignores the derived presentation status."""
        if self.status == ExeatStatus.CANCELED:
            return False
        return self.start_date <= on_date <= self.end_date


def derived_status(exeat: Exeat, today: date) -> DerivedExeatStatus:
    """Presentation status, never persisted.

    ``active`` deliberately covers both upcoming and in-progress leave; an
    exeat only becomes ``past`` once the day after its end date has begun.
    """

    if exeat.status == ExeatStatus.CANCELED:
        return DerivedExeatStatus.CANCELED
    if today > exeat.end_date:
        return DerivedExeatStatus.PAST
    return DerivedExeatStatus.ACTIVE
