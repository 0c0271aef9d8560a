from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta


@dataclass(frozen=True)
class WeekRange:
    start: date
    end: date

    @property
    def week_id(self) -> str:
        year, week, _ = self.start.isocalendar()
        return f"{year}-W{week:02d}"


def week_range(week_start: date) -> WeekRange:
    """From ``week_start`` up to the Sunday closing its ISO (Monday-first) week."""

    end = week_start + timedelta(days=6 - week_start.weekday())
    return WeekRange(start=week_start, end=end)
