from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, time
from typing import Optional

from ..core.enums import ServiceStatus


@dataclass(frozen=True)
class Service:
    """A chapel service. Immutable once completed."""

    service_id: str
    service_date: date
    service_type: str
    status: ServiceStatus
    level_ids: frozenset[str] = field(default_factory=frozenset)
    service_time: Optional[time] = None
    name: Optional[str] = None

    def applies_to(self, level_id: str) -> bool:
        return level_id in self.level_ids
