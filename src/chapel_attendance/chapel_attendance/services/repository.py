from __future__ import annotations

from datetime import date
from typing import Optional, Protocol, Sequence

from .model import Service


class ServiceRepository(Protocol):
    def get_by_id(self, service_id: str) -> Optional[Service]:
        raise NotImplementedError

    def list_completed(self, *, start_date: date, end_date: date) -> Sequence[Service]:
        """Completed services with start_date <= service_date <= end_date."""

        raise NotImplementedError
