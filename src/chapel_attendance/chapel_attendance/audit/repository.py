from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping, Optional, Protocol


class AuditRepository(Protocol):
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
        raise NotImplementedError
