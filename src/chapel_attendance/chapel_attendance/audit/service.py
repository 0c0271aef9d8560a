from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from ..common.datetime_utils import now_local
from ..core.exceptions import StorageError
from .repository import AuditRepository

logger = logging.getLogger(__name__)


class AuditLogger:
    """Best-effort admin action trail.

    Audit rows are written after the audited operation has committed, so a
    failure here is logged and never undoes the operation.
    """

    def __init__(self, audit: AuditRepository):
        self._audit = audit

    def log(
        self,
        actor_id: str,
        action: str,
        object_type: str,
        object_id: str,
        details: Optional[Mapping[str, Any]] = None,
    ) -> bool:
        try:
            self._audit.record(
                actor_id=actor_id,
                action=action,
                object_type=object_type,
                object_id=object_id,
                details=details,
                at=now_local(),
            )
        except StorageError as e:
            logger.error("Failed to audit %s on %s %s by %s: %s", action, object_type, object_id, actor_id, e)
            return False
        return True
