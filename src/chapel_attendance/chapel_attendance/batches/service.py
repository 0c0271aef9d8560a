from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from ..audit.service import AuditLogger
from ..common.datetime_utils import now_local
from ..common.validators import require_non_empty
from ..core.enums import UploadState
from ..core.exceptions import InvalidStateError, NotFoundError
from ..uploads.reconcile import UploadReconciler
from ..uploads.repository import UploadRepository
from .model import ConfirmResult
from .repository import BatchRepository

logger = logging.getLogger(__name__)


class ConfirmationService:
    """Promotes a staged upload into the authoritative batch version, or drops it."""

    def __init__(
        self,
        uploads: UploadRepository,
        batches: BatchRepository,
        reconciler: UploadReconciler,
        audit: Optional[AuditLogger] = None,
    ):
        self._uploads = uploads
        self._batches = batches
        self._reconciler = reconciler
        self._audit = audit

    def _load_staged(self, upload_id: str):
        upload = self._uploads.get_by_id(upload_id)
        if not upload:
            raise NotFoundError(f"Upload not found: {upload_id}")
        if upload.state != UploadState.STAGED:
            raise InvalidStateError(f"Invalid state: upload {upload_id} is already {upload.state.value}")
        return upload

    def confirm(self, upload_id: str, actor_id: str, now: Optional[datetime] = None) -> ConfirmResult:
        upload_id = require_non_empty(upload_id, "upload_id")
        actor_id = require_non_empty(actor_id, "actor_id")

        upload = self._load_staged(upload_id)

        # Staged counts may be stale; match against the directory as it is now.
        rec = self._reconciler.reconcile_upload(upload)

        version = self._batches.promote_upload(
            upload_id=upload_id,
            actor_id=actor_id,
            reconciliation=rec,
            at=now or now_local(),
        )
        result = ConfirmResult(
            batch_id=version.batch_id,
            version_id=version.version_id,
            version=version.version,
            records_processed=rec.records_processed,
            matched_count=rec.matched_count,
            unmatched_count=rec.unmatched_count,
        )
        logger.info(
            "Confirmed upload %s as batch %s v%d by %s (%d records)",
            upload_id,
            version.batch_id,
            version.version,
            actor_id,
            result.records_processed,
        )

        if self._audit is not None:
            self._audit.log(actor_id, "attendance.confirm", "attendance_upload", upload_id, result.to_dict())
        return result

    def cancel(self, upload_id: str, actor_id: str, now: Optional[datetime] = None) -> dict:
        upload_id = require_non_empty(upload_id, "upload_id")
        actor_id = require_non_empty(actor_id, "actor_id")

        self._load_staged(upload_id)
        if not self._uploads.mark_canceled(upload_id=upload_id, actor_id=actor_id, at=now or now_local()):
            # Lost to a concurrent confirm or cancel.
            current = self._uploads.get_by_id(upload_id)
            state = current.state.value if current else "missing"
            raise InvalidStateError(f"Invalid state: upload {upload_id} is already {state}")

        logger.info("Canceled upload %s by %s", upload_id, actor_id)
        if self._audit is not None:
            self._audit.log(actor_id, "attendance.cancel", "attendance_upload", upload_id)
        return {"success": True}
