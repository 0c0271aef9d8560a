from __future__ import annotations

import logging
import re
from datetime import datetime
from typing import Optional

from ..common.datetime_utils import now_local
from ..common.validators import require_non_empty
from ..core.constants import STORAGE_PREFIX
from ..core.exceptions import NotFoundError, ValidationError
from ..services.model import Service
from ..storage.repository import ObjectStore
from ..students.model import Level
from .manifest import file_hash, parse_manifest
from .model import ProcessResult, Reconciliation
from .reconcile import UploadReconciler
from .repository import UploadRepository

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9._-]")


def build_storage_path(*, service: Service, level: Level, filename: str, now: datetime) -> str:
    safe_name = _UNSAFE_CHARS.sub("_", filename or "manifest.csv")
    ts = int(now.timestamp() * 1000)
    return f"{STORAGE_PREFIX}/{service.service_date.isoformat()}/{service.service_id}/{level.code}/{ts}-{safe_name}"


class UploadProcessor:
    """Use case: turn a raw scan manifest into a staged upload.

    Nothing authoritative is written here besides the upload record itself;
    batch versions only appear on confirmation.
    """

    def __init__(self, uploads: UploadRepository, reconciler: UploadReconciler, store: ObjectStore):
        self._uploads = uploads
        self._reconciler = reconciler
        self._store = store

    @staticmethod
    def _result(upload_id: str, rec: Reconciliation, *, duplicate: bool = False) -> ProcessResult:
        return ProcessResult(
            upload_id=upload_id,
            matched_count=rec.matched_count,
            unmatched_count=rec.unmatched_count,
            absentee_count=rec.absentee_count,
            error_rows=[row.to_dict() for row in rec.unmatched],
            duplicate=duplicate,
        )

    def process_upload(
        self,
        *,
        service_id: str,
        level_id: str,
        content: bytes,
        uploaded_by: str,
        filename: str = "manifest.csv",
        now: Optional[datetime] = None,
    ) -> ProcessResult:
        service_id = require_non_empty(service_id, "service_id")
        level_id = require_non_empty(level_id, "level_id")
        uploaded_by = require_non_empty(uploaded_by, "uploaded_by")
        if not content:
            raise ValidationError("Invalid manifest: file is empty")

        service, level = self._reconciler.resolve_target(service_id=service_id, level_id=level_id)

        # Parse before anything is stored: a corrupt manifest stages nothing.
        entries = parse_manifest(content)
        digest = file_hash(content)

        existing = self._uploads.find_by_hash(service_id=service_id, level_id=level_id, file_hash=digest)
        if existing:
            logger.info("Upload %s already holds this manifest; re-evaluating", existing.upload_id)
            rec = self._reconciler.reconcile_entries(entries, service=service, level=level)
            return self._result(existing.upload_id, rec, duplicate=True)

        rec = self._reconciler.reconcile_entries(entries, service=service, level=level)

        now = now or now_local()
        storage_path = build_storage_path(service=service, level=level, filename=filename, now=now)
        self._store.put_bytes(storage_path, content)

        upload, created = self._uploads.create_unless_duplicate(
            service_id=service_id,
            level_id=level_id,
            file_hash=digest,
            storage_path=storage_path,
            uploaded_by=uploaded_by,
            uploaded_at=now,
        )
        if not created:
            # Lost a race against an identical upload; the stored copy is left unreferenced.
            logger.info("Upload %s was staged concurrently with the same manifest", upload.upload_id)
            return self._result(upload.upload_id, rec, duplicate=True)

        logger.info(
            "Staged upload %s for service=%s level=%s (matched=%d unmatched=%d absent=%d)",
            upload.upload_id,
            service_id,
            level.code,
            rec.matched_count,
            rec.unmatched_count,
            rec.absentee_count,
        )
        return self._result(upload.upload_id, rec)

    def preview(self, upload_id: str) -> dict:
        upload = self._uploads.get_by_id(require_non_empty(upload_id, "upload_id"))
        if not upload:
            raise NotFoundError(f"Upload not found: {upload_id}")

        rec = self._reconciler.reconcile_upload(upload)
        return {
            "uploadId": upload.upload_id,
            "state": upload.state.value,
            "summary": {
                "total_records": rec.matched_count + rec.unmatched_count,
                "matched_count": rec.matched_count,
                "unmatched_count": rec.unmatched_count,
                "absentee_count": rec.absentee_count,
            },
            "issues": [row.to_dict() for row in rec.unmatched],
        }

    def list_uploads(self, service_id: str) -> list[dict]:
        return [
            {
                "uploadId": u.upload_id,
                "levelId": u.level_id,
                "state": u.state.value,
                "uploadedBy": u.uploaded_by,
                "uploadedAt": u.uploaded_at.isoformat() if u.uploaded_at else None,
                "fileHash": u.file_hash,
            }
            for u in self._uploads.list_for_service(require_non_empty(service_id, "service_id"))
        ]
