from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from .model import AttendanceUpload


class UploadRepository(Protocol):
    def create_unless_duplicate(
        self,
        *,
        service_id: str,
        level_id: str,
        file_hash: str,
        storage_path: str,
        uploaded_by: str,
        uploaded_at: datetime,
    ) -> tuple[AttendanceUpload, bool]:
        """Stage a new upload unless a non-canceled one with the same hash exists.

        The check and the insert are serialized per (service, level). Returns the
        upload and whether it was created by this call.
        """

        raise NotImplementedError

    def get_by_id(self, upload_id: str) -> Optional[AttendanceUpload]:
        raise NotImplementedError

    def find_by_hash(self, *, service_id: str, level_id: str, file_hash: str) -> Optional[AttendanceUpload]:
        """Most recent non-canceled upload with this content for (service, level)."""

        raise NotImplementedError

    def mark_canceled(self, *, upload_id: str, actor_id: str, at: datetime) -> bool:
        """staged -> canceled. Returns False when the upload was not staged."""

        raise NotImplementedError

    def list_for_service(self, service_id: str) -> Sequence[AttendanceUpload]:
        raise NotImplementedError
