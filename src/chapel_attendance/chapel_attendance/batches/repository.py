from __future__ import annotations

from datetime import datetime
from typing import Protocol, Sequence

from ..uploads.model import Reconciliation
from .model import AttendanceBatchVersion


class BatchRepository(Protocol):
    def promote_upload(
        self,
        *,
        upload_id: str,
        actor_id: str,
        reconciliation: Reconciliation,
        at: datetime,
    ) -> AttendanceBatchVersion:
        """Atomically write a new current version and mark the upload confirmed.

        Must re-check inside the transaction that the upload is still staged
        (raising InvalidStateError otherwise) and roll back as a unit on any
        failure, leaving the upload staged.
        """

        raise NotImplementedError

    def get_current_versions(self, service_id: str) -> Sequence[AttendanceBatchVersion]:
        """Current version of every level-batch feeding a service."""

        raise NotImplementedError

    def list_versions(self, batch_id: str) -> Sequence[AttendanceBatchVersion]:
        raise NotImplementedError
