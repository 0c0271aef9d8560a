from __future__ import annotations

from dataclasses import dataclass

from .audit.mysql_audit_repository import MySQLAuditRepository
from .audit.service import AuditLogger
from .batches.mysql_batch_repository import MySQLBatchRepository
from .batches.service import ConfirmationService
from .core.constants import DEFAULT_WARNING_THRESHOLD
from .database.connection import DatabaseConnection
from .exeats.mysql_exeat_repository import MySQLExeatRepository
from .exeats.service import ExeatCoverage
from .services.mysql_service_repository import MySQLServiceRepository
from .storage.local_object_store import LocalObjectStore
from .students.mysql_student_repository import MySQLStudentRepository
from .uploads.mysql_upload_repository import MySQLUploadRepository
from .uploads.reconcile import UploadReconciler
from .uploads.service import UploadProcessor
from .warnings.mysql_warning_repository import MySQLWarningRepository
from .warnings.service import SnapshotWriter, WarningGenerator, WarningService


@dataclass(frozen=True)
class Container:
    upload_processor: UploadProcessor
    confirmation_service: ConfirmationService
    exeat_coverage: ExeatCoverage
    warning_generator: WarningGenerator
    warning_service: WarningService
    warning_threshold: int = DEFAULT_WARNING_THRESHOLD


def build_container(
    *,
    db_config: dict,
    storage_root: str,
    warning_threshold: int = DEFAULT_WARNING_THRESHOLD,
) -> Container:
    conn = DatabaseConnection.from_dict(db_config)

    students_repo = MySQLStudentRepository(conn)
    services_repo = MySQLServiceRepository(conn)
    exeats_repo = MySQLExeatRepository(conn)
    uploads_repo = MySQLUploadRepository(conn)
    batches_repo = MySQLBatchRepository(conn)
    warnings_repo = MySQLWarningRepository(conn)
    store = LocalObjectStore(storage_root)

    audit = AuditLogger(MySQLAuditRepository(conn))
    reconciler = UploadReconciler(students_repo, services_repo, store, exeats_repo)

    return Container(
        upload_processor=UploadProcessor(uploads_repo, reconciler, store),
        confirmation_service=ConfirmationService(uploads_repo, batches_repo, reconciler, audit),
        exeat_coverage=ExeatCoverage(exeats_repo),
        warning_generator=WarningGenerator(
            services_repo,
            students_repo,
            batches_repo,
            exeats_repo,
            SnapshotWriter(warnings_repo),
            audit,
        ),
        warning_service=WarningService(warnings_repo, audit),
        warning_threshold=int(warning_threshold),
    )
