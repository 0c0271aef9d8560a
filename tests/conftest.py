from __future__ import annotations

import uuid
from dataclasses import replace
from datetime import date, datetime

import pytest

from src.chapel_attendance.chapel_attendance.batches.model import AttendanceBatchVersion
from src.chapel_attendance.chapel_attendance.core.enums import ServiceStatus, StudentStatus, UploadState, WarningStatus
from src.chapel_attendance.chapel_attendance.core.exceptions import (
    DuplicateKeyError,
    InvalidStateError,
    NotFoundError,
    StorageError,
)
from src.chapel_attendance.chapel_attendance.exeats.model import Exeat
from src.chapel_attendance.chapel_attendance.services.model import Service
from src.chapel_attendance.chapel_attendance.students.model import Level, Student
from src.chapel_attendance.chapel_attendance.uploads.model import AttendanceUpload
from src.chapel_attendance.chapel_attendance.warnings.model import WarningWeeklySnapshot


class FakeStudentsRepo:
    def __init__(self, students, levels):
        self._students = {s.student_id: s for s in students}
        self._levels = {lv.level_id: lv for lv in levels}

    def add(self, student: Student) -> None:
        self._students[student.student_id] = student

    def find_active_by_level(self, level_id):
        return [s for s in self._students.values() if s.level_id == level_id and s.is_active]

    def find_by_identifier(self, identifier):
        key = (identifier or "").strip().lower()
        for s in self._students.values():
            if s.student_id.lower() == key or s.matric_number.lower() == key:
                return s
        return None

    def list_active(self):
        return [s for s in self._students.values() if s.is_active]

    def get_level(self, level_id):
        return self._levels.get(level_id)


class FakeServicesRepo:
    def __init__(self, services):
        self._services = {s.service_id: s for s in services}

    def add(self, service: Service) -> None:
        self._services[service.service_id] = service

    def get_by_id(self, service_id):
        return self._services.get(service_id)

    def list_completed(self, *, start_date, end_date):
        return sorted(
            (
                s
                for s in self._services.values()
                if s.status == ServiceStatus.COMPLETED and start_date <= s.service_date <= end_date
            ),
            key=lambda s: s.service_date,
        )


class FakeExeatsRepo:
    def __init__(self, exeats=()):
        self.exeats = list(exeats)
        self.bulk_calls = 0
        self.single_calls = 0

    def list_for_student(self, student_id):
        self.single_calls += 1
        return [e for e in self.exeats if e.student_id == student_id]

    def list_for_students(self, student_ids):
        self.bulk_calls += 1
        wanted = set(student_ids)
        out: dict[str, list] = {}
        for e in self.exeats:
            if e.student_id in wanted:
                out.setdefault(e.student_id, []).append(e)
        return out


class FakeStore:
    def __init__(self):
        self.objects: dict[str, bytes] = {}

    def put_bytes(self, path, content):
        self.objects[path] = bytes(content)

    def get_bytes(self, path):
        if path not in self.objects:
            raise StorageError(f"Stored file not found: {path}")
        return self.objects[path]


class FakeUploadsRepo:
    def __init__(self):
        self.uploads: dict[str, AttendanceUpload] = {}

    def create_unless_duplicate(self, *, service_id, level_id, file_hash, storage_path, uploaded_by, uploaded_at):
        for u in self.uploads.values():
            if (
                (u.service_id, u.level_id, u.file_hash) == (service_id, level_id, file_hash)
                and u.state != UploadState.CANCELED
            ):
                return u, False
        upload = AttendanceUpload(
            upload_id=str(uuid.uuid4()),
            service_id=service_id,
            level_id=level_id,
            file_hash=file_hash,
            storage_path=storage_path,
            uploaded_by=uploaded_by,
            uploaded_at=uploaded_at,
        )
        self.uploads[upload.upload_id] = upload
        return upload, True

    def get_by_id(self, upload_id):
        return self.uploads.get(upload_id)

    def find_by_hash(self, *, service_id, level_id, file_hash):
        for u in reversed(list(self.uploads.values())):
            if (
                u.service_id == service_id
                and u.level_id == level_id
                and u.file_hash == file_hash
                and u.state != UploadState.CANCELED
            ):
                return u
        return None

    def _decide(self, upload_id, state, actor_id, at) -> bool:
        u = self.uploads.get(upload_id)
        if not u or u.state != UploadState.STAGED:
            return False
        self.uploads[upload_id] = AttendanceUpload(
            upload_id=u.upload_id,
            service_id=u.service_id,
            level_id=u.level_id,
            file_hash=u.file_hash,
            storage_path=u.storage_path,
            uploaded_by=u.uploaded_by,
            uploaded_at=u.uploaded_at,
            state=state,
            decided_by=actor_id,
            decided_at=at,
        )
        return True

    def mark_canceled(self, *, upload_id, actor_id, at):
        return self._decide(upload_id, UploadState.CANCELED, actor_id, at)

    def list_for_service(self, service_id):
        return [u for u in self.uploads.values() if u.service_id == service_id]


class FakeBatchesRepo:
    """Mirrors the transactional promote: nothing is kept unless every step succeeds."""

    def __init__(self, uploads: FakeUploadsRepo):
        self._uploads = uploads
        self.batches: dict[tuple[str, str], str] = {}
        self.versions: list[AttendanceBatchVersion] = []
        self.fail_with: Exception | None = None

    def promote_upload(self, *, upload_id, actor_id, reconciliation, at):
        upload = self._uploads.get_by_id(upload_id)
        if not upload:
            raise NotFoundError(f"Upload not found: {upload_id}")
        if upload.state != UploadState.STAGED:
            raise InvalidStateError(f"Invalid state: upload {upload_id} is already {upload.state.value}")
        if self.fail_with is not None:
            raise self.fail_with

        key = (upload.service_id, upload.level_id)
        batch_id = self.batches.get(key) or f"batch-{len(self.batches) + 1}"
        prior = [v for v in self.versions if v.batch_id == batch_id]
        version_id = f"{batch_id}-v{len(prior) + 1}"

        replaced = []
        for v in self.versions:
            if v.batch_id == batch_id and v.is_current:
                v = replace(v, is_current=False, superseded_by=version_id)
            replaced.append(v)

        new_version = AttendanceBatchVersion(
            version_id=version_id,
            batch_id=batch_id,
            upload_id=upload_id,
            service_id=upload.service_id,
            level_id=upload.level_id,
            version=len(prior) + 1,
            is_current=True,
            attendees=reconciliation.attendees,
            absentees=reconciliation.absentees,
            unmatched=tuple(u.to_dict() for u in reconciliation.unmatched),
            created_by=actor_id,
            created_at=at,
        )
        self._uploads._decide(upload_id, UploadState.CONFIRMED, actor_id, at)
        self.batches[key] = batch_id
        self.versions = replaced + [new_version]
        return new_version

    def get_current_versions(self, service_id):
        return [v for v in self.versions if v.service_id == service_id and v.is_current]

    def list_versions(self, batch_id):
        return sorted((v for v in self.versions if v.batch_id == batch_id), key=lambda v: -v.version)


class FakeWarningsRepo:
    def __init__(self):
        self.rows: dict[str, WarningWeeklySnapshot] = {}
        self.writes = 0

    def get_for_student_week(self, student_id, week_start):
        for r in self.rows.values():
            if r.student_id == student_id and r.week_start == week_start:
                return r
        return None

    def insert(self, *, student_id, week_start, absences, at):
        if self.get_for_student_week(student_id, week_start):
            raise DuplicateKeyError(f"Duplicate entry '{student_id}-{week_start}'")
        snap = WarningWeeklySnapshot(
            snapshot_id=str(uuid.uuid4()),
            student_id=student_id,
            week_start=week_start,
            absences=absences,
            status=WarningStatus.PENDING,
            first_created_at=at,
            last_updated_at=at,
        )
        self.rows[snap.snapshot_id] = snap
        self.writes += 1
        return snap

    def update_if_unchanged(self, *, snapshot_id, expected_absences, expected_status, absences, status, at):
        cur = self.rows.get(snapshot_id)
        if not cur or cur.absences != expected_absences or cur.status != expected_status:
            return False
        self.rows[snapshot_id] = replace(cur, absences=absences, status=status, last_updated_at=at)
        self.writes += 1
        return True

    def list_for_week(self, week_start):
        return [r for r in self.rows.values() if r.week_start == week_start]

    def get_by_id(self, snapshot_id):
        return self.rows.get(snapshot_id)

    def mark_sent(self, *, snapshot_id, actor_id, at):
        cur = self.rows.get(snapshot_id)
        if not cur or cur.status != WarningStatus.PENDING:
            return False
        self.rows[snapshot_id] = replace(cur, status=WarningStatus.SENT, sent_at=at, sent_by=actor_id)
        self.writes += 1
        return True


class FakeAuditRepo:
    def __init__(self, fail: bool = False):
        self.entries: list[dict] = []
        self.fail = fail

    def record(self, *, actor_id, action, object_type, object_id, details, at):
        if self.fail:
            raise StorageError("Database write failed: admin_actions is read-only")
        self.entries.append(
            {"actor_id": actor_id, "action": action, "object_type": object_type, "object_id": object_id}
        )


LEVEL_100 = Level(level_id="lvl-100", code="100", name="100 Level")
LEVEL_200 = Level(level_id="lvl-200", code="200", name="200 Level")


def make_student(n: int, level: Level = LEVEL_100, *, status=StudentStatus.ACTIVE) -> Student:
    return Student(
        student_id=f"stu-{n}",
        matric_number=f"MAT{n:03d}",
        full_name=f"Student {n}",
        level_id=level.level_id,
        status=status,
        level_code=level.code,
    )


def make_service(service_id: str, on: date, *, levels=(LEVEL_100, LEVEL_200), status=ServiceStatus.COMPLETED):
    return Service(
        service_id=service_id,
        service_date=on,
        service_type="midweek",
        status=status,
        level_ids=frozenset(lv.level_id for lv in levels),
    )


def make_exeat(student_id: str, start: date, end: date, **kwargs) -> Exeat:
    return Exeat(exeat_id=f"ex-{student_id}-{start}", student_id=student_id, start_date=start, end_date=end, **kwargs)


@pytest.fixture
def fixed_now():
    return datetime(2024, 2, 5, 9, 30, 0)


@pytest.fixture
def levels():
    return [LEVEL_100, LEVEL_200]


@pytest.fixture
def students_repo(levels):
    students = [
        make_student(1),
        make_student(2),
        make_student(3),
        make_student(4, LEVEL_200),
        make_student(5, status=StudentStatus.INACTIVE),
    ]
    return FakeStudentsRepo(students, levels)


@pytest.fixture
def services_repo():
    return FakeServicesRepo(
        [
            make_service("svc-mon", date(2024, 2, 5)),
            make_service("svc-wed", date(2024, 2, 7)),
            make_service("svc-canceled", date(2024, 2, 8), status=ServiceStatus.CANCELED),
        ]
    )


@pytest.fixture
def exeats_repo():
    return FakeExeatsRepo()


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def uploads_repo():
    return FakeUploadsRepo()


@pytest.fixture
def batches_repo(uploads_repo):
    return FakeBatchesRepo(uploads_repo)


@pytest.fixture
def warnings_repo():
    return FakeWarningsRepo()


@pytest.fixture
def audit_repo():
    return FakeAuditRepo()
