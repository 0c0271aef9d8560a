from __future__ import annotations

from datetime import date, datetime

import pytest

from src.chapel_attendance.chapel_attendance.audit.service import AuditLogger
from src.chapel_attendance.chapel_attendance.batches.model import AttendanceBatchVersion
from src.chapel_attendance.chapel_attendance.core.enums import WarningStatus
from src.chapel_attendance.chapel_attendance.core.exceptions import BlobFormatError, ValidationError
from src.chapel_attendance.chapel_attendance.uploads.model import AbsenteeRecord
from src.chapel_attendance.chapel_attendance.warnings.service import SnapshotWriter, WarningGenerator

from conftest import LEVEL_100, LEVEL_200, make_exeat, make_service

WEEK = date(2024, 2, 5)


def absent(student_id: str, level_id: str = "lvl-100", exempted: bool = False) -> AbsenteeRecord:
    return AbsenteeRecord(student_id, student_id.upper(), student_id, level_id, exempted)


def confirm_version(batches_repo, service_id: str, *absentees: AbsenteeRecord, level_id: str = "lvl-100"):
    n = len(batches_repo.versions) + 1
    batches_repo.versions.append(
        AttendanceBatchVersion(
            version_id=f"v{n}",
            batch_id=f"b-{service_id}-{level_id}",
            upload_id=f"u{n}",
            service_id=service_id,
            level_id=level_id,
            version=1,
            is_current=True,
            attendees=(),
            absentees=tuple(absentees),
            unmatched=(),
            created_by="admin-1",
            created_at=datetime(2024, 2, 5, 12, 0),
        )
    )


@pytest.fixture
def generator(services_repo, students_repo, batches_repo, exeats_repo, warnings_repo, audit_repo):
    return WarningGenerator(
        services_repo,
        students_repo,
        batches_repo,
        exeats_repo,
        SnapshotWriter(warnings_repo),
        AuditLogger(audit_repo),
    )


def test_two_absences_generate_one_pending_warning(generator, batches_repo, warnings_repo, fixed_now):
    confirm_version(batches_repo, "svc-mon", absent("stu-1"))
    confirm_version(batches_repo, "svc-wed", absent("stu-1"))

    result = generator.generate("2024-02-05", 2, now=fixed_now)

    assert (result.generated, result.updated, result.total_services) == (1, 0, 2)
    (snap,) = warnings_repo.list_for_week(WEEK)
    assert (snap.student_id, snap.week_start, snap.absences, snap.status) == (
        "stu-1",
        WEEK,
        2,
        WarningStatus.PENDING,
    )
    assert snap.first_created_at == snap.last_updated_at == fixed_now


def test_exeat_over_both_dates_suppresses_warning(generator, batches_repo, exeats_repo, warnings_repo):
    exeats_repo.exeats.append(make_exeat("stu-1", date(2024, 2, 5), date(2024, 2, 7)))
    confirm_version(batches_repo, "svc-mon", absent("stu-1"))
    confirm_version(batches_repo, "svc-wed", absent("stu-1"))

    result = generator.generate(WEEK, 2)

    assert result.generated == 0
    assert warnings_repo.rows == {}


def test_sent_warning_keeps_status_when_count_grows(
    generator, services_repo, batches_repo, warnings_repo, fixed_now
):
    confirm_version(batches_repo, "svc-mon", absent("stu-1"))
    confirm_version(batches_repo, "svc-wed", absent("stu-1"))
    generator.generate(WEEK, 2, now=fixed_now)
    (snap,) = warnings_repo.list_for_week(WEEK)
    warnings_repo.mark_sent(snapshot_id=snap.snapshot_id, actor_id="admin-1", at=fixed_now)

    services_repo.add(make_service("svc-fri", date(2024, 2, 9)))
    confirm_version(batches_repo, "svc-fri", absent("stu-1"))
    later = datetime(2024, 2, 10, 8, 0)
    result = generator.generate(WEEK, 2, now=later)

    assert (result.generated, result.updated) == (0, 1)
    snap = warnings_repo.get_by_id(snap.snapshot_id)
    assert snap.absences == 3
    assert snap.status == WarningStatus.SENT
    assert snap.last_updated_at == later
    assert snap.first_created_at == fixed_now


def test_rerun_with_same_data_writes_nothing(generator, batches_repo, warnings_repo):
    confirm_version(batches_repo, "svc-mon", absent("stu-1"), absent("stu-2"))
    confirm_version(batches_repo, "svc-wed", absent("stu-1"), absent("stu-2"))
    generator.generate(WEEK, 2)
    writes = warnings_repo.writes

    result = generator.generate(WEEK, 2)

    assert (result.generated, result.updated) == (0, 0)
    assert warnings_repo.writes == writes


@pytest.mark.parametrize("threshold, expected", [(2, 1), (3, 0)])
def test_threshold_boundary(generator, batches_repo, threshold, expected):
    confirm_version(batches_repo, "svc-mon", absent("stu-1"))
    confirm_version(batches_repo, "svc-wed", absent("stu-1"))

    assert generator.generate(WEEK, threshold).generated == expected


def test_filters_exempted_unknown_inactive_and_foreign_level(generator, services_repo, batches_repo, warnings_repo):
    services_repo.add(make_service("svc-tue", date(2024, 2, 6), levels=(LEVEL_200,)))
    confirm_version(batches_repo, "svc-mon", absent("stu-1", exempted=True), absent("ghost"), absent("stu-5"))
    confirm_version(batches_repo, "svc-wed", absent("stu-1", exempted=True), absent("ghost"), absent("stu-5"))
    # stu-2 is in level 100 but svc-tue only applies to level 200.
    confirm_version(batches_repo, "svc-tue", absent("stu-2"), absent("stu-4", "lvl-200"), level_id="lvl-200")
    confirm_version(batches_repo, "svc-mon", absent("stu-4", "lvl-200"), level_id="lvl-200")

    result = generator.generate(WEEK, 2)

    assert result.generated == 1
    assert [s.student_id for s in warnings_repo.list_for_week(WEEK)] == ["stu-4"]


def test_services_without_confirmed_batches_are_skipped(generator, batches_repo, warnings_repo):
    confirm_version(batches_repo, "svc-mon", absent("stu-1"))

    result = generator.generate(WEEK, 1)

    assert result.total_services == 2
    assert result.skipped_services == ["svc-wed"]
    assert result.generated == 1


def test_unreadable_blob_skips_only_that_service(generator, batches_repo, warnings_repo, monkeypatch):
    confirm_version(batches_repo, "svc-wed", absent("stu-1"))
    real = batches_repo.get_current_versions

    def flaky(service_id):
        if service_id == "svc-mon":
            raise BlobFormatError("Stored list parsing failed for batch version v0: expected a list")
        return real(service_id)

    monkeypatch.setattr(batches_repo, "get_current_versions", flaky)

    result = generator.generate(WEEK, 1)

    assert result.skipped_services == ["svc-mon"]
    assert result.generated == 1


def test_week_without_services_is_a_zero_result(generator, warnings_repo):
    result = generator.generate("2024-03-04", 2)

    assert result.to_dict() == {
        "weekStart": "2024-03-04",
        "threshold": 2,
        "generated": 0,
        "updated": 0,
        "totalServices": 0,
        "skippedServices": [],
    }


def test_week_end_is_the_sunday_of_the_iso_week(generator, services_repo, batches_repo):
    services_repo.add(make_service("svc-sun", date(2024, 2, 11)))
    services_repo.add(make_service("svc-next-mon", date(2024, 2, 12)))

    result = generator.generate("2024-02-07", 2)

    # wed 7th and sun 11th; monday 5th is before week_start.
    assert result.total_services == 2


@pytest.mark.parametrize(
    "week_start, threshold",
    [("05/02/2024", 2), ("", 2), ("2024-02-05", 0), ("2024-02-05", 11), ("2024-02-05", "two"), ("2024-02-05", True)],
)
def test_invalid_input_is_rejected_before_any_write(generator, warnings_repo, week_start, threshold):
    with pytest.raises(ValidationError) as exc:
        generator.generate(week_start, threshold)

    assert str(exc.value).startswith("Invalid")
    assert warnings_repo.rows == {}


def test_generation_is_audited_when_actor_given(generator, batches_repo, audit_repo):
    confirm_version(batches_repo, "svc-mon", absent("stu-1"))

    generator.generate(WEEK, 1, actor_id="admin-9")

    assert audit_repo.entries == [
        {"actor_id": "admin-9", "action": "warnings.generate", "object_type": "warning_week", "object_id": "2024-W06"}
    ]
