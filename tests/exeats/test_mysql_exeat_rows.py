from __future__ import annotations

from datetime import date

from src.chapel_attendance.chapel_attendance.core.enums import ExeatStatus
from src.chapel_attendance.chapel_attendance.exeats.mysql_exeat_repository import _to_exeats


def _row(exeat_id, status):
    return {
        "exeat_id": exeat_id,
        "student_id": "stu-1",
        "start_date": date(2024, 2, 5),
        "end_date": date(2024, 2, 9),
        "status": status,
        "reason": None,
    }


def test_unknown_status_row_is_skipped_and_logged(caplog):
    rows = [_row("ex-1", "active"), _row("ex-2", "pending_review"), _row("ex-3", "cancelled")]

    with caplog.at_level("WARNING"):
        exeats = _to_exeats(rows)

    assert [(e.exeat_id, e.status) for e in exeats] == [
        ("ex-1", ExeatStatus.ACTIVE),
        ("ex-3", ExeatStatus.CANCELED),
    ]
    assert any("ex-2" in m and "pending_review" in m for m in caplog.messages)
