"""Schema checks for attendee/absentee lists stored as JSON.

The lists are loosely typed at rest. They are validated here, at the point
they are read back, and handed to the rest of the code as typed records.
Malformed entries are dropped one by one; only a blob that is not a list at
all is rejected.
"""
from __future__ import annotations

import logging
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as SchemaError

from ..core.exceptions import BlobFormatError
from ..database.mysql_base import load_json_column
from ..uploads.model import AbsenteeRecord, AttendeeRecord

logger = logging.getLogger(__name__)


class AttendeeEntry(BaseModel):
    model_config = ConfigDict(extra="ignore")

    student_id: str = Field(min_length=1)
    matric_number: str = ""
    student_name: str = ""
    level_id: Optional[str] = None
    unique_id: Optional[str] = None


class AbsenteeEntry(BaseModel):
    model_config = ConfigDict(extra="ignore")

    student_id: str = Field(min_length=1)
    matric_number: str = ""
    student_name: str = ""
    level_id: Optional[str] = None
    exempted: bool = False


def _as_list(raw: Any, *, source: str) -> list:
    if raw is None:
        return []
    try:
        raw = load_json_column(raw)
    except (UnicodeDecodeError, ValueError) as e:
        raise BlobFormatError(f"Stored list parsing failed for {source}: {e}")
    if not isinstance(raw, list):
        raise BlobFormatError(f"Stored list parsing failed for {source}: expected a list, got {type(raw).__name__}")
    return raw


def parse_absentees(raw: Any, *, source: str, default_level_id: str = "") -> list[AbsenteeRecord]:
    out: list[AbsenteeRecord] = []
    for index, item in enumerate(_as_list(raw, source=source)):
        try:
            entry = AbsenteeEntry.model_validate(item)
        except SchemaError as e:
            logger.warning("Dropping malformed absentee #%d in %s: %s", index, source, e.errors()[:1])
            continue
        out.append(
            AbsenteeRecord(
                student_id=entry.student_id,
                matric_number=entry.matric_number,
                student_name=entry.student_name,
                level_id=entry.level_id or default_level_id,
                exempted=entry.exempted,
            )
        )
    return out


def parse_attendees(raw: Any, *, source: str, default_level_id: str = "") -> list[AttendeeRecord]:
    out: list[AttendeeRecord] = []
    for index, item in enumerate(_as_list(raw, source=source)):
        try:
            entry = AttendeeEntry.model_validate(item)
        except SchemaError as e:
            logger.warning("Dropping malformed attendee #%d in %s: %s", index, source, e.errors()[:1])
            continue
        out.append(
            AttendeeRecord(
                student_id=entry.student_id,
                matric_number=entry.matric_number,
                student_name=entry.student_name,
                level_id=entry.level_id or default_level_id,
                unique_id=entry.unique_id,
            )
        )
    return out


def parse_unmatched(raw: Any, *, source: str) -> list[dict]:
    out: list[dict] = []
    for index, item in enumerate(_as_list(raw, source=source)):
        if not isinstance(item, dict):
            logger.warning("Dropping malformed unmatched row #%d in %s", index, source)
            continue
        out.append(item)
    return out
