from __future__ import annotations

from enum import Enum


class StudentStatus(str, Enum):
    """Directory status of a student."""

    ACTIVE = "active"
    INACTIVE = "inactive"


class ServiceStatus(str, Enum):
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELED = "canceled"


class UploadState(str, Enum):
    """Lifecycle of an attendance upload: staged -> confirmed | canceled."""

    STAGED = "staged"
    CONFIRMED = "confirmed"
    CANCELED = "canceled"


class UnmatchedReason(str, Enum):
    MISSING_ID = "MISSING_ID"
    NOT_FOUND = "NOT_FOUND"
    WRONG_LEVEL = "WRONG_LEVEL"
    DUPLICATE_SCAN = "DUPLICATE_SCAN"


class ExeatStatus(str, Enum):
    """Stored exeat status."""

    ACTIVE = "active"
    ENDED = "ended"
    CANCELED = "canceled"


class DerivedExeatStatus(str, Enum):
    """Presentation status computed from stored status and today's date."""

    ACTIVE = "active"
    PAST = "past"
    CANCELED = "canceled"


class WarningStatus(str, Enum):
    PENDING = "pending"
    SENT = "sent"
