from __future__ import annotations

from ..core.constants import MAX_WARNING_THRESHOLD, MIN_WARNING_THRESHOLD
from ..core.exceptions import ValidationError


def require_non_empty(value: str, field_name: str) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(f"Invalid {field_name}: value is required")
    return str(value).strip()


def require_threshold(value) -> int:
    if isinstance(value, bool):
        raise ValidationError("Invalid threshold: must be an integer")
    try:
        threshold = int(value)
    except (TypeError, ValueError):
        raise ValidationError("Invalid threshold: must be an integer")
    if threshold != value and not isinstance(value, str):
        raise ValidationError("Invalid threshold: must be an integer")
    if not MIN_WARNING_THRESHOLD <= threshold <= MAX_WARNING_THRESHOLD:
        raise ValidationError(
            f"Invalid threshold: must be between {MIN_WARNING_THRESHOLD} and {MAX_WARNING_THRESHOLD}"
        )
    return threshold
