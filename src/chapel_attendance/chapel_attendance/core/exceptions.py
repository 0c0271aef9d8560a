from __future__ import annotations

# Messages containing these fragments are never worth retrying.
_TERMINAL_MARKERS = ("not found", "Invalid", "parsing failed")


class DomainError(Exception):
    """Base exception for business rule violations."""

    code = "DOMAIN_ERROR"
    retryable = False

    def __init__(self, message: str, *, code: str | None = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""

    code = "VALIDATION_ERROR"


class AuthorizationError(DomainError):
    """Raised when the caller is not identified as an admin."""

    code = "UNAUTHORIZED"


class NotFoundError(DomainError):
    """Raised when an upload, service, student or warning does not exist."""

    code = "NOT_FOUND"


class InvalidStateError(DomainError):
    """Raised on a lifecycle conflict, e.g. confirming a canceled upload."""

    code = "INVALID_STATE"


class ManifestParseError(DomainError):
    """Raised when a scan manifest cannot be read at all."""

    code = "PARSE_ERROR"


class StorageError(DomainError):
    """Transient database/storage failure. Safe to retry."""

    code = "DB_ERROR"
    retryable = True


class ConcurrencyError(DomainError):
    """A keyed write kept losing races against another writer."""

    code = "CONFLICT"
    retryable = True


def is_retryable(error: BaseException) -> bool:
    """Tell a caller whether repeating the failed operation can succeed."""

    message = str(error)
    if any(marker in message for marker in _TERMINAL_MARKERS):
        return False
    if isinstance(error, DomainError):
        return error.retryable
    return True


class DuplicateKeyError(StorageError):
    """A unique key rejected an insert (another writer got there first)."""

    code = "DUPLICATE_KEY"


class BlobFormatError(DomainError):
    """A stored attendee/absentee list is not a JSON list at all."""

    code = "PARSE_ERROR"
