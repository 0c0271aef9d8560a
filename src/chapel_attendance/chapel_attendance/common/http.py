from __future__ import annotations

import logging
from functools import wraps

from flask import Flask, g, jsonify, request
from werkzeug.exceptions import HTTPException

from ..core.constants import ADMIN_HEADER
from ..core.exceptions import (
    AuthorizationError,
    BlobFormatError,
    ConcurrencyError,
    DomainError,
    InvalidStateError,
    ManifestParseError,
    NotFoundError,
    StorageError,
    ValidationError,
    is_retryable,
)

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR = (
    (AuthorizationError, 401),
    (NotFoundError, 404),
    (InvalidStateError, 409),
    (ConcurrencyError, 409),
    (ManifestParseError, 422),
    (BlobFormatError, 422),
    (StorageError, 503),
    (ValidationError, 400),
)


def status_for(error: DomainError) -> int:
    for error_type, status in _STATUS_BY_ERROR:
        if isinstance(error, error_type):
            return status
    return 400


def error_body(error: DomainError) -> dict:
    return {"error": error.message, "code": error.code, "canRetry": is_retryable(error)}


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(DomainError)
    def handle_domain_error(e: DomainError):
        status = status_for(e)
        if status >= 500:
            logger.error("%s %s failed: %s", request.method, request.path, e)
        return jsonify(error_body(e)), status

    @app.errorhandler(Exception)
    def handle_unexpected(e: Exception):
        if isinstance(e, HTTPException):
            return jsonify({"error": e.description, "code": e.name.upper().replace(" ", "_"), "canRetry": False}), e.code
        logger.exception("Unhandled error on %s %s", request.method, request.path)
        return jsonify({"error": "Internal server error", "code": "INTERNAL_ERROR", "canRetry": True}), 500


def admin_required(view):
    """Identity is verified upstream; here we only require the forwarded admin id."""

    @wraps(view)
    def wrapper(*args, **kwargs):
        admin_id = (request.headers.get(ADMIN_HEADER) or "").strip()
        if not admin_id:
            raise AuthorizationError(f"Missing {ADMIN_HEADER} header")
        g.admin_id = admin_id
        return view(*args, **kwargs)

    return wrapper


def json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Invalid request body: expected a JSON object")
    return data
