"""JSON error envelopes shared by controllers."""

from __future__ import annotations

from flask import jsonify

from gameia.core.errors import (
    ConcurrencyConflict,
    ConfigurationError,
    DuplicateEventError,
    GameiaError,
    InvalidTransition,
    NotFoundError,
    PersistenceError,
    ValidationError,
)

_STATUS_BY_ERROR = (
    (DuplicateEventError, 409),
    (ValidationError, 400),
    (NotFoundError, 404),
    (InvalidTransition, 409),
    (ConcurrencyConflict, 409),
    (ConfigurationError, 422),
    (PersistenceError, 503),
)


def error_response(exc: GameiaError):
    status = 500
    for error_cls, code in _STATUS_BY_ERROR:
        if isinstance(exc, error_cls):
            status = code
            break
    body = {"ok": False, "error": exc.code}
    if exc.details:
        body["details"] = exc.details
    if isinstance(exc, PersistenceError):
        # Progress may not have been saved; clients should offer a retry.
        body["retry"] = True
    return jsonify(body), status


def schema_error_response(exc):
    """Wrap a pydantic ValidationError."""
    return (
        jsonify({"ok": False, "error": "validation_error", "details": exc.errors(include_url=False, include_context=False, include_input=False)}),
        400,
    )
