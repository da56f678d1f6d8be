"""Error taxonomy shared by services and controllers.

Every error carries a stable ``code`` string; controllers map codes to HTTP
statuses and services never return error payloads themselves.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class GameiaError(Exception):
    code = "error"

    def __init__(self, message: str = "", *, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message or self.code)
        self.details = details or {}


class ValidationError(GameiaError, ValueError):
    """Malformed or missing fields; rejected before any persistence."""

    code = "validation_error"


class DuplicateEventError(ValidationError):
    """An activity attempt was already submitted."""

    code = "duplicate"


class PersistenceError(GameiaError):
    """Storage failure on a critical write path; the caller must surface it."""

    code = "persistence_error"


class ConcurrencyConflict(GameiaError):
    """A conditional update lost its precondition. Benign; callers skip."""

    code = "concurrency_conflict"


class ConfigurationError(GameiaError):
    """Missing or invalid reward configuration. Reward fails closed."""

    code = "configuration_error"


class NotFoundError(GameiaError, LookupError):
    code = "not_found"


class InvalidTransition(GameiaError):
    """Terminal or one-way state changed twice."""

    code = "invalid_transition"


__all__ = [
    "GameiaError",
    "ValidationError",
    "DuplicateEventError",
    "PersistenceError",
    "ConcurrencyConflict",
    "ConfigurationError",
    "NotFoundError",
    "InvalidTransition",
]
