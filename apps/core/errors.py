"""
Error kinds raised by the fleet engine, car registry and report aggregator.

Callers (the JSON views) translate them into HTTP status codes; nothing in
this project retries on them.
"""
from __future__ import annotations

import logging
from functools import wraps

from django.db import DatabaseError

logger = logging.getLogger(__name__)


class FleetError(Exception):
    kind = "error"
    http_status = 400

    def __init__(self, message: str = "", errors: dict | None = None):
        super().__init__(message)
        self.message = message
        self.errors = errors or {}


class NotFoundError(FleetError):
    kind = "not_found"
    http_status = 404


class ConflictError(FleetError):
    """Occupancy precondition violated, e.g. booking a car that is not available."""
    kind = "conflict"
    http_status = 409


class InvalidStatusError(FleetError):
    kind = "invalid_status"
    http_status = 400


class ValidationError(FleetError):
    kind = "validation"
    http_status = 400

    @classmethod
    def from_django(cls, exc) -> "ValidationError":
        if hasattr(exc, "error_dict"):
            errors = {field: [str(m) for m in msgs] for field, msgs in exc.message_dict.items()}
        else:
            errors = {"__all__": [str(m) for m in exc.messages]}
        return cls("Invalid data.", errors=errors)


class PermissionDeniedError(FleetError):
    kind = "permission_denied"
    http_status = 403


class StorageError(FleetError):
    kind = "storage"
    http_status = 503


def storage_errors(func):
    """
    Re-raises database failures as StorageError so callers only deal with
    fleet error kinds. Domain errors pass through untouched.
    """
    @wraps(func)
    def _wrapped(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except DatabaseError as exc:
            logger.exception("Storage failure in %s", func.__qualname__)
            raise StorageError(str(exc)) from exc

    return _wrapped
