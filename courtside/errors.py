"""Error kinds raised by courtside.

Store failures are caught once at the repository boundary and normalized
into one of the :class:`StoreError` subclasses below so callers can tell a
missing table (prompt a migration) apart from a duplicate club name (show
the user a message) or a dropped connection (let the user refresh).
"""

from __future__ import annotations

from typing import Optional

from google.api_core import exceptions as gexc

# Postgres / PostgREST codes seen from SQL-backed stores.
_SCHEMA_CODES = {"42P01", "42703", "PGRST204", "PGRST205"}
_CONSTRAINT_CODES = {"23505", "23503"}


class CourtsideError(Exception):
    """Base class for every error raised by this package."""


class StoreError(CourtsideError):
    """A failed call against the record store."""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        context: Optional[str] = None,
    ) -> None:
        self.message = message
        self.code = code
        self.context = context
        super().__init__(f"{message} [{code}]" if code else message)


class ConfigurationMissing(StoreError):
    """The store cannot be reached because credentials are missing."""


class SchemaMismatch(StoreError):
    """The store rejected a write because a table or field is absent."""


class ConstraintViolation(StoreError):
    """A uniqueness rule was broken (duplicate phone, club name, ...)."""


class NotFoundError(StoreError):
    """A referenced record does not exist."""


class TransientNetworkError(StoreError):
    """Network or availability failure; the caller may retry by hand."""


class PermissionDenied(CourtsideError):
    """The acting user's role does not allow the operation."""


class SessionConflict(CourtsideError):
    """A session is already active or completed for that shift and date."""


def _error_code(exc: BaseException) -> Optional[str]:
    code = getattr(exc, "code", None)
    if code is None:
        return None
    # google.api_core exposes the HTTP status as ``code``; keep the gRPC name.
    grpc_code = getattr(exc, "grpc_status_code", None)
    if grpc_code is not None:
        return getattr(grpc_code, "name", str(grpc_code))
    return str(code)


def _error_message(exc: BaseException) -> str:
    for attr in ("message", "details"):
        value = getattr(exc, attr, None)
        if isinstance(value, str) and value:
            return value
    text = str(exc)
    return text or exc.__class__.__name__


def normalize_store_error(exc: BaseException, context: str) -> StoreError:
    """Return the :class:`StoreError` matching ``exc``.

    ``context`` names the failing call (``"sessions.save"``) and is kept on
    the returned error for logging.
    """

    if isinstance(exc, StoreError):
        return exc

    message = _error_message(exc)
    code = _error_code(exc)

    if isinstance(exc, (gexc.Unauthenticated, gexc.PermissionDenied)):
        return ConfigurationMissing(message, code, context)
    if isinstance(exc, gexc.FailedPrecondition) or code in _SCHEMA_CODES:
        return SchemaMismatch(message, code, context)
    if isinstance(exc, (gexc.AlreadyExists, gexc.Conflict)) or code in _CONSTRAINT_CODES:
        return ConstraintViolation(message, code, context)
    if isinstance(exc, gexc.NotFound):
        return NotFoundError(message, code, context)
    if isinstance(
        exc,
        (
            gexc.ServiceUnavailable,
            gexc.DeadlineExceeded,
            gexc.RetryError,
            ConnectionError,
            TimeoutError,
        ),
    ):
        return TransientNetworkError(message, code, context)
    return StoreError(message, code, context)


__all__ = [
    "CourtsideError",
    "StoreError",
    "ConfigurationMissing",
    "SchemaMismatch",
    "ConstraintViolation",
    "NotFoundError",
    "TransientNetworkError",
    "PermissionDenied",
    "SessionConflict",
    "normalize_store_error",
]
