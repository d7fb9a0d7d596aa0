"""
Error taxonomy for studio operations.

Every core function fails with one of these typed errors instead of
returning a sentinel. The HTTP layer maps ``kind``/``status_code`` to a
``{"kind", "message"}`` JSON body.

Store exceptions are translated in one place, ``translate_store_error``,
by PostgreSQL SQLSTATE:

    23P01 exclusion_violation   -> ConflictError
    23503 foreign_key_violation -> InvalidReferenceError
    23505 unique_violation      -> ConflictError
    57014 query_canceled        -> StoreTimeoutError
    anything else               -> StoreError
"""

import logging
from typing import Any

from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

logger = logging.getLogger(__name__)

EXCLUSION_VIOLATION = "23P01"
FOREIGN_KEY_VIOLATION = "23503"
UNIQUE_VIOLATION = "23505"
QUERY_CANCELED = "57014"

# Foreign-key constraint name fragments -> request field they refer to
REFERENCE_FIELDS = {
    "client_id": "client_id",
    "artist_id": "artist_id",
    "user_id": "user_id",
}


class StudioError(Exception):
    """Base class for all typed studio errors."""

    kind = "studio_error"
    status_code = 500

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"kind": self.kind, "message": self.message}
        body.update({k: v for k, v in self.details.items() if v is not None})
        return body


class ValidationError(StudioError):
    """Malformed or missing input. Raised before any store interaction."""

    kind = "validation_error"
    status_code = 400


class ConflictError(StudioError):
    """Scheduling overlap (or another uniqueness clash) detected."""

    kind = "conflict"
    status_code = 409


class NotFoundError(StudioError):
    """Referenced entity does not exist."""

    kind = "not_found"
    status_code = 404


class InvalidReferenceError(StudioError):
    """A foreign reference (client_id, artist_id, ...) points at nothing."""

    kind = "reference_error"
    status_code = 400

    def __init__(self, message: str, field: str | None = None, **details: Any):
        super().__init__(message, field=field, **details)
        self.field = field


class AvailabilityCheckFailed(StudioError):
    """The conflict check itself could not be completed."""

    kind = "availability_check_failed"
    status_code = 500


class StoreError(StudioError):
    """Generic persistence or connectivity failure."""

    kind = "store_error"
    status_code = 500


class StoreTimeoutError(StoreError):
    """A store interaction exceeded its time bound."""

    kind = "store_timeout"
    status_code = 504


def _sqlstate(exc: BaseException) -> str | None:
    """Extract the PostgreSQL SQLSTATE from a SQLAlchemy/asyncpg error."""
    orig = getattr(exc, "orig", None)
    for candidate in (orig, getattr(orig, "__cause__", None), exc):
        if candidate is None:
            continue
        code = getattr(candidate, "pgcode", None) or getattr(candidate, "sqlstate", None)
        if code:
            return str(code)
    return None


def _constraint_name(exc: BaseException) -> str | None:
    orig = getattr(exc, "orig", None)
    for candidate in (orig, getattr(orig, "__cause__", None)):
        name = getattr(candidate, "constraint_name", None)
        if name:
            return name
    return None


def _reference_field(exc: BaseException) -> str | None:
    constraint = _constraint_name(exc) or str(getattr(exc, "orig", exc))
    for fragment, field in REFERENCE_FIELDS.items():
        if fragment in constraint:
            return field
    return None


def translate_store_error(exc: BaseException, context: str = "store operation") -> StudioError:
    """
    Map a raw store exception to the studio error taxonomy.

    Args:
        exc: Exception raised by SQLAlchemy / asyncpg
        context: Short description used in messages and logs

    Returns:
        The typed error to raise (callers do ``raise translate_store_error(e) from e``)
    """
    if isinstance(exc, StudioError):
        return exc

    if isinstance(exc, (PoolTimeoutError, TimeoutError)):
        logger.error(f"Timeout during {context}: {exc}", extra={"error_kind": "store_timeout"})
        return StoreTimeoutError(f"The database did not respond in time during {context}.")

    code = _sqlstate(exc)

    if code == EXCLUSION_VIOLATION:
        logger.warning(f"Exclusion constraint rejected {context}", extra={"error_kind": "conflict"})
        return ConflictError(
            "Schedule conflict: the artist already has an appointment in that time range."
        )

    if code == FOREIGN_KEY_VIOLATION:
        field = _reference_field(exc)
        logger.warning(
            f"Foreign key violation during {context} (field={field})",
            extra={"error_kind": "reference_error"},
        )
        target = field or "a referenced record"
        return InvalidReferenceError(
            f"Invalid reference: {target} does not exist or is still in use.", field=field
        )

    if code == UNIQUE_VIOLATION:
        constraint = _constraint_name(exc)
        logger.warning(
            f"Unique constraint {constraint} rejected {context}",
            extra={"error_kind": "conflict"},
        )
        return ConflictError("A record with the same unique value already exists.", constraint=constraint)

    if code == QUERY_CANCELED:
        logger.error(f"Statement timeout during {context}", extra={"error_kind": "store_timeout"})
        return StoreTimeoutError(f"The database did not respond in time during {context}.")

    if isinstance(exc, (DBAPIError, SQLAlchemyError)):
        logger.error(
            f"Database error during {context}: {exc}",
            extra={"error_kind": "store_error"},
            exc_info=exc,
        )
        return StoreError(f"Database error during {context}.")

    logger.error(
        f"Unexpected error during {context}: {exc}",
        extra={"error_kind": "store_error"},
        exc_info=exc,
    )
    return StoreError(f"Unexpected error during {context}.")
