"""Error taxonomy shared by the leave, attendance and payroll services.

Callers can rely on every failing operation raising one of these:

- ValidationError: malformed input; never retried.
- NotFoundError: target absent or already in a terminal state; never retried.
- ConflictError: storage-level serialization failure, or a unique violation
  where the caller opted in (get-or-create races); the only retryable class,
  and only by restarting the whole transaction.
- StorageUnavailableError: infrastructure failure; surfaced to the caller.
- AuthorizationError: the actor may not perform the action.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy.exc import DBAPIError, IntegrityError, SQLAlchemyError

logger = logging.getLogger(__name__)

# SQLSTATE codes that mean "retry the transaction"
_RETRYABLE_SQLSTATES = frozenset({"40001", "40P01", "55P03"})


class HRMSError(Exception):
    """Base class for all engine errors."""

    code = "HRMS_ERROR"


class ValidationError(HRMSError):
    """Raised when input is malformed or violates a business rule."""

    code = "VALIDATION_ERROR"


class NotFoundError(HRMSError):
    """Raised when the target entity is absent or already terminal."""

    code = "NOT_FOUND"


class ConflictError(HRMSError):
    """Raised on a storage serialization failure (deadlock, lock timeout)."""

    code = "CONFLICT"


class StorageUnavailableError(HRMSError):
    """Raised when the database cannot be reached or fails outright."""

    code = "STORAGE_UNAVAILABLE"


class AuthorizationError(HRMSError):
    """Raised when an actor lacks the capability for an action."""

    code = "FORBIDDEN"


def _sqlstate(exc: DBAPIError) -> str | None:
    orig = exc.orig
    for attr in ("sqlstate", "pgcode"):
        value = getattr(orig, attr, None)
        if value:
            return str(value)
    return None


def _is_unique_violation(exc: IntegrityError) -> bool:
    if _sqlstate(exc) == "23505":
        return True
    return "unique constraint" in str(exc.orig).lower()


def is_retryable(exc: DBAPIError, unique_is_conflict: bool = False) -> bool:
    """Check whether a DBAPI failure is a serialization conflict.

    A unique violation only counts when ``unique_is_conflict`` is set, i.e.
    around a get-or-create insert that can lose a race. Anywhere else a
    duplicate key will not go away on retry.
    """
    if isinstance(exc, IntegrityError):
        return unique_is_conflict and _is_unique_violation(exc)
    if _sqlstate(exc) in _RETRYABLE_SQLSTATES:
        return True
    message = str(exc.orig).lower() if exc.orig is not None else ""
    return "database is locked" in message or "deadlock" in message


@contextmanager
def translate_storage_errors(unique_is_conflict: bool = False) -> Iterator[None]:
    """Re-raise SQLAlchemy failures as engine errors.

    Lock and serialization failures become ConflictError, integrity failures
    ValidationError, and everything else StorageUnavailableError.
    """
    try:
        yield
    except HRMSError:
        raise
    except DBAPIError as exc:
        if is_retryable(exc, unique_is_conflict):
            logger.warning("Serialization conflict: %s", exc.orig)
            raise ConflictError(str(exc.orig)) from exc
        if isinstance(exc, IntegrityError):
            raise ValidationError(f"Constraint violated: {exc.orig}") from exc
        logger.error("Storage failure: %s", exc)
        raise StorageUnavailableError(str(exc.orig)) from exc
    except (SQLAlchemyError, OSError) as exc:
        logger.error("Storage failure: %s", exc)
        raise StorageUnavailableError(str(exc)) from exc
