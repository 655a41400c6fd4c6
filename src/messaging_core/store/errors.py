"""Error kinds raised by the message and reaction stores.

Every database failure is classified into one of these kinds before it
leaves a store. The original exception is always chained as ``__cause__``.
"""

import psycopg
from psycopg import errors as psycopg_errors
from psycopg_pool import PoolClosed, PoolTimeout, TooManyRequests


class StoreError(Exception):
    """Base class for store failures.

    Attributes:
        code: Stable name of the error kind, used by callers to pick a
            transport-specific status.
    """

    code = "INTERNAL"


class InvalidArgumentError(StoreError):
    """Raised for malformed selectors, bad pagination, or rejected values."""

    code = "INVALID_ARGUMENT"


class NotFoundError(StoreError):
    """Raised when a referenced user, message, or reaction type does not exist."""

    code = "NOT_FOUND"


class AlreadyExistsError(StoreError):
    """Raised when a live reaction already exists for a (user, message, type) triple.

    Attributes:
        user_id: Reacting user
        message_id: Message reacted to
        reaction_type_id: Reaction type
    """

    code = "ALREADY_EXISTS"

    def __init__(self, user_id: int, message_id: int, reaction_type_id: int) -> None:
        self.user_id = user_id
        self.message_id = message_id
        self.reaction_type_id = reaction_type_id
        super().__init__(
            f"User {user_id} already reacted to message {message_id} "
            f"with reaction type {reaction_type_id}"
        )


class UnavailableError(StoreError):
    """Raised when the database cannot be reached or no connection is free."""

    code = "UNAVAILABLE"


class InternalError(StoreError):
    """Raised for database failures that fit no other kind."""

    code = "INTERNAL"


def classify_error(exc: BaseException) -> StoreError:
    """Map a psycopg or pool exception to a StoreError kind.

    Store errors pass through unchanged. The caller is expected to raise the
    result ``from exc``.

    Args:
        exc: Exception raised while talking to the database

    Returns:
        StoreError instance describing the failure
    """
    if isinstance(exc, StoreError):
        return exc

    if isinstance(exc, psycopg_errors.ForeignKeyViolation):
        return NotFoundError(_describe_constraint(exc, "Referenced row does not exist"))
    if isinstance(exc, psycopg_errors.UniqueViolation):
        return InternalError(_describe_constraint(exc, "Unique constraint violated"))
    if isinstance(
        exc,
        (
            psycopg_errors.NotNullViolation,
            psycopg_errors.CheckViolation,
            psycopg.DataError,
        ),
    ):
        return InvalidArgumentError(_describe_constraint(exc, "Rejected value"))
    if isinstance(exc, (PoolTimeout, PoolClosed, TooManyRequests)):
        return UnavailableError(f"No database connection available: {exc}")
    if isinstance(exc, psycopg_errors.QueryCanceled):
        return UnavailableError(f"Statement canceled: {exc}")
    if isinstance(exc, psycopg.OperationalError):
        return UnavailableError(f"Database unavailable: {exc}")
    return InternalError(f"{type(exc).__name__}: {exc}")


def _describe_constraint(exc: psycopg.Error, prefix: str) -> str:
    diag = exc.diag
    detail = diag.message_detail or diag.message_primary or str(exc)
    if diag.constraint_name:
        return f"{prefix} ({diag.constraint_name}): {detail}"
    return f"{prefix}: {detail}"
