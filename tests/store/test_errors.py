"""Tests for mapping database failures onto store error kinds."""

import psycopg
import pytest
from psycopg import errors as psycopg_errors
from psycopg_pool import PoolClosed, PoolTimeout, TooManyRequests

from messaging_core.store import (
    AlreadyExistsError,
    InternalError,
    InvalidArgumentError,
    NotFoundError,
    StoreError,
    UnavailableError,
    classify_error,
)


@pytest.mark.parametrize(
    "exc,expected",
    [
        (psycopg_errors.ForeignKeyViolation("fk"), NotFoundError),
        (psycopg_errors.UniqueViolation("dup"), InternalError),
        (psycopg_errors.NotNullViolation("null"), InvalidArgumentError),
        (psycopg_errors.CheckViolation("check"), InvalidArgumentError),
        (psycopg.DataError("bad value"), InvalidArgumentError),
        (PoolTimeout("no connection"), UnavailableError),
        (PoolClosed("closed"), UnavailableError),
        (TooManyRequests("queue full"), UnavailableError),
        (psycopg_errors.QueryCanceled("timeout"), UnavailableError),
        (psycopg.OperationalError("server gone"), UnavailableError),
        (psycopg.ProgrammingError("syntax"), InternalError),
        (RuntimeError("boom"), InternalError),
    ],
)
def test_classify_error(exc: BaseException, expected: type[StoreError]) -> None:
    """Each failure lands in exactly the expected kind."""
    result = classify_error(exc)
    assert type(result) is expected


def test_store_errors_pass_through() -> None:
    original = AlreadyExistsError(1, 2, 3)
    assert classify_error(original) is original


def test_constraint_message_falls_back_to_exception_text() -> None:
    result = classify_error(psycopg_errors.ForeignKeyViolation("missing user"))
    assert str(result) == "Referenced row does not exist: missing user"


def test_error_codes() -> None:
    assert StoreError.code == "INTERNAL"
    assert InvalidArgumentError.code == "INVALID_ARGUMENT"
    assert NotFoundError.code == "NOT_FOUND"
    assert AlreadyExistsError.code == "ALREADY_EXISTS"
    assert UnavailableError.code == "UNAVAILABLE"
    assert InternalError.code == "INTERNAL"


def test_already_exists_carries_the_triple() -> None:
    error = AlreadyExistsError(user_id=5, message_id=100, reaction_type_id=1)

    assert (error.user_id, error.message_id, error.reaction_type_id) == (5, 100, 1)
    assert str(error) == "User 5 already reacted to message 100 with reaction type 1"
