"""Records returned by the stores and the read-state selector variant.

Rows come back from psycopg as dictionaries (the pool uses ``dict_row``);
the ``from_row`` constructors turn them into these dataclasses.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from psycopg import sql

from messaging_core.store.errors import InvalidArgumentError


@dataclass
class Message:
    """A direct message from one user to another.

    Attributes:
        id: Message identifier, assigned by the database in increasing order
        sender_id: User who sent the message
        receiver_id: User the message is addressed to
        content: Message text
        is_read: Whether the receiver has marked it read
        created_at: Creation time
        updated_at: Time of the last read-state change or deletion
        deleted_at: Soft-deletion time, None while the message is live
    """

    id: int
    sender_id: int
    receiver_id: int
    content: str
    is_read: bool
    created_at: datetime
    updated_at: datetime
    deleted_at: datetime | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Message":
        return cls(
            id=int(row["id"]),
            sender_id=int(row["sender_id"]),
            receiver_id=int(row["receiver_id"]),
            content=row["content"],
            is_read=bool(row["is_read"]),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
            deleted_at=row["deleted_at"],
        )


@dataclass
class ReactionType:
    """An entry of the reaction catalog (e.g. "Like" / 👍)."""

    id: int
    name: str
    emoji: str
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "ReactionType":
        return cls(
            id=int(row["id"]),
            name=row["name"],
            emoji=row["emoji"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )


@dataclass
class Reaction:
    """A user's reaction of one type on one message.

    Attributes:
        id: Reaction identifier
        user_id: Reacting user
        message_id: Message reacted to
        reaction_type_id: Catalog entry used
        created_at: Creation time
        updated_at: Time of the last change
        deleted_at: Soft-deletion time, None while the reaction is live
    """

    id: int
    user_id: int
    message_id: int
    reaction_type_id: int
    created_at: datetime
    updated_at: datetime
    deleted_at: datetime | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Reaction":
        return cls(
            id=int(row["id"]),
            user_id=int(row["user_id"]),
            message_id=int(row["message_id"]),
            reaction_type_id=int(row["reaction_type_id"]),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
            deleted_at=row["deleted_at"],
        )


@dataclass
class ReactionCount:
    """Number of live reactions of one type on a message."""

    reaction_type: ReactionType
    count: int


@dataclass
class MessagePage:
    """One page of a user's inbox.

    Attributes:
        messages: Messages on this page
        total_count: Size of the filtered inbox before paging
        unread_count: Live unread messages to the user, ignoring the unread filter
    """

    messages: list[Message]
    total_count: int
    unread_count: int


@dataclass
class ConversationPage:
    """One page of the messages exchanged between two users."""

    messages: list[Message]
    total_count: int


@dataclass(frozen=True)
class ById:
    """Select messages by identifier."""

    message_ids: frozenset[int]

    def __post_init__(self) -> None:
        if not self.message_ids:
            raise InvalidArgumentError("ById selector needs at least one message id")


@dataclass(frozen=True)
class ByUserPair:
    """Select every message sent by one user to another."""

    from_user_id: int
    to_user_id: int


ReadSelector = ById | ByUserPair


def read_selector(
    message_id: int | None = None,
    message_ids: Iterable[int] = (),
    from_user_id: int | None = None,
    to_user_id: int | None = None,
) -> ReadSelector:
    """Build a ReadSelector from loosely specified request fields.

    Identifiers win over the user pair: if ``message_id`` or any of
    ``message_ids`` is given, the selector targets the union of those ids and
    the user fields are ignored. Otherwise both ``from_user_id`` and
    ``to_user_id`` must be given.

    Raises:
        InvalidArgumentError: If neither form of selector is supplied
    """
    ids = set(message_ids)
    if message_id is not None:
        ids.add(message_id)
    if ids:
        return ById(frozenset(ids))
    if from_user_id is not None and to_user_id is not None:
        return ByUserPair(from_user_id=from_user_id, to_user_id=to_user_id)
    raise InvalidArgumentError(
        "mark_as_read needs message_id, message_ids, or both from_user_id and to_user_id"
    )


def validate_page(page: int, per_page: int) -> int:
    """Check 1-based pagination arguments and return the row offset.

    Raises:
        InvalidArgumentError: If page or per_page is not positive
    """
    if page <= 0:
        raise InvalidArgumentError(f"page must be >= 1, got {page}")
    if per_page <= 0:
        raise InvalidArgumentError(f"per_page must be >= 1, got {per_page}")
    return (page - 1) * per_page


def live(table: str | None = None) -> sql.Composed:
    """SQL predicate that keeps only rows that have not been soft-deleted.

    Every query over messages or reactions goes through this.

    Args:
        table: Optional table name or alias to qualify the column with
    """
    column = sql.Identifier(table, "deleted_at") if table else sql.Identifier("deleted_at")
    return sql.SQL("{} IS NULL").format(column)
