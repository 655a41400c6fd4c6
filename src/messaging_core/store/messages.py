"""Direct messages between users.

MessageStore reads and writes the ``messages`` table directly; it keeps no
copies of rows between calls. Soft-deleted messages are invisible to every
listing, conversation, unread count, and read-state update.
"""

from typing import Any, cast

import psycopg
import structlog
from psycopg import sql

from messaging_core.store.client import DatabaseClient
from messaging_core.store.errors import InternalError, InvalidArgumentError, classify_error
from messaging_core.store.models import (
    ById,
    ByUserPair,
    ConversationPage,
    Message,
    MessagePage,
    ReadSelector,
    live,
    validate_page,
)

logger = structlog.get_logger(__name__)

_MESSAGE_COLUMNS = sql.SQL(
    "id, sender_id, receiver_id, content, is_read, created_at, updated_at, deleted_at"
)


class MessageStore:
    """Send, list, thread, mark read, and soft-delete direct messages.

    Example:
        ```python
        with DatabaseClient(StoreConfig()) as client:
            store = MessageStore(client)
            message = store.send(sender_id=1, receiver_id=2, content="hi")
            inbox = store.list_messages(user_id=2, unread_only=True)
            store.mark_as_read(read_selector(message_id=message.id))
        ```
    """

    def __init__(self, client: DatabaseClient) -> None:
        self.client = client

    def send(self, sender_id: int, receiver_id: int, content: str) -> Message:
        """Store a new unread message.

        Args:
            sender_id: User sending the message
            receiver_id: User receiving the message
            content: Message text

        Returns:
            The stored message, including its assigned id and timestamps

        Raises:
            NotFoundError: If the sender or receiver does not exist
            UnavailableError: If the database cannot be reached
        """
        log = logger.bind(sender_id=sender_id, receiver_id=receiver_id)
        log.info("Sending message")

        query = sql.SQL(
            """
            INSERT INTO messages (sender_id, receiver_id, content, is_read, created_at, updated_at)
            VALUES (%(sender_id)s, %(receiver_id)s, %(content)s, false, now(), now())
            RETURNING {columns}
            """
        ).format(columns=_MESSAGE_COLUMNS)

        try:
            with self.client.connection() as conn:
                row = conn.execute(
                    query,
                    {"sender_id": sender_id, "receiver_id": receiver_id, "content": content},
                ).fetchone()
        except psycopg.Error as e:
            log.error("Failed to send message", error=str(e), error_type=type(e).__name__)
            raise classify_error(e) from e

        if row is None:
            raise InternalError("INSERT into messages returned no row")

        message = Message.from_row(cast(dict[str, Any], row))
        log.info("Message sent", message_id=message.id)
        return message

    def list_messages(
        self,
        user_id: int,
        unread_only: bool = False,
        page: int = 1,
        per_page: int = 20,
    ) -> MessagePage:
        """List live messages received by a user, oldest id first.

        Args:
            user_id: Receiving user
            unread_only: Only include messages not yet marked read
            page: 1-based page number
            per_page: Page size

        Returns:
            MessagePage with the page of messages, the size of the filtered set,
            and the user's total live unread count (independent of unread_only)

        Raises:
            InvalidArgumentError: If page or per_page is not positive
        """
        offset = validate_page(page, per_page)
        log = logger.bind(
            user_id=user_id, unread_only=unread_only, page=page, per_page=per_page
        )
        log.info("Listing messages")

        conditions = [sql.SQL("receiver_id = %(user_id)s"), live()]
        if unread_only:
            conditions.append(sql.SQL("is_read = false"))
        where = sql.SQL(" AND ").join(conditions)

        select_page = sql.SQL(
            """
            SELECT {columns}
            FROM messages
            WHERE {where}
            ORDER BY id ASC
            LIMIT %(limit)s OFFSET %(offset)s
            """
        ).format(columns=_MESSAGE_COLUMNS, where=where)
        count_scoped = sql.SQL("SELECT COUNT(*) AS total FROM messages WHERE {where}").format(
            where=where
        )
        count_unread = sql.SQL(
            """
            SELECT COUNT(*) AS unread
            FROM messages
            WHERE receiver_id = %(user_id)s AND is_read = false AND {live}
            """
        ).format(live=live())
        params = {"user_id": user_id, "limit": per_page, "offset": offset}

        try:
            # One snapshot for the page and both counts.
            with self.client.transaction() as conn:
                conn.execute("SET TRANSACTION ISOLATION LEVEL REPEATABLE READ")
                rows = conn.execute(select_page, params).fetchall()
                total_row = conn.execute(count_scoped, params).fetchone()
                unread_row = conn.execute(count_unread, params).fetchone()
        except psycopg.Error as e:
            log.error("Failed to list messages", error=str(e), error_type=type(e).__name__)
            raise classify_error(e) from e

        messages = [Message.from_row(cast(dict[str, Any], row)) for row in rows]
        total_count = int(cast(dict[str, Any], total_row)["total"])
        unread_count = int(cast(dict[str, Any], unread_row)["unread"])

        log.info(
            "Listed messages",
            message_count=len(messages),
            total_count=total_count,
            unread_count=unread_count,
        )
        return MessagePage(messages=messages, total_count=total_count, unread_count=unread_count)

    def get_conversation(
        self,
        user_id: int,
        peer_id: int,
        page: int = 1,
        per_page: int = 20,
    ) -> ConversationPage:
        """Page through live messages exchanged between two users, newest first.

        Direction does not matter: ``get_conversation(a, b)`` and
        ``get_conversation(b, a)`` return the same messages. Ties on
        ``created_at`` are ordered by id, newest id first.

        Raises:
            InvalidArgumentError: If page or per_page is not positive
        """
        offset = validate_page(page, per_page)
        log = logger.bind(user_id=user_id, peer_id=peer_id, page=page, per_page=per_page)
        log.info("Fetching conversation")

        where = sql.SQL(
            """
            ((sender_id = %(user_id)s AND receiver_id = %(peer_id)s)
              OR (sender_id = %(peer_id)s AND receiver_id = %(user_id)s))
            AND {live}
            """
        ).format(live=live())
        select_page = sql.SQL(
            """
            SELECT {columns}
            FROM messages
            WHERE {where}
            ORDER BY created_at DESC, id DESC
            LIMIT %(limit)s OFFSET %(offset)s
            """
        ).format(columns=_MESSAGE_COLUMNS, where=where)
        count_scoped = sql.SQL("SELECT COUNT(*) AS total FROM messages WHERE {where}").format(
            where=where
        )
        params = {"user_id": user_id, "peer_id": peer_id, "limit": per_page, "offset": offset}

        try:
            with self.client.transaction() as conn:
                conn.execute("SET TRANSACTION ISOLATION LEVEL REPEATABLE READ")
                rows = conn.execute(select_page, params).fetchall()
                total_row = conn.execute(count_scoped, params).fetchone()
        except psycopg.Error as e:
            log.error("Failed to fetch conversation", error=str(e), error_type=type(e).__name__)
            raise classify_error(e) from e

        messages = [Message.from_row(cast(dict[str, Any], row)) for row in rows]
        total_count = int(cast(dict[str, Any], total_row)["total"])

        log.info("Fetched conversation", message_count=len(messages), total_count=total_count)
        return ConversationPage(messages=messages, total_count=total_count)

    def mark_as_read(self, selector: ReadSelector) -> int:
        """Mark the selected live messages as read.

        The update is unconditional, so messages that were already read are
        rewritten and counted too.

        Args:
            selector: ``ById`` for explicit ids, ``ByUserPair`` for everything one
                user sent to another. Build it with ``read_selector`` when the
                request arrives as loose optional fields.

        Returns:
            Number of live messages matched by the selector

        Raises:
            InvalidArgumentError: If the selector is not a ById or ByUserPair
        """
        if isinstance(selector, ById):
            target = sql.SQL("id = ANY(%(message_ids)s)")
            params: dict[str, Any] = {"message_ids": sorted(selector.message_ids)}
            log = logger.bind(message_ids=params["message_ids"])
        elif isinstance(selector, ByUserPair):
            target = sql.SQL("sender_id = %(from_user_id)s AND receiver_id = %(to_user_id)s")
            params = {"from_user_id": selector.from_user_id, "to_user_id": selector.to_user_id}
            log = logger.bind(**params)
        else:
            logger.warning("Rejected read selector", selector_type=type(selector).__name__)
            raise InvalidArgumentError(f"Unsupported read selector: {type(selector).__name__}")

        log.info("Marking messages as read")
        query = sql.SQL(
            """
            UPDATE messages
            SET is_read = true, updated_at = now()
            WHERE {target} AND {live}
            """
        ).format(target=target, live=live())

        try:
            with self.client.connection() as conn:
                updated_count = conn.execute(query, params).rowcount
        except psycopg.Error as e:
            log.error("Failed to mark messages as read", error=str(e), error_type=type(e).__name__)
            raise classify_error(e) from e

        log.info("Marked messages as read", updated_count=updated_count)
        return updated_count

    def delete(self, message_id: int) -> bool:
        """Soft-delete a message.

        Deleting a message that does not exist or is already deleted is not an
        error; it simply changes nothing.

        Returns:
            True if the message was live and is now deleted, False otherwise
        """
        log = logger.bind(message_id=message_id)
        log.info("Deleting message")

        query = sql.SQL(
            """
            UPDATE messages
            SET deleted_at = now(), updated_at = now()
            WHERE id = %(message_id)s AND {live}
            """
        ).format(live=live())

        try:
            with self.client.connection() as conn:
                deleted = conn.execute(query, {"message_id": message_id}).rowcount > 0
        except psycopg.Error as e:
            log.error("Failed to delete message", error=str(e), error_type=type(e).__name__)
            raise classify_error(e) from e

        log.info("Message delete finished", deleted=deleted)
        return deleted

