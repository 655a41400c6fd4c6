"""Reactions on direct messages and the reaction type catalog.

A user holds at most one live reaction of a given type on a given message.
The partial unique index ``idx_reactions_live_unique`` enforces this in the
database; ``add_reaction`` also checks first, inside the same transaction,
so the common duplicate case gets a clear error without relying on the
constraint message.
"""

from typing import Any, cast

import psycopg
import structlog
from psycopg import errors as psycopg_errors
from psycopg import sql

from messaging_core.store.client import DatabaseClient
from messaging_core.store.errors import AlreadyExistsError, InternalError, classify_error
from messaging_core.store.models import Reaction, ReactionCount, ReactionType, live

logger = structlog.get_logger(__name__)

_REACTION_COLUMNS = sql.SQL(
    "id, user_id, message_id, reaction_type_id, created_at, updated_at, deleted_at"
)
_REACTION_TYPE_COLUMNS = sql.SQL("id, name, emoji, created_at, updated_at")


class ReactionStore:
    """Add, remove, list, and count reactions on messages.

    Example:
        ```python
        with DatabaseClient(StoreConfig()) as client:
            reactions = ReactionStore(client)
            reactions.add_reaction(user_id=5, message_id=100, reaction_type_id=1)
            for entry in reactions.count_reactions_by_type(100):
                print(entry.reaction_type.emoji, entry.count)
        ```
    """

    def __init__(self, client: DatabaseClient) -> None:
        self.client = client

    def add_reaction(self, user_id: int, message_id: int, reaction_type_id: int) -> Reaction:
        """Add a reaction of one type from a user to a message.

        Args:
            user_id: Reacting user
            message_id: Message being reacted to
            reaction_type_id: Catalog entry to use

        Returns:
            The stored reaction

        Raises:
            AlreadyExistsError: If the user already has a live reaction of this
                type on the message, including when a concurrent call wins the race
            NotFoundError: If the user, message, or reaction type does not exist
        """
        log = logger.bind(
            user_id=user_id, message_id=message_id, reaction_type_id=reaction_type_id
        )
        log.info("Adding reaction")

        params = {
            "user_id": user_id,
            "message_id": message_id,
            "reaction_type_id": reaction_type_id,
        }
        exists_query = sql.SQL(
            """
            SELECT EXISTS (
                SELECT 1 FROM reactions
                WHERE user_id = %(user_id)s
                  AND message_id = %(message_id)s
                  AND reaction_type_id = %(reaction_type_id)s
                  AND {live}
            ) AS reacted
            """
        ).format(live=live())
        insert_query = sql.SQL(
            """
            INSERT INTO reactions (user_id, message_id, reaction_type_id, created_at, updated_at)
            VALUES (%(user_id)s, %(message_id)s, %(reaction_type_id)s, now(), now())
            RETURNING {columns}
            """
        ).format(columns=_REACTION_COLUMNS)

        try:
            with self.client.transaction() as conn:
                existing = cast(dict[str, Any], conn.execute(exists_query, params).fetchone())
                if existing["reacted"]:
                    log.warning("Reaction already exists")
                    raise AlreadyExistsError(user_id, message_id, reaction_type_id)
                row = conn.execute(insert_query, params).fetchone()
        except psycopg_errors.UniqueViolation as e:
            log.warning("Reaction inserted concurrently", constraint=e.diag.constraint_name)
            raise AlreadyExistsError(user_id, message_id, reaction_type_id) from e
        except psycopg.Error as e:
            log.error("Failed to add reaction", error=str(e), error_type=type(e).__name__)
            raise classify_error(e) from e

        if row is None:
            raise InternalError("INSERT into reactions returned no row")

        reaction = Reaction.from_row(cast(dict[str, Any], row))
        log.info("Reaction added", reaction_id=reaction.id)
        return reaction

    def remove_reaction(
        self,
        user_id: int,
        message_id: int,
        reaction_type_id: int | None = None,
    ) -> int:
        """Soft-delete a user's live reactions on a message.

        Args:
            user_id: Reacting user
            message_id: Message the reactions are on
            reaction_type_id: Only remove this type; None removes every type

        Returns:
            Number of reactions removed (0 when nothing matched)
        """
        log = logger.bind(
            user_id=user_id, message_id=message_id, reaction_type_id=reaction_type_id
        )
        log.info("Removing reaction")

        conditions = [
            sql.SQL("user_id = %(user_id)s"),
            sql.SQL("message_id = %(message_id)s"),
            live(),
        ]
        if reaction_type_id is not None:
            conditions.append(sql.SQL("reaction_type_id = %(reaction_type_id)s"))
        query = sql.SQL(
            """
            UPDATE reactions
            SET deleted_at = now(), updated_at = now()
            WHERE {where}
            """
        ).format(where=sql.SQL(" AND ").join(conditions))
        params = {
            "user_id": user_id,
            "message_id": message_id,
            "reaction_type_id": reaction_type_id,
        }

        try:
            with self.client.connection() as conn:
                removed_count = conn.execute(query, params).rowcount
        except psycopg.Error as e:
            log.error("Failed to remove reaction", error=str(e), error_type=type(e).__name__)
            raise classify_error(e) from e

        log.info("Reactions removed", removed_count=removed_count)
        return removed_count

    def get_reactions_for_message(self, message_id: int) -> list[Reaction]:
        """Return live reactions on a message, oldest first."""
        log = logger.bind(message_id=message_id)
        query = sql.SQL(
            """
            SELECT {columns}
            FROM reactions
            WHERE message_id = %(message_id)s AND {live}
            ORDER BY created_at ASC, id ASC
            """
        ).format(columns=_REACTION_COLUMNS, live=live())

        try:
            with self.client.connection() as conn:
                rows = conn.execute(query, {"message_id": message_id}).fetchall()
        except psycopg.Error as e:
            log.error("Failed to read reactions", error=str(e), error_type=type(e).__name__)
            raise classify_error(e) from e

        reactions = [Reaction.from_row(cast(dict[str, Any], row)) for row in rows]
        log.info("Read reactions", reaction_count=len(reactions))
        return reactions

    def count_reactions_by_type(self, message_id: int) -> list[ReactionCount]:
        """Count live reactions on a message per reaction type.

        Types nobody used are left out rather than reported with a zero count.
        Entries are ordered by reaction type id.
        """
        log = logger.bind(message_id=message_id)
        query = sql.SQL(
            """
            SELECT t.id, t.name, t.emoji, t.created_at, t.updated_at, COUNT(r.id) AS count
            FROM reactions r
            JOIN reaction_types t ON t.id = r.reaction_type_id
            WHERE r.message_id = %(message_id)s AND {live}
            GROUP BY t.id
            ORDER BY t.id ASC
            """
        ).format(live=live("r"))

        try:
            with self.client.connection() as conn:
                rows = conn.execute(query, {"message_id": message_id}).fetchall()
        except psycopg.Error as e:
            log.error("Failed to count reactions", error=str(e), error_type=type(e).__name__)
            raise classify_error(e) from e

        counts = [
            ReactionCount(
                reaction_type=ReactionType.from_row(cast(dict[str, Any], row)),
                count=int(cast(dict[str, Any], row)["count"]),
            )
            for row in rows
        ]
        log.info("Counted reactions", type_count=len(counts))
        return counts

    def list_reaction_types(self) -> list[ReactionType]:
        """Return the whole reaction catalog ordered by id."""
        query = sql.SQL("SELECT {columns} FROM reaction_types ORDER BY id ASC").format(
            columns=_REACTION_TYPE_COLUMNS
        )
        try:
            with self.client.connection() as conn:
                rows = conn.execute(query).fetchall()
        except psycopg.Error as e:
            logger.error(
                "Failed to list reaction types", error=str(e), error_type=type(e).__name__
            )
            raise classify_error(e) from e

        return [ReactionType.from_row(cast(dict[str, Any], row)) for row in rows]

    def get_reaction_type(self, reaction_type_id: int) -> ReactionType | None:
        """Look up one catalog entry; None if there is no such id."""
        query = sql.SQL("SELECT {columns} FROM reaction_types WHERE id = %(id)s").format(
            columns=_REACTION_TYPE_COLUMNS
        )
        try:
            with self.client.connection() as conn:
                row = conn.execute(query, {"id": reaction_type_id}).fetchone()
        except psycopg.Error as e:
            logger.error(
                "Failed to read reaction type",
                reaction_type_id=reaction_type_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise classify_error(e) from e

        if row is None:
            return None
        return ReactionType.from_row(cast(dict[str, Any], row))
