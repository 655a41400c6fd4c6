"""Database schema for messages, reactions, and the reaction catalog.

``apply_schema`` is idempotent: every object is created with IF NOT EXISTS
and the reaction catalog is only seeded while it is empty.
"""

import structlog

from messaging_core.store.client import DatabaseClient

logger = structlog.get_logger(__name__)

# (name, emoji) of the reaction types available out of the box, in id order.
DEFAULT_REACTION_TYPES: list[tuple[str, str]] = [
    ("Like", "👍"),
    ("Relatable", "🙂"),
    ("Cheering you on", "🎉"),
    ("Thanks for your work", "🙏"),
    ("Good point", "🤔"),
    ("Amazing", "🔥"),
    ("Funny", "😂"),
]

LIVE_REACTION_UNIQUE_INDEX = "idx_reactions_live_unique"

SCHEMA_STATEMENTS: list[str] = [
    """
    CREATE TABLE IF NOT EXISTS users (
        id SERIAL PRIMARY KEY,
        name VARCHAR(255) NOT NULL,
        email VARCHAR(255) NOT NULL UNIQUE,
        created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT now(),
        deleted_at TIMESTAMPTZ
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS messages (
        id SERIAL PRIMARY KEY,
        sender_id INTEGER NOT NULL REFERENCES users (id) ON DELETE CASCADE,
        receiver_id INTEGER NOT NULL REFERENCES users (id) ON DELETE CASCADE,
        content TEXT NOT NULL,
        is_read BOOLEAN NOT NULL DEFAULT false,
        created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT now(),
        deleted_at TIMESTAMPTZ
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_messages_sender_id ON messages (sender_id)",
    "CREATE INDEX IF NOT EXISTS idx_messages_receiver_id ON messages (receiver_id)",
    "CREATE INDEX IF NOT EXISTS idx_messages_is_read ON messages (is_read)",
    """
    CREATE INDEX IF NOT EXISTS idx_messages_conversation
        ON messages (sender_id, receiver_id)
    """,
    """
    CREATE TABLE IF NOT EXISTS reaction_types (
        id SERIAL PRIMARY KEY,
        name VARCHAR(255) NOT NULL,
        emoji VARCHAR(32) NOT NULL,
        created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS reactions (
        id SERIAL PRIMARY KEY,
        user_id INTEGER NOT NULL REFERENCES users (id) ON DELETE CASCADE,
        message_id INTEGER NOT NULL REFERENCES messages (id) ON DELETE CASCADE,
        reaction_type_id INTEGER NOT NULL REFERENCES reaction_types (id) ON DELETE CASCADE,
        created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT now(),
        deleted_at TIMESTAMPTZ
    )
    """,
    # Only live reactions are unique; soft-deleted rows free the triple.
    f"""
    CREATE UNIQUE INDEX IF NOT EXISTS {LIVE_REACTION_UNIQUE_INDEX}
        ON reactions (user_id, message_id, reaction_type_id)
        WHERE deleted_at IS NULL
    """,
    "CREATE INDEX IF NOT EXISTS idx_reactions_message_id ON reactions (message_id)",
]


def apply_schema(client: DatabaseClient) -> int:
    """Create the tables and indexes and seed the reaction catalog.

    Runs in a single transaction, so a failure leaves the database untouched.

    Args:
        client: Connected DatabaseClient

    Returns:
        Number of reaction types inserted (0 when the catalog was already seeded)
    """
    log = logger.bind(statement_count=len(SCHEMA_STATEMENTS))
    log.info("Applying schema")

    with client.transaction() as conn:
        with conn.cursor() as cur:
            for statement in SCHEMA_STATEMENTS:
                cur.execute(statement)

            # Serialize concurrent first-time seeding.
            cur.execute("LOCK TABLE reaction_types IN EXCLUSIVE MODE")
            cur.execute("SELECT EXISTS (SELECT 1 FROM reaction_types) AS seeded")
            row = cur.fetchone()
            if row is not None and row["seeded"]:
                log.info("Schema applied, reaction catalog already seeded")
                return 0

            cur.executemany(
                "INSERT INTO reaction_types (name, emoji) VALUES (%s, %s)",
                DEFAULT_REACTION_TYPES,
            )

    log.info("Schema applied", seeded_reaction_types=len(DEFAULT_REACTION_TYPES))
    return len(DEFAULT_REACTION_TYPES)
