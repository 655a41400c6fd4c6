"""Tests for applying the schema."""

import pytest

from messaging_core.store import DEFAULT_REACTION_TYPES, DatabaseClient, apply_schema
from messaging_core.store.schema import LIVE_REACTION_UNIQUE_INDEX, SCHEMA_STATEMENTS


def test_live_reaction_index_statement_uses_index_name() -> None:
    (statement,) = [s for s in SCHEMA_STATEMENTS if "CREATE UNIQUE INDEX" in s]

    assert f"IF NOT EXISTS {LIVE_REACTION_UNIQUE_INDEX}" in statement
    assert "WHERE deleted_at IS NULL" in statement


@pytest.mark.integration
def test_reaction_catalog_is_seeded(db_client: DatabaseClient) -> None:
    with db_client.connection() as conn:
        rows = conn.execute("SELECT name, emoji FROM reaction_types ORDER BY id").fetchall()

    assert [(row["name"], row["emoji"]) for row in rows] == DEFAULT_REACTION_TYPES


@pytest.mark.integration
def test_apply_schema_is_idempotent(db_client: DatabaseClient) -> None:
    assert apply_schema(db_client) == 0

    with db_client.connection() as conn:
        row = conn.execute("SELECT COUNT(*) AS n FROM reaction_types").fetchone()
    assert row is not None
    assert row["n"] == len(DEFAULT_REACTION_TYPES)


@pytest.mark.integration
def test_live_reaction_index_is_partial(db_client: DatabaseClient) -> None:
    with db_client.connection() as conn:
        row = conn.execute(
            "SELECT indexdef FROM pg_indexes WHERE indexname = %s",
            (LIVE_REACTION_UNIQUE_INDEX,),
        ).fetchone()

    assert row is not None
    assert "UNIQUE" in row["indexdef"]
    assert "deleted_at IS NULL" in row["indexdef"]
