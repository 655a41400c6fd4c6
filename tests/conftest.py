"""Pytest configuration and fixtures for testing.

This module provides pytest fixtures for:
- PostgreSQL Docker container management
- Database connection configuration
- Schema setup and per-test users
"""

import os
import shutil
import time
import uuid
from collections.abc import Callable, Iterator

import psycopg
import pytest
from psycopg.conninfo import conninfo_to_dict

from messaging_core.store import DatabaseClient, StoreConfig, apply_schema

DOCKER_CONNINFO = (
    "host=localhost port=5433 dbname=messaging user=postgres password=messaging_password"
)


@pytest.fixture(scope="session")
def docker_compose_file():
    """Return the path to the docker-compose.yml file."""
    return os.path.join(os.path.dirname(__file__), "..", "docker-compose.yml")


@pytest.fixture(scope="session")
def docker_setup():
    """Override docker setup to not use --build flag."""
    return ["up -d"]


@pytest.fixture(scope="session")
def postgres_conninfo(request: pytest.FixtureRequest) -> str:
    """Provide a connection string for a running PostgreSQL.

    TEST_DATABASE_URL points the tests at an existing database. Otherwise the
    container from docker-compose.yml is started. Integration tests are
    skipped when neither is possible.
    """
    url = os.getenv("TEST_DATABASE_URL")
    if url:
        return url

    if shutil.which("docker") is None:
        pytest.skip("PostgreSQL not available: set TEST_DATABASE_URL or install docker")

    try:
        docker_services = request.getfixturevalue("docker_services")
    except Exception as e:
        pytest.skip(f"PostgreSQL container could not be started: {e}")

    docker_services.wait_until_responsive(
        timeout=30.0, pause=0.5, check=lambda: is_postgres_responsive(DOCKER_CONNINFO)
    )
    return DOCKER_CONNINFO


def is_postgres_responsive(conninfo: str) -> bool:
    """Check if PostgreSQL accepts connections and answers queries."""
    try:
        with psycopg.connect(conninfo, connect_timeout=2) as conn:
            conn.execute("SELECT 1")
        # The image restarts the server once after init; give it a moment.
        time.sleep(1)
        return True
    except psycopg.Error:
        return False


@pytest.fixture(scope="session")
def store_config(postgres_conninfo: str) -> StoreConfig:
    """Provide store configuration for the test database."""
    params = conninfo_to_dict(postgres_conninfo)
    return StoreConfig(
        host=str(params.get("host") or "localhost"),
        port=int(params.get("port") or 5432),
        database=str(params.get("dbname") or "messaging"),
        user=str(params.get("user") or "postgres"),
        password=str(params.get("password") or ""),
        min_size=1,
        max_size=4,
        timeout=10.0,
    )


@pytest.fixture(scope="session")
def schema_applied(store_config: StoreConfig) -> None:
    """Apply the schema once per test session."""
    with DatabaseClient(store_config) as client:
        apply_schema(client)


@pytest.fixture
def db_client(store_config: StoreConfig, schema_applied: None) -> Iterator[DatabaseClient]:
    """Provide a connected DatabaseClient.

    The client is properly closed after the test completes.
    """
    client = DatabaseClient(store_config)
    client.connect()
    yield client
    if client.is_connected:
        client.close()


@pytest.fixture
def create_user(db_client: DatabaseClient) -> Callable[[], int]:
    """Return a factory that inserts a fresh user and returns its id.

    Every test works with its own users, so tests never see each other's
    messages or reactions.
    """

    def _create_user() -> int:
        tag = uuid.uuid4().hex[:12]
        with db_client.connection() as conn:
            row = conn.execute(
                "INSERT INTO users (name, email) VALUES (%s, %s) RETURNING id",
                (f"Test User {tag}", f"user_{tag}@example.com"),
            ).fetchone()
        assert row is not None
        return int(row["id"])

    return _create_user
