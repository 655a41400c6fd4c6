"""PostgreSQL client for the message and reaction stores.

This module provides a pooled client for connecting to PostgreSQL, with
helpers for borrowing connections and running transactions.
"""

import os
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, Optional

import structlog
from psycopg import Connection
from psycopg.conninfo import make_conninfo
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool

logger = structlog.get_logger(__name__)


class StoreConfig:
    """Configuration for the PostgreSQL connection.

    Loads configuration from environment variables with sensible defaults.
    """

    def __init__(
        self,
        host: Optional[str] = None,
        port: Optional[int] = None,
        database: Optional[str] = None,
        user: Optional[str] = None,
        password: Optional[str] = None,
        min_size: int = 2,
        max_size: int = 10,
        timeout: float = 30.0,
        statement_timeout_ms: int = 0,
    ) -> None:
        """Initialize store configuration.

        Args:
            host: Database host (defaults to DB_HOST env var or 'localhost')
            port: Database port (defaults to DB_PORT env var or 5432)
            database: Database name (defaults to DB_NAME env var or 'messaging')
            user: Database user (defaults to DB_USER env var or 'postgres')
            password: Database password (defaults to DB_PASSWORD env var or empty string)
            min_size: Minimum pool size (default: 2)
            max_size: Maximum pool size (default: 10)
            timeout: Seconds to wait for a pooled connection (default: 30)
            statement_timeout_ms: Per-statement timeout, 0 disables it (default: 0)
        """
        self.host = host or os.getenv("DB_HOST", "localhost")
        self.port = port or int(os.getenv("DB_PORT", "5432"))
        self.database = database or os.getenv("DB_NAME", "messaging")
        self.user = user or os.getenv("DB_USER", "postgres")
        self.password = password or os.getenv("DB_PASSWORD", "")
        self.min_size = min_size
        self.max_size = max_size
        self.timeout = timeout
        self.statement_timeout_ms = statement_timeout_ms

    def to_connection_string(self) -> str:
        """Generate PostgreSQL connection string.

        Returns:
            Connection string in DSN format
        """
        params: dict[str, Any] = {
            "host": self.host,
            "port": self.port,
            "dbname": self.database,
            "user": self.user,
            "password": self.password,
        }
        if self.statement_timeout_ms > 0:
            params["options"] = f"-c statement_timeout={self.statement_timeout_ms}"
        return make_conninfo(**params)

    def validate(self) -> None:
        """Validate that required configuration is present.

        Raises:
            ValueError: If required configuration is missing
        """
        if not self.host:
            raise ValueError("Database host is required")
        if not self.database:
            raise ValueError("Database name is required")
        if not self.user:
            raise ValueError("Database user is required")


class DatabaseClient:
    """Pooled client for the messaging database.

    Connections run in autocommit mode; statements that must succeed or fail
    together are grouped with ``transaction()``.

    Example:
        ```python
        # Using as context manager
        config = StoreConfig()
        with DatabaseClient(config) as client:
            client.health_check()
            messages = MessageStore(client)

        # Manual lifecycle management
        client = DatabaseClient(config)
        client.connect()
        try:
            client.health_check()
        finally:
            client.close()
        ```
    """

    def __init__(self, config: StoreConfig) -> None:
        """Initialize the database client.

        Args:
            config: Store configuration
        """
        self.config = config
        self.config.validate()
        self._pool: Optional[ConnectionPool[Any]] = None
        self._logger = logger.bind(
            db_host=config.host,
            db_port=config.port,
            db_name=config.database,
        )

    def connect(self) -> None:
        """Open the connection pool and wait until it holds ``min_size`` connections.

        A pool that cannot be filled at startup is fatal to the caller.

        Raises:
            psycopg_pool.PoolTimeout: If the pool cannot connect within the timeout
        """
        if self._pool is not None:
            self._logger.warning("Connection pool already exists, skipping connect")
            return

        self._logger.info(
            "Creating connection pool",
            min_size=self.config.min_size,
            max_size=self.config.max_size,
        )

        pool: ConnectionPool[Any] = ConnectionPool(
            conninfo=self.config.to_connection_string(),
            min_size=self.config.min_size,
            max_size=self.config.max_size,
            timeout=self.config.timeout,
            kwargs={"row_factory": dict_row, "autocommit": True},
            open=False,
        )
        pool.open(wait=self.config.min_size > 0, timeout=self.config.timeout)
        self._pool = pool

        self._logger.info("Connection pool created successfully")

    def close(self) -> None:
        """Close the connection pool and release all connections."""
        if self._pool is not None:
            self._logger.info("Closing connection pool")
            self._pool.close()
            self._pool = None
            self._logger.info("Connection pool closed")

    @property
    def is_connected(self) -> bool:
        return self._pool is not None

    def get_connection(self) -> Connection[Any]:
        """Get a connection from the pool.

        Returns:
            A database connection from the pool

        Raises:
            RuntimeError: If connection pool is not initialized
            psycopg_pool.PoolTimeout: If no connection frees up in time
        """
        if self._pool is None:
            raise RuntimeError(
                "Connection pool not initialized. Call connect() first or use as context manager."
            )
        return self._pool.getconn()

    def return_connection(self, conn: Connection[Any]) -> None:
        """Return a connection to the pool.

        Args:
            conn: Connection to return to the pool
        """
        if self._pool is not None:
            self._pool.putconn(conn)

    @contextmanager
    def connection(self) -> Iterator[Connection[Any]]:
        """Borrow a connection for the duration of a ``with`` block."""
        conn = self.get_connection()
        try:
            yield conn
        finally:
            self.return_connection(conn)

    @contextmanager
    def transaction(self) -> Iterator[Connection[Any]]:
        """Borrow a connection and run the block inside one transaction.

        The transaction commits when the block exits normally and rolls back
        on any exception, including KeyboardInterrupt.
        """
        with self.connection() as conn:
            with conn.transaction():
                yield conn

    def health_check(self) -> bool:
        """Check that the database is reachable and the schema is installed.

        Returns:
            True if the connection works and the messaging tables exist

        Raises:
            RuntimeError: If connection pool is not initialized
            psycopg.Error: If database query fails
        """
        self._logger.info("Performing health check")

        with self.connection() as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT 1 as health")
                result = cur.fetchone()
                if result is None or result.get("health") != 1:
                    self._logger.error("Health check failed: unexpected result")
                    return False

                cur.execute(
                    """
                    SELECT COUNT(*) AS table_count
                    FROM information_schema.tables
                    WHERE table_schema = current_schema()
                      AND table_name IN ('messages', 'reactions', 'reaction_types')
                    """
                )
                result = cur.fetchone()
                if result is None or result.get("table_count") != 3:
                    self._logger.error(
                        "Health check failed: messaging tables not found. "
                        "Has the schema been applied?"
                    )
                    return False

                self._logger.info("Health check passed")
                return True

    def __enter__(self) -> "DatabaseClient":
        """Enter context manager - establish connection pool.

        Returns:
            Self for use in with statement
        """
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:  # type: ignore
        """Exit context manager - close connection pool."""
        self.close()
