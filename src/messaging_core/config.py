"""Configuration management for the messaging service.

This module handles loading and validating configuration from environment
variables. It provides type-safe configuration for the PostgreSQL connection,
the connection pool, and logging.
"""

import os
from dataclasses import dataclass

import psycopg
from dotenv import load_dotenv
from psycopg.conninfo import conninfo_to_dict


@dataclass(frozen=True)
class DatabaseConfig:
    """Configuration for the PostgreSQL connection.

    Attributes:
        host: PostgreSQL host (default: localhost)
        port: PostgreSQL port (default: 5432)
        database: Database name (default: messaging)
        user: Database user (required)
        password: Database password (required)
        statement_timeout_ms: Server-side statement timeout, 0 disables it

    Example:
        >>> config = DatabaseConfig(
        ...     host="localhost",
        ...     port=5432,
        ...     database="messaging",
        ...     user="postgres",
        ...     password="secret"
        ... )
    """

    host: str
    port: int
    database: str
    user: str
    password: str
    statement_timeout_ms: int = 0

    def __post_init__(self) -> None:
        """Validate database configuration after initialization.

        Raises:
            ValueError: If required fields are empty or invalid
        """
        if not self.host or not self.host.strip():
            raise ValueError("Database host cannot be empty")
        if self.port <= 0 or self.port > 65535:
            raise ValueError(f"Database port must be 1-65535, got {self.port}")
        if not self.database or not self.database.strip():
            raise ValueError("Database name cannot be empty")
        if not self.user or not self.user.strip():
            raise ValueError("Database user cannot be empty")
        if not self.password:
            raise ValueError("Database password cannot be empty")
        if self.statement_timeout_ms < 0:
            raise ValueError(
                f"statement_timeout_ms must be >= 0, got {self.statement_timeout_ms}"
            )


@dataclass(frozen=True)
class PoolConfig:
    """Configuration for the connection pool.

    Attributes:
        min_size: Connections kept open (default: 2)
        max_size: Upper bound on open connections (default: 10)
        timeout: Seconds to wait for a free connection (default: 30)
    """

    min_size: int
    max_size: int
    timeout: float

    def __post_init__(self) -> None:
        """Validate pool configuration after initialization.

        Raises:
            ValueError: If the sizes or timeout are invalid
        """
        if self.min_size < 0:
            raise ValueError(f"min_size must be >= 0, got {self.min_size}")
        if self.max_size <= 0:
            raise ValueError(f"max_size must be > 0, got {self.max_size}")
        if self.min_size > self.max_size:
            raise ValueError(
                f"min_size ({self.min_size}) cannot exceed max_size ({self.max_size})"
            )
        if self.timeout <= 0:
            raise ValueError(f"timeout must be > 0, got {self.timeout}")


@dataclass(frozen=True)
class LoggingConfig:
    """Configuration for logging.

    Attributes:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Log format (json, text)

    Example:
        >>> config = LoggingConfig(log_level="INFO", log_format="json")
    """

    log_level: str
    log_format: str

    def __post_init__(self) -> None:
        """Validate logging configuration after initialization.

        Raises:
            ValueError: If log_level or log_format is invalid
        """
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if self.log_level.upper() not in valid_levels:
            raise ValueError(f"log_level must be one of {valid_levels}, got {self.log_level}")

        valid_formats = {"json", "text"}
        if self.log_format.lower() not in valid_formats:
            raise ValueError(f"log_format must be one of {valid_formats}, got {self.log_format}")


@dataclass(frozen=True)
class Config:
    """Complete configuration for the messaging service.

    Attributes:
        database: PostgreSQL connection configuration
        pool: Connection pool configuration
        logging: Logging configuration

    Example:
        >>> config = load_config()
        >>> print(config.database.host)
    """

    database: DatabaseConfig
    pool: PoolConfig
    logging: LoggingConfig


def load_config(env_file: str | None = None) -> Config:
    """Load configuration from environment variables.

    This function loads environment variables (optionally from a .env file)
    and constructs a complete Config object with all necessary settings.

    Args:
        env_file: Optional path to .env file to load (default: .env in current directory)

    Returns:
        Complete Config object with all sub-configurations

    Raises:
        ValueError: If required environment variables are missing or invalid

    Environment Variables:
        Database:
            - DATABASE_URL: libpq URL or DSN; when set it supplies the fields below
            - DB_HOST: PostgreSQL host (default: localhost)
            - DB_PORT: PostgreSQL port (default: 5432)
            - DB_NAME: Database name (default: messaging)
            - DB_USER: Database user (required)
            - DB_PASSWORD: Database password (required)
            - DB_STATEMENT_TIMEOUT_MS: Statement timeout in ms (default: 0, disabled)

        Pool:
            - DB_POOL_MIN_SIZE: Minimum pool size (default: 2)
            - DB_POOL_MAX_SIZE: Maximum pool size (default: 10)
            - DB_POOL_TIMEOUT: Seconds to wait for a connection (default: 30)

        Logging:
            - LOG_LEVEL: Logging level (default: INFO)
            - LOG_FORMAT: Log format (default: json)
    """
    if env_file:
        load_dotenv(env_file)
    else:
        load_dotenv()

    statement_timeout_ms = int(os.getenv("DB_STATEMENT_TIMEOUT_MS", "0"))
    database_url = os.getenv("DATABASE_URL")
    if database_url:
        database = _database_config_from_url(database_url, statement_timeout_ms)
    else:
        database = DatabaseConfig(
            host=os.getenv("DB_HOST", "localhost"),
            port=int(os.getenv("DB_PORT", "5432")),
            database=os.getenv("DB_NAME", "messaging"),
            user=_get_required_env("DB_USER"),
            password=_get_required_env("DB_PASSWORD"),
            statement_timeout_ms=statement_timeout_ms,
        )

    pool = PoolConfig(
        min_size=int(os.getenv("DB_POOL_MIN_SIZE", "2")),
        max_size=int(os.getenv("DB_POOL_MAX_SIZE", "10")),
        timeout=float(os.getenv("DB_POOL_TIMEOUT", "30")),
    )

    logging = LoggingConfig(
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        log_format=os.getenv("LOG_FORMAT", "json").lower(),
    )

    return Config(database=database, pool=pool, logging=logging)


def _database_config_from_url(url: str, statement_timeout_ms: int) -> DatabaseConfig:
    """Build a DatabaseConfig from a libpq connection URL or DSN.

    Raises:
        ValueError: If the URL cannot be parsed or lacks required parts
    """
    try:
        params = conninfo_to_dict(url)
    except psycopg.ProgrammingError as e:
        raise ValueError(f"Invalid DATABASE_URL: {e}") from e

    return DatabaseConfig(
        host=str(params.get("host") or "localhost"),
        port=int(params.get("port") or 5432),
        database=str(params.get("dbname") or ""),
        user=str(params.get("user") or ""),
        password=str(params.get("password") or ""),
        statement_timeout_ms=statement_timeout_ms,
    )


def _get_required_env(var_name: str) -> str:
    """Get a required environment variable or raise an error.

    Args:
        var_name: Name of the environment variable

    Returns:
        Value of the environment variable

    Raises:
        ValueError: If the environment variable is not set
    """
    value = os.getenv(var_name)
    if value is None:
        raise ValueError(
            f"Required environment variable {var_name} is not set. "
            f"Please set it in your environment or .env file."
        )
    return value
