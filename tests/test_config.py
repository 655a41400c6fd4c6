"""Tests for configuration module."""

import pytest

from messaging_core.config import (
    Config,
    DatabaseConfig,
    LoggingConfig,
    PoolConfig,
    load_config,
)

CONFIG_ENV_VARS = [
    "DATABASE_URL",
    "DB_HOST",
    "DB_PORT",
    "DB_NAME",
    "DB_USER",
    "DB_PASSWORD",
    "DB_STATEMENT_TIMEOUT_MS",
    "DB_POOL_MIN_SIZE",
    "DB_POOL_MAX_SIZE",
    "DB_POOL_TIMEOUT",
    "LOG_LEVEL",
    "LOG_FORMAT",
]


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """Clear configuration variables and run from an empty directory.

    Running from tmp_path keeps load_dotenv() from picking up a developer's .env.
    Setting each variable before deleting it makes monkeypatch remove whatever
    load_dotenv() writes during the test.
    """
    for var in CONFIG_ENV_VARS:
        monkeypatch.setenv(var, "")
        monkeypatch.delenv(var)
    monkeypatch.chdir(tmp_path)
    return monkeypatch


class TestDatabaseConfig:
    """Tests for DatabaseConfig."""

    def test_create_database_config(self):
        """DatabaseConfig can be created with valid parameters."""
        config = DatabaseConfig(
            host="localhost",
            port=5432,
            database="messaging",
            user="postgres",
            password="secret",
        )

        assert config.host == "localhost"
        assert config.port == 5432
        assert config.database == "messaging"
        assert config.user == "postgres"
        assert config.password == "secret"
        assert config.statement_timeout_ms == 0

    def test_database_config_is_immutable(self):
        """DatabaseConfig instances are immutable (frozen)."""
        config = DatabaseConfig(
            host="localhost", port=5432, database="messaging", user="postgres", password="secret"
        )

        with pytest.raises(AttributeError):
            config.host = "newhost"  # type: ignore

    def test_database_config_validates_whitespace_only_host(self):
        """DatabaseConfig raises ValueError for whitespace-only host."""
        with pytest.raises(ValueError, match="Database host cannot be empty"):
            DatabaseConfig(
                host="   ", port=5432, database="messaging", user="postgres", password="secret"
            )

    @pytest.mark.parametrize("port", [0, 65536])
    def test_database_config_validates_port_range(self, port):
        """DatabaseConfig raises ValueError for ports outside 1-65535."""
        with pytest.raises(ValueError, match="Database port must be 1-65535"):
            DatabaseConfig(
                host="localhost", port=port, database="messaging", user="postgres", password="x"
            )

    def test_database_config_validates_empty_database(self):
        """DatabaseConfig raises ValueError for empty database."""
        with pytest.raises(ValueError, match="Database name cannot be empty"):
            DatabaseConfig(
                host="localhost", port=5432, database="", user="postgres", password="secret"
            )

    def test_database_config_validates_empty_user(self):
        """DatabaseConfig raises ValueError for empty user."""
        with pytest.raises(ValueError, match="Database user cannot be empty"):
            DatabaseConfig(
                host="localhost", port=5432, database="messaging", user="", password="secret"
            )

    def test_database_config_validates_empty_password(self):
        """DatabaseConfig raises ValueError for empty password."""
        with pytest.raises(ValueError, match="Database password cannot be empty"):
            DatabaseConfig(
                host="localhost", port=5432, database="messaging", user="postgres", password=""
            )

    def test_database_config_rejects_negative_statement_timeout(self):
        """DatabaseConfig raises ValueError for a negative statement timeout."""
        with pytest.raises(ValueError, match="statement_timeout_ms must be >= 0"):
            DatabaseConfig(
                host="localhost",
                port=5432,
                database="messaging",
                user="postgres",
                password="secret",
                statement_timeout_ms=-1,
            )


class TestPoolConfig:
    """Tests for PoolConfig."""

    def test_create_pool_config(self):
        config = PoolConfig(min_size=1, max_size=5, timeout=2.5)
        assert config.min_size == 1
        assert config.max_size == 5
        assert config.timeout == 2.5

    def test_pool_config_rejects_min_above_max(self):
        with pytest.raises(ValueError, match="cannot exceed max_size"):
            PoolConfig(min_size=6, max_size=5, timeout=30)

    def test_pool_config_rejects_zero_max(self):
        with pytest.raises(ValueError, match="max_size must be > 0"):
            PoolConfig(min_size=0, max_size=0, timeout=30)

    def test_pool_config_rejects_non_positive_timeout(self):
        with pytest.raises(ValueError, match="timeout must be > 0"):
            PoolConfig(min_size=1, max_size=5, timeout=0)


class TestLoggingConfig:
    """Tests for LoggingConfig."""

    @pytest.mark.parametrize("level", ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL", "info"])
    def test_accepts_valid_levels(self, level):
        config = LoggingConfig(log_level=level, log_format="json")
        assert config.log_level == level

    def test_rejects_invalid_level(self):
        with pytest.raises(ValueError, match="log_level must be one of"):
            LoggingConfig(log_level="VERBOSE", log_format="json")

    def test_rejects_invalid_format(self):
        with pytest.raises(ValueError, match="log_format must be one of"):
            LoggingConfig(log_level="INFO", log_format="xml")


class TestLoadConfig:
    """Tests for load_config function."""

    def test_load_config_with_defaults(self, clean_env):
        """load_config fills optional values with defaults."""
        clean_env.setenv("DB_USER", "postgres")
        clean_env.setenv("DB_PASSWORD", "secret")

        config = load_config()

        assert isinstance(config, Config)
        assert config.database.host == "localhost"
        assert config.database.port == 5432
        assert config.database.database == "messaging"
        assert config.database.statement_timeout_ms == 0
        assert config.pool == PoolConfig(min_size=2, max_size=10, timeout=30.0)
        assert config.logging == LoggingConfig(log_level="INFO", log_format="json")

    def test_load_config_with_all_variables(self, clean_env):
        """load_config reads every supported variable."""
        clean_env.setenv("DB_HOST", "db.internal")
        clean_env.setenv("DB_PORT", "6543")
        clean_env.setenv("DB_NAME", "chat")
        clean_env.setenv("DB_USER", "app")
        clean_env.setenv("DB_PASSWORD", "pw")
        clean_env.setenv("DB_STATEMENT_TIMEOUT_MS", "5000")
        clean_env.setenv("DB_POOL_MIN_SIZE", "1")
        clean_env.setenv("DB_POOL_MAX_SIZE", "4")
        clean_env.setenv("DB_POOL_TIMEOUT", "2.5")
        clean_env.setenv("LOG_LEVEL", "debug")
        clean_env.setenv("LOG_FORMAT", "TEXT")

        config = load_config()

        assert config.database == DatabaseConfig(
            host="db.internal",
            port=6543,
            database="chat",
            user="app",
            password="pw",
            statement_timeout_ms=5000,
        )
        assert config.pool == PoolConfig(min_size=1, max_size=4, timeout=2.5)
        assert config.logging.log_level == "DEBUG"
        assert config.logging.log_format == "text"

    def test_load_config_missing_user(self, clean_env):
        """load_config raises when DB_USER is missing."""
        clean_env.setenv("DB_PASSWORD", "secret")

        with pytest.raises(ValueError, match="Required environment variable DB_USER"):
            load_config()

    def test_load_config_missing_password(self, clean_env):
        """load_config raises when DB_PASSWORD is missing."""
        clean_env.setenv("DB_USER", "postgres")

        with pytest.raises(ValueError, match="Required environment variable DB_PASSWORD"):
            load_config()

    def test_load_config_from_database_url(self, clean_env):
        """DATABASE_URL supplies the connection fields."""
        clean_env.setenv("DATABASE_URL", "postgresql://app:pw@db.example.com:6000/chat")

        config = load_config()

        assert config.database.host == "db.example.com"
        assert config.database.port == 6000
        assert config.database.database == "chat"
        assert config.database.user == "app"
        assert config.database.password == "pw"

    def test_load_config_database_url_without_password(self, clean_env):
        """A DATABASE_URL without credentials fails validation."""
        clean_env.setenv("DATABASE_URL", "postgresql://localhost/chat")

        with pytest.raises(ValueError, match="Database user cannot be empty"):
            load_config()

    def test_load_config_from_env_file(self, clean_env, tmp_path):
        """load_config reads variables from the given .env file."""
        env_file = tmp_path / ".env.test"
        env_file.write_text("DB_USER=fromfile\nDB_PASSWORD=filepw\nDB_NAME=filedb\n")

        config = load_config(str(env_file))

        assert config.database.user == "fromfile"
        assert config.database.password == "filepw"
        assert config.database.database == "filedb"
