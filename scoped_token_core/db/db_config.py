import os
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional

from pydantic import BaseModel, ConfigDict
from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from ..config import get_config
from ..exceptions import ConfigurationError
from ..utils.logger import get_logger

# Base class for all SQLAlchemy models
Base: Any = declarative_base()


class DatabaseConfig(BaseModel):
    db_type: str = "postgres"
    database: str
    host: str = ""
    port: str = "5432"
    username: str = ""
    password: str = ""
    pool_size: int = 5
    max_overflow: int = 10
    pool_timeout: int = 5
    # Upper bound in seconds for any single statement or lock wait
    statement_timeout: int = 5
    echo: bool = False
    development_mode: bool = False

    @classmethod
    def from_url(cls, url: str, **overrides: Any) -> "DatabaseConfig":
        """
        Build a config from a SQLAlchemy URL such as ``DATABASE_URL``.

        Raises:
            ConfigurationError: Unparseable URL or unsupported backend
        """
        try:
            parsed = make_url(url)
        except ArgumentError as e:
            raise ConfigurationError("Invalid database URL", cause=e, field="url") from e

        backend = parsed.get_backend_name()
        if backend == "sqlite":
            return cls(db_type="sqlite", database=parsed.database or ":memory:", **overrides)
        if backend == "postgresql":
            return cls(
                db_type="postgres",
                host=parsed.host or "",
                port=str(parsed.port or 5432),
                database=parsed.database or "",
                username=parsed.username or "",
                password=parsed.password or "",
                **overrides,
            )
        raise ConfigurationError(
            f"Unsupported database type: {backend}", field="url", value=backend
        )

    def get_connection_string(self) -> str:
        if self.db_type.lower() == "postgres":
            if not all([self.host, self.database, self.username, self.password]):
                raise ConfigurationError(
                    "Missing required Postgres configuration parameters",
                    field="database_config",
                    value={"host": self.host, "database": self.database, "username": self.username},
                )
            return (
                f"postgresql://{self.username}:{self.password}@"
                f"{self.host}:{self.port}/{self.database}"
            )
        elif self.db_type.lower() == "sqlite":
            return f"sqlite:///{self.database}"
        raise ConfigurationError(
            f"Unsupported database type: {self.db_type}",
            field="db_type",
            value=self.db_type,
        )

    def get_connect_args(self) -> Dict[str, Any]:
        """Driver arguments that bound every storage call."""
        if self.db_type.lower() == "sqlite":
            # Seconds to wait on a locked database before OperationalError
            return {"check_same_thread": False, "timeout": self.statement_timeout}
        timeout_ms = self.statement_timeout * 1000
        return {
            "connect_timeout": self.statement_timeout,
            "options": f"-c statement_timeout={timeout_ms} -c lock_timeout={timeout_ms}",
        }

    model_config = ConfigDict(arbitrary_types_allowed=True)

    def __repr__(self) -> str:
        """String representation with masked password for security."""
        return (
            f"DatabaseConfig("
            f"db_type='{self.db_type}', "
            f"host='{self.host}', "
            f"port='{self.port}', "
            f"database='{self.database}', "
            f"username='{self.username}', "
            f"password='***')"
        )


class DatabaseManager:
    """
    Database connection manager that uses a Pydantic DatabaseConfig.

    Holds only the engine and session factory; every service call opens its
    own short-lived session through ``session_scope``.
    """

    def __init__(self, config: DatabaseConfig):
        self.config = config
        self.engine = self._create_engine()
        self.session_factory = sessionmaker(bind=self.engine, expire_on_commit=False)

    def _create_engine(self):
        connection_string = self.config.get_connection_string()
        connect_args = self.config.get_connect_args()
        if self.config.db_type.lower() == "sqlite":
            return create_engine(
                connection_string, echo=self.config.echo, connect_args=connect_args
            )
        return create_engine(
            connection_string,
            echo=self.config.echo,
            pool_size=self.config.pool_size,
            max_overflow=self.config.max_overflow,
            pool_timeout=self.config.pool_timeout,
            pool_pre_ping=True,
            connect_args=connect_args,
        )

    def create_tables(self) -> None:
        Base.metadata.create_all(self.engine)

    def drop_tables(self) -> None:
        if self.config.development_mode:
            Base.metadata.drop_all(self.engine)
        else:
            raise ConfigurationError(
                "Cannot drop tables: not in development mode",
                operation="drop_tables",
                development_mode=self.config.development_mode,
            )

    @contextmanager
    def session_scope(self) -> Iterator[Session]:
        """
        Provide a session for one unit of work.

        Usage:
            with db_manager.session_scope() as session:
                ...
                # Auto-commits on success, rollback on exception
        """
        session = self.session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def close(self) -> None:
        self.engine.dispose()


def get_production_config() -> DatabaseConfig:
    """
    Get the store configuration for production from environment variables.

    ``DATABASE_URL`` wins when set; otherwise Postgres settings are read from
    the DB_* variables.
    """
    app_db = get_config().database
    pool = {
        "pool_size": int(os.environ.get("DB_POOL_SIZE", str(app_db.pool_size))),
        "max_overflow": int(os.environ.get("DB_MAX_OVERFLOW", str(app_db.max_overflow))),
        "pool_timeout": int(os.environ.get("DB_POOL_TIMEOUT", str(app_db.pool_timeout))),
        "statement_timeout": app_db.statement_timeout,
        "echo": app_db.echo,
    }
    if app_db.url:
        return DatabaseConfig.from_url(app_db.url, **pool)
    return DatabaseConfig(
        db_type="postgres",
        host=os.environ.get("DB_HOST", "localhost"),
        port=os.environ.get("DB_PORT", "5432"),
        database=os.environ.get("DB_NAME", "clinic_tokens"),
        username=os.environ.get("DB_USER", "postgres"),
        password=os.environ.get("DB_PASSWORD", ""),
        development_mode=False,
        **pool,
    )


def import_all_models():
    """Import all models to ensure they're registered with SQLAlchemy metadata."""
    from sqlalchemy.orm import configure_mappers

    from .db_record_models import Appointment, Doctor, Patient, Prescription  # noqa
    from .db_token_models import AccessToken, TokenAccessLog  # noqa

    configure_mappers()


# Global database manager instance
_db_manager: Optional[DatabaseManager] = None


def get_db_manager() -> DatabaseManager:
    """
    Get the global database manager instance.

    Raises:
        ConfigurationError: If no database manager has been initialized
    """
    global _db_manager
    if _db_manager is None:
        raise ConfigurationError(
            "Database manager not initialized. Call initialize_db() first.",
            operation="get_db_manager",
        )
    return _db_manager


def set_db_manager(manager: Optional[DatabaseManager]) -> None:
    """
    Set the global database manager instance.

    This is primarily used for testing to inject a test database manager.
    """
    global _db_manager
    _db_manager = manager


def initialize_db(config: Optional[DatabaseConfig] = None) -> DatabaseManager:
    """
    Initialize the global database manager with the given config.

    Args:
        config: Optional DatabaseConfig. If None, uses production config from environment.

    Returns:
        DatabaseManager: The initialized database manager
    """
    global _db_manager

    if config is None:
        config = get_production_config()

    get_logger().info("Initializing DB", extra={"db_type": config.db_type})
    _db_manager = DatabaseManager(config)

    import_all_models()
    _db_manager.create_tables()

    return _db_manager


def close_db() -> None:
    """
    Close the database connections and dispose of the engine.
    """
    global _db_manager
    if _db_manager:
        _db_manager.close()
        _db_manager = None
