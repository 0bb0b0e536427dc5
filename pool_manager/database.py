import logging
import os
from pathlib import Path
from typing import Any, Dict, Generator, Mapping, Optional

from dotenv import load_dotenv
from sqlalchemy.engine import URL, Engine
from sqlmodel import Session, SQLModel, create_engine

from pool_manager.exceptions import ConfigurationError

load_dotenv()

logger = logging.getLogger(__name__)

DEFAULT_SQLITE_URL = "sqlite:///./pool_tournament.db"
DEFAULT_COMMAND_TIMEOUT_SECONDS = 30
MSSQL_ODBC_DRIVER = "ODBC Driver 18 for SQL Server"


def _truthy(value: Optional[str]) -> bool:
    return (value or "").strip().lower() in ("true", "1", "yes")


def resolve_database_url(env: Optional[Mapping[str, str]] = None) -> str:
    """
    Resolve the database connection string from the environment.

    Order:
      1. DATABASE_URL (verbatim)
      2. APP_ENV=production -> SQL Server from AZURE_SQL_* variables
      3. DB_HOST set -> PostgreSQL from DB_* variables
      4. local SQLite file

    Raises:
        ConfigurationError if a required variable for the chosen backend is missing
    """
    env = os.environ if env is None else env

    explicit = env.get("DATABASE_URL")
    if explicit:
        return explicit

    if env.get("APP_ENV", "").strip().lower() == "production":
        required = ["AZURE_SQL_HOST", "AZURE_SQL_DATABASE", "AZURE_SQL_USERNAME", "AZURE_SQL_PASSWORD"]
        missing = [name for name in required if not env.get(name)]
        if missing:
            raise ConfigurationError(
                f"Missing Azure SQL environment variables: {', '.join(missing)}"
            )
        url = URL.create(
            "mssql+pyodbc",
            username=env["AZURE_SQL_USERNAME"],
            password=env["AZURE_SQL_PASSWORD"],
            host=env["AZURE_SQL_HOST"],
            port=int(env.get("AZURE_SQL_PORT") or 1433),
            database=env["AZURE_SQL_DATABASE"],
            query={"driver": MSSQL_ODBC_DRIVER},
        )
        return url.render_as_string(hide_password=False)

    if env.get("DB_HOST"):
        password = env.get("DB_PASSWORD")
        if not password:
            raise ConfigurationError("DB_PASSWORD is required when DB_HOST is set")
        url = URL.create(
            "postgresql+psycopg2",
            username=env.get("DB_USER") or "postgres",
            password=password,
            host=env["DB_HOST"],
            port=int(env.get("DB_PORT") or 5432),
            database=env.get("DB_NAME") or "pool-tournament-manager-db",
        )
        return url.render_as_string(hide_password=False)

    return DEFAULT_SQLITE_URL


def build_connect_args(database_url: str, timeout_seconds: int) -> Dict[str, Any]:
    """Driver-level arguments, including the per-command timeout."""
    if database_url.startswith("sqlite"):
        return {"check_same_thread": False, "timeout": timeout_seconds}
    if database_url.startswith("postgresql"):
        return {
            "connect_timeout": timeout_seconds,
            "options": f"-c statement_timeout={timeout_seconds * 1000}",
        }
    if database_url.startswith("mssql"):
        return {"timeout": timeout_seconds}
    return {}


DATABASE_URL = resolve_database_url()
COMMAND_TIMEOUT_SECONDS = int(os.getenv("DB_COMMAND_TIMEOUT", str(DEFAULT_COMMAND_TIMEOUT_SECONDS)))

_is_sqlite = DATABASE_URL.startswith("sqlite")
_connect_args = build_connect_args(DATABASE_URL, COMMAND_TIMEOUT_SECONDS)
_echo = _truthy(os.getenv("SQL_ECHO", "false"))

if _is_sqlite and ":memory:" not in DATABASE_URL:
    db_path = DATABASE_URL.replace("sqlite:///", "", 1)
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)

engine: Engine = create_engine(
    DATABASE_URL,
    echo=_echo,
    connect_args=_connect_args,
    pool_pre_ping=not _is_sqlite,
)


def get_session() -> Generator[Session, None, None]:
    """Get database session"""
    with Session(engine) as session:
        yield session


def init_db() -> None:
    """Initialize database - create all tables"""
    # Import all models to ensure they're registered with SQLModel metadata
    from pool_manager.models.match import Match  # noqa: F401
    from pool_manager.models.player import Player  # noqa: F401
    from pool_manager.models.tournament import Tournament  # noqa: F401

    SQLModel.metadata.create_all(engine)
    logger.info("Database tables ensured on %s", engine.url.render_as_string(hide_password=True))
