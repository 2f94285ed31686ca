"""Database connection and session management."""
from __future__ import annotations

from typing import Any, Dict, List

from sqlalchemy import create_engine, event, inspect, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from .config import get_settings
from .exceptions import ConfigurationError
from .logging_config import get_logger

LOGGER = get_logger(__name__)
SETTINGS = get_settings()

# Tables that MUST exist for the system to function
REQUIRED_TABLES = ["document"]


def create_db_engine(database_url: str) -> Engine:
    """
    Build an engine for the given URL.

    SQLite gets NullPool plus WAL journaling; other backends get a
    pre-pinged connection pool sized from settings.
    """
    if not database_url:
        raise ConfigurationError("DATABASE_URL is not set.")
    if database_url.startswith("sqlite"):
        from sqlalchemy.pool import NullPool

        sqlite_engine = create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=NullPool,
        )

        @event.listens_for(sqlite_engine, "connect")
        def set_sqlite_pragma(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.execute("PRAGMA busy_timeout=30000")  # 30 second timeout
            cursor.close()

        return sqlite_engine

    return create_engine(
        database_url,
        pool_size=SETTINGS.db_pool_size,
        max_overflow=SETTINGS.db_max_overflow,
        pool_timeout=SETTINGS.db_pool_timeout,
        pool_pre_ping=True,
    )


engine = create_db_engine(SETTINGS.database_url)

# Session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


def _check_required_tables(bind: Engine) -> List[str]:
    """Return the required tables missing from the database."""
    existing_tables = inspect(bind).get_table_names()
    return [t for t in REQUIRED_TABLES if t not in existing_tables]


def init_db(bind: Engine | None = None) -> Dict[str, Any]:
    """
    Create any missing tables.

    Args:
        bind: Engine to initialize; defaults to the configured engine.

    Returns:
        Dict with initialization results.
    """
    # Import models to ensure they are registered with Base
    from . import models  # noqa: F401

    target = bind or engine
    result: Dict[str, Any] = {
        "status": "success",
        "tables_created": [],
        "warnings": [],
    }

    try:
        existing_tables = set(inspect(target).get_table_names())
        Base.metadata.create_all(bind=target)
        final_tables = set(inspect(target).get_table_names())
        result["tables_created"] = sorted(final_tables - existing_tables)

        missing_required = [t for t in REQUIRED_TABLES if t not in final_tables]
        if missing_required:
            result["warnings"].append(f"Missing required tables: {missing_required}")
            result["status"] = "warning"
    except Exception as e:
        result["status"] = "error"
        result["error"] = str(e)
        LOGGER.error(f"init_db failed: {e}")

    return result


def validate_database(bind: Engine | None = None) -> Dict[str, Any]:
    """
    Validate database connection and required tables.

    Call this at application startup to ensure the database is ready.

    Returns:
        Dict with validation results.
    """
    target = bind or engine
    result: Dict[str, Any] = {
        "status": "ok",
        "database_url": str(target.url),
        "tables_missing": [],
        "errors": [],
    }

    try:
        with target.connect() as conn:
            conn.execute(text("SELECT 1"))

        missing = _check_required_tables(target)
        result["tables_missing"] = missing
        if missing:
            result["status"] = "missing_tables"
            result["errors"].append(f"Missing required tables: {missing}")
    except Exception as e:
        result["status"] = "error"
        result["errors"].append(str(e))

    return result


def get_session_factory() -> sessionmaker:
    """
    Return the configured session factory.

    The document store opens one short-lived session per operation from
    this factory.
    """
    return SessionLocal
