"""Database connection and session management for Rhythm.

One household per database. SQLite is the default; any SQLAlchemy URL can be
given through ``DATABASE_URL`` (PostgreSQL is the tested alternative).

Two kinds of callers share the engine: request handlers (FastAPI's threadpool)
and the background transition scan, which opens its own session through
``session_scope()``. On SQLite both write to the same file, so connections
wait on a busy lock instead of failing immediately.
"""

import os
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session, declarative_base
from dotenv import load_dotenv

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./rhythm.db")


def _is_sqlite_url(database_url: str) -> bool:
    return "sqlite" in (database_url or "")


def _env_flag(name: str) -> bool:
    return os.getenv(name, "False").lower() == "true"


def get_engine_kwargs(database_url: str) -> dict:
    """create_engine kwargs for a URL, computed without connecting."""
    engine_kwargs: dict = {
        "echo": _env_flag("DEBUG"),
        "pool_pre_ping": True,
    }

    if _is_sqlite_url(database_url):
        engine_kwargs["connect_args"] = {
            "check_same_thread": False,
            "timeout": float(os.getenv("SQLITE_BUSY_TIMEOUT_SEC", "15")),
        }
        return engine_kwargs

    engine_kwargs["pool_size"] = int(os.getenv("DB_POOL_SIZE", "5"))
    engine_kwargs["max_overflow"] = int(os.getenv("DB_MAX_OVERFLOW", "5"))
    engine_kwargs["pool_timeout"] = int(os.getenv("DB_POOL_TIMEOUT_SEC", "30"))
    return engine_kwargs


def configure_sqlite(engine: Engine) -> Engine:
    """Turn on foreign keys (log rows cascade with their child) and WAL for ``engine``."""

    @event.listens_for(engine, "connect")
    def _set_pragmas(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    return engine


def build_engine(database_url: str) -> Engine:
    built = create_engine(database_url, **get_engine_kwargs(database_url))
    if _is_sqlite_url(database_url):
        configure_sqlite(built)
    return built


engine = build_engine(DATABASE_URL)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db() -> Iterator[Session]:
    """Request-scoped session (FastAPI dependency)."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def session_scope(session_factory=SessionLocal) -> Iterator[Session]:
    """Session for work outside a request, such as the background scan."""
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


def init_db() -> None:
    """Create or upgrade the schema at startup.

    With ``RUN_MIGRATIONS=true`` the Alembic revisions are applied (see
    ``migrate_runner``); otherwise the tables are created from the ORM models.
    """
    if _env_flag("RUN_MIGRATIONS"):
        from rhythm.database.migrate_runner import main as run_migrations

        run_migrations()
        return

    # Register ORM tables on Base.metadata.
    from rhythm.database import models  # noqa: F401

    Base.metadata.create_all(bind=engine)
