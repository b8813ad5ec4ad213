"""Database connection and session management."""

from __future__ import annotations

import logging
from collections.abc import Generator
from contextlib import contextmanager

from sqlalchemy import Engine, create_engine, event, text
from sqlalchemy.orm import Session, sessionmaker

from statehistory.core.config import get_config

logger = logging.getLogger(__name__)

_engine: Engine | None = None
_session_factory: sessionmaker | None = None


def _enable_sqlite_savepoints(engine: Engine) -> None:
    """Let SQLAlchemy emit BEGIN itself so SAVEPOINT/RELEASE nest correctly on pysqlite."""

    @event.listens_for(engine, "connect")
    def _disable_driver_transactions(dbapi_connection, connection_record) -> None:
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(conn) -> None:
        conn.exec_driver_sql("BEGIN")


def build_engine(database_url: str, echo: bool = False) -> Engine:
    if database_url.startswith("sqlite"):
        engine = create_engine(database_url, echo=echo)
        _enable_sqlite_savepoints(engine)
        return engine
    return create_engine(
        database_url,
        echo=echo,
        pool_pre_ping=True,
        pool_recycle=3600,
        pool_size=10,
        max_overflow=20,
    )


def configure_engine(database_url: str | None = None) -> Engine:
    """Bind the module engine/sessionmaker to the given URL (or the configured one)."""
    global _engine, _session_factory
    _engine = build_engine(database_url or get_config().DATABASE_URL)
    _session_factory = sessionmaker(autoflush=False, bind=_engine)
    return _engine


def get_engine() -> Engine:
    """Return the active SQLAlchemy engine, creating it on first use."""
    if _engine is None:
        return configure_engine()
    return _engine


def get_session_factory() -> sessionmaker:
    if _session_factory is None:
        configure_engine()
    return _session_factory


@contextmanager
def get_db_session() -> Generator[Session, None, None]:
    """Context-manager wrapper for safe DB session lifecycle."""
    db = get_session_factory()()
    try:
        yield db
    finally:
        db.close()


def verify_database_connection() -> bool:
    """Verify DB connectivity during startup."""
    try:
        with get_engine().connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception:
        logger.exception("database.connection_failed", extra={"event": "database.connection_failed"})
        return False
