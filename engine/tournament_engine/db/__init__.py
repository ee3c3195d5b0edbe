"""Database models and session management.

Import models from their respective modules:
    from tournament_engine.db.events import Event, EventResult
    from tournament_engine.db.ledger import Catch, Upload

Session management:
    from tournament_engine.db import get_session, session_scope
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.orm import Session, sessionmaker

from ..config import settings
from ..logging import logger
from .base import Base
from .community import VIEW_HANDLE_COLUMNS, CommunityConfig, LiveDocument
from .events import Event, EventResult, EventStatus
from .ledger import Catch, CatchStatus, Upload

# Lazy-loaded engine and session factory to avoid initialization at import time.
# This allows tests to import modules without touching the configured database.
_engine: Engine | None = None
_SessionLocal: sessionmaker[Session] | None = None


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def build_engine(database_url: str, echo: bool = False, **kwargs) -> Engine:
    """Create an engine; SQLite connections get foreign key enforcement."""
    engine = create_engine(database_url, echo=echo, future=True, **kwargs)
    if engine.dialect.name == "sqlite":
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    return engine


def get_engine() -> Engine:
    """Get or create the database engine (lazy initialization)."""
    global _engine
    if _engine is None:
        kwargs = {} if settings.database_url.startswith("sqlite") else {"pool_pre_ping": True}
        _engine = build_engine(settings.database_url, echo=settings.sql_echo, **kwargs)
    return _engine


def build_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(
        bind=engine,
        autoflush=False,
        autocommit=False,
        expire_on_commit=False,
        class_=Session,
    )


def get_session_factory() -> sessionmaker[Session]:
    """Get or create the session factory (lazy initialization)."""
    global _SessionLocal
    if _SessionLocal is None:
        _SessionLocal = build_session_factory(get_engine())
    return _SessionLocal


@contextmanager
def session_scope(factory: sessionmaker[Session]) -> Iterator[Session]:
    """
    Provide a transactional session from ``factory``.

    Commits when the block exits cleanly; any exception rolls back every
    write made in the block and propagates to the caller.
    """
    session = factory()
    try:
        yield session
        session.commit()
    except Exception as exc:
        session.rollback()
        logger.debug("db_session_rollback", error=str(exc), error_type=type(exc).__name__)
        raise
    finally:
        session.close()


@contextmanager
def get_session() -> Iterator[Session]:
    """Transactional session bound to the configured database."""
    with session_scope(get_session_factory()) as session:
        yield session


def init_db(engine: Engine | None = None) -> None:
    """Create every table that does not exist yet."""
    target = engine or get_engine()
    Base.metadata.create_all(target)
    logger.info("db_initialized", dialect=target.dialect.name)


def close_db() -> None:
    """Dispose of the engine's connection pool."""
    global _engine, _SessionLocal
    if _engine is not None:
        _engine.dispose()
        _engine = None
        _SessionLocal = None


__all__ = [
    "Base",
    "Catch",
    "CatchStatus",
    "CommunityConfig",
    "Event",
    "EventResult",
    "EventStatus",
    "LiveDocument",
    "Upload",
    "VIEW_HANDLE_COLUMNS",
    "build_engine",
    "build_session_factory",
    "close_db",
    "get_engine",
    "get_session",
    "get_session_factory",
    "init_db",
    "session_scope",
]
