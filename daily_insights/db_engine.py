"""
SQLAlchemy engine and session management for the daily insights store.

The database location comes from DAILY_INSIGHTS_DATABASE_URL when set,
otherwise a local SQLite file. SQLite connections enforce foreign keys so
that deleting a client leaves its insights in the unassigned pool.
"""

import os
from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy import create_engine, event, Engine
from sqlalchemy.orm import Session, sessionmaker

from daily_insights.constants import DATABASE_URL_ENV, DB_NAME

_engine: Optional[Engine] = None
_session_factory: Optional[sessionmaker] = None


def database_url() -> str:
    return os.environ.get(DATABASE_URL_ENV) or f"sqlite:///{DB_NAME}"


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _bind(engine: Engine) -> None:
    global _engine, _session_factory
    if engine.dialect.name == "sqlite":
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    _engine = engine
    # Records are converted to dataclasses after commit
    _session_factory = sessionmaker(bind=engine, expire_on_commit=False)


def get_engine() -> Engine:
    """Get the SQLAlchemy engine, creating it on first use."""
    if _engine is None:
        _bind(create_engine(database_url()))
    return _engine


def set_engine(engine: Engine) -> None:
    """Use a custom engine, e.g. an in-memory database in tests."""
    _bind(engine)


def reset_engine() -> None:
    """Dispose of the current engine so the next call creates a fresh one."""
    global _engine, _session_factory
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _session_factory = None


@contextmanager
def get_session() -> Generator[Session, None, None]:
    """Yield a session that commits on success and rolls back on error."""
    if _session_factory is None:
        get_engine()

    session = _session_factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
