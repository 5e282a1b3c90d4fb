"""Engine and session factory construction."""

from __future__ import annotations

import logging

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from src.db.models import Base

logger = logging.getLogger(__name__)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    """SQLite ignores FOREIGN KEY / ON DELETE CASCADE unless asked per connection."""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_db_engine(url: str, *, echo: bool = False) -> Engine:
    """Create an engine for *url*.

    In-memory SQLite (``sqlite://``) shares a single connection across
    threads so that every session sees the same database.
    """
    kwargs: dict = {"echo": echo}
    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
    else:
        kwargs["pool_pre_ping"] = True

    engine = create_engine(url, **kwargs)
    if engine.dialect.name == "sqlite":
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)

    logger.debug("Database engine created (dialect=%s)", engine.dialect.name)
    return engine


def init_db(engine: Engine) -> None:
    """Create the ``message``, ``user`` and ``post`` tables if missing."""
    Base.metadata.create_all(engine)
    logger.info("Database schema ready: %s", ", ".join(sorted(Base.metadata.tables)))


def make_session_factory(engine: Engine) -> sessionmaker[Session]:
    """Sessions keep loaded attributes after commit so rows can be returned."""
    return sessionmaker(bind=engine, expire_on_commit=False)
