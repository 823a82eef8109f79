"""Engine and session factory creation for the relational user store."""
from __future__ import annotations

import logging

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from scim_server.storage.models import Base

logger = logging.getLogger(__name__)

__all__ = [
    "create_db_engine",
    "create_session_factory",
    "init_db",
]


def _is_in_memory_sqlite(url: str) -> bool:
    return url in ("sqlite://", "sqlite:///:memory:") or url.startswith("sqlite:///:memory:?")


def create_db_engine(url: str, echo: bool = False) -> Engine:
    """Create the synchronous engine used by the repository.

    In-memory SQLite databases share one connection (``StaticPool``) so every
    session sees the same data. SQLite connections enable foreign keys so the
    email cascade is enforced by the database as well as by the ORM.

    Args:
        url: SQLAlchemy database URL
        echo: Log emitted SQL

    Returns:
        Configured engine
    """
    if url.startswith("sqlite"):
        options = {"connect_args": {"check_same_thread": False}}
        if _is_in_memory_sqlite(url):
            options["poolclass"] = StaticPool
        engine = create_engine(url, echo=echo, **options)

        @event.listens_for(engine, "connect")
        def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return engine

    return create_engine(url, echo=echo, pool_pre_ping=True)


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    """Session factory whose objects stay readable after commit."""
    return sessionmaker(bind=engine, expire_on_commit=False)


def init_db(engine: Engine) -> None:
    """Create the users/emails tables if they do not exist yet."""
    Base.metadata.create_all(engine)
    logger.info("Database schema ready on %s", engine.url.render_as_string(hide_password=True))
