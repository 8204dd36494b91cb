"""SQLAlchemy engine and transaction helper.

The service targets PostgreSQL in production but supports SQLite for local
development and CI. No declarative models are defined here; repositories in
`surveygraph/logic/` issue SQL through the shared Engine.

On SQLite the driver's implicit transaction handling is replaced by explicit
BEGIN statements so a write transaction holds the database write lock from its
first read, and foreign keys are enforced on every connection.
"""

from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)

# Execution option asking the SQLite begin hook for a write-locked transaction
WRITE_LOCK_OPTION = "surveygraph_write_lock"


def _db_url() -> str:
    return (
        os.getenv("TEST_DATABASE_URL")
        or os.getenv("DATABASE_URL")
        or "sqlite+pysqlite:///:memory:"
    )


def _install_sqlite_hooks(engine: Engine) -> None:
    """Apply SQLAlchemy's pysqlite transaction recipe to the engine."""

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        # Stop pysqlite from emitting its own BEGIN; the "begin" hook does it
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        try:
            cursor.execute("PRAGMA foreign_keys=ON")
        finally:
            cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn: Connection) -> None:
        if conn.get_execution_options().get(WRITE_LOCK_OPTION):
            conn.exec_driver_sql("BEGIN IMMEDIATE")
        else:
            conn.exec_driver_sql("BEGIN")


# Module-level cached Engine shared by every repository
_ENGINE: Engine | None = None
_ENGINE_URL: str | None = None


def get_engine(url: str | None = None) -> Engine:
    """Return a singleton SQLAlchemy Engine for the given URL.

    For SQLite in-memory URLs, use a StaticPool to keep a single connection
    alive across sessions and threads during tests. Without an explicit URL
    the most recently built engine is reused, so the app factory decides
    which database every service talks to.
    """
    global _ENGINE, _ENGINE_URL
    resolved_url = url or _ENGINE_URL or _db_url()

    if _ENGINE is None or _ENGINE_URL != resolved_url:
        kwargs: dict = {"future": True, "pool_pre_ping": True}
        if resolved_url.startswith("sqlite") and ":memory:" in resolved_url:
            kwargs.update({
                "poolclass": StaticPool,
                "connect_args": {"check_same_thread": False},
            })
        elif resolved_url.startswith("sqlite"):
            kwargs["connect_args"] = {"check_same_thread": False}
        engine = create_engine(resolved_url, **kwargs)
        if engine.dialect.name == "sqlite":
            _install_sqlite_hooks(engine)
        _ENGINE = engine
        _ENGINE_URL = resolved_url
        logger.info("engine_created dialect=%s", _ENGINE.dialect.name)

    return _ENGINE


@contextmanager
def transaction(engine: Engine | None = None) -> Generator[Connection, None, None]:
    """Yield a connection inside one atomic write transaction.

    Commits on clean exit; any exception rolls the whole unit back and is
    re-raised unchanged. On SQLite the transaction starts with
    BEGIN IMMEDIATE, so reads made inside it cannot be invalidated by another
    writer before the commit.
    """
    eng = engine or get_engine()
    with eng.connect() as conn:
        conn.execution_options(**{WRITE_LOCK_OPTION: True})
        with conn.begin():
            yield conn
