"""Functional tests for the persistence layer and application bootstrap.

Covers SQL script splitting, the packaged migrations, SQLite transaction
hooks and booting the app on its default in-memory database.
"""

from __future__ import annotations

import os

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, text as sql_text
from sqlalchemy.exc import IntegrityError, OperationalError

from surveygraph.config import load_config
from surveygraph.db.base import get_engine, transaction
from surveygraph.db.migrations_runner import DEFAULT_MIGRATIONS_DIR, apply_migrations, split_sql_statements
from surveygraph.logic.events import EVENT_BUFFER_SIZE, get_buffered_events, publish
from surveygraph.main import create_app

SHARED_DB_URL = os.environ["TEST_DATABASE_URL"]


@pytest.fixture()
def restore_shared_engine():
    yield
    get_engine(SHARED_DB_URL)


def test_semicolons_in_comments_do_not_split_statements():
    script = """
    -- header; with a semicolon
    CREATE TABLE a (id INTEGER); -- trailing; comment
    -- another; one
    CREATE TABLE b (id INTEGER);
    """

    statements = split_sql_statements(script)

    assert statements == ["CREATE TABLE a (id INTEGER)", "CREATE TABLE b (id INTEGER)"]


def test_migrations_ship_inside_the_package():
    assert DEFAULT_MIGRATIONS_DIR.parent.name == "surveygraph"
    assert sorted(p.name for p in DEFAULT_MIGRATIONS_DIR.glob("*.sql")) == ["001_survey_graph.sql"]


def test_migrations_apply_to_a_fresh_database_once():
    engine = create_engine("sqlite+pysqlite:///:memory:")

    assert apply_migrations(engine) == ["001_survey_graph.sql"]
    assert apply_migrations(engine) == []
    with engine.connect() as conn:
        tables = {
            row[0]
            for row in conn.execute(sql_text("SELECT name FROM sqlite_master WHERE type = 'table'"))
        }
    assert {"survey", "question", "question_option", "response", "answer", "schema_migrations"} <= tables


def test_app_boots_on_default_in_memory_database(restore_shared_engine, monkeypatch):
    for key in ("TEST_DATABASE_URL", "DATABASE_URL", "AUTO_APPLY_MIGRATIONS"):
        monkeypatch.delenv(key, raising=False)
    config = load_config()
    assert config.database.dsn == "sqlite+pysqlite:///:memory:"
    assert config.database.auto_apply_migrations is True

    with TestClient(create_app(config)) as client:
        assert client.get("/health").json() == {"status": "ok", "db": True}
        created = client.post("/admin/surveys", json={"title": "Boot survey"})
        assert created.status_code == 201
        assert [s["title"] for s in client.get("/surveys").json()] == ["Boot survey"]


def test_sqlite_connections_enforce_foreign_keys(engine):
    with pytest.raises(IntegrityError):
        with transaction(engine) as conn:
            conn.execute(
                sql_text(
                    """
                    INSERT INTO question (question_id, survey_id, code, type, text, next_question_id, position)
                    VALUES ('q-orphan', 'no-such-survey', 'Q1', 'SINGLE', 'x', NULL, 0)
                    """
                )
            )


def test_write_transactions_take_the_sqlite_write_lock_up_front(engine):
    other_engine = create_engine(SHARED_DB_URL, connect_args={"timeout": 0})
    try:
        with transaction(engine) as conn:
            conn.execute(sql_text("SELECT 1"))
            # Only reads so far, yet a second writer is already shut out
            with pytest.raises(OperationalError, match="locked"):
                with other_engine.begin() as other:
                    other.execute(sql_text("DELETE FROM survey WHERE survey_id = 'none'"))
    finally:
        other_engine.dispose()


# ----------------------------------------------------------------------------
# Event buffer
# ----------------------------------------------------------------------------


def test_event_buffer_keeps_only_recent_events():
    for i in range(EVENT_BUFFER_SIZE + 250):
        publish("test.event", {"i": i})

    events = get_buffered_events()

    assert len(events) == EVENT_BUFFER_SIZE
    assert events[0]["payload"] == {"i": 250}
    assert events[-1]["payload"] == {"i": EVENT_BUFFER_SIZE + 249}
    assert get_buffered_events() == []
