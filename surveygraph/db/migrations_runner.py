"""Lightweight SQL migrations runner.

Applies .sql files in lexical order from the `migrations/` directory and
records applied filenames in a `schema_migrations` journal table so the same
migration is never reapplied to a database. Intended for local development
and CI; production environments may use the platform's migration mechanism.
"""

from __future__ import annotations

import logging
import os
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable

from sqlalchemy import text as sql_text
from sqlalchemy.engine import Connection, Engine

logger = logging.getLogger(__name__)

# Shipped as package data so installed wheels carry the schema
DEFAULT_MIGRATIONS_DIR = Path(__file__).resolve().parents[1] / "migrations"

_LINE_COMMENT = re.compile(r"--[^\n]*")

_JOURNAL_DDL = (
    "CREATE TABLE IF NOT EXISTS schema_migrations ("
    " filename VARCHAR(255) PRIMARY KEY,"
    " applied_at VARCHAR(32) NOT NULL)"
)


def _iter_sql_files(root: Path) -> Iterable[Path]:
    for p in sorted(root.glob("*.sql")):
        # Skip rollback scripts in forward runs
        if "rollback" in p.name.lower():
            continue
        yield p


def split_sql_statements(sql: str) -> list[str]:
    """Strip `--` line comments, then split the script into non-empty statements."""
    stripped = _LINE_COMMENT.sub("", sql)
    return [s.strip() for s in stripped.split(";") if s.strip()]


def _exec_sql_compat(conn: Connection, sql: str) -> None:
    """Execute a multi-statement SQL file.

    SQLite's DB-API refuses more than one statement per execute() call, so
    statements are split on ';' for that dialect only, after `--` comments are
    removed so a ';' inside a comment never splits a statement. Other dialects
    receive the full script as-is.
    """
    name = (getattr(conn.dialect, "name", "") or "").lower()
    if "sqlite" not in name:
        conn.exec_driver_sql(sql)
        return
    for stmt in split_sql_statements(sql):
        if stmt.upper() in {"BEGIN", "COMMIT", "END"}:
            continue
        conn.exec_driver_sql(stmt)


def apply_migrations(engine: Engine, migrations_dir: str | os.PathLike[str] | None = None) -> list[str]:
    """Apply pending migrations and return the filenames applied by this run."""
    root = Path(migrations_dir) if migrations_dir else DEFAULT_MIGRATIONS_DIR
    if not root.exists():
        logger.warning("migrations_dir_missing path=%s", str(root))
        return []

    newly_applied: list[str] = []
    with engine.begin() as conn:
        conn.exec_driver_sql(_JOURNAL_DDL)
        applied = {
            str(row[0]) for row in conn.execute(sql_text("SELECT filename FROM schema_migrations"))
        }
        for sql_path in _iter_sql_files(root):
            fname = sql_path.name
            if fname in applied:
                continue
            sql = sql_path.read_text(encoding="utf-8")
            if not sql.strip():
                continue
            _exec_sql_compat(conn, sql)
            conn.execute(
                sql_text("INSERT INTO schema_migrations (filename, applied_at) VALUES (:f, :at)"),
                {
                    "f": fname,
                    # ISO-8601 UTC without fractional seconds
                    "at": datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z"),
                },
            )
            logger.info("migration_applied file=%s", fname)
            newly_applied.append(fname)
    return newly_applied
