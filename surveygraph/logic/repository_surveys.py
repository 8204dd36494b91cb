"""Survey-level data access helpers.

Keeps route handlers and services free of inline SQL. Write helpers take the
caller's Connection so several of them can share one transaction.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, List, Optional

from sqlalchemy import text as sql_text
from sqlalchemy.engine import Connection

from surveygraph.logic.timestamps import utc_timestamp

logger = logging.getLogger(__name__)

_SURVEY_COLUMNS = "s.survey_id, s.title, s.description, s.is_active, s.created_at, s.updated_at"


def _survey_row(row: Any) -> Dict[str, Any]:
    return {
        "survey_id": str(row["survey_id"]),
        "title": row["title"],
        "description": row["description"],
        "is_active": bool(row["is_active"]),
        "created_at": row["created_at"],
        "updated_at": row["updated_at"],
    }


def insert_survey(conn: Connection, *, title: str, description: Optional[str], is_active: bool) -> Dict[str, Any]:
    survey_id = str(uuid.uuid4())
    now = utc_timestamp()
    conn.execute(
        sql_text(
            """
            INSERT INTO survey (survey_id, title, description, is_active, created_at, updated_at)
            VALUES (:sid, :title, :descr, :active, :now, :now)
            """
        ),
        {"sid": survey_id, "title": title, "descr": description, "active": bool(is_active), "now": now},
    )
    return {
        "survey_id": survey_id,
        "title": title,
        "description": description,
        "is_active": bool(is_active),
        "created_at": now,
        "updated_at": now,
    }


def fetch_survey(
    conn: Connection,
    survey_id: str,
    *,
    for_update: bool = False,
    for_share: bool = False,
) -> Optional[Dict[str, Any]]:
    """Return a survey row, optionally row-locked for the enclosing transaction.

    `for_update` is taken by structure writers, `for_share` by answer writers,
    so submissions block a replace of the same survey but not each other.
    SQLite has no row locks; its write transactions begin IMMEDIATE instead.
    """
    lock = ""
    if conn.dialect.name != "sqlite":
        if for_update:
            lock = " FOR UPDATE"
        elif for_share:
            lock = " FOR SHARE"
    row = conn.execute(
        sql_text(f"SELECT {_SURVEY_COLUMNS} FROM survey s WHERE s.survey_id = :sid{lock}"),
        {"sid": str(survey_id)},
    ).mappings().fetchone()
    if row is None:
        logger.debug("survey_missing survey_id=%s", survey_id)
        return None
    return _survey_row(row)


def count_responses(conn: Connection, survey_id: str) -> int:
    row = conn.execute(
        sql_text("SELECT COUNT(*) FROM response WHERE survey_id = :sid"),
        {"sid": str(survey_id)},
    ).fetchone()
    return int(row[0]) if row and row[0] is not None else 0


def list_surveys(conn: Connection, *, active_only: bool = False) -> List[Dict[str, Any]]:
    """Return surveys newest first, each with its `responses_count`."""
    where = "WHERE s.is_active = :active" if active_only else ""
    rows = conn.execute(
        sql_text(
            f"""
            SELECT {_SURVEY_COLUMNS},
                   (SELECT COUNT(*) FROM response r WHERE r.survey_id = s.survey_id) AS responses_count
            FROM survey s
            {where}
            ORDER BY s.created_at DESC, s.survey_id ASC
            """
        ),
        {"active": True} if active_only else {},
    ).mappings().all()
    result: List[Dict[str, Any]] = []
    for row in rows:
        item = _survey_row(row)
        item["responses_count"] = int(row["responses_count"] or 0)
        result.append(item)
    return result


def update_survey(
    conn: Connection,
    survey_id: str,
    *,
    title: str,
    description: Optional[str],
    is_active: bool,
) -> None:
    conn.execute(
        sql_text(
            """
            UPDATE survey
            SET title = :title, description = :descr, is_active = :active, updated_at = :now
            WHERE survey_id = :sid
            """
        ),
        {
            "sid": str(survey_id),
            "title": title,
            "descr": description,
            "active": bool(is_active),
            "now": utc_timestamp(),
        },
    )


def touch_survey(conn: Connection, survey_id: str) -> None:
    conn.execute(
        sql_text("UPDATE survey SET updated_at = :now WHERE survey_id = :sid"),
        {"sid": str(survey_id), "now": utc_timestamp()},
    )


def delete_survey_row(conn: Connection, survey_id: str) -> None:
    """Delete the survey row itself; owned rows must already be gone."""
    conn.execute(sql_text("DELETE FROM survey WHERE survey_id = :sid"), {"sid": str(survey_id)})


__all__ = [
    "insert_survey",
    "fetch_survey",
    "count_responses",
    "list_surveys",
    "update_survey",
    "touch_survey",
    "delete_survey_row",
]
