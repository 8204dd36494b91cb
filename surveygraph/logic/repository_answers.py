"""Response and answer data access helpers.

Encapsulates queries and writes for the respondent flow. The answer upsert
is keyed by (response_id, question_id) so a resubmission overwrites in place.
"""

from __future__ import annotations

import json
import logging
import uuid
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import text as sql_text
from sqlalchemy.engine import Connection

from surveygraph.logic.timestamps import utc_timestamp

logger = logging.getLogger(__name__)

_RESPONSE_COLUMNS = "response_id, survey_id, session_id, respondent, resume_token, created_at, updated_at"


def encode_option_values(values: Optional[Sequence[str]]) -> Optional[str]:
    if not values:
        return None
    return json.dumps(list(values), ensure_ascii=False)


def decode_option_values(raw: Optional[str]) -> List[str]:
    """Parse a stored JSON array of option values; malformed data yields []."""
    if not raw:
        return []
    try:
        parsed = json.loads(raw)
    except (TypeError, ValueError):
        logger.warning("option_values_json_unreadable raw=%r", raw)
        return []
    if not isinstance(parsed, list):
        return []
    return [str(v) for v in parsed if v is not None and str(v)]


def find_response(conn: Connection, survey_id: str, resume_token: str) -> Optional[Dict[str, Any]]:
    row = conn.execute(
        sql_text(
            f"SELECT {_RESPONSE_COLUMNS} FROM response WHERE survey_id = :sid AND resume_token = :tok"
        ),
        {"sid": str(survey_id), "tok": str(resume_token)},
    ).mappings().fetchone()
    return dict(row) if row else None


def resume_token_taken(conn: Connection, resume_token: str) -> bool:
    row = conn.execute(
        sql_text("SELECT 1 FROM response WHERE resume_token = :tok"),
        {"tok": str(resume_token)},
    ).fetchone()
    return row is not None


def create_response(
    conn: Connection,
    survey_id: str,
    *,
    resume_token: str,
    session_id: Optional[str],
    respondent: Optional[str],
) -> Dict[str, Any]:
    response_id = str(uuid.uuid4())
    now = utc_timestamp()
    conn.execute(
        sql_text(
            """
            INSERT INTO response (response_id, survey_id, session_id, respondent, resume_token, created_at, updated_at)
            VALUES (:rid, :sid, :sess, :resp, :tok, :now, :now)
            """
        ),
        {
            "rid": response_id,
            "sid": str(survey_id),
            "sess": session_id,
            "resp": respondent,
            "tok": resume_token,
            "now": now,
        },
    )
    return {
        "response_id": response_id,
        "survey_id": str(survey_id),
        "session_id": session_id,
        "respondent": respondent,
        "resume_token": resume_token,
        "created_at": now,
        "updated_at": now,
    }


def refresh_response(
    conn: Connection,
    response: Dict[str, Any],
    *,
    session_id: Optional[str],
    respondent: Optional[str],
) -> None:
    """Bump updated_at; new metadata only replaces stored values when given."""
    conn.execute(
        sql_text(
            """
            UPDATE response
            SET session_id = :sess, respondent = :resp, updated_at = :now
            WHERE response_id = :rid
            """
        ),
        {
            "rid": response["response_id"],
            "sess": session_id if session_id is not None else response.get("session_id"),
            "resp": respondent if respondent is not None else response.get("respondent"),
            "now": utc_timestamp(),
        },
    )


def _next_answer_seq(conn: Connection, response_id: str) -> int:
    row = conn.execute(
        sql_text("SELECT COALESCE(MAX(answer_seq), 0) FROM answer WHERE response_id = :rid"),
        {"rid": response_id},
    ).fetchone()
    return int(row[0] or 0) + 1


def upsert_answer(
    conn: Connection,
    response_id: str,
    question_id: str,
    *,
    option_value: Optional[str],
    option_values: Optional[Sequence[str]],
    other_text: Optional[str],
) -> int:
    """Insert or overwrite the answer for (response, question); return its answer_seq."""
    seq = _next_answer_seq(conn, response_id)
    conn.execute(
        sql_text(
            """
            INSERT INTO answer (answer_id, response_id, question_id, option_value, option_values_json,
                                other_text, answered_at, answer_seq)
            VALUES (:aid, :rid, :qid, :val, :vals, :other, :now, :seq)
            ON CONFLICT (response_id, question_id)
            DO UPDATE SET option_value = excluded.option_value,
                          option_values_json = excluded.option_values_json,
                          other_text = excluded.other_text,
                          answered_at = excluded.answered_at,
                          answer_seq = excluded.answer_seq
            """
        ),
        {
            "aid": str(uuid.uuid4()),
            "rid": response_id,
            "qid": question_id,
            "val": option_value,
            "vals": encode_option_values(option_values),
            "other": other_text,
            "now": utc_timestamp(),
            "seq": seq,
        },
    )
    return seq


def _answer_row(row: Any) -> Dict[str, Any]:
    return {
        "question_id": str(row["question_id"]),
        "question_code": row["code"],
        "option_value": row["option_value"],
        "option_values": decode_option_values(row["option_values_json"]),
        "other_text": row["other_text"],
        "answered_at": row["answered_at"],
    }


def list_answers(conn: Connection, response_id: str) -> List[Dict[str, Any]]:
    """Return a response's answers oldest first (by write sequence)."""
    rows = conn.execute(
        sql_text(
            """
            SELECT a.question_id, q.code, a.option_value, a.option_values_json, a.other_text, a.answered_at
            FROM answer a
            JOIN question q ON q.question_id = a.question_id
            WHERE a.response_id = :rid
            ORDER BY a.answer_seq ASC
            """
        ),
        {"rid": response_id},
    ).mappings().all()
    return [_answer_row(r) for r in rows]


def list_responses_with_answers(conn: Connection, survey_id: str) -> List[Dict[str, Any]]:
    """Return the survey's responses, most recently updated first, each with answers oldest first."""
    responses = conn.execute(
        sql_text(
            f"SELECT {_RESPONSE_COLUMNS} FROM response WHERE survey_id = :sid ORDER BY updated_at DESC, response_id ASC"
        ),
        {"sid": str(survey_id)},
    ).mappings().all()
    answer_rows = conn.execute(
        sql_text(
            """
            SELECT a.response_id, a.question_id, q.code, a.option_value, a.option_values_json,
                   a.other_text, a.answered_at
            FROM answer a
            JOIN response r ON r.response_id = a.response_id
            JOIN question q ON q.question_id = a.question_id
            WHERE r.survey_id = :sid
            ORDER BY a.answer_seq ASC
            """
        ),
        {"sid": str(survey_id)},
    ).mappings().all()
    by_response: Dict[str, List[Dict[str, Any]]] = {}
    for row in answer_rows:
        by_response.setdefault(str(row["response_id"]), []).append(_answer_row(row))
    result: List[Dict[str, Any]] = []
    for response in responses:
        item = dict(response)
        item["answers"] = by_response.get(str(response["response_id"]), [])
        result.append(item)
    return result


__all__ = [
    "encode_option_values",
    "decode_option_values",
    "find_response",
    "resume_token_taken",
    "create_response",
    "refresh_response",
    "upsert_answer",
    "list_answers",
    "list_responses_with_answers",
]
