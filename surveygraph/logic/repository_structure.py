"""Question/option graph data access helpers.

Pointers are stored as question ids; reads resolve them back to codes so
callers only ever deal with the code-keyed graph.
"""

from __future__ import annotations

import uuid
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import text as sql_text
from sqlalchemy.engine import Connection

from surveygraph.logic.navigation import OptionEdge, QuestionNode


def delete_survey_structure(conn: Connection, survey_id: str) -> Dict[str, int]:
    """Delete answers, responses, options and questions of a survey, in that order."""
    params = {"sid": str(survey_id)}
    answers = conn.execute(
        sql_text(
            "DELETE FROM answer WHERE response_id IN (SELECT response_id FROM response WHERE survey_id = :sid)"
        ),
        params,
    ).rowcount
    responses = conn.execute(sql_text("DELETE FROM response WHERE survey_id = :sid"), params).rowcount
    options = conn.execute(
        sql_text(
            "DELETE FROM question_option WHERE question_id IN (SELECT question_id FROM question WHERE survey_id = :sid)"
        ),
        params,
    ).rowcount
    # Unlink self-references before removing the rows they point at
    conn.execute(sql_text("UPDATE question SET next_question_id = NULL WHERE survey_id = :sid"), params)
    questions = conn.execute(sql_text("DELETE FROM question WHERE survey_id = :sid"), params).rowcount
    return {
        "answers": int(answers or 0),
        "responses": int(responses or 0),
        "options": int(options or 0),
        "questions": int(questions or 0),
    }


def insert_question(conn: Connection, survey_id: str, *, code: str, qtype: str, text: str, position: int) -> str:
    question_id = str(uuid.uuid4())
    conn.execute(
        sql_text(
            """
            INSERT INTO question (question_id, survey_id, code, type, text, next_question_id, position)
            VALUES (:qid, :sid, :code, :qtype, :text, NULL, :pos)
            """
        ),
        {"qid": question_id, "sid": str(survey_id), "code": code, "qtype": qtype, "text": text, "pos": int(position)},
    )
    return question_id


def set_next_question(conn: Connection, question_id: str, next_question_id: Optional[str]) -> None:
    conn.execute(
        sql_text("UPDATE question SET next_question_id = :nid WHERE question_id = :qid"),
        {"nid": next_question_id, "qid": question_id},
    )


def insert_options(conn: Connection, rows: Sequence[Dict[str, Any]]) -> int:
    """Bulk insert option rows keyed by question_id/jump_to_question_id."""
    if not rows:
        return 0
    params = [
        {
            "oid": str(uuid.uuid4()),
            "qid": row["question_id"],
            "value": row["value"],
            "label": row["label"],
            "ord": int(row["order"]),
            "other": bool(row["is_other"]),
            "jump": row.get("jump_to_question_id"),
        }
        for row in rows
    ]
    conn.execute(
        sql_text(
            """
            INSERT INTO question_option (option_id, question_id, value, label, option_order, is_other, jump_to_question_id)
            VALUES (:oid, :qid, :value, :label, :ord, :other, :jump)
            """
        ),
        params,
    )
    return len(params)


def load_structure(conn: Connection, survey_id: str) -> List[Dict[str, Any]]:
    """Return questions in authoring order, each with its options sorted by order.

    Shape per question: question_id, code, type, text, next_question_code,
    options[{option_id, value, label, order, is_other, jump_to_question_code}].
    """
    qrows = conn.execute(
        sql_text(
            """
            SELECT q.question_id, q.code, q.type, q.text, n.code AS next_code
            FROM question q
            LEFT JOIN question n ON n.question_id = q.next_question_id
            WHERE q.survey_id = :sid
            ORDER BY q.position ASC, q.code ASC
            """
        ),
        {"sid": str(survey_id)},
    ).mappings().all()
    orows = conn.execute(
        sql_text(
            """
            SELECT o.option_id, o.question_id, o.value, o.label, o.option_order, o.is_other, j.code AS jump_code
            FROM question_option o
            JOIN question q ON q.question_id = o.question_id
            LEFT JOIN question j ON j.question_id = o.jump_to_question_id
            WHERE q.survey_id = :sid
            ORDER BY o.option_order ASC, o.value ASC
            """
        ),
        {"sid": str(survey_id)},
    ).mappings().all()

    options_by_question: Dict[str, List[Dict[str, Any]]] = {}
    for o in orows:
        options_by_question.setdefault(str(o["question_id"]), []).append(
            {
                "option_id": str(o["option_id"]),
                "value": o["value"],
                "label": o["label"],
                "order": int(o["option_order"]),
                "is_other": bool(o["is_other"]),
                "jump_to_question_code": o["jump_code"],
            }
        )
    return [
        {
            "question_id": str(q["question_id"]),
            "code": q["code"],
            "type": q["type"],
            "text": q["text"],
            "next_question_code": q["next_code"],
            "options": options_by_question.get(str(q["question_id"]), []),
        }
        for q in qrows
    ]


def load_question_nodes(conn: Connection, survey_id: str) -> Dict[str, QuestionNode]:
    """Return the survey's navigation graph keyed by question code."""
    nodes: Dict[str, QuestionNode] = {}
    for q in load_structure(conn, survey_id):
        nodes[q["code"]] = QuestionNode(
            code=q["code"],
            type=q["type"],
            default_next_code=q["next_question_code"],
            options=tuple(
                OptionEdge(value=o["value"], jump_to_code=o["jump_to_question_code"], order=o["order"])
                for o in q["options"]
            ),
            question_id=q["question_id"],
        )
    return nodes


__all__ = [
    "delete_survey_structure",
    "insert_question",
    "set_next_question",
    "insert_options",
    "load_structure",
    "load_question_nodes",
]
