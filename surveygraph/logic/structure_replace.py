"""Atomic replacement of a survey's question/option graph.

The whole replace runs in one transaction:
1. delete answers, responses, options and questions of the survey
   (editing structure invalidates prior respondent progress);
2. insert questions without pointers, recording code -> question_id;
3. link default-next pointers through that map;
4. bulk insert options, resolving owner and jump target through the map.
Any failure rolls everything back, so readers never observe a partial graph.
The survey row is locked first so two replaces of one survey serialize.
`write_structure` takes the caller's Connection so survey creation can
write the row and its graph in the same transaction.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence

from sqlalchemy.engine import Connection, Engine

from surveygraph.db.base import transaction
from surveygraph.logic import events
from surveygraph.logic.errors import DanglingReferenceError, SurveyNotFoundError, ValidationError
from surveygraph.logic.repository_structure import (
    delete_survey_structure,
    insert_options,
    insert_question,
    set_next_question,
)
from surveygraph.logic.repository_surveys import fetch_survey, touch_survey
from surveygraph.logic.structure_normalizer import NormalizedOption, NormalizedQuestion
from surveygraph.logic.structure_validation import validate_structure

logger = logging.getLogger(__name__)


def _resolve(ids_by_code: Dict[str, str], code: str, *, source: str, field: str) -> str:
    target = ids_by_code.get(code)
    if target is None:
        raise DanglingReferenceError(
            f'"{source}" {field} "{code}" was not found',
            source=source,
            missing_code=code,
            field=field,
        )


def write_structure(
    conn: Connection,
    survey_id: str,
    questions: Sequence[NormalizedQuestion],
    options: Sequence[NormalizedOption],
) -> Dict[str, int]:
    """Swap the graph rows on the caller's transaction; return the removed row counts.

    The caller owns the transaction and has already validated the structure
    and locked the survey row.
    """
    removed = delete_survey_structure(conn, survey_id)

    ids_by_code: Dict[str, str] = {}
    for position, question in enumerate(questions):
        ids_by_code[question.code] = insert_question(
            conn,
            survey_id,
            code=question.code,
            qtype=question.type,
            text=question.text,
            position=position,
        )

    for question in questions:
        if question.default_next_code is None:
            continue
        target_id = _resolve(
            ids_by_code, question.default_next_code, source=question.code, field="next_question_code"
        )
        set_next_question(conn, ids_by_code[question.code], target_id)

    option_rows: List[Dict[str, object]] = []
    for option in options:
        source = f"{option.question_code}:{option.value}"
        owner_id = _resolve(ids_by_code, option.question_code, source=source, field="question_code")
        jump_id = None
        if option.jump_to_code is not None:
            jump_id = _resolve(ids_by_code, option.jump_to_code, source=source, field="jump_to_question_code")
        option_rows.append(
            {
                "question_id": owner_id,
                "value": option.value,
                "label": option.label,
                "order": option.order,
                "is_other": option.is_other,
                "jump_to_question_id": jump_id,
            }
        )
    insert_options(conn, option_rows)
    touch_survey(conn, survey_id)
    return removed


def check_structure(questions: Sequence[NormalizedQuestion], options: Sequence[NormalizedOption]) -> None:
    if not questions:
        raise ValidationError("question data is empty")
    validate_structure(questions, options)


def announce_replaced(
    survey_id: str,
    questions: Sequence[NormalizedQuestion],
    options: Sequence[NormalizedOption],
    removed: Dict[str, int],
) -> Dict[str, int]:
    """Log and publish a committed replace; return the import counts."""
    result = {"questions_imported": len(questions), "options_imported": len(options)}
    logger.info(
        "structure_replace_done survey_id=%s questions=%s options=%s removed_responses=%s removed_answers=%s",
        survey_id,
        result["questions_imported"],
        result["options_imported"],
        removed["responses"],
        removed["answers"],
    )
    events.publish(events.STRUCTURE_REPLACED, {"survey_id": str(survey_id), **result})
    return result


def replace_structure(
    survey_id: str,
    questions: Sequence[NormalizedQuestion],
    options: Sequence[NormalizedOption],
    *,
    engine: Optional[Engine] = None,
) -> Dict[str, int]:
    """Replace the survey's persisted graph and return import counts."""
    check_structure(questions, options)

    with transaction(engine) as conn:
        if fetch_survey(conn, survey_id, for_update=True) is None:
            raise SurveyNotFoundError(survey_id)
        removed = write_structure(conn, survey_id, questions, options)

    return announce_replaced(survey_id, questions, options, removed)


__all__ = ["check_structure", "write_structure", "announce_replaced", "replace_structure"]
