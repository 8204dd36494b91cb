"""Survey administration services.

Survey metadata CRUD plus the import entry points that feed the structure
replacer. Each write runs in its own transaction and publishes a domain event
after commit.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy.engine import Engine

from surveygraph.db.base import get_engine, transaction
from surveygraph.logic import events
from surveygraph.logic.errors import SurveyNotFoundError, ValidationError
from surveygraph.logic.repository_structure import delete_survey_structure, load_structure
from surveygraph.logic.repository_surveys import (
    count_responses,
    delete_survey_row,
    fetch_survey,
    insert_survey,
    list_surveys as _list_survey_rows,
    update_survey,
)
from surveygraph.logic.structure_normalizer import END_SENTINEL, normalize_structure_payload
from surveygraph.logic.structure_replace import (
    announce_replaced,
    check_structure,
    replace_structure,
    write_structure,
)
from surveygraph.logic.structure_validation import normalize_and_validate
from surveygraph.logic.workbook import read_workbook_rows

logger = logging.getLogger(__name__)


def _clean_title(title: Optional[str]) -> str:
    cleaned = (title or "").strip()
    if not cleaned:
        raise ValidationError("title is required", context={"field": "title"})
    return cleaned


def _clean_description(description: Optional[str]) -> Optional[str]:
    if description is None:
        return None
    cleaned = description.strip()
    return cleaned or None


def create_survey(
    title: Optional[str],
    description: Optional[str] = None,
    is_active: bool = True,
    *,
    engine: Optional[Engine] = None,
) -> Dict[str, Any]:
    clean_title = _clean_title(title)
    with transaction(engine) as conn:
        survey = insert_survey(
            conn,
            title=clean_title,
            description=_clean_description(description),
            is_active=is_active,
        )
    logger.info("survey_created survey_id=%s active=%s", survey["survey_id"], survey["is_active"])
    events.publish(events.SURVEY_CREATED, {"survey_id": survey["survey_id"]})
    return survey


def update_survey_meta(
    survey_id: str,
    *,
    title: Optional[str] = None,
    description: Optional[str] = None,
    is_active: Optional[bool] = None,
    engine: Optional[Engine] = None,
) -> Dict[str, Any]:
    """Update only the fields that were given; a given blank title is rejected."""
    with transaction(engine) as conn:
        current = fetch_survey(conn, survey_id)
        if current is None:
            raise SurveyNotFoundError(survey_id)
        new_title = _clean_title(title) if title is not None else current["title"]
        new_description = _clean_description(description) if description is not None else current["description"]
        new_active = bool(is_active) if is_active is not None else current["is_active"]
        update_survey(conn, survey_id, title=new_title, description=new_description, is_active=new_active)
        updated = fetch_survey(conn, survey_id)
    logger.info("survey_updated survey_id=%s active=%s", survey_id, new_active)
    events.publish(events.SURVEY_UPDATED, {"survey_id": str(survey_id), "is_active": new_active})
    return updated  # type: ignore[return-value]


def set_survey_active(survey_id: str, is_active: bool, *, engine: Optional[Engine] = None) -> Dict[str, Any]:
    return update_survey_meta(survey_id, is_active=is_active, engine=engine)


def delete_survey(survey_id: str, *, engine: Optional[Engine] = None) -> None:
    """Delete a survey with its answers, responses, options and questions."""
    with transaction(engine) as conn:
        if fetch_survey(conn, survey_id, for_update=True) is None:
            raise SurveyNotFoundError(survey_id)
        removed = delete_survey_structure(conn, survey_id)
        delete_survey_row(conn, survey_id)
    logger.info(
        "survey_deleted survey_id=%s questions=%s responses=%s",
        survey_id,
        removed["questions"],
        removed["responses"],
    )
    events.publish(events.SURVEY_DELETED, {"survey_id": str(survey_id)})


def list_surveys(*, engine: Optional[Engine] = None) -> List[Dict[str, Any]]:
    eng = engine or get_engine()
    with eng.connect() as conn:
        return _list_survey_rows(conn)


def list_active_surveys(*, engine: Optional[Engine] = None) -> List[Dict[str, Any]]:
    eng = engine or get_engine()
    with eng.connect() as conn:
        return _list_survey_rows(conn, active_only=True)


def get_survey_detail(survey_id: str, *, engine: Optional[Engine] = None) -> Dict[str, Any]:
    """Survey metadata with response count and the full question graph."""
    eng = engine or get_engine()
    with eng.connect() as conn:
        survey = fetch_survey(conn, survey_id)
        if survey is None:
            raise SurveyNotFoundError(survey_id)
        detail = dict(survey)
        detail["responses_count"] = count_responses(conn, survey_id)
        detail["questions"] = load_structure(conn, survey_id)
    return detail


def update_structure_from_payload(
    survey_id: str,
    payload: Mapping[str, Any],
    *,
    sentinel: str = END_SENTINEL,
    engine: Optional[Engine] = None,
) -> Dict[str, int]:
    questions, options = normalize_structure_payload(payload, sentinel=sentinel)
    return replace_structure(survey_id, questions, options, engine=engine)


def import_workbook(
    survey_id: str,
    content: bytes,
    *,
    max_bytes: Optional[int] = None,
    sentinel: str = END_SENTINEL,
    engine: Optional[Engine] = None,
) -> Dict[str, int]:
    """Replace a survey's structure from an uploaded workbook."""
    question_rows, option_rows = read_workbook_rows(content, max_bytes=max_bytes)
    questions, options = normalize_and_validate(question_rows, option_rows, sentinel=sentinel)
    return replace_structure(survey_id, questions, options, engine=engine)


def create_survey_from_workbook(
    meta: Mapping[str, Any],
    content: bytes,
    *,
    max_bytes: Optional[int] = None,
    sentinel: str = END_SENTINEL,
    engine: Optional[Engine] = None,
) -> Dict[str, Any]:
    """Create a survey and import its structure from a workbook.

    The workbook is parsed and validated before anything is written, and the
    survey row and its graph share one transaction, so an unusable upload
    leaves nothing behind.
    """
    clean_title = _clean_title(meta.get("title"))
    question_rows, option_rows = read_workbook_rows(content, max_bytes=max_bytes)
    questions, options = normalize_and_validate(question_rows, option_rows, sentinel=sentinel)
    check_structure(questions, options)

    with transaction(engine) as conn:
        survey = insert_survey(
            conn,
            title=clean_title,
            description=_clean_description(meta.get("description")),
            is_active=bool(meta.get("is_active", True)),
        )
        removed = write_structure(conn, survey["survey_id"], questions, options)

    logger.info("survey_created survey_id=%s active=%s", survey["survey_id"], survey["is_active"])
    events.publish(events.SURVEY_CREATED, {"survey_id": survey["survey_id"]})
    counts = announce_replaced(survey["survey_id"], questions, options, removed)
    return {**survey, **counts}


__all__ = [
    "create_survey",
    "update_survey_meta",
    "set_survey_active",
    "delete_survey",
    "list_surveys",
    "list_active_surveys",
    "get_survey_detail",
    "update_structure_from_payload",
    "import_workbook",
    "create_survey_from_workbook",
]
