"""Resumable response sessions.

Per response the state machine is NOT_STARTED -> IN_PROGRESS -> COMPLETED,
driven only by `navigation.resolve_next` applied to the respondent's latest
answer. Submissions upsert answers idempotently per (response, question)
inside one transaction; resume recomputes the position from the current
graph and never trusts a stored next-question value.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence

from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import IntegrityError

from surveygraph.db.base import get_engine, transaction
from surveygraph.logic import events
from surveygraph.logic.errors import (
    InactiveSurveyError,
    ResponseNotFoundError,
    SurveyNotFoundError,
    UnknownQuestionError,
    ValidationError,
)
from surveygraph.logic.navigation import (
    AnswerSelection,
    QuestionNode,
    clean_values,
    derive_status,
    resolve_next,
)
from surveygraph.logic.repository_answers import (
    create_response,
    find_response,
    list_answers,
    list_responses_with_answers,
    refresh_response,
    resume_token_taken,
    upsert_answer,
)
from surveygraph.logic.repository_structure import load_question_nodes
from surveygraph.logic.repository_surveys import fetch_survey

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SubmittedAnswer:
    question_code: str
    option_value: Optional[Any] = None
    option_values: Optional[Sequence[Any]] = None
    other_text: Optional[str] = None

    def selection(self) -> AnswerSelection:
        return AnswerSelection(
            option_value=_stringify(self.option_value),
            option_values=tuple(clean_values(self.option_values)),
            other_text=self.other_text,
        )


@dataclass
class RespondentMeta:
    session_id: Optional[str] = None
    respondent: Optional[str] = None


@dataclass
class SubmitResult:
    resume_token: str
    next_question_code: Optional[str]
    status: str


@dataclass
class ResumeResult:
    resume_token: str
    last_question_code: Optional[str]
    next_question_code: Optional[str]
    status: str
    history: List[Dict[str, Any]] = field(default_factory=list)


def _stringify(value: Any) -> Optional[str]:
    return None if value is None else str(value)


def next_code_for_stored_answer(nodes: Mapping[str, QuestionNode], answer: Mapping[str, Any]) -> Optional[str]:
    """Recompute the next code for a persisted answer against the current graph."""
    node = nodes.get(answer["question_code"])
    if node is None:
        return None
    return resolve_next(
        node,
        AnswerSelection(
            option_value=answer.get("option_value"),
            option_values=tuple(answer.get("option_values") or ()),
            other_text=answer.get("other_text"),
        ),
    )


def _start_response(conn: Connection, survey_id: str, token: str, meta: RespondentMeta) -> Dict[str, Any]:
    """Create the response for a new token.

    When a concurrent first submission committed the same token in the
    meantime, its response is reused instead.
    """
    try:
        with conn.begin_nested():
            response = create_response(
                conn,
                survey_id,
                resume_token=token,
                session_id=meta.session_id,
                respondent=meta.respondent,
            )
    except IntegrityError as exc:
        existing = find_response(conn, survey_id, token)
        if existing is None:
            raise ValidationError(
                "resume token belongs to another survey", context={"field": "resumeToken"}
            ) from exc
        logger.info("response_token_reused survey_id=%s response_id=%s", survey_id, existing["response_id"])
        refresh_response(conn, existing, session_id=meta.session_id, respondent=meta.respondent)
        return existing
    logger.info("response_created survey_id=%s response_id=%s", survey_id, response["response_id"])
    return response


def submit_answers(
    survey_id: str,
    answers: Sequence[SubmittedAnswer],
    *,
    resume_token: Optional[str] = None,
    meta: Optional[RespondentMeta] = None,
    engine: Optional[Engine] = None,
) -> SubmitResult:
    """Persist a batch of answers and report the next question.

    Without a token a fresh one is issued with a new response. A token not yet
    known for this survey starts a response under that token. The next code is
    resolved from the last answer in the batch only.
    """
    if not answers:
        raise ValidationError("answers are required")
    meta = meta or RespondentMeta()

    with transaction(engine) as conn:
        # Held until commit so a concurrent replace cannot drop the questions read below
        survey = fetch_survey(conn, survey_id, for_share=True)
        if survey is None:
            raise SurveyNotFoundError(survey_id)
        if not survey["is_active"]:
            raise InactiveSurveyError("survey is not active", context={"survey_id": str(survey_id)})

        nodes = load_question_nodes(conn, survey_id)
        token = resume_token or str(uuid.uuid4())
        response = find_response(conn, survey_id, token)
        if response is None:
            if resume_token_taken(conn, token):
                raise ValidationError("resume token belongs to another survey", context={"field": "resumeToken"})
            response = _start_response(conn, survey_id, token, meta)
        else:
            refresh_response(conn, response, session_id=meta.session_id, respondent=meta.respondent)

        for answer in answers:
            node = nodes.get(answer.question_code)
            if node is None or node.question_id is None:
                raise UnknownQuestionError(answer.question_code)
            selection = answer.selection()
            upsert_answer(
                conn,
                response["response_id"],
                node.question_id,
                option_value=_stringify(answer.option_value),
                option_values=list(selection.option_values),
                other_text=answer.other_text,
            )

        last = answers[-1]
        next_code = resolve_next(nodes[last.question_code], last.selection())

    result = SubmitResult(
        resume_token=token,
        next_question_code=next_code,
        status=derive_status(True, next_code),
    )
    logger.info(
        "answers_submitted survey_id=%s count=%s next=%s status=%s",
        survey_id,
        len(answers),
        next_code,
        result.status,
    )
    events.publish(
        events.ANSWERS_SUBMITTED,
        {
            "survey_id": str(survey_id),
            "resume_token": token,
            "next_question_code": next_code,
            "status": result.status,
        },
    )
    return result


def resume(survey_id: str, resume_token: str, *, engine: Optional[Engine] = None) -> ResumeResult:
    """Rebuild a respondent's position and answer history from the token."""
    eng = engine or get_engine()
    with eng.connect() as conn:
        response = find_response(conn, survey_id, resume_token)
        if response is None:
            raise ResponseNotFoundError(survey_id, resume_token)
        history = list_answers(conn, response["response_id"])
        nodes = load_question_nodes(conn, survey_id) if history else {}

    last = history[-1] if history else None
    next_code = next_code_for_stored_answer(nodes, last) if last else None
    result = ResumeResult(
        resume_token=response["resume_token"],
        last_question_code=last["question_code"] if last else None,
        next_question_code=next_code,
        status=derive_status(bool(history), next_code),
        history=[
            {
                "question_code": item["question_code"],
                "answer": {
                    "option_value": item["option_value"],
                    "option_values": item["option_values"],
                    "other_text": item["other_text"],
                },
                "answered_at": item["answered_at"],
            }
            for item in history
        ],
    )
    logger.debug("resume_result survey_id=%s result=%s", survey_id, result)
    return result


def list_response_summaries(survey_id: str, *, engine: Optional[Engine] = None) -> List[Dict[str, Any]]:
    """Return each response's status and position, most recently updated first."""
    eng = engine or get_engine()
    with eng.connect() as conn:
        if fetch_survey(conn, survey_id) is None:
            raise SurveyNotFoundError(survey_id)
        nodes = load_question_nodes(conn, survey_id)
        responses = list_responses_with_answers(conn, survey_id)

    summaries: List[Dict[str, Any]] = []
    for response in responses:
        answers = response["answers"]
        latest = answers[-1] if answers else None
        next_code = next_code_for_stored_answer(nodes, latest) if latest else None
        summaries.append(
            {
                "response_id": str(response["response_id"]),
                "resume_token": response["resume_token"],
                "status": derive_status(bool(answers), next_code),
                "last_question_code": latest["question_code"] if latest else None,
                "next_question_code": next_code,
                "updated_at": response["updated_at"],
                "last_answered_at": latest["answered_at"] if latest else None,
            }
        )
    logger.info("response_summaries survey_id=%s count=%s", survey_id, len(summaries))
    return summaries


__all__ = [
    "SubmittedAnswer",
    "RespondentMeta",
    "SubmitResult",
    "ResumeResult",
    "next_code_for_stored_answer",
    "submit_answers",
    "resume",
    "list_response_summaries",
]
