"""Sectioned CSV export of a survey's structure.

The file carries three sections, each a bracketed title line, a header row
and data rows, separated by a blank line:

    [Surveys]          survey_code,title,description,is_active
    [Questions]        survey_code,question_code,type,text,next_question_code
    [QuestionOptions]  survey_code,question_code,value,label,order,is_other,jump_to_question_code

Questions follow authoring order; options follow their configured order.
"""

from __future__ import annotations

import csv
import io
from typing import Any, Dict, List, Optional

from sqlalchemy.engine import Engine

from surveygraph.db.base import get_engine
from surveygraph.logic.errors import SurveyNotFoundError
from surveygraph.logic.repository_structure import load_structure
from surveygraph.logic.repository_surveys import fetch_survey

SURVEYS_HEADER = ["survey_code", "title", "description", "is_active"]
QUESTIONS_HEADER = ["survey_code", "question_code", "type", "text", "next_question_code"]
OPTIONS_HEADER = [
    "survey_code",
    "question_code",
    "value",
    "label",
    "order",
    "is_other",
    "jump_to_question_code",
]

UTF8_BOM = "\ufeff"


def survey_code_for(survey_id: str) -> str:
    return "S" + str(survey_id)[:8].upper()


def _flag(value: Any) -> str:
    return "1" if value else "0"


def render_structure_csv(survey: Dict[str, Any], questions: List[Dict[str, Any]]) -> str:
    code = survey_code_for(survey["survey_id"])
    buf = io.StringIO(newline="")
    writer = csv.writer(buf, lineterminator="\n")

    writer.writerow(["[Surveys]"])
    writer.writerow(SURVEYS_HEADER)
    writer.writerow([code, survey["title"], survey.get("description") or "", _flag(survey["is_active"])])
    writer.writerow([])

    writer.writerow(["[Questions]"])
    writer.writerow(QUESTIONS_HEADER)
    for q in questions:
        writer.writerow([code, q["code"], q["type"], q["text"], q["next_question_code"] or ""])
    writer.writerow([])

    writer.writerow(["[QuestionOptions]"])
    writer.writerow(OPTIONS_HEADER)
    for q in questions:
        for o in q["options"]:
            writer.writerow(
                [
                    code,
                    q["code"],
                    o["value"],
                    o["label"],
                    o["order"],
                    _flag(o["is_other"]),
                    o["jump_to_question_code"] or "",
                ]
            )
    return buf.getvalue()


def build_structure_csv(
    survey_id: str,
    *,
    include_bom: bool = True,
    engine: Optional[Engine] = None,
) -> bytes:
    eng = engine or get_engine()
    with eng.connect() as conn:
        survey = fetch_survey(conn, survey_id)
        if survey is None:
            raise SurveyNotFoundError(survey_id)
        questions = load_structure(conn, survey_id)
    body = render_structure_csv(survey, questions)
    if include_bom:
        body = UTF8_BOM + body
    return body.encode("utf-8")


__all__ = [
    "SURVEYS_HEADER",
    "QUESTIONS_HEADER",
    "OPTIONS_HEADER",
    "survey_code_for",
    "render_structure_csv",
    "build_structure_csv",
]
