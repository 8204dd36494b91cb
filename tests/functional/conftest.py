"""Functional test bootstrap for the survey graph service.

Points the service at a file-backed SQLite database under `tmp/` before any
module builds an engine, applies the SQL migrations once per session, and
empties every table between tests so each test starts from a clean store.
"""

from __future__ import annotations

import io
import os
import pathlib
from typing import Any, Dict, Optional, Sequence

import pytest

_ROOT = pathlib.Path(__file__).resolve().parents[2]
_DB_FILE = _ROOT / "tmp" / "functional_tests.db"
_DB_FILE.parent.mkdir(parents=True, exist_ok=True)
if _DB_FILE.exists():
    _DB_FILE.unlink()

# Use a file-backed SQLite DB to ensure persistence across connections
os.environ["TEST_DATABASE_URL"] = f"sqlite:///{_DB_FILE}"
os.environ["DATABASE_URL"] = os.environ["TEST_DATABASE_URL"]
# Migrations are applied explicitly below rather than at app startup
os.environ["AUTO_APPLY_MIGRATIONS"] = "0"

_TABLES_IN_DELETE_ORDER = ("answer", "response", "question_option", "question", "survey")


@pytest.fixture(scope="session", autouse=True)
def functional_sqlite_bootstrap():
    """Session-level bootstrap: apply migrations once for the shared DB."""
    from surveygraph.db.base import get_engine
    from surveygraph.db.migrations_runner import apply_migrations

    apply_migrations(get_engine(os.environ["TEST_DATABASE_URL"]))
    yield


@pytest.fixture(autouse=True)
def clean_tables(functional_sqlite_bootstrap):
    from sqlalchemy import text as sql_text

    from surveygraph.db.base import get_engine
    from surveygraph.logic.events import get_buffered_events

    with get_engine(os.environ["TEST_DATABASE_URL"]).begin() as conn:
        conn.execute(sql_text("UPDATE question SET next_question_id = NULL"))
        for table in _TABLES_IN_DELETE_ORDER:
            conn.execute(sql_text(f"DELETE FROM {table}"))
    get_buffered_events(clear=True)
    yield


@pytest.fixture()
def engine():
    from surveygraph.db.base import get_engine

    return get_engine(os.environ["TEST_DATABASE_URL"])


@pytest.fixture()
def client():
    from fastapi.testclient import TestClient

    from surveygraph.main import create_app

    with TestClient(create_app()) as test_client:
        yield test_client


# ----------------------------------------------------------------------------
# Builders shared by the functional suites (exposed as fixtures)
# ----------------------------------------------------------------------------


def _branching_graph():
    """Q1 (yes jumps to Q3) -> Q2 -> Q3 (MULTI, b jumps to Q5) -> Q4 -> END; Q5 -> END."""
    from surveygraph.logic.structure_normalizer import NormalizedOption, NormalizedQuestion

    def q(code: str, qtype: str = "SINGLE", next_code: Optional[str] = None) -> NormalizedQuestion:
        return NormalizedQuestion(code=code, type=qtype, text=f"Question {code}", default_next_code=next_code)

    def o(qcode: str, value: str, order: int, jump: Optional[str] = None, is_other: bool = False) -> NormalizedOption:
        return NormalizedOption(
            question_code=qcode,
            value=value,
            label=value.title(),
            order=order,
            is_other=is_other,
            jump_to_code=jump,
        )

    questions = [
        q("Q1", next_code="Q2"),
        q("Q2", next_code="Q3"),
        q("Q3", "MULTI", next_code="Q4"),
        q("Q4", "TEXT"),
        q("Q5"),
    ]
    options = [
        o("Q1", "yes", 1, jump="Q3"),
        o("Q1", "no", 2),
        o("Q2", "1", 1),
        o("Q2", "2", 2),
        o("Q3", "a", 1),
        o("Q3", "b", 2, jump="Q5"),
        o("Q3", "etc", 3, is_other=True),
        o("Q5", "done", 1),
    ]
    return questions, options


@pytest.fixture()
def branching_structure():
    return _branching_graph()


@pytest.fixture()
def survey_with_graph(engine) -> Dict[str, Any]:
    from surveygraph.logic.structure_replace import replace_structure
    from surveygraph.logic.surveys import create_survey

    survey = create_survey("Branching survey", "fixture", True, engine=engine)
    questions, options = _branching_graph()
    replace_structure(survey["survey_id"], questions, options, engine=engine)
    return survey


def _build_workbook(
    question_rows: Sequence[Sequence[Any]],
    option_rows: Optional[Sequence[Sequence[Any]]] = None,
    *,
    questions_sheet: str = "Questions",
    options_sheet: str = "QuestionOptions",
) -> bytes:
    from openpyxl import Workbook

    workbook = Workbook()
    sheet = workbook.active
    sheet.title = questions_sheet
    sheet.append(["question_code", "type", "text", "next_question_code"])
    for row in question_rows:
        sheet.append(list(row))
    if option_rows is not None:
        opts = workbook.create_sheet(options_sheet)
        opts.append(["question_code", "value", "label", "order", "is_other", "jump_to_question_code"])
        for row in option_rows:
            opts.append(list(row))
    buf = io.BytesIO()
    workbook.save(buf)
    return buf.getvalue()


@pytest.fixture()
def make_workbook():
    """Return a builder producing xlsx bytes from question/option row lists."""
    return _build_workbook
