"""Functional tests for survey administration, workbook import and CSV export."""

from __future__ import annotations

import csv
import io

import pytest
from sqlalchemy import text as sql_text
from sqlalchemy.exc import DataError

from surveygraph.logic import structure_replace

from surveygraph.logic.csv_io import build_structure_csv, survey_code_for
from surveygraph.logic.errors import SurveyNotFoundError, ValidationError, WorkbookError
from surveygraph.logic.events import (
    STRUCTURE_REPLACED,
    SURVEY_CREATED,
    SURVEY_DELETED,
    SURVEY_UPDATED,
    get_buffered_events,
)
from surveygraph.logic.response_sessions import SubmittedAnswer, submit_answers
from surveygraph.logic.surveys import (
    create_survey,
    create_survey_from_workbook,
    delete_survey,
    get_survey_detail,
    import_workbook,
    list_active_surveys,
    list_surveys,
    set_survey_active,
    update_structure_from_payload,
    update_survey_meta,
)
from surveygraph.logic.workbook import read_workbook_rows

QUESTION_ROWS = [
    ["Q1", "SINGLE", "Do you smoke?", "Q2"],
    ["Q2", None, "How often?", "END"],
    ["Q3", "multi", "Why?", None],
]
OPTION_ROWS = [
    ["Q1", "yes", "Yes", 1, 0, "Q3"],
    ["Q1", "no", "No", 2, 0, None],
    ["Q2", 1, "Daily", 1, 0, None],
    ["Q3", "other", "Other", None, "Y", "end"],
    [None, None, None, None, None, None],
]


# ----------------------------------------------------------------------------
# Metadata CRUD
# ----------------------------------------------------------------------------


def test_create_trims_and_defaults(engine):
    survey = create_survey("  Health  ", "   ", engine=engine)

    assert survey["title"] == "Health"
    assert survey["description"] is None
    assert survey["is_active"] is True
    assert [e["type"] for e in get_buffered_events()] == [SURVEY_CREATED]


def test_create_requires_title(engine):
    with pytest.raises(ValidationError):
        create_survey("   ", engine=engine)


def test_partial_update_keeps_unspecified_fields(engine):
    survey = create_survey("T", "D", engine=engine)

    updated = update_survey_meta(survey["survey_id"], description="New", engine=engine)

    assert (updated["title"], updated["description"], updated["is_active"]) == ("T", "New", True)
    with pytest.raises(ValidationError):
        update_survey_meta(survey["survey_id"], title=" ", engine=engine)
    with pytest.raises(SurveyNotFoundError):
        update_survey_meta("missing", title="x", engine=engine)


def test_status_toggle_filters_active_listing(engine):
    live = create_survey("Live", engine=engine)
    hidden = create_survey("Hidden", engine=engine)
    get_buffered_events(clear=True)

    set_survey_active(hidden["survey_id"], False, engine=engine)

    assert [s["survey_id"] for s in list_active_surveys(engine=engine)] == [live["survey_id"]]
    assert {s["survey_id"] for s in list_surveys(engine=engine)} == {live["survey_id"], hidden["survey_id"]}
    assert [e["type"] for e in get_buffered_events()] == [SURVEY_UPDATED]


def test_listing_is_newest_first_with_response_counts(engine, survey_with_graph):
    newer = create_survey("Newer", engine=engine)
    submit_answers(survey_with_graph["survey_id"], [SubmittedAnswer("Q1", option_value="no")], engine=engine)

    listed = list_surveys(engine=engine)

    assert [s["survey_id"] for s in listed] == [newer["survey_id"], survey_with_graph["survey_id"]]
    assert [s["responses_count"] for s in listed] == [0, 1]


def test_detail_includes_graph_and_counts(engine, survey_with_graph):
    detail = get_survey_detail(survey_with_graph["survey_id"], engine=engine)

    assert detail["responses_count"] == 0
    q1 = detail["questions"][0]
    assert q1["code"] == "Q1" and q1["next_question_code"] == "Q2"
    assert [(o["value"], o["jump_to_question_code"]) for o in q1["options"]] == [("yes", "Q3"), ("no", None)]
    with pytest.raises(SurveyNotFoundError):
        get_survey_detail("missing", engine=engine)


def test_delete_cascades_everything(engine, survey_with_graph):
    sid = survey_with_graph["survey_id"]
    submit_answers(sid, [SubmittedAnswer("Q1", option_value="yes")], engine=engine)
    get_buffered_events(clear=True)

    delete_survey(sid, engine=engine)

    with engine.connect() as conn:
        for table in ("survey", "question", "question_option", "response", "answer"):
            assert conn.execute(sql_text(f"SELECT COUNT(*) FROM {table}")).scalar() == 0
    assert [e["type"] for e in get_buffered_events()] == [SURVEY_DELETED]
    with pytest.raises(SurveyNotFoundError):
        delete_survey(sid, engine=engine)


def test_structure_from_ui_payload(engine):
    survey = create_survey("UI", engine=engine)
    payload = {
        "questions": [
            {"code": "Q1", "options": [{"value": "a", "label": "A", "jumpToQuestionCode": "Q2"}]},
            {"code": "Q2", "type": "multi", "nextQuestionCode": "END"},
        ]
    }

    counts = update_structure_from_payload(survey["survey_id"], payload, engine=engine)

    assert counts == {"questions_imported": 2, "options_imported": 1}
    detail = get_survey_detail(survey["survey_id"], engine=engine)
    assert [q["type"] for q in detail["questions"]] == ["SINGLE", "MULTI"]


# ----------------------------------------------------------------------------
# Workbook import
# ----------------------------------------------------------------------------


def test_read_workbook_rows(make_workbook):
    question_rows, option_rows = read_workbook_rows(make_workbook(QUESTION_ROWS, OPTION_ROWS))

    assert [r["question_code"] for r in question_rows] == ["Q1", "Q2", "Q3"]
    assert question_rows[1]["type"] is None
    # Fully blank rows are skipped
    assert len(option_rows) == 4


def test_sheet_names_are_matched_loosely(make_workbook):
    content = make_workbook(QUESTION_ROWS, OPTION_ROWS, questions_sheet="my questions", options_sheet="Options")
    question_rows, option_rows = read_workbook_rows(content)
    assert len(question_rows) == 3
    assert len(option_rows) == 4


def test_options_sheet_is_optional(make_workbook):
    _, option_rows = read_workbook_rows(make_workbook(QUESTION_ROWS))
    assert option_rows == []


def test_workbook_errors(make_workbook):
    with pytest.raises(WorkbookError):
        read_workbook_rows(b"")
    with pytest.raises(WorkbookError):
        read_workbook_rows(b"not a zip archive")
    with pytest.raises(WorkbookError):
        read_workbook_rows(make_workbook(QUESTION_ROWS, questions_sheet="Sheet1"))
    content = make_workbook(QUESTION_ROWS)
    with pytest.raises(WorkbookError) as info:
        read_workbook_rows(content, max_bytes=len(content) - 1)
    assert info.value.context["max_bytes"] == len(content) - 1


def test_import_workbook_replaces_structure(engine, survey_with_graph, make_workbook):
    sid = survey_with_graph["survey_id"]

    counts = import_workbook(sid, make_workbook(QUESTION_ROWS, OPTION_ROWS), engine=engine)

    assert counts == {"questions_imported": 3, "options_imported": 4}
    detail = get_survey_detail(sid, engine=engine)
    by_code = {q["code"]: q for q in detail["questions"]}
    assert by_code["Q2"]["next_question_code"] is None
    assert by_code["Q2"]["options"][0]["value"] == "1"
    assert by_code["Q3"]["options"][0]["is_other"] is True
    assert by_code["Q3"]["options"][0]["order"] == 3


def test_invalid_workbook_leaves_structure_untouched(engine, survey_with_graph, make_workbook):
    sid = survey_with_graph["survey_id"]
    before = get_survey_detail(sid, engine=engine)["questions"]

    with pytest.raises(ValidationError):
        import_workbook(sid, make_workbook([["Q1", "SINGLE", "x", "Q404"]]), engine=engine)

    assert get_survey_detail(sid, engine=engine)["questions"] == before


def test_create_survey_from_workbook(engine, make_workbook):
    result = create_survey_from_workbook(
        {"title": "Imported", "description": "from xlsx", "is_active": False},
        make_workbook(QUESTION_ROWS, OPTION_ROWS),
        engine=engine,
    )

    assert result["questions_imported"] == 3
    assert result["is_active"] is False
    assert len(get_survey_detail(result["survey_id"], engine=engine)["questions"]) == 3


def test_create_from_bad_workbook_creates_nothing(engine, make_workbook):
    with pytest.raises(ValidationError):
        create_survey_from_workbook({"title": "Broken"}, make_workbook([["Q1"], ["Q1"]]), engine=engine)
    assert list_surveys(engine=engine) == []


def test_database_failure_during_workbook_creation_creates_nothing(engine, make_workbook, monkeypatch):
    def failing_insert_options(conn, rows):
        raise DataError("INSERT INTO question_option", {}, Exception("value too long"))

    monkeypatch.setattr(structure_replace, "insert_options", failing_insert_options)

    with pytest.raises(DataError):
        create_survey_from_workbook({"title": "Imported"}, make_workbook(QUESTION_ROWS, OPTION_ROWS), engine=engine)

    assert list_surveys(engine=engine) == []
    assert get_buffered_events() == []


def test_workbook_creation_publishes_created_then_replaced(engine, make_workbook):
    create_survey_from_workbook({"title": "Imported"}, make_workbook(QUESTION_ROWS, OPTION_ROWS), engine=engine)

    assert [e["type"] for e in get_buffered_events()] == [SURVEY_CREATED, STRUCTURE_REPLACED]


# ----------------------------------------------------------------------------
# CSV export
# ----------------------------------------------------------------------------


def test_export_sections(engine, survey_with_graph):
    sid = survey_with_graph["survey_id"]

    body = build_structure_csv(sid, engine=engine)

    assert body.startswith(b"\xef\xbb\xbf")
    text = body.decode("utf-8-sig")
    rows = list(csv.reader(io.StringIO(text)))
    code = survey_code_for(sid)
    assert rows[0] == ["[Surveys]"]
    assert rows[1] == ["survey_code", "title", "description", "is_active"]
    assert rows[2] == [code, "Branching survey", "fixture", "1"]
    assert rows[3] == []
    assert rows[4] == ["[Questions]"]
    assert rows[6] == [code, "Q1", "SINGLE", "Question Q1", "Q2"]
    assert rows[9] == [code, "Q4", "TEXT", "Question Q4", ""]
    options_at = rows.index(["[QuestionOptions]"])
    assert rows[options_at + 2] == [code, "Q1", "yes", "Yes", "1", "0", "Q3"]
    assert [code, "Q3", "etc", "Etc", "3", "1", ""] in rows


def test_export_quotes_special_characters(engine):
    survey = create_survey('Comma, "quoted"', "line\nbreak", engine=engine)
    update_structure_from_payload(survey["survey_id"], {"questions": [{"code": "Q1", "text": "a,b"}]}, engine=engine)

    rows = list(csv.reader(io.StringIO(build_structure_csv(survey["survey_id"], engine=engine).decode("utf-8-sig"))))

    assert rows[2][1:3] == ['Comma, "quoted"', "line\nbreak"]
    assert rows[6][3] == "a,b"


def test_export_without_bom_and_missing_survey(engine, survey_with_graph):
    body = build_structure_csv(survey_with_graph["survey_id"], include_bom=False, engine=engine)
    assert body.startswith(b"[Surveys]")
    with pytest.raises(SurveyNotFoundError):
        build_structure_csv("missing", engine=engine)
