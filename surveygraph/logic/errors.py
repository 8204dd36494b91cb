"""Domain exceptions for the survey graph engine.

Every error carries a stable `code`, a human-readable `detail` and an
optional `context` mapping naming the offending code or row. The HTTP layer
maps classes to statuses via `surveygraph.config.error_mapping`.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class SurveyGraphError(Exception):
    code = "SURVEY_GRAPH_ERROR"

    def __init__(self, detail: str, *, context: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(detail)
        self.detail = detail
        self.context: Dict[str, Any] = dict(context or {})


class ValidationError(SurveyGraphError):
    """Malformed or empty input; the caller can correct and resubmit."""

    code = "VALIDATION_ERROR"


class DuplicateCodeError(ValidationError):
    code = "DUPLICATE_CODE"

    def __init__(self, question_code: str) -> None:
        super().__init__(
            f'question_code "{question_code}" is duplicated',
            context={"question_code": question_code},
        )
        self.question_code = question_code


class DanglingReferenceError(ValidationError):
    code = "DANGLING_REFERENCE"

    def __init__(self, detail: str, *, source: str, missing_code: str, field: str) -> None:
        super().__init__(
            detail,
            context={"source": source, "missing_code": missing_code, "field": field},
        )
        self.source = source
        self.missing_code = missing_code
        self.field = field


class WorkbookError(ValidationError):
    """Uploaded workbook could not be read into rows."""

    code = "WORKBOOK_INVALID"


class InactiveSurveyError(SurveyGraphError):
    code = "SURVEY_INACTIVE"


class UnknownQuestionError(SurveyGraphError):
    code = "UNKNOWN_QUESTION"

    def __init__(self, question_code: str) -> None:
        super().__init__(
            f"unknown question code: {question_code}",
            context={"question_code": question_code},
        )
        self.question_code = question_code


class SurveyNotFoundError(SurveyGraphError):
    code = "SURVEY_NOT_FOUND"

    def __init__(self, survey_id: str) -> None:
        super().__init__("survey not found", context={"survey_id": survey_id})
        self.survey_id = survey_id


class ResponseNotFoundError(SurveyGraphError):
    code = "RESPONSE_NOT_FOUND"

    def __init__(self, survey_id: str, resume_token: str) -> None:
        super().__init__("response not found", context={"survey_id": survey_id})
        self.survey_id = survey_id
        self.resume_token = resume_token


__all__ = [
    "SurveyGraphError",
    "ValidationError",
    "DuplicateCodeError",
    "DanglingReferenceError",
    "WorkbookError",
    "InactiveSurveyError",
    "UnknownQuestionError",
    "SurveyNotFoundError",
    "ResponseNotFoundError",
]
