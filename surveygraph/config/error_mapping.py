"""Central error mapping for domain exceptions.

Single source of truth for mapping survey graph exceptions to HTTP statuses
and problem+json titles. Handlers must import from here instead of
hardcoding numbers.
"""

from __future__ import annotations

from typing import Dict, Tuple, Type

from surveygraph.logic.errors import (
    DanglingReferenceError,
    DuplicateCodeError,
    InactiveSurveyError,
    ResponseNotFoundError,
    SurveyGraphError,
    SurveyNotFoundError,
    UnknownQuestionError,
    ValidationError,
    WorkbookError,
)

# Most specific classes first; lookup walks the MRO so subclasses win.
ERROR_STATUS_MAP: Dict[Type[SurveyGraphError], Tuple[int, str]] = {
    DuplicateCodeError: (400, "Duplicate Question Code"),
    DanglingReferenceError: (400, "Dangling Reference"),
    WorkbookError: (400, "Invalid Workbook"),
    ValidationError: (400, "Invalid Request"),
    InactiveSurveyError: (400, "Survey Inactive"),
    UnknownQuestionError: (400, "Unknown Question"),
    SurveyNotFoundError: (404, "Survey Not Found"),
    ResponseNotFoundError: (404, "Response Not Found"),
    SurveyGraphError: (500, "Internal Server Error"),
}


def status_for(exc: SurveyGraphError) -> Tuple[int, str]:
    """Return `(status, title)` for an exception instance."""
    for klass in type(exc).__mro__:
        if klass in ERROR_STATUS_MAP:
            return ERROR_STATUS_MAP[klass]  # type: ignore[index]
    return 500, "Internal Server Error"


__all__ = ["ERROR_STATUS_MAP", "status_for"]
