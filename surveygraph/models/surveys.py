"""Request and response bodies for survey administration."""

from __future__ import annotations

from typing import List, Optional, Union

from pydantic import Field

from surveygraph.models.base import CamelModel

Cell = Union[str, int, float, bool]


class SurveyCreate(CamelModel):
    title: str
    description: Optional[str] = None
    is_active: bool = True


class SurveyUpdate(CamelModel):
    """Partial update; omitted fields keep their stored values."""

    title: Optional[str] = None
    description: Optional[str] = None
    is_active: Optional[bool] = None


class SurveyStatusUpdate(CamelModel):
    is_active: bool


class StructureOptionIn(CamelModel):
    value: Optional[Cell] = None
    label: Optional[str] = None
    order: Optional[Cell] = None
    is_other: Optional[Cell] = None
    jump_to_question_code: Optional[str] = None


class StructureQuestionIn(CamelModel):
    code: Optional[str] = None
    type: Optional[str] = None
    text: Optional[str] = None
    next_question_code: Optional[str] = None
    options: List[StructureOptionIn] = Field(default_factory=list)


class StructurePayload(CamelModel):
    questions: List[StructureQuestionIn] = Field(default_factory=list)


class SurveySummary(CamelModel):
    survey_id: str
    title: str
    description: Optional[str] = None
    is_active: bool
    created_at: str
    updated_at: str
    responses_count: int = 0


class OptionView(CamelModel):
    option_id: str
    value: str
    label: str
    order: int
    is_other: bool
    jump_to_question_code: Optional[str] = None


class QuestionView(CamelModel):
    question_id: str
    code: str
    type: str
    text: str
    next_question_code: Optional[str] = None
    options: List[OptionView] = Field(default_factory=list)


class SurveyDetail(SurveySummary):
    questions: List[QuestionView] = Field(default_factory=list)


class StructureImportResult(CamelModel):
    questions_imported: int
    options_imported: int


class SurveyImportResult(SurveySummary):
    questions_imported: int
    options_imported: int


__all__ = [
    "SurveyCreate",
    "SurveyUpdate",
    "SurveyStatusUpdate",
    "StructureOptionIn",
    "StructureQuestionIn",
    "StructurePayload",
    "SurveySummary",
    "OptionView",
    "QuestionView",
    "SurveyDetail",
    "StructureImportResult",
    "SurveyImportResult",
]
