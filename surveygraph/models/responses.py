"""Request and response bodies for the respondent flow."""

from __future__ import annotations

from typing import List, Optional, Union

from pydantic import Field

from surveygraph.models.base import CamelModel

Scalar = Union[str, int]


class AnswerIn(CamelModel):
    question_code: str
    option_value: Optional[Scalar] = None
    option_values: Optional[List[Optional[Scalar]]] = None
    other_text: Optional[str] = None


class SubmitAnswersRequest(CamelModel):
    resume_token: Optional[str] = None
    session_id: Optional[str] = None
    respondent: Optional[str] = None
    # Emptiness is rejected by the service with a domain error
    answers: List[AnswerIn] = Field(default_factory=list)


class SubmitAnswersResponse(CamelModel):
    resume_token: str
    next_question_code: Optional[str] = None
    status: str


class StoredAnswer(CamelModel):
    option_value: Optional[str] = None
    option_values: List[str] = Field(default_factory=list)
    other_text: Optional[str] = None


class HistoryItem(CamelModel):
    question_code: str
    answer: StoredAnswer
    answered_at: str


class ResumeResponse(CamelModel):
    resume_token: str
    last_question_code: Optional[str] = None
    next_question_code: Optional[str] = None
    status: str
    history: List[HistoryItem] = Field(default_factory=list)


class ResponseSummary(CamelModel):
    response_id: str
    resume_token: str
    status: str
    last_question_code: Optional[str] = None
    next_question_code: Optional[str] = None
    updated_at: str
    last_answered_at: Optional[str] = None


__all__ = [
    "AnswerIn",
    "SubmitAnswersRequest",
    "SubmitAnswersResponse",
    "StoredAnswer",
    "HistoryItem",
    "ResumeResponse",
    "ResponseSummary",
]
