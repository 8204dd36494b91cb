"""Respondent endpoints: survey listing, answer submission and resume."""

from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter

from surveygraph.logic.response_sessions import RespondentMeta, SubmittedAnswer, resume, submit_answers
from surveygraph.logic.surveys import get_survey_detail, list_active_surveys
from surveygraph.models.responses import ResumeResponse, SubmitAnswersRequest, SubmitAnswersResponse
from surveygraph.models.surveys import SurveyDetail, SurveySummary

router = APIRouter(prefix="/surveys", tags=["Surveys"])
logger = logging.getLogger(__name__)


@router.get("", response_model=List[SurveySummary], operation_id="listActiveSurveys")
def get_active_surveys():
    return list_active_surveys()


@router.get("/{survey_id}", response_model=SurveyDetail, operation_id="getSurvey")
def get_survey(survey_id: str):
    return get_survey_detail(survey_id)


@router.post("/{survey_id}/responses", response_model=SubmitAnswersResponse, operation_id="submitAnswers")
def post_responses(survey_id: str, body: SubmitAnswersRequest):
    answers = [
        SubmittedAnswer(
            question_code=a.question_code.strip(),
            option_value=a.option_value,
            option_values=a.option_values,
            other_text=a.other_text,
        )
        for a in body.answers
    ]
    logger.info(
        "submit_answers_request survey_id=%s answers=%s has_token=%s",
        survey_id,
        len(answers),
        bool(body.resume_token),
    )
    result = submit_answers(
        survey_id,
        answers,
        resume_token=body.resume_token,
        meta=RespondentMeta(session_id=body.session_id, respondent=body.respondent),
    )
    return SubmitAnswersResponse(
        resume_token=result.resume_token,
        next_question_code=result.next_question_code,
        status=result.status,
    )


@router.get("/{survey_id}/responses/{resume_token}", response_model=ResumeResponse, operation_id="resumeResponse")
def get_resume(survey_id: str, resume_token: str):
    result = resume(survey_id, resume_token)
    return ResumeResponse(
        resume_token=result.resume_token,
        last_question_code=result.last_question_code,
        next_question_code=result.next_question_code,
        status=result.status,
        history=result.history,
    )


__all__ = ["router"]
