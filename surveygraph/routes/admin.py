"""Survey administration endpoints.

Metadata CRUD, structure replacement from UI payloads or workbook uploads,
CSV export and the response status overview. Handlers translate HTTP
payloads into service calls and never touch the database directly.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Response, UploadFile

from surveygraph.config import AppConfig
from surveygraph.logic.csv_io import build_structure_csv
from surveygraph.logic.response_sessions import list_response_summaries
from surveygraph.logic.surveys import (
    create_survey,
    create_survey_from_workbook,
    delete_survey,
    get_survey_detail,
    import_workbook,
    list_surveys,
    set_survey_active,
    update_structure_from_payload,
    update_survey_meta,
)
from surveygraph.models.responses import ResponseSummary
from surveygraph.models.surveys import (
    StructureImportResult,
    StructurePayload,
    SurveyCreate,
    SurveyDetail,
    SurveyImportResult,
    SurveyStatusUpdate,
    SurveySummary,
    SurveyUpdate,
)
from surveygraph.routes.deps import get_config

router = APIRouter(prefix="/admin/surveys", tags=["Admin"])
logger = logging.getLogger(__name__)


@router.get("", response_model=List[SurveySummary], operation_id="adminListSurveys")
def admin_list_surveys():
    return list_surveys()


@router.post("", response_model=SurveySummary, status_code=201, operation_id="adminCreateSurvey")
def admin_create_survey(body: SurveyCreate):
    survey = create_survey(body.title, body.description, body.is_active)
    return {**survey, "responses_count": 0}


@router.post("/import", response_model=SurveyImportResult, status_code=201, operation_id="adminImportSurvey")
async def admin_import_survey(
    title: str = Form(...),
    description: Optional[str] = Form(None),
    is_active: bool = Form(True, alias="isActive"),
    file: UploadFile = File(...),
    config: AppConfig = Depends(get_config),
):
    content = await file.read()
    logger.info("survey_import_request filename=%s size=%s", file.filename, len(content))
    result = create_survey_from_workbook(
        {"title": title, "description": description, "is_active": is_active},
        content,
        max_bytes=config.importing.max_bytes,
        sentinel=config.importing.end_sentinel,
    )
    return {**result, "responses_count": 0}


@router.get("/{survey_id}", response_model=SurveyDetail, operation_id="adminGetSurvey")
def admin_get_survey(survey_id: str):
    return get_survey_detail(survey_id)


@router.patch("/{survey_id}", response_model=SurveySummary, operation_id="adminUpdateSurvey")
def admin_update_survey(survey_id: str, body: SurveyUpdate):
    update_survey_meta(
        survey_id,
        title=body.title,
        description=body.description,
        is_active=body.is_active,
    )
    return get_survey_detail(survey_id)


@router.patch("/{survey_id}/status", response_model=SurveySummary, operation_id="adminSetSurveyStatus")
def admin_set_status(survey_id: str, body: SurveyStatusUpdate):
    set_survey_active(survey_id, body.is_active)
    return get_survey_detail(survey_id)


@router.delete("/{survey_id}", status_code=204, operation_id="adminDeleteSurvey")
def admin_delete_survey(survey_id: str):
    delete_survey(survey_id)
    return Response(status_code=204)


@router.post("/{survey_id}/structure", response_model=StructureImportResult, operation_id="adminReplaceStructure")
def admin_replace_structure(
    survey_id: str,
    body: StructurePayload,
    config: AppConfig = Depends(get_config),
):
    payload = body.model_dump(by_alias=True, exclude_none=True)
    return update_structure_from_payload(survey_id, payload, sentinel=config.importing.end_sentinel)


@router.post("/{survey_id}/import", response_model=StructureImportResult, operation_id="adminImportStructure")
async def admin_import_structure(
    survey_id: str,
    file: UploadFile = File(...),
    config: AppConfig = Depends(get_config),
):
    content = await file.read()
    logger.info("structure_import_request survey_id=%s filename=%s size=%s", survey_id, file.filename, len(content))
    return import_workbook(
        survey_id,
        content,
        max_bytes=config.importing.max_bytes,
        sentinel=config.importing.end_sentinel,
    )


@router.get("/{survey_id}/export", operation_id="adminExportSurvey")
def admin_export_survey(survey_id: str, config: AppConfig = Depends(get_config)):
    body = build_structure_csv(survey_id, include_bom=config.export.include_bom)
    return Response(
        content=body,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="survey-{survey_id}.csv"'},
    )


@router.get("/{survey_id}/responses", response_model=List[ResponseSummary], operation_id="adminListResponses")
def admin_list_responses(survey_id: str):
    return list_response_summaries(survey_id)


__all__ = ["router"]
