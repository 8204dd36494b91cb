"""Problem+JSON utilities and global exception handlers.

Defines the RFC7807 media type and handler callables that render domain
errors, framework errors and unexpected failures as
application/problem+json responses. Statuses come from
`surveygraph.config.error_mapping`.
"""

from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from surveygraph.config.error_mapping import status_for
from surveygraph.logic.errors import SurveyGraphError

PROBLEM_MEDIA_TYPE = "application/problem+json"

logger = logging.getLogger(__name__)


def problem_response(status: int, title: str, **fields: Any) -> JSONResponse:
    body: Dict[str, Any] = {"title": title, "status": status}
    body.update({k: v for k, v in fields.items() if v is not None})
    return JSONResponse(jsonable_encoder(body), status_code=status, media_type=PROBLEM_MEDIA_TYPE)


async def handle_domain_error(request: Request, exc: SurveyGraphError) -> JSONResponse:  # noqa: D401
    status, title = status_for(exc)
    if status >= 500:
        logger.error("domain_error_unmapped code=%s path=%s", exc.code, request.url.path, exc_info=exc)
    else:
        logger.info("domain_error code=%s status=%s path=%s detail=%s", exc.code, status, request.url.path, exc.detail)
    return problem_response(
        status,
        title,
        detail=exc.detail,
        code=exc.code,
        context=exc.context or None,
    )


async def handle_http_exception(request: Request, exc: HTTPException) -> JSONResponse:  # noqa: D401
    status = int(exc.status_code or 500)
    response = problem_response(status, "Error", detail=str(exc.detail) if exc.detail else None)
    if exc.headers:
        response.headers.update(exc.headers)
    return response


async def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:  # noqa: D401
    logger.info("request_validation_failed path=%s errors=%s", request.url.path, len(exc.errors()))
    return problem_response(
        422,
        "Invalid Request",
        detail="Request validation failed",
        errors=list(exc.errors()),
    )


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:  # noqa: D401
    logger.error("unexpected_error path=%s", request.url.path, exc_info=exc)
    return problem_response(500, "Internal Server Error")


__all__ = [
    "PROBLEM_MEDIA_TYPE",
    "problem_response",
    "handle_domain_error",
    "handle_http_exception",
    "handle_request_validation_error",
    "handle_unexpected_error",
]
