"""FastAPI application factory for the survey graph service."""

from __future__ import annotations

import logging
from typing import Callable

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from sqlalchemy import text as sql_text
from sqlalchemy.exc import SQLAlchemyError

from surveygraph.config import AppConfig, load_config
from surveygraph.db.base import get_engine
from surveygraph.db.migrations_runner import apply_migrations
from surveygraph.http.problem import (
    handle_domain_error,
    handle_http_exception,
    handle_request_validation_error,
    handle_unexpected_error,
)
from surveygraph.http.request_id import RequestIdMiddleware
from surveygraph.logging_setup import configure_logging
from surveygraph.logic.errors import SurveyGraphError
from surveygraph.middleware.cors import apply_cors
from surveygraph.routes import api_router

logger = logging.getLogger(__name__)


def _health_check() -> Callable[[], dict]:
    def check() -> dict:
        try:
            with get_engine().connect() as conn:
                conn.execute(sql_text("SELECT 1"))
            return {"status": "ok", "db": True}
        except SQLAlchemyError as e:
            logger.error("health_db_check_failed", exc_info=True)
            return {"status": "degraded", "db": False, "reason": str(e)}

    return check


def create_app(config: AppConfig | None = None) -> FastAPI:
    config = config or load_config()
    # Configure global logging before app instantiation so all modules emit
    configure_logging(debug=config.debug)
    get_engine(config.database.dsn)

    app = FastAPI(title="Survey Graph Service")
    app.state.config = config

    app.add_exception_handler(SurveyGraphError, handle_domain_error)
    app.add_exception_handler(HTTPException, handle_http_exception)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)

    app.add_middleware(RequestIdMiddleware)
    apply_cors(app, origins=config.cors_origins)

    # Apply migrations on startup to avoid import-time side effects
    @app.on_event("startup")
    def _apply_migrations() -> None:
        if not config.database.auto_apply_migrations:
            logger.info("startup_migrations_skipped auto_apply_migrations=false")
            return
        applied = apply_migrations(get_engine(config.database.dsn))
        logger.info("startup_migrations_done applied=%s", applied)

    app.include_router(api_router)

    health_check = _health_check()

    @app.get("/health", tags=["Health"])
    def health():
        return health_check()

    logger.info("app_created debug=%s auto_migrate=%s", config.debug, config.database.auto_apply_migrations)
    return app


# Intentionally do not instantiate the app at import time to prevent side effects.
