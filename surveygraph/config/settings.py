"""Configuration utilities for the survey graph service.

This module loads application configuration with the following rules:
- Primary source: `surveygraph_config.json` at the project root.
- Overrides: environment variables (a local `.env` is loaded first), then
  optional text files under `config/`.
- Validation: Pydantic models enforce required fields and value constraints.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError as PydanticValidationError, field_validator


CONFIG_DIR = Path("config")
ROOT_CONFIG = Path("surveygraph_config.json")
logger = logging.getLogger(__name__)


def _read_config_file(rel_path: str) -> Optional[str]:
    path = CONFIG_DIR / rel_path
    try:
        if path.exists():
            return path.read_text(encoding="utf-8").strip()
    except (OSError, UnicodeDecodeError) as e:
        logger.warning("Failed to read override %s: %s", path, e)
        return None
    return None


def _env(key: str, default: Optional[str] = None) -> Optional[str]:
    return os.environ.get(key, default)


def _truthy(value: object) -> bool:
    return str(value).strip().lower() in {"1", "true", "yes", "on"}


class DatabaseConfig(BaseModel):
    dsn: str
    auto_apply_migrations: bool = Field(default=True)

    @field_validator("dsn")
    @classmethod
    def dsn_must_be_non_empty(cls, v: str) -> str:
        if not isinstance(v, str) or not v.strip():
            raise ValueError("database.dsn must be a non-empty string")
        return v


class ImportConfig(BaseModel):
    max_bytes: int = Field(gt=0)
    end_sentinel: str = Field(default="END")

    @field_validator("end_sentinel")
    @classmethod
    def sentinel_must_be_non_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("importing.end_sentinel must be a non-empty string")
        return v.strip()


class ExportConfig(BaseModel):
    include_bom: bool = Field(default=True)


class AppConfig(BaseModel):
    database: DatabaseConfig
    importing: ImportConfig
    export: ExportConfig
    debug: bool = False
    cors_origins: List[str] = Field(default_factory=lambda: ["*"])


def _read_json_file(path: Path) -> dict:
    try:
        if path.exists():
            return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.error("Failed to read JSON config %s: %s", path, e)
    return {}


def load_config() -> AppConfig:
    """Load configuration with validation.

    Precedence (highest first):
    1) Environment variables (including values from `.env`)
    2) Text files in `config/` (optional)
    3) surveygraph_config.json at project root
    4) Safe defaults for development
    """
    load_dotenv(override=False)
    base = _read_json_file(ROOT_CONFIG)

    def _base(path: str, default: Optional[str] = None) -> Optional[str]:
        cur: object = base
        for key in path.split("."):
            if not isinstance(cur, dict) or key not in cur:
                return default
            cur = cur[key]
        return str(cur) if cur is not None else default

    dsn = (
        _env("TEST_DATABASE_URL")
        or _env("DATABASE_URL")
        or _read_config_file("database.url")
        or _base("database.dsn")
        or "sqlite+pysqlite:///:memory:"
    )
    auto_migrate = _env("AUTO_APPLY_MIGRATIONS") or _base("database.auto_apply_migrations", "true")

    max_bytes_text = _env("IMPORT_MAX_BYTES") or _read_config_file("import.max_bytes") or _base("importing.max_bytes", "10485760")
    sentinel = _env("END_SENTINEL") or _read_config_file("import.end_sentinel") or _base("importing.end_sentinel", "END")
    include_bom = _env("EXPORT_INCLUDE_BOM") or _base("export.include_bom", "true")

    app_env = (_env("APP_ENV") or "development").strip().lower()
    debug = app_env != "production" or _truthy(_env("DEBUG_LOGGING", "false"))
    origins_text = _env("CORS_ORIGINS") or _base("cors_origins", "*")
    cors_origins = [o.strip() for o in str(origins_text).split(",") if o.strip()] or ["*"]

    try:
        return AppConfig(
            database=DatabaseConfig(dsn=dsn, auto_apply_migrations=_truthy(auto_migrate)),
            importing=ImportConfig(
                max_bytes=int(str(max_bytes_text).strip()),
                end_sentinel=str(sentinel),
            ),
            export=ExportConfig(include_bom=_truthy(include_bom)),
            debug=debug,
            cors_origins=cors_origins,
        )
    except (PydanticValidationError, ValueError) as e:
        logger.error("Invalid application configuration: %s", e)
        raise


__all__ = [
    "AppConfig",
    "DatabaseConfig",
    "ImportConfig",
    "ExportConfig",
    "load_config",
]
