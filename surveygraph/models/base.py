"""Shared base model for wire payloads.

Fields are declared in snake_case and travel as camelCase. Inputs accept
either spelling so services can hand plain dicts straight to response models.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


__all__ = ["CamelModel"]
