"""Shared pydantic configuration for domain models."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Model that reads snake_case or camelCase keys and dumps camelCase by alias."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
