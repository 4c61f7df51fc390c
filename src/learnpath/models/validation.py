"""Result of validating a learning path."""

from __future__ import annotations

from pydantic import BaseModel, Field


class ValidationResult(BaseModel):
    valid: bool
    errors: list[str] = Field(default_factory=list)
