"""Cached stage-1/stage-2 completion outputs for a gap."""

from __future__ import annotations

import uuid
from typing import Any

from pydantic import BaseModel, Field

from learnpath.models.job import utcnow


class ExpansionRecord(BaseModel):
    expansion_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    gap_id: str | None = None
    user_id: str
    stage1_output: Any = None
    stage2_output: Any = None
    created_at: str = Field(default_factory=utcnow)
    updated_at: str = Field(default_factory=utcnow)

    @property
    def is_complete(self) -> bool:
        return self.stage1_output is not None and self.stage2_output is not None
