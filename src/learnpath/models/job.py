"""Job record tracked by the job ledger."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, Field

JobStatus = Literal["pending", "processing", "completed", "failed"]

TERMINAL_STATUSES: frozenset[str] = frozenset({"completed", "failed"})

# current_stage values, in pipeline order
STAGE_SKILL_EXPANSION = "skill-expansion"
STAGE_COMPETENCY_IDENTIFICATION = "competency-identification"
STAGE_SKILL_BREAKDOWN = "skill-breakdown"
STAGE_PATH_CREATION = "path-creation"
STAGE_COMPLETED = "completed"


def utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


class Job(BaseModel):
    id: str
    user_id: str
    company_id: str
    competency_target_name: str
    type: str = "path-generation"
    status: JobStatus = "pending"
    progress: int = Field(default=0, ge=0, le=100)
    current_stage: str | None = None
    result: dict[str, Any] | None = None
    error: str | None = None
    created_at: str = Field(default_factory=utcnow)
    updated_at: str = Field(default_factory=utcnow)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES
