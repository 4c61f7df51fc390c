"""Usage logging data models."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, Field


class UsageLog(BaseModel):
    """Single usage log entry for a path-generation job."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    job_id: str
    timestamp: datetime = Field(default_factory=datetime.now)
    mode: str | None = None  # "full" | "update"
    stage4_attempts: int = 0
    validation_error_count: int = 0
    total_input_tokens: int = 0
    total_output_tokens: int = 0
    estimated_cost_usd: float = 0.0
    elapsed_seconds: float = 0.0
    success: bool = True
    error_message: str | None = None
