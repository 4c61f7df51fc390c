"""Pydantic models for skills-gap input and the stored gap record."""

from __future__ import annotations

from typing import Any

from pydantic import Field

from learnpath.models.base import CamelModel

FAILED_EXAM_MARKERS = frozenset({"fail", "failed"})


class SkillsGap(CamelModel):
    """A generation request. Required fields are checked by the pipeline, not here."""

    user_id: str | None = None
    company_id: str | None = None
    competency_target_name: str | None = None
    micro_skills: list[Any] = Field(default_factory=list)
    nano_skills: list[Any] = Field(default_factory=list)

    def missing_required(self) -> list[str]:
        required = {
            "userId": self.user_id,
            "companyId": self.company_id,
            "competencyTargetName": self.competency_target_name,
        }
        return [name for name, value in required.items() if not value]


class GapRecord(CamelModel):
    """Latest gap data for a learner as held by the skills-gap store."""

    gap_id: str
    user_id: str
    company_id: str | None = None
    competency_target_name: str | None = None
    raw_skill_data: Any = None
    exam_status: str | None = None

    @property
    def exam_failed(self) -> bool:
        return (self.exam_status or "").strip().lower() in FAILED_EXAM_MARKERS
