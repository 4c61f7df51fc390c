"""Canonical learning-path schema and its persisted record.

Serialized key order is part of the contract: some downstream consumers read
these objects positionally, so field declaration order below must not change.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import Field, SerializerFunctionWrapHandler, model_serializer

from learnpath.models.base import CamelModel
from learnpath.models.job import utcnow

PathStatus = Literal["pending", "approved"]


class PathStep(CamelModel):
    step: int
    title: str = ""
    description: str = ""
    estimated_time: str | float | None = None
    skills_covered: list[str] = Field(default_factory=list)


class LearningModule(CamelModel):
    module_order: int
    module_title: str = ""
    estimated_duration_hours: float | None = None
    skills_in_module: list[str] = Field(default_factory=list)
    steps: list[PathStep] | None = None

    @model_serializer(mode="wrap")
    def _drop_absent_sections(self, handler: SerializerFunctionWrapHandler) -> dict[str, Any]:
        data = handler(self)
        if not self.skills_in_module:
            data.pop("skillsInModule", None)
            data.pop("skills_in_module", None)
        if self.steps is None:
            data.pop("steps", None)
        return data

    def covered_skills(self) -> list[str]:
        """Skills in the order the module's steps introduce them."""
        seen: list[str] = []
        for step in self.steps or []:
            for skill in step.skills_covered:
                if skill not in seen:
                    seen.append(skill)
        return seen


class CanonicalLearningPath(CamelModel):
    path_title: str = "Personalized Learning Path"
    learner_id: str | None = None
    total_estimated_duration_hours: float | None = None
    learning_modules: list[LearningModule] = Field(default_factory=list)

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


class LearningPathRecord(CamelModel):
    """A generated path as stored, keyed by its competency target name."""

    id: str
    user_id: str
    company_id: str
    competency_target_name: str
    path: CanonicalLearningPath
    status: PathStatus = "pending"
    validation_attempts: int = 0
    created_at: str = Field(default_factory=utcnow)
    updated_at: str = Field(default_factory=utcnow)
