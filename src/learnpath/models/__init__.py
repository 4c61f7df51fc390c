"""Data models for the learning-path pipeline."""

from learnpath.models.approval import (
    ApprovalPolicyDecision,
    Company,
    DecisionMaker,
    PathApproval,
)
from learnpath.models.competency import CompetencyRecord
from learnpath.models.expansion import ExpansionRecord
from learnpath.models.gap import GapRecord, SkillsGap
from learnpath.models.job import Job
from learnpath.models.learning_path import (
    CanonicalLearningPath,
    LearningModule,
    LearningPathRecord,
    PathStep,
)
from learnpath.models.validation import ValidationResult

__all__ = [
    "ApprovalPolicyDecision",
    "CanonicalLearningPath",
    "Company",
    "CompetencyRecord",
    "DecisionMaker",
    "ExpansionRecord",
    "GapRecord",
    "Job",
    "LearningModule",
    "LearningPathRecord",
    "PathApproval",
    "PathStep",
    "SkillsGap",
    "ValidationResult",
]
