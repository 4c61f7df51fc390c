"""Company approval policy and approval-request models."""

from __future__ import annotations

import uuid
from typing import Literal

from pydantic import Field, model_validator

from learnpath.models.base import CamelModel
from learnpath.models.job import utcnow

ApprovalPolicyName = Literal["auto", "manual"]
ApprovalStatus = Literal["pending", "approved", "rejected"]


class DecisionMaker(CamelModel):
    employee_id: str
    name: str | None = None
    email: str | None = None


class Company(CamelModel):
    company_id: str
    company_name: str
    approval_policy: ApprovalPolicyName = "auto"
    decision_maker: DecisionMaker | None = None

    @model_validator(mode="after")
    def _manual_needs_decision_maker(self) -> Company:
        if self.approval_policy == "manual" and self.decision_maker is None:
            raise ValueError('decisionMaker is required when approvalPolicy is "manual"')
        return self

    @property
    def requires_approval(self) -> bool:
        return self.approval_policy == "manual"


class ApprovalPolicyDecision(CamelModel):
    requires_approval: bool
    company: Company | None = None


class PathApproval(CamelModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    learning_path_id: str
    company_id: str
    decision_maker_id: str
    status: ApprovalStatus = "pending"
    feedback: str | None = None
    created_at: str = Field(default_factory=utcnow)
    updated_at: str = Field(default_factory=utcnow)
