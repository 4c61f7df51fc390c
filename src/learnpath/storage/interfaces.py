"""Interfaces for the collaborators the pipeline depends on."""

from __future__ import annotations

from typing import Any, Iterable, Protocol

from learnpath.models import (
    ApprovalPolicyDecision,
    Company,
    DecisionMaker,
    ExpansionRecord,
    GapRecord,
    Job,
    LearningPathRecord,
    PathApproval,
)


class JobLedger(Protocol):
    async def create(self, job: Job) -> Job: ...

    async def update(self, job_id: str, fields: dict[str, Any]) -> Job: ...

    async def get(self, job_id: str) -> Job | None: ...

    async def list_by_status(self, statuses: Iterable[str]) -> list[Job]: ...


class ExpansionStore(Protocol):
    async def get_latest_by_user_and_gap(self, user_id: str, gap_id: str | None) -> ExpansionRecord | None: ...

    async def create(self, record: ExpansionRecord) -> ExpansionRecord: ...

    async def update(self, expansion_id: str, fields: dict[str, Any]) -> ExpansionRecord: ...

    async def get_by_id(self, expansion_id: str) -> ExpansionRecord | None: ...


class LearningPathStore(Protocol):
    async def get_by_id(self, competency_target_name: str) -> LearningPathRecord | None: ...

    async def save(self, record: LearningPathRecord) -> LearningPathRecord: ...


class SkillsGapStore(Protocol):
    async def get_by_user(self, user_id: str) -> list[GapRecord]: ...


class CompanyStore(Protocol):
    async def get(self, company_id: str) -> Company | None: ...


class ApprovalStore(Protocol):
    async def get_by_learning_path_id(self, learning_path_id: str) -> PathApproval | None: ...

    async def create(self, approval: PathApproval) -> PathApproval: ...

    async def update(self, approval_id: str, fields: dict[str, Any]) -> PathApproval: ...


class CompletionService(Protocol):
    async def complete(
        self,
        prompt: str,
        context: str = "",
        *,
        timeout: float | None = None,
        max_retries: int | None = None,
        usage_key: str | None = None,
    ) -> Any: ...

    def get_token_summary(self, usage_key: str | None = None) -> dict[str, Any]: ...


class TaxonomyService(Protocol):
    async def breakdown(
        self,
        competencies: list[Any],
        *,
        max_retries: int | None = None,
        use_fallback: bool = False,
        include_expansions: bool | None = None,
    ) -> dict[str, dict[str, list[Any]]]: ...


class PromptSource(Protocol):
    def load(self, name: str) -> str: ...


class ApprovalPolicy(Protocol):
    async def check(self, company_id: str) -> ApprovalPolicyDecision: ...


class ApprovalRequests(Protocol):
    async def request(
        self,
        *,
        learning_path_id: str,
        company_id: str,
        decision_maker: DecisionMaker,
        learning_path: dict[str, Any],
    ) -> PathApproval: ...


class Notifier(Protocol):
    async def send_approval_request(
        self,
        approval: PathApproval,
        learning_path: dict[str, Any],
        decision_maker: DecisionMaker,
    ) -> None: ...
