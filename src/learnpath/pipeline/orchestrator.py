"""Main pipeline orchestrator - turns a skills gap into a stored learning path."""

from __future__ import annotations

import asyncio
import json
import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Any

from learnpath.config import LLMConfig, PipelineConfig
from learnpath.errors import MissingRequiredFieldsError
from learnpath.models.competency import CompetencyRecord
from learnpath.models.expansion import ExpansionRecord
from learnpath.models.gap import GapRecord, SkillsGap
from learnpath.models.job import (
    STAGE_COMPETENCY_IDENTIFICATION,
    STAGE_COMPLETED,
    STAGE_PATH_CREATION,
    STAGE_SKILL_BREAKDOWN,
    STAGE_SKILL_EXPANSION,
    Job,
)
from learnpath.models.learning_path import CanonicalLearningPath, LearningPathRecord
from learnpath.pipeline.canonicalizer import canonicalize_path
from learnpath.pipeline.competency_extractor import (
    extract_stage1_competencies,
    extract_stage2_competencies,
    stage2_input,
)
from learnpath.pipeline.skill_filter import extract_skill_names, filter_breakdown
from learnpath.pipeline.validator import format_violations, validate_path
from learnpath.pipeline.worker import JobRunner
from learnpath.prompts.loader import (
    COMPETENCY_IDENTIFICATION_PROMPT,
    PATH_CREATION_PROMPT,
    SKILL_EXPANSION_PROMPT,
    render_prompt,
)
from learnpath.storage.interfaces import (
    ApprovalPolicy,
    ApprovalRequests,
    CompletionService,
    ExpansionStore,
    JobLedger,
    LearningPathStore,
    PromptSource,
    SkillsGapStore,
    TaxonomyService,
)
from learnpath.usage.cost_calculator import calculate_cost
from learnpath.usage.models import UsageLog
from learnpath.usage.usage_store import UsageStore

MODE_FULL = "full"
MODE_UPDATE = "update"


class JobLogAdapter(logging.LoggerAdapter):
    """Prefixes every message with the job id and exposes it as ``record.job_id``."""

    def process(self, msg, kwargs):
        kwargs.setdefault("extra", {}).update(self.extra)
        return f"[job {self.extra['job_id']}] {msg}", kwargs


@dataclass
class RunContext:
    """State gathered while one job runs."""

    job: Job
    gap: SkillsGap
    log: JobLogAdapter
    gap_record: GapRecord | None = None
    existing_path: LearningPathRecord | None = None
    expansion: ExpansionRecord | None = None
    mode: str = MODE_FULL
    competencies: list[CompetencyRecord] = field(default_factory=list)
    validation_attempts: int = 0
    validation_errors: list[str] = field(default_factory=list)

    @property
    def raw_skill_data(self) -> Any:
        return self.gap_record.raw_skill_data if self.gap_record else None


class LearningPathPipeline:
    """Runs the five-stage learning-path generation for a skills gap."""

    def __init__(
        self,
        *,
        jobs: JobLedger,
        expansions: ExpansionStore,
        learning_paths: LearningPathStore,
        skills_gaps: SkillsGapStore,
        completion: CompletionService,
        taxonomy: TaxonomyService,
        prompts: PromptSource,
        approval_policy: ApprovalPolicy,
        approval_requests: ApprovalRequests,
        runner: JobRunner | None = None,
        llm_config: LLMConfig | None = None,
        pipeline_config: PipelineConfig | None = None,
        taxonomy_max_retries: int = 3,
        usage_store: UsageStore | None = None,
        logger: logging.Logger | None = None,
    ):
        self.jobs = jobs
        self.expansions = expansions
        self.learning_paths = learning_paths
        self.skills_gaps = skills_gaps
        self.completion = completion
        self.taxonomy = taxonomy
        self.prompts = prompts
        self.approval_policy = approval_policy
        self.approval_requests = approval_requests
        self.llm_config = llm_config or LLMConfig()
        self.pipeline_config = pipeline_config or PipelineConfig()
        self.runner = runner or JobRunner(self.pipeline_config.max_concurrent_jobs)
        self.taxonomy_max_retries = taxonomy_max_retries
        self.usage_store = usage_store
        self.logger = logger or logging.getLogger(__name__)

    async def generate(self, skills_gap: SkillsGap | dict[str, Any]) -> dict[str, str]:
        """Accept a generation request and schedule it in the background.

        Raises:
            MissingRequiredFieldsError: userId, companyId or
                competencyTargetName is absent. No job is created.
        """
        if not isinstance(skills_gap, SkillsGap):
            skills_gap = SkillsGap.model_validate(skills_gap)
        missing = skills_gap.missing_required()
        if missing:
            raise MissingRequiredFieldsError(missing)

        job = await self.jobs.create(
            Job(
                id=str(uuid.uuid4()),
                user_id=skills_gap.user_id,
                company_id=skills_gap.company_id,
                competency_target_name=skills_gap.competency_target_name,
            )
        )
        self.logger.info(
            "Accepted job %s for user %s / %s", job.id, job.user_id, job.competency_target_name
        )
        self.runner.submit(
            job.id,
            self.run(job, skills_gap),
            lock_key=(job.user_id, job.competency_target_name),
        )
        return {"jobId": job.id, "status": job.status}

    async def run(self, job: Job, skills_gap: SkillsGap) -> None:
        """Execute every stage for ``job``; failures end up on the job record.

        ``generate`` serializes runs per learner and target through the
        runner; direct callers are responsible for that themselves.
        """
        ctx = RunContext(job=job, gap=skills_gap, log=JobLogAdapter(self.logger, {"job_id": job.id}))
        start = time.monotonic()
        error: str | None = None

        try:
            await self._execute(ctx)
        except Exception as exc:
            error = str(exc) or type(exc).__name__
            ctx.log.error("Job failed: %s", error, exc_info=True)
            await self._mark_failed(ctx, error)

        await self._record_usage(ctx, time.monotonic() - start, error)

    async def _execute(self, ctx: RunContext) -> None:
        await self._advance(ctx, status="processing", current_stage=STAGE_SKILL_EXPANSION, progress=10)
        await self._decide_mode(ctx)

        if ctx.mode == MODE_UPDATE:
            stage2_output = await self._reuse_expansion(ctx)
        else:
            stage2_output = await self._expand_and_identify(ctx)
        await self._advance(ctx, current_stage=STAGE_SKILL_BREAKDOWN, progress=50)

        ctx.competencies = extract_stage2_competencies(stage2_output)
        breakdown = await self._skill_breakdown(ctx)
        await self._advance(ctx, current_stage=STAGE_PATH_CREATION, progress=70)

        path = await self._create_path(ctx, breakdown)
        result = await self._persist_and_handoff(ctx, path)
        await self._advance(ctx, status="completed", current_stage=STAGE_COMPLETED, progress=100, result=result)
        ctx.log.info("Completed in %s mode (%d path attempts)", ctx.mode, ctx.validation_attempts)

    # --- mode decision ---

    async def _decide_mode(self, ctx: RunContext) -> None:
        ctx.gap_record = await self._current_gap_record(ctx)
        ctx.existing_path = await self.learning_paths.get_by_id(ctx.job.competency_target_name)
        if ctx.existing_path is not None:
            gap_id = ctx.gap_record.gap_id if ctx.gap_record else None
            ctx.expansion = await self.expansions.get_latest_by_user_and_gap(ctx.job.user_id, gap_id)

        if ctx.existing_path is not None and ctx.expansion is not None and ctx.expansion.is_complete:
            ctx.mode = MODE_UPDATE
        ctx.log.info("Running in %s mode", ctx.mode)

    async def _current_gap_record(self, ctx: RunContext) -> GapRecord | None:
        """The learner's stored gap for this target, else their first one."""
        try:
            records = await self.skills_gaps.get_by_user(ctx.job.user_id)
        except Exception:
            ctx.log.warning("Could not re-read skills gap; using request data", exc_info=True)
            return None
        for record in records:
            if record.competency_target_name == ctx.job.competency_target_name:
                return record
        return records[0] if records else None

    # --- stages 1 and 2 ---

    async def _expand_and_identify(self, ctx: RunContext) -> Any:
        gap_id = ctx.gap_record.gap_id if ctx.gap_record else None
        ctx.expansion = await self.expansions.create(ExpansionRecord(gap_id=gap_id, user_id=ctx.job.user_id))

        prompt1 = render_prompt(self.prompts.load(SKILL_EXPANSION_PROMPT), input=self._stage1_input(ctx))
        stage1_output = await self.completion.complete(
            prompt1,
            timeout=self.llm_config.expansion_timeout,
            max_retries=self.llm_config.max_retries,
            usage_key=ctx.job.id,
        )
        await self.expansions.update(ctx.expansion.expansion_id, {"stage1_output": stage1_output})
        await self._advance(ctx, current_stage=STAGE_COMPETENCY_IDENTIFICATION, progress=30)

        competencies = extract_stage1_competencies(stage1_output)
        ctx.log.info("Skill expansion produced %d competencies", len(competencies))
        prompt2 = render_prompt(
            self.prompts.load(COMPETENCY_IDENTIFICATION_PROMPT),
            input=stage2_input(stage1_output, competencies),
        )
        stage2_output = await self.completion.complete(
            prompt2,
            timeout=self.llm_config.competency_timeout,
            max_retries=self.llm_config.max_retries,
            usage_key=ctx.job.id,
        )
        await self.expansions.update(ctx.expansion.expansion_id, {"stage2_output": stage2_output})
        return stage2_output

    async def _reuse_expansion(self, ctx: RunContext) -> Any:
        expansion = ctx.expansion
        # Touch the record so it stays the latest for this gap
        await self.expansions.update(expansion.expansion_id, {"stage1_output": expansion.stage1_output})
        ctx.log.info("Reusing cached expansion %s", expansion.expansion_id)
        return expansion.stage2_output

    def _stage1_input(self, ctx: RunContext) -> str:
        context = {
            "userId": ctx.job.user_id,
            "competencyTargetName": ctx.job.competency_target_name,
        }
        if ctx.raw_skill_data:
            return _dumps({"skills_raw_data": ctx.raw_skill_data, "context": context})
        return _dumps(
            {
                "microSkills": ctx.gap.micro_skills,
                "nanoSkills": ctx.gap.nano_skills,
                "context": context,
            }
        )

    # --- stage 3 ---

    async def _skill_breakdown(self, ctx: RunContext) -> dict[str, dict[str, list[Any]]]:
        try:
            breakdown = await self.taxonomy.breakdown(
                ctx.competencies,
                max_retries=self.taxonomy_max_retries,
                use_fallback=False,
                include_expansions=True,
            )
        except Exception as exc:
            ctx.log.warning("Skill breakdown failed (%s); using fallback data", exc)
            breakdown = await self.taxonomy.breakdown(
                ctx.competencies,
                max_retries=self.taxonomy_max_retries,
                use_fallback=True,
                include_expansions=True,
            )

        if ctx.mode == MODE_UPDATE:
            remaining = self._remaining_skill_names(ctx)
            breakdown = filter_breakdown(breakdown, remaining)
            before = len(ctx.competencies)
            ctx.competencies = [c for c in ctx.competencies if c.name in breakdown]
            ctx.log.info(
                "Filtered to %d of %d competencies against %d remaining skills",
                len(ctx.competencies),
                before,
                len(remaining),
            )
        return breakdown

    @staticmethod
    def _remaining_skill_names(ctx: RunContext) -> list[str]:
        if ctx.raw_skill_data:
            return extract_skill_names(ctx.raw_skill_data)
        return extract_skill_names(list(ctx.gap.micro_skills) + list(ctx.gap.nano_skills))

    # --- stage 4 ---

    async def _create_path(
        self, ctx: RunContext, breakdown: dict[str, dict[str, list[Any]]]
    ) -> CanonicalLearningPath:
        base_prompt = render_prompt(
            self.prompts.load(PATH_CREATION_PROMPT),
            initialGap=_dumps(self._initial_gap(ctx)),
            competencies=_dumps([c.model_dump(by_alias=True, exclude_none=True) for c in ctx.competencies]),
            expandedBreakdown=_dumps(breakdown),
        )
        max_attempts = self.pipeline_config.max_validation_attempts
        prompt = base_prompt
        path: CanonicalLearningPath | None = None

        for attempt in range(1, max_attempts + 1):
            ctx.validation_attempts = attempt
            raw = await self.completion.complete(
                prompt,
                timeout=self.llm_config.path_timeout,
                max_retries=self.llm_config.max_retries,
                usage_key=ctx.job.id,
            )
            path = canonicalize_path(raw, learner_id=ctx.job.user_id)
            validation = validate_path(path)
            ctx.validation_errors = validation.errors
            if validation.valid:
                break
            ctx.log.info(
                "Path attempt %d/%d has %d violation(s)", attempt, max_attempts, len(validation.errors)
            )
            prompt = base_prompt + format_violations(validation.errors)
        else:
            ctx.log.warning(
                "Path still invalid after %d attempts; keeping last path: %s",
                max_attempts,
                "; ".join(ctx.validation_errors),
            )
        return path

    @staticmethod
    def _initial_gap(ctx: RunContext) -> dict[str, Any]:
        initial = {
            "userId": ctx.job.user_id,
            "competencyTargetName": ctx.job.competency_target_name,
            "microSkills": ctx.gap.micro_skills,
            "nanoSkills": ctx.gap.nano_skills,
        }
        if ctx.raw_skill_data:
            initial["skillsRawData"] = ctx.raw_skill_data
        return initial

    # --- stage 5 ---

    async def _persist_and_handoff(self, ctx: RunContext, path: CanonicalLearningPath) -> dict[str, Any]:
        decision = None
        if ctx.existing_path is not None and ctx.gap_record is not None and ctx.gap_record.exam_failed:
            ctx.log.info("Update after failed exam; approving without policy check")
            status = "approved"
        else:
            try:
                decision = await self.approval_policy.check(ctx.job.company_id)
            except Exception:
                ctx.log.warning("Approval policy check failed; leaving path pending", exc_info=True)
            status = "approved" if decision is not None and not decision.requires_approval else "pending"

        saved = await self.learning_paths.save(
            LearningPathRecord(
                id=ctx.job.competency_target_name,
                user_id=ctx.job.user_id,
                company_id=ctx.job.company_id,
                competency_target_name=ctx.job.competency_target_name,
                path=path,
                status=status,
                validation_attempts=ctx.validation_attempts,
            )
        )

        if decision is not None and decision.requires_approval:
            try:
                approval = await self.approval_requests.request(
                    learning_path_id=saved.id,
                    company_id=ctx.job.company_id,
                    decision_maker=decision.company.decision_maker,
                    learning_path=saved.path.to_payload(),
                )
                ctx.log.info("Approval %s requested", approval.id)
            except Exception:
                ctx.log.warning("Approval request failed", exc_info=True)

        return {
            "learningPathId": saved.id,
            "mode": ctx.mode,
            "validationAttempts": ctx.validation_attempts,
            "approvalStatus": status,
        }

    # --- bookkeeping ---

    async def _advance(self, ctx: RunContext, **fields: Any) -> None:
        await self.jobs.update(ctx.job.id, fields)

    async def _mark_failed(self, ctx: RunContext, error: str) -> None:
        try:
            await self.jobs.update(ctx.job.id, {"status": "failed", "error": error})
        except Exception:
            ctx.log.error("Could not mark job as failed", exc_info=True)

    async def _record_usage(self, ctx: RunContext, elapsed: float, error: str | None) -> None:
        # Always drain the job's token log, even when nothing is persisted
        try:
            tokens = self.completion.get_token_summary(ctx.job.id)
        except Exception:
            ctx.log.warning("Failed to read token usage", exc_info=True)
            return
        if self.usage_store is None:
            return
        try:
            log = UsageLog(
                job_id=ctx.job.id,
                mode=ctx.mode,
                stage4_attempts=ctx.validation_attempts,
                validation_error_count=len(ctx.validation_errors),
                total_input_tokens=tokens["input"],
                total_output_tokens=tokens["output"],
                estimated_cost_usd=calculate_cost(tokens["calls"]),
                elapsed_seconds=round(elapsed, 3),
                success=error is None,
                error_message=error,
            )
            await asyncio.to_thread(self.usage_store.save_log, log)
        except Exception:
            ctx.log.warning("Failed to record usage", exc_info=True)


def _dumps(value: Any) -> str:
    return json.dumps(value, indent=2, ensure_ascii=False)
