"""Shared test fixtures."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from learnpath.models import SkillsGap
from learnpath.pipeline.approval import ApprovalPolicyChecker, ApprovalRequester
from learnpath.pipeline.orchestrator import LearningPathPipeline
from learnpath.pipeline.worker import JobRunner
from learnpath.prompts.loader import PromptLoader
from learnpath.storage.approvals import SQLiteApprovalStore, SQLiteCompanyStore
from learnpath.storage.expansions import SQLiteExpansionStore
from learnpath.storage.gaps import SQLiteSkillsGapStore
from learnpath.storage.jobs import SQLiteJobLedger
from learnpath.storage.learning_paths import SQLiteLearningPathStore

PATH_PROMPT_PREFIX = "Create path"


@pytest.fixture
def db_path(tmp_path) -> Path:
    return tmp_path / "learnpath.db"


@pytest.fixture
def prompts_dir(tmp_path) -> Path:
    directory = tmp_path / "prompts"
    directory.mkdir()
    (directory / "prompt1-skill-expansion.txt").write_text("Expand skills:\n{input}")
    (directory / "prompt2-competency-identification.txt").write_text("Identify competencies:\n{input}")
    (directory / "prompt3-path-creation.txt").write_text(
        f"{PATH_PROMPT_PREFIX}\nGap: {{initialGap}}\n"
        "Competencies: {competencies}\nBreakdown: {expandedBreakdown}"
    )
    return directory


@pytest.fixture
def sample_gap() -> SkillsGap:
    return SkillsGap(
        user_id="learner-1",
        company_id="acme",
        competency_target_name="Front End Development",
        micro_skills=["Hooks basics", "useState syntax"],
        nano_skills=["Advanced hooks optimization"],
    )


@pytest.fixture
def stage1_output() -> dict:
    return {
        "expanded_competencies_list": [
            {
                "competency_name": "React Hooks",
                "competency_type": "Out-of-the-Box",
                "target_level": "Intermediate",
                "justification": "Core of modern React",
            }
        ]
    }


@pytest.fixture
def stage2_output() -> dict:
    return {
        "standard_skills_engine_query_template": "Break down {competency}",
        "competencies_for_skills_engine_processing": [
            {
                "competency_name": "React Hooks",
                "target_level": "Intermediate",
                "example_query_to_send": "Break down React Hooks",
            }
        ],
    }


@pytest.fixture
def breakdown() -> dict:
    return {
        "React Hooks": {
            "microSkills": [{"id": "m1", "name": "Hooks basics"}, {"id": "m2", "name": "useState syntax"}],
            "nanoSkills": [{"id": "n1", "name": "Advanced hooks optimization"}],
        }
    }


def _path_output(module_orders: tuple[int, ...] = (1, 2)) -> dict:
    """Modern stage-4 output: a foundational module followed by an advanced one."""
    first, second = module_orders
    return {
        "path_title": "React Hooks Path",
        "learner_id": "learner-1",
        "total_estimated_duration_hours": 6,
        "learning_modules": [
            {
                "module_order": first,
                "module_title": "Foundations",
                "estimated_duration_hours": 4,
                "skills_in_module": ["Hooks basics", "useState syntax"],
                "steps": [
                    {
                        "step": 1,
                        "title": "What hooks are",
                        "description": "Read the docs",
                        "estimated_time": "1h",
                        "skills_covered": ["Hooks basics"],
                    },
                    {
                        "step": 2,
                        "title": "useState",
                        "description": "Build a counter",
                        "estimated_time": "1h",
                        "skills_covered": ["useState syntax"],
                    },
                ],
            },
            {
                "module_order": second,
                "module_title": "Going further",
                "estimated_duration_hours": 2,
                "skills_in_module": ["Advanced hooks optimization"],
                "steps": [
                    {
                        "step": 1,
                        "title": "Memoisation",
                        "description": "useMemo and useCallback",
                        "estimated_time": "2h",
                        "skills_covered": ["Advanced hooks optimization"],
                    }
                ],
            },
        ],
    }


@pytest.fixture
def make_path_output():
    return _path_output


@pytest.fixture
def valid_path_output() -> dict:
    return _path_output()


@pytest.fixture
def invalid_path_output() -> dict:
    return _path_output((1, 3))


@pytest.fixture
def stores(db_path) -> dict:
    jobs = SQLiteJobLedger(db_path)
    jobs.update = AsyncMock(wraps=jobs.update)
    return {
        "jobs": jobs,
        "expansions": SQLiteExpansionStore(db_path),
        "learning_paths": SQLiteLearningPathStore(db_path),
        "skills_gaps": SQLiteSkillsGapStore(db_path),
        "companies": SQLiteCompanyStore(db_path),
        "approvals": SQLiteApprovalStore(db_path),
    }


@pytest.fixture
def mock_completion() -> AsyncMock:
    completion = AsyncMock()
    completion.get_token_summary = MagicMock(return_value={"input": 0, "output": 0, "calls": []})
    return completion


@pytest.fixture
def mock_taxonomy(breakdown) -> AsyncMock:
    taxonomy = AsyncMock()
    taxonomy.breakdown = AsyncMock(return_value=breakdown)
    return taxonomy


@pytest.fixture
def make_pipeline(stores, prompts_dir, mock_completion, mock_taxonomy):
    def _make(**overrides) -> LearningPathPipeline:
        kwargs = dict(
            jobs=stores["jobs"],
            expansions=stores["expansions"],
            learning_paths=stores["learning_paths"],
            skills_gaps=stores["skills_gaps"],
            completion=mock_completion,
            taxonomy=mock_taxonomy,
            prompts=PromptLoader(prompts_dir),
            approval_policy=ApprovalPolicyChecker(stores["companies"]),
            approval_requests=ApprovalRequester(stores["approvals"]),
            runner=JobRunner(max_concurrent_jobs=2),
        )
        kwargs.update(overrides)
        return LearningPathPipeline(**kwargs)

    return _make


@pytest.fixture
def progress_values():
    """Progress values written to the wrapped ledger, starting from the created job's 0."""

    def _values(ledger) -> list[int]:
        return [0] + [c.args[1]["progress"] for c in ledger.update.call_args_list if "progress" in c.args[1]]

    return _values


@pytest.fixture
def path_prompts():
    """Prompts sent for the path-creation stage."""

    def _prompts(completion: AsyncMock) -> list[str]:
        return [c.args[0] for c in completion.complete.call_args_list if c.args[0].startswith(PATH_PROMPT_PREFIX)]

    return _prompts
