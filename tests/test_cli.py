"""Tests for the typer CLI."""

from __future__ import annotations

import asyncio
import json

import pytest
from typer.testing import CliRunner

from learnpath.cli import app
from learnpath.models import Job
from learnpath.storage.approvals import SQLiteCompanyStore
from learnpath.storage.jobs import SQLiteJobLedger
from learnpath.usage.models import UsageLog
from learnpath.usage.usage_store import UsageStore

runner = CliRunner()


@pytest.fixture
def config_file(tmp_path, db_path):
    path = tmp_path / "config.yaml"
    path.write_text(f"storage:\n  db_path: {db_path}\n")
    return path


def test_company_command_saves_policy(tmp_path, config_file, db_path):
    company_file = tmp_path / "acme.yaml"
    company_file.write_text(
        "companyId: acme\ncompanyName: Acme\napprovalPolicy: manual\n"
        "decisionMaker:\n  employeeId: e1\n  email: boss@acme.test\n"
    )

    result = runner.invoke(app, ["company", str(company_file), "--config", str(config_file)])

    assert result.exit_code == 0, result.output
    saved = asyncio.run(SQLiteCompanyStore(db_path).get("acme"))
    assert saved.approval_policy == "manual"
    assert saved.decision_maker.employee_id == "e1"


def test_job_command_unknown_job(config_file):
    result = runner.invoke(app, ["job", "ghost", "--config", str(config_file)])

    assert result.exit_code == 1
    assert "Job not found" in result.output


def test_job_command_shows_status(config_file, db_path):
    asyncio.run(
        SQLiteJobLedger(db_path).create(
            Job(id="job-1", user_id="u1", company_id="acme", competency_target_name="SQL", status="completed")
        )
    )

    result = runner.invoke(app, ["job", "job-1", "--config", str(config_file)])

    assert result.exit_code == 0, result.output
    assert "completed" in result.output


def test_reconcile_marks_orphans(config_file, db_path):
    ledger = SQLiteJobLedger(db_path)
    asyncio.run(ledger.create(Job(id="stale", user_id="u1", company_id="acme", competency_target_name="SQL")))

    result = runner.invoke(app, ["reconcile", "--config", str(config_file)])

    assert result.exit_code == 0, result.output
    assert "stale" in result.output
    assert asyncio.run(ledger.get("stale")).status == "failed"


def test_usage_lists_runs(config_file, db_path):
    UsageStore(db_path).save_log(UsageLog(job_id="abcdef123456", mode="full", stage4_attempts=2))

    result = runner.invoke(app, ["usage", "--config", str(config_file)])

    assert result.exit_code == 0, result.output
    assert "abcdef12" in result.output


def test_generate_rejects_incomplete_gap(tmp_path, config_file, db_path, monkeypatch):
    monkeypatch.setenv("ANTHROPIC_API_KEY", "test-key")
    gap_file = tmp_path / "gap.json"
    gap_file.write_text(json.dumps({"userId": "u1"}))

    result = runner.invoke(app, ["generate", str(gap_file), "--config", str(config_file)])

    assert result.exit_code == 1
    assert "missing required fields" in result.output
    assert asyncio.run(SQLiteJobLedger(db_path).list_by_status(["pending"])) == []


def test_generate_missing_file(tmp_path, config_file):
    result = runner.invoke(app, ["generate", str(tmp_path / "nope.json"), "--config", str(config_file)])

    assert result.exit_code == 1
    assert "File not found" in result.output


def test_job_command_flags_unfinished_job(config_file, db_path):
    asyncio.run(
        SQLiteJobLedger(db_path).create(
            Job(id="job-2", user_id="u1", company_id="acme", competency_target_name="SQL", status="processing")
        )
    )

    result = runner.invoke(app, ["job", "job-2", "--config", str(config_file)])

    assert result.exit_code == 0, result.output
    assert "Still running" in result.output
