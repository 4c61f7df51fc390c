"""CLI interface using typer + rich."""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

import typer
import yaml
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from learnpath.clients.llm_client import LLMClient
from learnpath.clients.taxonomy_client import TaxonomyClient
from learnpath.config import AppConfig, load_config
from learnpath.errors import MissingRequiredFieldsError
from learnpath.models import Company, GapRecord, Job, SkillsGap
from learnpath.pipeline.approval import ApprovalPolicyChecker, ApprovalRequester
from learnpath.pipeline.orchestrator import LearningPathPipeline
from learnpath.pipeline.worker import JobRunner
from learnpath.prompts.loader import PromptLoader
from learnpath.storage.approvals import SQLiteApprovalStore, SQLiteCompanyStore
from learnpath.storage.expansions import SQLiteExpansionStore
from learnpath.storage.gaps import SQLiteSkillsGapStore
from learnpath.storage.jobs import SQLiteJobLedger
from learnpath.storage.learning_paths import SQLiteLearningPathStore
from learnpath.usage.usage_store import UsageStore

app = typer.Typer(
    name="learnpath",
    help="Generate validated learning paths from learners' skill gaps",
    no_args_is_help=True,
)
console = Console()

STATUS_COLORS = {"pending": "yellow", "processing": "cyan", "completed": "green", "failed": "red"}


@dataclass
class Services:
    jobs: SQLiteJobLedger
    gaps: SQLiteSkillsGapStore
    companies: SQLiteCompanyStore
    learning_paths: SQLiteLearningPathStore
    usage: UsageStore
    pipeline: LearningPathPipeline


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=verbose)],
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


def _build_services(config: AppConfig) -> Services:
    db_path = config.storage.resolved_db_path
    jobs = SQLiteJobLedger(db_path)
    gaps = SQLiteSkillsGapStore(db_path)
    companies = SQLiteCompanyStore(db_path)
    learning_paths = SQLiteLearningPathStore(db_path)
    usage = UsageStore(db_path)

    llm = LLMClient(
        model=config.llm.model,
        max_tokens=config.llm.max_tokens,
        temperature=config.llm.temperature,
        max_retries=config.llm.max_retries,
    )
    taxonomy = TaxonomyClient(
        config.taxonomy.base_url,
        config.taxonomy.token,
        timeout=config.taxonomy.timeout,
        max_retries=config.taxonomy.max_retries,
        include_expansions=config.taxonomy.include_expansions,
    )
    pipeline = LearningPathPipeline(
        jobs=jobs,
        expansions=SQLiteExpansionStore(db_path),
        learning_paths=learning_paths,
        skills_gaps=gaps,
        completion=llm,
        taxonomy=taxonomy,
        prompts=PromptLoader(config.prompts.resolved_directory),
        approval_policy=ApprovalPolicyChecker(companies),
        approval_requests=ApprovalRequester(SQLiteApprovalStore(db_path)),
        runner=JobRunner(config.pipeline.max_concurrent_jobs),
        llm_config=config.llm,
        pipeline_config=config.pipeline,
        taxonomy_max_retries=config.taxonomy.max_retries,
        usage_store=usage,
        logger=logging.getLogger("learnpath.pipeline"),
    )
    return Services(jobs, gaps, companies, learning_paths, usage, pipeline)


def _read_document(path: Path) -> dict:
    if not path.exists():
        console.print(f"[red]File not found: {path}[/red]")
        raise typer.Exit(1)
    # YAML is a superset of JSON
    data = yaml.safe_load(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        console.print(f"[red]Expected a mapping in {path}[/red]")
        raise typer.Exit(1)
    return data


def _print_job(job: Job) -> None:
    color = STATUS_COLORS.get(job.status, "white")
    lines = [
        f"Status: [bold {color}]{job.status}[/bold {color}] ({job.progress}%)",
        f"Stage: {job.current_stage or '-'}",
        f"Learner: {job.user_id} | Target: {job.competency_target_name}",
    ]
    if job.result:
        lines.append(f"Result: {json.dumps(job.result, ensure_ascii=False)}")
    if job.error:
        lines.append(f"[red]Error: {job.error}[/red]")
    console.print(Panel("\n".join(lines), title=f"Job {job.id}"))
    if not job.is_terminal:
        console.print(f"[dim]Still running; check again with: learnpath job {job.id}[/dim]")


@app.command()
def generate(
    gap_file: Path = typer.Argument(help="Skills gap as YAML or JSON"),
    show_path: bool = typer.Option(False, "--show-path", help="Print the generated path as JSON"),
    config_file: Path = typer.Option(None, "--config", "-c", help="Path to config.yaml"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Generate a learning path for a skills gap and wait for the job to finish."""
    _setup_logging(verbose)
    data = _read_document(gap_file)
    services = _build_services(load_config(config_file))
    gap = SkillsGap.model_validate(data)

    # A gap file may carry the stored gap record the pipeline re-reads
    if data.get("gapId") and gap.user_id:
        record = GapRecord.model_validate({"userId": gap.user_id, **data})
        asyncio.run(services.gaps.upsert(record))

    async def _run() -> Job | None:
        await services.pipeline.runner.reconcile_orphans(services.jobs)
        accepted = await services.pipeline.generate(gap)
        console.print(f"[dim]Accepted job {accepted['jobId']}[/dim]")
        await services.pipeline.runner.join()
        return await services.jobs.get(accepted["jobId"])

    try:
        job = asyncio.run(_run())
    except MissingRequiredFieldsError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(1)

    _print_job(job)
    if show_path and job.status == "completed":
        record = asyncio.run(services.learning_paths.get_by_id(job.competency_target_name))
        if record is not None:
            console.print_json(record.path.model_dump_json(by_alias=True))
    if job.status != "completed":
        raise typer.Exit(1)


@app.command()
def job(
    job_id: str = typer.Argument(help="Job id returned by generate"),
    config_file: Path = typer.Option(None, "--config", "-c", help="Path to config.yaml"),
) -> None:
    """Show a job's status and result."""
    config = load_config(config_file)
    found = asyncio.run(SQLiteJobLedger(config.storage.resolved_db_path).get(job_id))
    if found is None:
        console.print(f"[red]Job not found: {job_id}[/red]")
        raise typer.Exit(1)
    _print_job(found)


@app.command()
def company(
    company_file: Path = typer.Argument(help="Company (approval policy) as YAML or JSON"),
    config_file: Path = typer.Option(None, "--config", "-c", help="Path to config.yaml"),
) -> None:
    """Register or update a company's approval policy."""
    config = load_config(config_file)
    record = Company.model_validate(_read_document(company_file))
    asyncio.run(SQLiteCompanyStore(config.storage.resolved_db_path).upsert(record))
    console.print(
        f"[green]Saved {record.company_name} ({record.company_id}): "
        f"approval policy {record.approval_policy}[/green]"
    )


@app.command()
def reconcile(
    config_file: Path = typer.Option(None, "--config", "-c", help="Path to config.yaml"),
) -> None:
    """Mark pending/processing jobs left over from a dead process as failed."""
    _setup_logging(False)
    config = load_config(config_file)
    orphaned = asyncio.run(
        JobRunner(config.pipeline.max_concurrent_jobs).reconcile_orphans(
            SQLiteJobLedger(config.storage.resolved_db_path)
        )
    )
    if orphaned:
        console.print(f"[yellow]Marked {len(orphaned)} orphaned job(s) as failed[/yellow]")
        for job_id in orphaned:
            console.print(f"  - {job_id}")
    else:
        console.print("[green]No orphaned jobs[/green]")


@app.command()
def usage(
    limit: int = typer.Option(10, "--limit", "-n", help="Number of recent runs to list"),
    config_file: Path = typer.Option(None, "--config", "-c", help="Path to config.yaml"),
) -> None:
    """Show token usage and estimated cost of recent jobs."""
    config = load_config(config_file)
    store = UsageStore(config.storage.resolved_db_path)
    stats = store.get_monthly_stats()

    table = Table(title=f"Recent runs ({stats['month']})")
    table.add_column("Job")
    table.add_column("Mode")
    table.add_column("Attempts", justify="right")
    table.add_column("Tokens in/out", justify="right")
    table.add_column("Cost (USD)", justify="right")
    table.add_column("OK")
    for log in store.get_logs(limit=limit):
        table.add_row(
            log.job_id[:8],
            log.mode or "-",
            str(log.stage4_attempts),
            f"{log.total_input_tokens:,}/{log.total_output_tokens:,}",
            f"{log.estimated_cost_usd:.4f}",
            "[green]yes[/green]" if log.success else "[red]no[/red]",
        )
    console.print(table)
    console.print(
        f"This month: {stats['total_runs']} runs, "
        f"{stats['success_rate']:.0f}% success, "
        f"${stats['total_cost_usd']:.4f} | All time: ${store.get_total_cost():.4f}"
    )


if __name__ == "__main__":
    app()
