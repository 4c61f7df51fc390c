"""SQLite-backed job ledger."""

from __future__ import annotations

import sqlite3
from collections.abc import Iterable
from typing import Any

from learnpath.models.job import Job, utcnow
from learnpath.storage.base import SQLiteStore, dumps, loads

UPDATABLE_FIELDS = ("status", "progress", "current_stage", "result", "error")


class SQLiteJobLedger(SQLiteStore):
    schema = """
        CREATE TABLE IF NOT EXISTS jobs (
            id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL,
            company_id TEXT NOT NULL,
            competency_target_name TEXT NOT NULL,
            type TEXT NOT NULL,
            status TEXT NOT NULL,
            progress INTEGER NOT NULL DEFAULT 0,
            current_stage TEXT,
            result TEXT,
            error TEXT,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        );
        CREATE INDEX IF NOT EXISTS idx_jobs_status ON jobs (status);
    """

    async def create(self, job: Job) -> Job:
        await self._run(self._insert, job)
        return job

    async def update(self, job_id: str, fields: dict[str, Any]) -> Job:
        """Apply a partial update; unknown field names are rejected."""
        unknown = set(fields) - set(UPDATABLE_FIELDS)
        if unknown:
            raise ValueError(f"Cannot update job fields: {sorted(unknown)}")
        return await self._run(self._update, job_id, dict(fields))

    async def get(self, job_id: str) -> Job | None:
        return await self._run(self._get, job_id)

    async def list_by_status(self, statuses: Iterable[str]) -> list[Job]:
        return await self._run(self._list_by_status, list(statuses))

    def _insert(self, job: Job) -> None:
        with self._connect() as conn:
            conn.execute(
                """INSERT INTO jobs
                   (id, user_id, company_id, competency_target_name, type, status,
                    progress, current_stage, result, error, created_at, updated_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    job.id,
                    job.user_id,
                    job.company_id,
                    job.competency_target_name,
                    job.type,
                    job.status,
                    job.progress,
                    job.current_stage,
                    dumps(job.result),
                    job.error,
                    job.created_at,
                    job.updated_at,
                ),
            )

    def _update(self, job_id: str, fields: dict[str, Any]) -> Job:
        if "result" in fields:
            fields["result"] = dumps(fields["result"])
        fields["updated_at"] = utcnow()
        assignments = ", ".join(f"{name} = ?" for name in fields)
        with self._connect() as conn:
            cursor = conn.execute(
                f"UPDATE jobs SET {assignments} WHERE id = ?",
                (*fields.values(), job_id),
            )
            if cursor.rowcount == 0:
                raise LookupError(f"Job not found: {job_id}")
            row = conn.execute("SELECT * FROM jobs WHERE id = ?", (job_id,)).fetchone()
        return self._row_to_job(row)

    def _get(self, job_id: str) -> Job | None:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM jobs WHERE id = ?", (job_id,)).fetchone()
        return self._row_to_job(row) if row else None

    def _list_by_status(self, statuses: list[str]) -> list[Job]:
        if not statuses:
            return []
        placeholders = ", ".join("?" for _ in statuses)
        with self._connect() as conn:
            rows = conn.execute(
                f"SELECT * FROM jobs WHERE status IN ({placeholders}) ORDER BY created_at",
                statuses,
            ).fetchall()
        return [self._row_to_job(r) for r in rows]

    @staticmethod
    def _row_to_job(row: sqlite3.Row) -> Job:
        data = dict(row)
        data["result"] = loads(data["result"])
        return Job(**data)
