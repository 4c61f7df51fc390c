"""SQLite store for generated learning paths, keyed by competency target name."""

from __future__ import annotations

import json
import sqlite3

from learnpath.models.job import utcnow
from learnpath.models.learning_path import CanonicalLearningPath, LearningPathRecord
from learnpath.storage.base import SQLiteStore


class SQLiteLearningPathStore(SQLiteStore):
    schema = """
        CREATE TABLE IF NOT EXISTS learning_paths (
            id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL,
            company_id TEXT NOT NULL,
            competency_target_name TEXT NOT NULL,
            path_json TEXT NOT NULL,
            status TEXT NOT NULL,
            validation_attempts INTEGER NOT NULL DEFAULT 0,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        );
    """

    async def get_by_id(self, competency_target_name: str) -> LearningPathRecord | None:
        return await self._run(self._get, competency_target_name)

    async def save(self, record: LearningPathRecord) -> LearningPathRecord:
        """Insert or replace; an existing row keeps its created_at."""
        return await self._run(self._upsert, record)

    def _get(self, path_id: str) -> LearningPathRecord | None:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM learning_paths WHERE id = ?", (path_id,)).fetchone()
        return self._row_to_record(row) if row else None

    def _upsert(self, record: LearningPathRecord) -> LearningPathRecord:
        saved = record.model_copy(update={"updated_at": utcnow()})
        with self._connect() as conn:
            existing = conn.execute(
                "SELECT created_at FROM learning_paths WHERE id = ?", (record.id,)
            ).fetchone()
            if existing:
                saved = saved.model_copy(update={"created_at": existing["created_at"]})
            conn.execute(
                """INSERT OR REPLACE INTO learning_paths
                   (id, user_id, company_id, competency_target_name, path_json,
                    status, validation_attempts, created_at, updated_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    saved.id,
                    saved.user_id,
                    saved.company_id,
                    saved.competency_target_name,
                    saved.path.model_dump_json(by_alias=True),
                    saved.status,
                    saved.validation_attempts,
                    saved.created_at,
                    saved.updated_at,
                ),
            )
        return saved

    @staticmethod
    def _row_to_record(row: sqlite3.Row) -> LearningPathRecord:
        data = dict(row)
        path = CanonicalLearningPath.model_validate(json.loads(data.pop("path_json")))
        return LearningPathRecord(path=path, **data)
