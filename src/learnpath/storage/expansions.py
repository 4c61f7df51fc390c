"""SQLite store for cached stage-1/stage-2 outputs."""

from __future__ import annotations

import sqlite3
from typing import Any

from learnpath.models.expansion import ExpansionRecord
from learnpath.models.job import utcnow
from learnpath.storage.base import SQLiteStore, dumps, loads

UPDATABLE_FIELDS = ("gap_id", "user_id", "stage1_output", "stage2_output")


class SQLiteExpansionStore(SQLiteStore):
    schema = """
        CREATE TABLE IF NOT EXISTS skills_expansions (
            expansion_id TEXT PRIMARY KEY,
            gap_id TEXT,
            user_id TEXT NOT NULL,
            stage1_output TEXT,
            stage2_output TEXT,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        );
        CREATE INDEX IF NOT EXISTS idx_expansions_user_gap
            ON skills_expansions (user_id, gap_id);
    """

    async def create(self, record: ExpansionRecord) -> ExpansionRecord:
        await self._run(self._insert, record)
        return record

    async def update(self, expansion_id: str, fields: dict[str, Any]) -> ExpansionRecord:
        unknown = set(fields) - set(UPDATABLE_FIELDS)
        if unknown:
            raise ValueError(f"Cannot update expansion fields: {sorted(unknown)}")
        return await self._run(self._update, expansion_id, dict(fields))

    async def get_by_id(self, expansion_id: str) -> ExpansionRecord | None:
        return await self._run(self._get, expansion_id)

    async def get_latest_by_user_and_gap(self, user_id: str, gap_id: str | None) -> ExpansionRecord | None:
        """Most recently touched record for the pair; ``gap_id`` may be None."""
        return await self._run(self._latest, user_id, gap_id)

    def _insert(self, record: ExpansionRecord) -> None:
        with self._connect() as conn:
            conn.execute(
                """INSERT INTO skills_expansions
                   (expansion_id, gap_id, user_id, stage1_output, stage2_output,
                    created_at, updated_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?)""",
                (
                    record.expansion_id,
                    record.gap_id,
                    record.user_id,
                    dumps(record.stage1_output),
                    dumps(record.stage2_output),
                    record.created_at,
                    record.updated_at,
                ),
            )

    def _update(self, expansion_id: str, fields: dict[str, Any]) -> ExpansionRecord:
        for key in ("stage1_output", "stage2_output"):
            if key in fields:
                fields[key] = dumps(fields[key])
        fields["updated_at"] = utcnow()
        assignments = ", ".join(f"{name} = ?" for name in fields)
        with self._connect() as conn:
            cursor = conn.execute(
                f"UPDATE skills_expansions SET {assignments} WHERE expansion_id = ?",
                (*fields.values(), expansion_id),
            )
            if cursor.rowcount == 0:
                raise LookupError(f"Expansion not found: {expansion_id}")
            row = conn.execute(
                "SELECT * FROM skills_expansions WHERE expansion_id = ?", (expansion_id,)
            ).fetchone()
        return self._row_to_record(row)

    def _get(self, expansion_id: str) -> ExpansionRecord | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM skills_expansions WHERE expansion_id = ?", (expansion_id,)
            ).fetchone()
        return self._row_to_record(row) if row else None

    def _latest(self, user_id: str, gap_id: str | None) -> ExpansionRecord | None:
        with self._connect() as conn:
            row = conn.execute(
                """SELECT * FROM skills_expansions
                   WHERE user_id = ? AND gap_id IS ?
                   ORDER BY updated_at DESC, created_at DESC
                   LIMIT 1""",
                (user_id, gap_id),
            ).fetchone()
        return self._row_to_record(row) if row else None

    @staticmethod
    def _row_to_record(row: sqlite3.Row) -> ExpansionRecord:
        data = dict(row)
        data["stage1_output"] = loads(data["stage1_output"])
        data["stage2_output"] = loads(data["stage2_output"])
        return ExpansionRecord(**data)
