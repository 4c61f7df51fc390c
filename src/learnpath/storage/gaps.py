"""SQLite store for learners' skills-gap records."""

from __future__ import annotations

import sqlite3

from learnpath.models.gap import GapRecord
from learnpath.storage.base import SQLiteStore, dumps, loads


class SQLiteSkillsGapStore(SQLiteStore):
    schema = """
        CREATE TABLE IF NOT EXISTS skills_gaps (
            gap_id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL,
            company_id TEXT,
            competency_target_name TEXT,
            raw_skill_data TEXT,
            exam_status TEXT,
            seq INTEGER NOT NULL
        );
        CREATE INDEX IF NOT EXISTS idx_gaps_user ON skills_gaps (user_id);
    """

    async def get_by_user(self, user_id: str) -> list[GapRecord]:
        """All gap records for a learner, most recently written first."""
        return await self._run(self._get_by_user, user_id)

    async def upsert(self, record: GapRecord) -> GapRecord:
        await self._run(self._upsert, record)
        return record

    def _get_by_user(self, user_id: str) -> list[GapRecord]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM skills_gaps WHERE user_id = ? ORDER BY seq DESC",
                (user_id,),
            ).fetchall()
        return [self._row_to_record(r) for r in rows]

    def _upsert(self, record: GapRecord) -> None:
        with self._connect() as conn:
            (seq,) = conn.execute("SELECT COALESCE(MAX(seq), 0) + 1 FROM skills_gaps").fetchone()
            conn.execute(
                """INSERT OR REPLACE INTO skills_gaps
                   (gap_id, user_id, company_id, competency_target_name,
                    raw_skill_data, exam_status, seq)
                   VALUES (?, ?, ?, ?, ?, ?, ?)""",
                (
                    record.gap_id,
                    record.user_id,
                    record.company_id,
                    record.competency_target_name,
                    dumps(record.raw_skill_data),
                    record.exam_status,
                    seq,
                ),
            )

    @staticmethod
    def _row_to_record(row: sqlite3.Row) -> GapRecord:
        data = dict(row)
        data.pop("seq")
        data["raw_skill_data"] = loads(data["raw_skill_data"])
        return GapRecord(**data)
