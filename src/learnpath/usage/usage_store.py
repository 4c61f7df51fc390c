"""SQLite-backed usage log storage."""

from __future__ import annotations

import sqlite3
from datetime import datetime
from pathlib import Path

from learnpath.usage.models import UsageLog

DEFAULT_DB_PATH = Path.home() / ".learnpath" / "usage.db"


class UsageStore:
    """SQLite-backed store for per-job usage logs with WAL mode."""

    def __init__(self, db_path: str | Path = DEFAULT_DB_PATH):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def _init_db(self) -> None:
        conn = self._connect()
        try:
            with conn:
                conn.execute("""
                    CREATE TABLE IF NOT EXISTS usage_logs (
                        id TEXT PRIMARY KEY,
                        job_id TEXT NOT NULL,
                        timestamp TEXT NOT NULL,
                        mode TEXT,
                        stage4_attempts INTEGER NOT NULL DEFAULT 0,
                        validation_error_count INTEGER NOT NULL DEFAULT 0,
                        total_input_tokens INTEGER NOT NULL DEFAULT 0,
                        total_output_tokens INTEGER NOT NULL DEFAULT 0,
                        estimated_cost_usd REAL NOT NULL DEFAULT 0.0,
                        elapsed_seconds REAL NOT NULL DEFAULT 0.0,
                        success INTEGER NOT NULL DEFAULT 1,
                        error_message TEXT
                    )
                """)
        finally:
            conn.close()

    def save_log(self, log: UsageLog) -> None:
        """Persist a usage log entry."""
        conn = self._connect()
        try:
            with conn:
                conn.execute(
                    """INSERT OR REPLACE INTO usage_logs
                       (id, job_id, timestamp, mode, stage4_attempts,
                        validation_error_count, total_input_tokens,
                        total_output_tokens, estimated_cost_usd,
                        elapsed_seconds, success, error_message)
                       VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                    (
                        log.id,
                        log.job_id,
                        log.timestamp.isoformat(),
                        log.mode,
                        log.stage4_attempts,
                        log.validation_error_count,
                        log.total_input_tokens,
                        log.total_output_tokens,
                        log.estimated_cost_usd,
                        log.elapsed_seconds,
                        1 if log.success else 0,
                        log.error_message,
                    ),
                )
        finally:
            conn.close()

    def get_logs(self, job_id: str | None = None, limit: int = 50) -> list[UsageLog]:
        """Retrieve usage logs, newest first, optionally for one job."""
        conn = self._connect()
        try:
            if job_id is not None:
                rows = conn.execute(
                    "SELECT * FROM usage_logs WHERE job_id = ? ORDER BY timestamp DESC LIMIT ?",
                    (job_id, limit),
                ).fetchall()
            else:
                rows = conn.execute(
                    "SELECT * FROM usage_logs ORDER BY timestamp DESC LIMIT ?",
                    (limit,),
                ).fetchall()
        finally:
            conn.close()
        return [self._row_to_log(row) for row in rows]

    def get_monthly_stats(self) -> dict:
        """Get aggregated stats for the current month."""
        now = datetime.now()
        month_start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
        conn = self._connect()
        try:
            row = conn.execute(
                """SELECT
                       COUNT(*),
                       SUM(total_input_tokens),
                       SUM(total_output_tokens),
                       SUM(estimated_cost_usd),
                       AVG(stage4_attempts),
                       SUM(CASE WHEN success = 1 THEN 1 ELSE 0 END)
                   FROM usage_logs
                   WHERE timestamp >= ?""",
                (month_start.isoformat(),),
            ).fetchone()
        finally:
            conn.close()
        return {
            "total_runs": row[0] or 0,
            "total_input_tokens": row[1] or 0,
            "total_output_tokens": row[2] or 0,
            "total_cost_usd": row[3] or 0.0,
            "avg_stage4_attempts": round(row[4], 1) if row[4] is not None else None,
            "success_rate": (row[5] / row[0] * 100) if row[0] else 0.0,
            "month": now.strftime("%Y-%m"),
        }

    def get_total_cost(self) -> float:
        """Get total estimated cost across all logs."""
        conn = self._connect()
        try:
            row = conn.execute("SELECT SUM(estimated_cost_usd) FROM usage_logs").fetchone()
        finally:
            conn.close()
        return row[0] or 0.0

    @staticmethod
    def _row_to_log(row: sqlite3.Row) -> UsageLog:
        data = dict(row)
        data["timestamp"] = datetime.fromisoformat(data["timestamp"])
        data["success"] = bool(data["success"])
        return UsageLog(**data)
