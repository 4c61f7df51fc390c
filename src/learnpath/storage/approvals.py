"""SQLite stores for companies (approval policy) and path approval requests."""

from __future__ import annotations

from typing import Any

from learnpath.models.approval import Company, PathApproval
from learnpath.models.job import utcnow
from learnpath.storage.base import SQLiteStore, dumps, loads


class SQLiteCompanyStore(SQLiteStore):
    schema = """
        CREATE TABLE IF NOT EXISTS companies (
            company_id TEXT PRIMARY KEY,
            company_name TEXT NOT NULL,
            approval_policy TEXT NOT NULL,
            decision_maker TEXT
        );
    """

    async def get(self, company_id: str) -> Company | None:
        return await self._run(self._get, company_id)

    async def upsert(self, company: Company) -> Company:
        await self._run(self._upsert, company)
        return company

    def _get(self, company_id: str) -> Company | None:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM companies WHERE company_id = ?", (company_id,)).fetchone()
        if row is None:
            return None
        data = dict(row)
        data["decision_maker"] = loads(data["decision_maker"])
        return Company(**data)

    def _upsert(self, company: Company) -> None:
        decision_maker = company.decision_maker.model_dump() if company.decision_maker else None
        with self._connect() as conn:
            conn.execute(
                """INSERT OR REPLACE INTO companies
                   (company_id, company_name, approval_policy, decision_maker)
                   VALUES (?, ?, ?, ?)""",
                (company.company_id, company.company_name, company.approval_policy, dumps(decision_maker)),
            )


class SQLiteApprovalStore(SQLiteStore):
    schema = """
        CREATE TABLE IF NOT EXISTS path_approvals (
            id TEXT PRIMARY KEY,
            learning_path_id TEXT NOT NULL,
            company_id TEXT NOT NULL,
            decision_maker_id TEXT NOT NULL,
            status TEXT NOT NULL,
            feedback TEXT,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        );
        CREATE INDEX IF NOT EXISTS idx_approvals_path ON path_approvals (learning_path_id);
    """

    async def get_by_learning_path_id(self, learning_path_id: str) -> PathApproval | None:
        return await self._run(self._get_by_path, learning_path_id)

    async def create(self, approval: PathApproval) -> PathApproval:
        await self._run(self._insert, approval)
        return approval

    async def update(self, approval_id: str, fields: dict[str, Any]) -> PathApproval:
        unknown = set(fields) - {"status", "feedback"}
        if unknown:
            raise ValueError(f"Cannot update approval fields: {sorted(unknown)}")
        return await self._run(self._update, approval_id, dict(fields))

    def _get_by_path(self, learning_path_id: str) -> PathApproval | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM path_approvals WHERE learning_path_id = ? ORDER BY created_at DESC LIMIT 1",
                (learning_path_id,),
            ).fetchone()
        return PathApproval(**dict(row)) if row else None

    def _insert(self, approval: PathApproval) -> None:
        with self._connect() as conn:
            conn.execute(
                """INSERT INTO path_approvals
                   (id, learning_path_id, company_id, decision_maker_id, status,
                    feedback, created_at, updated_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    approval.id,
                    approval.learning_path_id,
                    approval.company_id,
                    approval.decision_maker_id,
                    approval.status,
                    approval.feedback,
                    approval.created_at,
                    approval.updated_at,
                ),
            )

    def _update(self, approval_id: str, fields: dict[str, Any]) -> PathApproval:
        fields["updated_at"] = utcnow()
        assignments = ", ".join(f"{name} = ?" for name in fields)
        with self._connect() as conn:
            cursor = conn.execute(
                f"UPDATE path_approvals SET {assignments} WHERE id = ?",
                (*fields.values(), approval_id),
            )
            if cursor.rowcount == 0:
                raise LookupError(f"Approval not found: {approval_id}")
            row = conn.execute("SELECT * FROM path_approvals WHERE id = ?", (approval_id,)).fetchone()
        return PathApproval(**dict(row))
