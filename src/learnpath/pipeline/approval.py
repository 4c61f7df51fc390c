"""Company approval policy lookup and approval-request creation."""

from __future__ import annotations

import logging
from typing import Any

from learnpath.models.approval import ApprovalPolicyDecision, DecisionMaker, PathApproval
from learnpath.storage.interfaces import ApprovalStore, CompanyStore, Notifier

logger = logging.getLogger(__name__)


class ApprovalPolicyChecker:
    """Decides whether a company's paths need a decision maker's sign-off."""

    def __init__(self, company_store: CompanyStore):
        self.company_store = company_store

    async def check(self, company_id: str) -> ApprovalPolicyDecision:
        company = await self.company_store.get(company_id)
        if company is None:
            logger.info("Company %s not registered; treating policy as auto", company_id)
            return ApprovalPolicyDecision(requires_approval=False)
        return ApprovalPolicyDecision(requires_approval=company.requires_approval, company=company)


class LoggingNotifier:
    """Notifier that only records the request in the log."""

    async def send_approval_request(
        self,
        approval: PathApproval,
        learning_path: dict[str, Any],
        decision_maker: DecisionMaker,
    ) -> None:
        logger.info(
            "Approval %s requested from %s for path %s (%d modules)",
            approval.id,
            decision_maker.email or decision_maker.employee_id,
            approval.learning_path_id,
            len(learning_path.get("learningModules", [])),
        )


class ApprovalRequester:
    """Creates or resets the approval record for a path and notifies the decision maker."""

    def __init__(self, approval_store: ApprovalStore, notifier: Notifier | None = None):
        self.approval_store = approval_store
        self.notifier = notifier or LoggingNotifier()

    async def request(
        self,
        *,
        learning_path_id: str,
        company_id: str,
        decision_maker: DecisionMaker,
        learning_path: dict[str, Any],
    ) -> PathApproval:
        existing = await self.approval_store.get_by_learning_path_id(learning_path_id)
        if existing is not None:
            # A regenerated path goes back to the decision maker
            approval = await self.approval_store.update(existing.id, {"status": "pending", "feedback": None})
        else:
            approval = await self.approval_store.create(
                PathApproval(
                    learning_path_id=learning_path_id,
                    company_id=company_id,
                    decision_maker_id=decision_maker.employee_id,
                )
            )

        try:
            await self.notifier.send_approval_request(approval, learning_path, decision_maker)
        except Exception:
            logger.warning("Failed to notify decision maker for approval %s", approval.id, exc_info=True)
        return approval
