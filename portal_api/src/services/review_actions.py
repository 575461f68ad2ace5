from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Literal, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from src.core.security import Caller
from src.db.models import commissions as commission_status
from src.db.models import requests as request_status
from src.db.models.commissions import CommissionSubmission
from src.db.models.requests import EmployeeRequest
from src.repositories.audit import AuditLogRepository
from src.repositories.commissions import CommissionRepository
from src.repositories.requests import RequestRepository
from src.services.base import BaseService
from src.services.pending_review_poller import PollerRegistry, poller_registry

logger = logging.getLogger(__name__)

RequestDecision = Literal["approve", "reject", "needs_info"]

_DECISION_STATUS: Dict[str, str] = {
    "approve": request_status.APPROVED,
    "reject": request_status.REJECTED,
    "needs_info": request_status.NEEDS_INFO,
}


class ReviewActionError(Exception):
    """Base error for review actions that cannot be applied."""


class ItemNotFoundError(ReviewActionError):
    pass


class InvalidTransitionError(ReviewActionError):
    pass


class ReviewPermissionError(ReviewActionError):
    pass


class MissingReasonError(ReviewActionError):
    pass


def _require_reason(reason: Optional[str], what: str) -> str:
    cleaned = (reason or "").strip()
    if not cleaned:
        raise MissingReasonError(f"A reason is required to {what}")
    return cleaned


class ReviewActionService(BaseService):
    """
    Reviewer and submitter actions that move items on or off the worklist.

    Each action writes the entity and an audit entry in one transaction, then
    invalidates the tenant's live worklists.
    """

    def __init__(self, session: AsyncSession, registry: Optional[PollerRegistry] = None) -> None:
        super().__init__(session)
        self.commissions = CommissionRepository(session)
        self.requests = RequestRepository(session)
        self.audit = AuditLogRepository(session)
        self.registry = registry or poller_registry

    # Commissions

    # PUBLIC_INTERFACE
    async def approve_commission(
        self, caller: Caller, commission_id: UUID, notes: Optional[str] = None
    ) -> CommissionSubmission:
        """Record manager approval; the submission moves on to the accounting stage."""
        self._require_reviewer(caller)
        commission = await self._load_commission(commission_id)
        self._require_status(commission.status, commission_status.PENDING_REVIEW, "approve")

        previous = self._commission_state(commission)
        commission.approval_stage = commission_status.STAGE_MANAGER_APPROVED
        commission.manager_approved_at = datetime.now(tz=timezone.utc)
        commission.manager_approved_by = caller.user_id
        if notes:
            commission.reviewer_notes = notes.strip()
        await self._finish(caller, "commission.approved", "commission", commission, previous, notes)
        return commission

    # PUBLIC_INTERFACE
    async def request_commission_revision(
        self, caller: Caller, commission_id: UUID, reason: str
    ) -> CommissionSubmission:
        """Send a commission back to its submitter with a reason."""
        self._require_reviewer(caller)
        reason = _require_reason(reason, "request a revision")
        commission = await self._load_commission(commission_id)
        self._require_status(commission.status, commission_status.PENDING_REVIEW, "return for revision")

        previous = self._commission_state(commission)
        commission.status = commission_status.REVISION_REQUIRED
        commission.rejection_reason = reason
        commission.approval_stage = (
            commission_status.STAGE_PENDING_ADMIN
            if commission.is_manager_submission
            else commission_status.STAGE_PENDING_MANAGER
        )
        commission.revision_count = (commission.revision_count or 0) + 1
        await self._finish(caller, "commission.revision_requested", "commission", commission, previous, reason)
        return commission

    # PUBLIC_INTERFACE
    async def resubmit_commission(
        self, caller: Caller, commission_id: UUID, notes: Optional[str] = None
    ) -> CommissionSubmission:
        """Submitter puts a revised commission back in the review queue."""
        commission = await self._load_commission(commission_id)
        self._require_submitter(caller, commission.submitted_by)
        self._require_status(commission.status, commission_status.REVISION_REQUIRED, "resubmit")

        previous = self._commission_state(commission)
        commission.status = commission_status.PENDING_REVIEW
        await self._finish(caller, "commission.resubmitted", "commission", commission, previous, notes)
        return commission

    # Requests

    # PUBLIC_INTERFACE
    async def decide_request(
        self,
        caller: Caller,
        request_id: UUID,
        decision: RequestDecision,
        reason: Optional[str] = None,
    ) -> EmployeeRequest:
        """Approve a pending request, reject it, or ask the submitter for more information."""
        self._require_reviewer(caller)
        if decision not in _DECISION_STATUS:
            raise MissingReasonError(f"Unknown decision: {decision}")
        if decision != "approve":
            reason = _require_reason(reason, "reject or ask for information")
        req = await self._load_request(request_id)
        self._require_status(req.status, request_status.PENDING, decision.replace("_", " "))

        previous = {"status": req.status}
        req.status = _DECISION_STATUS[decision]
        if decision == "reject":
            req.rejection_reason = reason
        elif decision == "needs_info":
            req.manager_notes = reason
        await self._finish(caller, f"request.{decision}", "request", req, previous, reason)
        return req

    # PUBLIC_INTERFACE
    async def respond_to_request(
        self, caller: Caller, request_id: UUID, note: Optional[str] = None
    ) -> EmployeeRequest:
        """Submitter answers an info request or revises a rejected request."""
        req = await self._load_request(request_id)
        self._require_submitter(caller, req.submitted_by)
        if req.status not in (request_status.NEEDS_INFO, request_status.REJECTED):
            raise InvalidTransitionError(f"Cannot respond to a request in status '{req.status}'")

        previous = {"status": req.status}
        req.status = request_status.PENDING
        if note:
            req.description = f"{req.description}\n\n{note.strip()}" if req.description else note.strip()
        await self._finish(caller, "request.resubmitted", "request", req, previous, note)
        return req

    # Helpers

    async def _load_commission(self, commission_id: UUID) -> CommissionSubmission:
        commission = await self.commissions.get_commission(commission_id, for_update=True)
        if commission is None:
            raise ItemNotFoundError("Commission not found")
        return commission

    async def _load_request(self, request_id: UUID) -> EmployeeRequest:
        req = await self.requests.get_request(request_id, for_update=True)
        if req is None:
            raise ItemNotFoundError("Request not found")
        return req

    @staticmethod
    def _require_reviewer(caller: Caller) -> None:
        if not caller.is_reviewer:
            raise ReviewPermissionError("Reviewer role required")

    @staticmethod
    def _require_submitter(caller: Caller, submitted_by: Optional[UUID]) -> None:
        if submitted_by != caller.user_id:
            raise ReviewPermissionError("Only the submitter can do this")

    @staticmethod
    def _require_status(current: str, expected: str, verb: str) -> None:
        if current != expected:
            raise InvalidTransitionError(f"Cannot {verb} an item in status '{current}'")

    @staticmethod
    def _commission_state(commission: CommissionSubmission) -> Dict[str, Any]:
        return {"status": commission.status, "approval_stage": commission.approval_stage}

    async def _finish(
        self,
        caller: Caller,
        action: str,
        entity_type: str,
        entity: Any,
        previous: Dict[str, Any],
        notes: Optional[str],
    ) -> None:
        new_state = {"status": entity.status}
        if "approval_stage" in previous:
            new_state["approval_stage"] = entity.approval_stage
        await self.audit.record(
            actor_user_id=caller.user_id,
            action=action,
            entity_type=entity_type,
            entity_id=entity.id,
            details={"previous": previous, "new": new_state, "notes": notes},
        )
        # updated_at is set server-side; reload it while the tenant GUC is still bound
        await self.session.flush()
        await self.session.refresh(entity)
        await self.commit()
        logger.info("%s %s by %s", action, entity.id, caller.user_id)
        self.registry.invalidate_tenant(caller.tenant_id)
