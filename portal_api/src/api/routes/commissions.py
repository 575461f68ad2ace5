from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.deps import get_caller, get_tenant_session, require_reviewer
from src.core.security import Caller
from src.repositories.commissions import CommissionRepository
from src.schemas.commissions import (
    CommissionApprove,
    CommissionRead,
    CommissionResubmit,
    CommissionRevisionRequest,
)
from src.services.review_actions import ReviewActionService

router = APIRouter(prefix="/commissions", tags=["Commissions"])


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=List[CommissionRead],
    summary="List commissions",
    description="Reviewers see every submission in the tenant; other employees see only their own.",
)
async def list_commissions(
    status: Optional[str] = Query(None),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    caller: Caller = Depends(get_caller),
    session: AsyncSession = Depends(get_tenant_session),
):
    repo = CommissionRepository(session)
    return await repo.list_commissions(
        status=status,
        submitted_by=None if caller.is_reviewer else caller.user_id,
        limit=limit,
        offset=offset,
    )


# PUBLIC_INTERFACE
@router.get("/{commission_id}", response_model=CommissionRead, summary="Get commission")
async def get_commission(
    commission_id: UUID = Path(...),
    caller: Caller = Depends(get_caller),
    session: AsyncSession = Depends(get_tenant_session),
):
    commission = await CommissionRepository(session).get_commission(commission_id)
    if commission is None or not (caller.is_reviewer or commission.submitted_by == caller.user_id):
        raise HTTPException(status_code=404, detail="Commission not found")
    return commission


# PUBLIC_INTERFACE
@router.post(
    "/{commission_id}/approve",
    response_model=CommissionRead,
    summary="Approve commission",
    description="Reviewer approval of a commission in pending_review.",
)
async def approve_commission(
    payload: CommissionApprove,
    commission_id: UUID = Path(...),
    caller: Caller = Depends(require_reviewer),
    session: AsyncSession = Depends(get_tenant_session),
):
    return await ReviewActionService(session).approve_commission(caller, commission_id, payload.notes)


# PUBLIC_INTERFACE
@router.post(
    "/{commission_id}/request-revision",
    response_model=CommissionRead,
    summary="Request revision",
    description="Return a pending commission to its submitter with a reason.",
)
async def request_revision(
    payload: CommissionRevisionRequest,
    commission_id: UUID = Path(...),
    caller: Caller = Depends(require_reviewer),
    session: AsyncSession = Depends(get_tenant_session),
):
    return await ReviewActionService(session).request_commission_revision(caller, commission_id, payload.reason)


# PUBLIC_INTERFACE
@router.post(
    "/{commission_id}/resubmit",
    response_model=CommissionRead,
    summary="Resubmit commission",
    description="Submitter sends a commission in revision_required back for review.",
)
async def resubmit_commission(
    payload: CommissionResubmit,
    commission_id: UUID = Path(...),
    caller: Caller = Depends(get_caller),
    session: AsyncSession = Depends(get_tenant_session),
):
    return await ReviewActionService(session).resubmit_commission(caller, commission_id, payload.notes)
