from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.deps import get_caller, get_tenant_session, require_reviewer
from src.core.security import Caller
from src.repositories.requests import RequestRepository
from src.schemas.requests import RequestDecision, RequestRead, RequestResponse
from src.services.review_actions import ReviewActionService

router = APIRouter(prefix="/requests", tags=["Requests"])


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=List[RequestRead],
    summary="List requests",
    description="Reviewers see every request in the tenant; other employees see only their own.",
)
async def list_requests(
    status: Optional[str] = Query(None),
    type: Optional[str] = Query(None, description="snake_case request type"),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    caller: Caller = Depends(get_caller),
    session: AsyncSession = Depends(get_tenant_session),
):
    return await RequestRepository(session).list_requests(
        status=status,
        type=type,
        submitted_by=None if caller.is_reviewer else caller.user_id,
        limit=limit,
        offset=offset,
    )


# PUBLIC_INTERFACE
@router.get("/{request_id}", response_model=RequestRead, summary="Get request")
async def get_request(
    request_id: UUID = Path(...),
    caller: Caller = Depends(get_caller),
    session: AsyncSession = Depends(get_tenant_session),
):
    req = await RequestRepository(session).get_request(request_id)
    if req is None or not (caller.is_reviewer or req.submitted_by == caller.user_id):
        raise HTTPException(status_code=404, detail="Request not found")
    return req


# PUBLIC_INTERFACE
@router.post(
    "/{request_id}/decision",
    response_model=RequestRead,
    summary="Decide request",
    description="Approve, reject or ask for more information on a pending request.",
)
async def decide_request(
    payload: RequestDecision,
    request_id: UUID = Path(...),
    caller: Caller = Depends(require_reviewer),
    session: AsyncSession = Depends(get_tenant_session),
):
    return await ReviewActionService(session).decide_request(
        caller, request_id, payload.decision, payload.reason
    )


# PUBLIC_INTERFACE
@router.post(
    "/{request_id}/respond",
    response_model=RequestRead,
    summary="Respond to request",
    description="Submitter answers a needs_info request or revises a rejected one; it returns to pending.",
)
async def respond_to_request(
    payload: RequestResponse,
    request_id: UUID = Path(...),
    caller: Caller = Depends(get_caller),
    session: AsyncSession = Depends(get_tenant_session),
):
    return await ReviewActionService(session).respond_to_request(caller, request_id, payload.note)
