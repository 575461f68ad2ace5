from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from src.core.deps import get_caller, get_pending_review_service
from src.core.security import Caller
from src.schemas.pending_review import ItemType, PendingReviewResult, SlaSnapshot, SlaStatus
from src.services.pending_review import PendingReviewService, filter_items, sla_snapshot

router = APIRouter(prefix="/pending-review", tags=["Pending Review"])


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=PendingReviewResult,
    summary="Pending review worklist",
    description=(
        "Items needing the caller's attention, most urgent first. Admins and managers see "
        "items awaiting review; other employees see their own items returned to them. "
        "Counts always describe the unfiltered worklist."
    ),
)
async def get_pending_review(
    search: Optional[str] = Query(None, description="Case-insensitive match on title or subtitle"),
    type: Optional[ItemType] = Query(None, description="Only items of this type"),
    sla: Optional[SlaStatus] = Query(None, description="Only items with this SLA status"),
    caller: Caller = Depends(get_caller),
    service: PendingReviewService = Depends(get_pending_review_service),
) -> PendingReviewResult:
    result = await service.get_worklist(caller)
    if search is None and type is None and sla is None:
        return result
    items = filter_items(result.items, search=search, item_type=type, sla=sla)
    return PendingReviewResult(items=items, counts=result.counts)


# PUBLIC_INTERFACE
@router.get(
    "/snapshot",
    response_model=SlaSnapshot,
    summary="SLA snapshot",
    description="Totals by SLA status and item type for the dashboard widget.",
)
async def get_pending_review_snapshot(
    caller: Caller = Depends(get_caller),
    service: PendingReviewService = Depends(get_pending_review_service),
) -> SlaSnapshot:
    return sla_snapshot(await service.get_worklist(caller))
