from __future__ import annotations

import asyncio
import logging
from collections import Counter
from datetime import date, datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol, Sequence
from uuid import UUID

from src.core.security import Caller
from src.core.settings import get_app_settings
from src.db.session import tenant_session_scope
from src.repositories.commissions import CommissionRepository
from src.repositories.requests import RequestRepository
from src.repositories.warranties import WarrantyRepository
from src.schemas.pending_review import (
    CommissionItem,
    ItemType,
    PendingReviewCounts,
    PendingReviewResult,
    Priority,
    RequestItem,
    RequiredAction,
    SlaSnapshot,
    SlaStatus,
    WarrantyItem,
)
from src.services.business_days import Clock, business_days_between, to_business_date
from src.services.sla import sla_due_date, sla_status, warranty_priority, worklist_sort_key

logger = logging.getLogger(__name__)


class PendingReviewSources(Protocol):
    """
    Read queries the worklist is built from.

    Each method returns rows shaped like the corresponding ORM model, ordered
    oldest first and bounded by `limit`.
    """

    async def commissions_awaiting_review(self, *, limit: int) -> Sequence[Any]: ...

    async def requests_awaiting_review(self, *, limit: int) -> Sequence[Any]: ...

    async def open_warranties(self, *, limit: int) -> Sequence[Any]: ...

    async def commissions_returned_to(self, user_id: UUID, *, limit: int) -> Sequence[Any]: ...

    async def requests_returned_to(self, user_id: UUID, *, limit: int) -> Sequence[Any]: ...


class DatabaseSources:
    """PendingReviewSources backed by Postgres; one tenant-scoped session per query."""

    def __init__(self, tenant_id: UUID) -> None:
        self.tenant_id = tenant_id

    async def commissions_awaiting_review(self, *, limit: int):
        async with tenant_session_scope(self.tenant_id) as session:
            return await CommissionRepository(session).list_awaiting_review(limit=limit)

    async def requests_awaiting_review(self, *, limit: int):
        async with tenant_session_scope(self.tenant_id) as session:
            return await RequestRepository(session).list_awaiting_review(limit=limit)

    async def open_warranties(self, *, limit: int):
        async with tenant_session_scope(self.tenant_id) as session:
            return await WarrantyRepository(session).list_open(limit=limit)

    async def commissions_returned_to(self, user_id: UUID, *, limit: int):
        async with tenant_session_scope(self.tenant_id) as session:
            return await CommissionRepository(session).list_returned_to_submitter(user_id, limit=limit)

    async def requests_returned_to(self, user_id: UUID, *, limit: int):
        async with tenant_session_scope(self.tenant_id) as session:
            return await RequestRepository(session).list_returned_to_submitter(user_id, limit=limit)


# PUBLIC_INTERFACE
def build_database_sources(tenant_id: UUID) -> DatabaseSources:
    """Return the Postgres-backed worklist sources for a tenant."""
    return DatabaseSources(tenant_id)


class _ItemContext:
    """Per-query inputs shared by the row mappers."""

    def __init__(self, today: date, clock: Clock) -> None:
        self.today = today
        self.clock = clock

    def sla_fields(self, item_type: ItemType, action: RequiredAction, submitted_at: datetime) -> Dict[str, Any]:
        submitted_on = to_business_date(submitted_at, self.clock.tz)
        due_on = sla_due_date(submitted_on, item_type, action)
        return {
            "submitted_at": submitted_at,
            "requires_action": action,
            "age_days": business_days_between(submitted_on, self.today),
            "sla_due_at": due_on,
            "sla_status": sla_status(due_on, self.today),
        }


def _request_subtitle(request_type: Optional[str]) -> str:
    return (request_type or "").replace("_", " ")


def commission_to_item(row, action: RequiredAction, ctx: _ItemContext) -> CommissionItem:
    # A returned commission restarts the SLA clock at the return date.
    submitted_at = row.created_at if action is RequiredAction.REVIEW else row.updated_at
    return CommissionItem(
        id=row.id,
        title=row.job_name,
        subtitle=row.job_address or "",
        status=row.status,
        priority=Priority.HIGH,
        created_at=row.created_at,
        updated_at=row.updated_at,
        rejection_reason=getattr(row, "rejection_reason", None),
        submitted_by=row.submitted_by,
        **ctx.sla_fields(ItemType.COMMISSION, action, submitted_at),
    )


def request_to_item(row, ctx: _ItemContext) -> RequestItem:
    if row.status == "pending":
        action, priority, submitted_at = RequiredAction.REVIEW, Priority.MEDIUM, row.created_at
    elif row.status == "needs_info":
        action, priority, submitted_at = RequiredAction.INFO_NEEDED, Priority.MEDIUM, row.updated_at
    else:
        action, priority, submitted_at = RequiredAction.REVISION, Priority.HIGH, row.updated_at
    return RequestItem(
        id=row.id,
        title=row.title,
        subtitle=_request_subtitle(getattr(row, "type", None)),
        status=row.status,
        priority=priority,
        created_at=row.created_at,
        updated_at=row.updated_at,
        rejection_reason=getattr(row, "rejection_reason", None),
        submitted_by=row.submitted_by,
        **ctx.sla_fields(ItemType.REQUEST, action, submitted_at),
    )


def warranty_to_item(row, ctx: _ItemContext) -> WarrantyItem:
    return WarrantyItem(
        id=row.id,
        title=row.customer_name,
        subtitle=row.job_address or "",
        status=row.status,
        priority=warranty_priority(row.priority_level),
        created_at=row.created_at,
        updated_at=row.updated_at,
        **ctx.sla_fields(
            ItemType.WARRANTY,
            RequiredAction.REVIEW,
            getattr(row, "date_submitted", None) or row.created_at,
        ),
    )


async def _gather_all(*aws: Awaitable[Any]) -> List[Any]:
    """
    Run the awaitables concurrently and return all results.

    If one fails, the others are cancelled and the first error is raised.
    """
    tasks = [asyncio.ensure_future(aw) for aw in aws]
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


async def reviewer_worklist(
    sources: PendingReviewSources, caller: Caller, ctx: _ItemContext, limit: int
) -> List[Any]:
    """Items other people submitted that an admin or manager must review."""
    commissions, requests, warranties = await _gather_all(
        sources.commissions_awaiting_review(limit=limit),
        sources.requests_awaiting_review(limit=limit),
        sources.open_warranties(limit=limit),
    )
    return [
        *(commission_to_item(c, RequiredAction.REVIEW, ctx) for c in commissions),
        *(request_to_item(r, ctx) for r in requests),
        *(warranty_to_item(w, ctx) for w in warranties),
    ]


async def submitter_worklist(
    sources: PendingReviewSources, caller: Caller, ctx: _ItemContext, limit: int
) -> List[Any]:
    """The caller's own items that were sent back to them."""
    commissions, requests = await _gather_all(
        sources.commissions_returned_to(caller.user_id, limit=limit),
        sources.requests_returned_to(caller.user_id, limit=limit),
    )
    return [
        *(commission_to_item(c, RequiredAction.REVISION, ctx) for c in commissions),
        *(request_to_item(r, ctx) for r in requests),
    ]


WorklistStrategy = Callable[[PendingReviewSources, Caller, _ItemContext, int], Awaitable[List[Any]]]

STRATEGIES: Dict[bool, WorklistStrategy] = {
    True: reviewer_worklist,
    False: submitter_worklist,
}


def count_items(items: Sequence[Any]) -> PendingReviewCounts:
    by_type = Counter(item.type for item in items)
    return PendingReviewCounts(
        commissions=by_type[ItemType.COMMISSION.value],
        requests=by_type[ItemType.REQUEST.value],
        warranties=by_type[ItemType.WARRANTY.value],
        total=len(items),
    )


class PendingReviewService:
    """
    Builds the pending-review worklist for a caller.

    Admins and managers get items awaiting their review; everyone else gets
    their own items returned for revision or more information. Items are
    SLA-annotated against the clock's today and sorted most urgent first.
    """

    def __init__(
        self,
        sources: PendingReviewSources,
        *,
        clock: Optional[Clock] = None,
        source_limit: Optional[int] = None,
    ) -> None:
        settings = get_app_settings()
        self.sources = sources
        self.clock = clock or Clock(settings.BUSINESS_TIMEZONE)
        self.source_limit = source_limit or settings.PENDING_REVIEW_SOURCE_LIMIT

    # PUBLIC_INTERFACE
    async def get_worklist(self, caller: Optional[Caller]) -> PendingReviewResult:
        """
        Return the sorted worklist and per-type counts for the caller.

        Parameters:
            caller: requesting employee; None yields an empty worklist
        Raises:
            Any error raised by a source query. No partial results are returned.
        """
        if caller is None:
            return PendingReviewResult()

        ctx = _ItemContext(self.clock.today(), self.clock)
        strategy = STRATEGIES[caller.is_reviewer]
        items = await strategy(self.sources, caller, ctx, self.source_limit)
        items.sort(key=worklist_sort_key)
        logger.debug("Built worklist with %d items (reviewer=%s)", len(items), caller.is_reviewer)
        return PendingReviewResult(items=items, counts=count_items(items))


# PUBLIC_INTERFACE
def filter_items(
    items: Sequence[Any],
    *,
    search: Optional[str] = None,
    item_type: Optional[ItemType] = None,
    sla: Optional[SlaStatus] = None,
) -> List[Any]:
    """Narrow worklist items by title/subtitle text, type and SLA status; order is kept."""
    needle = (search or "").strip().lower()
    result = []
    for item in items:
        if needle and needle not in item.title.lower() and needle not in item.subtitle.lower():
            continue
        if item_type is not None and item.type != ItemType(item_type).value:
            continue
        if sla is not None and item.sla_status != SlaStatus(sla):
            continue
        result.append(item)
    return result


# PUBLIC_INTERFACE
def sla_snapshot(result: PendingReviewResult) -> SlaSnapshot:
    """Summarize a worklist for the dashboard widget."""
    by_status = Counter(item.sla_status for item in result.items)
    return SlaSnapshot(
        total=result.counts.total,
        overdue=by_status[SlaStatus.OVERDUE],
        due_today=by_status[SlaStatus.DUE_TODAY],
        due_tomorrow=by_status[SlaStatus.DUE_TOMORROW],
        on_track=by_status[SlaStatus.ON_TRACK],
        commissions=result.counts.commissions,
        requests=result.counts.requests,
        warranties=result.counts.warranties,
    )
