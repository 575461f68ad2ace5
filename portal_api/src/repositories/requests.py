from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from sqlalchemy import select

from src.db.models.requests import NEEDS_INFO, PENDING, REJECTED, EmployeeRequest
from .base import BaseRepository


class RequestRepository(BaseRepository):
    """Repository for generic employee requests."""

    async def list_requests(
        self,
        *,
        status: Optional[str],
        type: Optional[str],
        submitted_by: Optional[UUID],
        limit: int,
        offset: int,
    ) -> List[EmployeeRequest]:
        stmt = select(EmployeeRequest)
        if status:
            stmt = stmt.where(EmployeeRequest.status == status)
        if type:
            stmt = stmt.where(EmployeeRequest.type == type)
        if submitted_by:
            stmt = stmt.where(EmployeeRequest.submitted_by == submitted_by)
        stmt = stmt.order_by(EmployeeRequest.created_at.desc()).offset(offset).limit(limit)
        return list(await self.scalars(stmt))

    async def get_request(self, request_id: UUID, *, for_update: bool = False) -> Optional[EmployeeRequest]:
        return await self.get_by_id(EmployeeRequest, request_id, for_update=for_update)

    async def list_awaiting_review(self, *, limit: int) -> List[EmployeeRequest]:
        stmt = (
            select(EmployeeRequest)
            .where(EmployeeRequest.status == PENDING)
            .order_by(EmployeeRequest.created_at.asc())
            .limit(limit)
        )
        return list(await self.scalars(stmt))

    async def list_returned_to_submitter(self, submitted_by: UUID, *, limit: int) -> List[EmployeeRequest]:
        """Requests that need more info from, or were rejected back to, the submitter."""
        stmt = (
            select(EmployeeRequest)
            .where(
                EmployeeRequest.submitted_by == submitted_by,
                EmployeeRequest.status.in_([NEEDS_INFO, REJECTED]),
            )
            .order_by(EmployeeRequest.updated_at.asc())
            .limit(limit)
        )
        return list(await self.scalars(stmt))
