from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from sqlalchemy import select

from src.db.models.commissions import PENDING_REVIEW, REVISION_REQUIRED, CommissionSubmission
from .base import BaseRepository


class CommissionRepository(BaseRepository):
    """Repository for commission submissions."""

    async def list_commissions(
        self,
        *,
        status: Optional[str],
        submitted_by: Optional[UUID],
        limit: int,
        offset: int,
    ) -> List[CommissionSubmission]:
        stmt = select(CommissionSubmission)
        if status:
            stmt = stmt.where(CommissionSubmission.status == status)
        if submitted_by:
            stmt = stmt.where(CommissionSubmission.submitted_by == submitted_by)
        stmt = stmt.order_by(CommissionSubmission.created_at.desc()).offset(offset).limit(limit)
        res = await self.scalars(stmt)
        return list(res)

    async def get_commission(self, commission_id: UUID, *, for_update: bool = False) -> Optional[CommissionSubmission]:
        return await self.get_by_id(CommissionSubmission, commission_id, for_update=for_update)

    async def list_awaiting_review(self, *, limit: int) -> List[CommissionSubmission]:
        """Submissions waiting on a reviewer, oldest first."""
        stmt = (
            select(CommissionSubmission)
            .where(CommissionSubmission.status == PENDING_REVIEW)
            .order_by(CommissionSubmission.created_at.asc())
            .limit(limit)
        )
        return list(await self.scalars(stmt))

    async def list_returned_to_submitter(self, submitted_by: UUID, *, limit: int) -> List[CommissionSubmission]:
        """The submitter's commissions sent back for revision, longest-waiting first."""
        stmt = (
            select(CommissionSubmission)
            .where(
                CommissionSubmission.submitted_by == submitted_by,
                CommissionSubmission.status == REVISION_REQUIRED,
            )
            .order_by(CommissionSubmission.updated_at.asc())
            .limit(limit)
        )
        return list(await self.scalars(stmt))
