from __future__ import annotations

from typing import List, Optional

from sqlalchemy import select

from src.db.models.warranties import OPEN_STATUSES, WarrantyRequest
from .base import BaseRepository


class WarrantyRepository(BaseRepository):
    """Repository for warranty requests."""

    async def list_warranties(
        self,
        *,
        status: Optional[str],
        priority_level: Optional[str],
        customer: Optional[str],
        limit: int,
        offset: int,
    ) -> List[WarrantyRequest]:
        stmt = select(WarrantyRequest)
        if status:
            stmt = stmt.where(WarrantyRequest.status == status)
        if priority_level:
            stmt = stmt.where(WarrantyRequest.priority_level == priority_level)
        if customer:
            stmt = stmt.where(WarrantyRequest.customer_name.ilike(f"%{customer}%"))
        stmt = stmt.order_by(WarrantyRequest.created_at.desc()).offset(offset).limit(limit)
        return list(await self.scalars(stmt))

    async def list_open(self, *, limit: int) -> List[WarrantyRequest]:
        """Open warranty claims, oldest first."""
        stmt = (
            select(WarrantyRequest)
            .where(WarrantyRequest.status.in_(OPEN_STATUSES))
            .order_by(WarrantyRequest.created_at.asc())
            .limit(limit)
        )
        return list(await self.scalars(stmt))
