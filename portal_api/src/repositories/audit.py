from __future__ import annotations

from typing import Any, List, Optional
from uuid import UUID

from sqlalchemy import select

from src.db.models.audit import AuditLogEntry
from .base import BaseRepository


class AuditLogRepository(BaseRepository):
    """Append and read audit log entries."""

    async def record(
        self,
        *,
        actor_user_id: Optional[UUID],
        action: str,
        entity_type: str,
        entity_id: UUID,
        details: Optional[dict[str, Any]] = None,
    ) -> AuditLogEntry:
        """Stage an entry in the current transaction; the caller commits."""
        entry = AuditLogEntry(
            actor_user_id=actor_user_id,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            details=details or {},
        )
        await self.add(entry)
        return entry

    async def list_entries(
        self,
        *,
        entity_type: Optional[str],
        entity_id: Optional[UUID],
        actor_user_id: Optional[UUID],
        limit: int,
        offset: int,
    ) -> List[AuditLogEntry]:
        stmt = select(AuditLogEntry)
        if entity_type:
            stmt = stmt.where(AuditLogEntry.entity_type == entity_type)
        if entity_id:
            stmt = stmt.where(AuditLogEntry.entity_id == entity_id)
        if actor_user_id:
            stmt = stmt.where(AuditLogEntry.actor_user_id == actor_user_id)
        stmt = stmt.order_by(AuditLogEntry.created_at.desc()).offset(offset).limit(limit)
        return list(await self.scalars(stmt))
