from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.deps import get_tenant_session, require_roles
from src.repositories.audit import AuditLogRepository
from src.schemas.audit import AuditLogRead

router = APIRouter(prefix="/admin/audit-log", tags=["Audit"])


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=List[AuditLogRead],
    summary="List audit log",
    description="Newest first. Admin only.",
    dependencies=[Depends(require_roles("admin"))],
)
async def list_audit_log(
    entity_type: Optional[str] = Query(None),
    entity_id: Optional[UUID] = Query(None),
    actor_user_id: Optional[UUID] = Query(None),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    session: AsyncSession = Depends(get_tenant_session),
):
    return await AuditLogRepository(session).list_entries(
        entity_type=entity_type,
        entity_id=entity_id,
        actor_user_id=actor_user_id,
        limit=limit,
        offset=offset,
    )
