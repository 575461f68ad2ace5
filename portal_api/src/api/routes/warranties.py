from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.deps import get_tenant_session, require_reviewer
from src.repositories.warranties import WarrantyRepository
from src.schemas.warranties import WarrantyRead

router = APIRouter(prefix="/warranties", tags=["Warranties"])


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=List[WarrantyRead],
    summary="List warranty claims",
    dependencies=[Depends(require_reviewer)],
)
async def list_warranties(
    status: Optional[str] = Query(None),
    priority_level: Optional[str] = Query(None),
    customer: Optional[str] = Query(None, description="Substring of the customer name"),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    session: AsyncSession = Depends(get_tenant_session),
):
    return await WarrantyRepository(session).list_warranties(
        status=status,
        priority_level=priority_level,
        customer=customer,
        limit=limit,
        offset=offset,
    )
