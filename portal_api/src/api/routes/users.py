from __future__ import annotations

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.routes.auth import user_to_read
from src.core.deps import get_tenant_session, require_roles
from src.core.security import get_password_hash
from src.repositories.security import SecurityRepository
from src.schemas.auth import UserActiveUpdate, UserCreate, UserRead

router = APIRouter(
    prefix="/admin/users",
    tags=["Users"],
    dependencies=[Depends(require_roles("admin"))],
)


async def _get_user_or_404(repo: SecurityRepository, user_id: UUID):
    user = await repo.get_user_by_id(user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return user


# PUBLIC_INTERFACE
@router.get("", response_model=List[UserRead], summary="List employees")
async def list_users(
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    session: AsyncSession = Depends(get_tenant_session),
) -> List[UserRead]:
    repo = SecurityRepository(session)
    return [await user_to_read(repo, u) for u in await repo.list_users(limit=limit, offset=offset)]


# PUBLIC_INTERFACE
@router.post("", response_model=UserRead, summary="Create employee")
async def create_user(
    payload: UserCreate,
    session: AsyncSession = Depends(get_tenant_session),
) -> UserRead:
    repo = SecurityRepository(session)
    if await repo.get_user_by_email(payload.email):
        raise HTTPException(status_code=400, detail="User with this email already exists")

    user = await repo.create_user(
        email=payload.email,
        full_name=payload.full_name,
        hashed_password=get_password_hash(payload.password),
    )
    for name in payload.roles:
        role = await repo.ensure_role(name)
        await repo.assign_role_to_user(user.id, role.id)
    return await user_to_read(repo, user)


# PUBLIC_INTERFACE
@router.get("/{user_id}", response_model=UserRead, summary="Get employee")
async def get_user(
    user_id: UUID = Path(...),
    session: AsyncSession = Depends(get_tenant_session),
) -> UserRead:
    repo = SecurityRepository(session)
    return await user_to_read(repo, await _get_user_or_404(repo, user_id))


# PUBLIC_INTERFACE
@router.patch("/{user_id}/active", response_model=UserRead, summary="Activate or deactivate employee")
async def set_user_active(
    payload: UserActiveUpdate,
    user_id: UUID = Path(...),
    session: AsyncSession = Depends(get_tenant_session),
) -> UserRead:
    repo = SecurityRepository(session)
    user = await repo.set_user_active(user_id, payload.is_active)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return await user_to_read(repo, user)


# PUBLIC_INTERFACE
@router.post("/{user_id}/roles/{role_name}", response_model=UserRead, summary="Assign role")
async def assign_role(
    user_id: UUID,
    role_name: str,
    session: AsyncSession = Depends(get_tenant_session),
) -> UserRead:
    repo = SecurityRepository(session)
    user = await _get_user_or_404(repo, user_id)
    role = await repo.ensure_role(role_name)
    await repo.assign_role_to_user(user.id, role.id)
    return await user_to_read(repo, user)


# PUBLIC_INTERFACE
@router.delete("/{user_id}/roles/{role_name}", response_model=UserRead, summary="Remove role")
async def remove_role(
    user_id: UUID,
    role_name: str,
    session: AsyncSession = Depends(get_tenant_session),
) -> UserRead:
    repo = SecurityRepository(session)
    user = await _get_user_or_404(repo, user_id)
    role = await repo.get_role_by_name(role_name)
    if role is not None:
        await repo.remove_role_from_user(user.id, role.id)
    return await user_to_read(repo, user)
