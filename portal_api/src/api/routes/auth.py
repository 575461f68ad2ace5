from __future__ import annotations

import logging
from typing import Any, Dict
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.deps import get_current_active_user, get_tenant_id, get_tenant_session
from src.core.security import (
    create_access_token,
    create_refresh_token,
    decode_token,
    get_password_hash,
    verify_password,
)
from src.repositories.security import SecurityRepository
from src.schemas.auth import RefreshRequest, RegisterRequest, TokenPair, UserRead
from src.schemas.common import MessageResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"])


async def user_to_read(repo: SecurityRepository, user) -> UserRead:
    roles = await repo.list_role_names_for_user(user.id)
    return UserRead(
        id=user.id,
        email=user.email,
        full_name=user.full_name,
        is_active=user.is_active,
        created_at=user.created_at,
        updated_at=user.updated_at,
        roles=roles,
    )


async def _issue_tokens(repo: SecurityRepository, user, tenant_id: UUID) -> TokenPair:
    roles = await repo.list_role_names_for_user(user.id)
    access = create_access_token(subject=str(user.id), tenant_id=str(tenant_id), roles=roles)
    refresh = create_refresh_token(subject=str(user.id), tenant_id=str(tenant_id))
    return TokenPair(access_token=access, refresh_token=refresh)


# PUBLIC_INTERFACE
@router.post(
    "/register",
    response_model=UserRead,
    summary="Register employee",
    description=(
        "Create an employee account in the current tenant with the 'employee' role. "
        "The first account in a tenant is made 'admin' instead."
    ),
)
async def register_user(
    payload: RegisterRequest,
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
    role_name = "admin" if await repo.count_users() == 1 else "employee"
    role = await repo.ensure_role(role_name)
    await repo.assign_role_to_user(user.id, role.id)
    logger.info("Registered user %s with role %s", user.id, role_name)
    return await user_to_read(repo, user)


# PUBLIC_INTERFACE
@router.post(
    "/login",
    response_model=TokenPair,
    summary="Login",
    description="Authenticate using OAuth2 password form and receive access/refresh tokens.",
)
async def login_for_tokens(
    form_data: OAuth2PasswordRequestForm = Depends(),
    tenant_id: UUID = Depends(get_tenant_id),
    session: AsyncSession = Depends(get_tenant_session),
) -> TokenPair:
    repo = SecurityRepository(session)
    user = await repo.get_user_by_email(form_data.username)
    if not user or not verify_password(form_data.password, user.hashed_password):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User is inactive")
    return await _issue_tokens(repo, user, tenant_id)


# PUBLIC_INTERFACE
@router.post(
    "/refresh",
    response_model=TokenPair,
    summary="Refresh access token",
    description="Issue a new token pair from a valid refresh token. Roles are re-read from the database.",
)
async def refresh_token(
    payload: RefreshRequest,
    tenant_id: UUID = Depends(get_tenant_id),
    session: AsyncSession = Depends(get_tenant_session),
) -> TokenPair:
    try:
        claims: Dict[str, Any] = decode_token(payload.refresh_token)
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid refresh token")

    if claims.get("type") != "refresh":
        raise HTTPException(status_code=401, detail="Invalid token type")
    if str(tenant_id) != str(claims.get("tenant_id")):
        raise HTTPException(status_code=403, detail="Tenant mismatch")

    repo = SecurityRepository(session)
    sub = claims.get("sub")
    user = await repo.get_user_by_id(UUID(sub)) if sub else None
    if not user or not user.is_active:
        raise HTTPException(status_code=401, detail="User not found or inactive")
    return await _issue_tokens(repo, user, tenant_id)


# PUBLIC_INTERFACE
@router.post(
    "/logout",
    response_model=MessageResponse,
    summary="Logout",
    description="Stateless logout. Clients should discard tokens.",
)
async def logout() -> MessageResponse:
    return MessageResponse(message="Logged out")


# PUBLIC_INTERFACE
@router.get(
    "/me",
    response_model=UserRead,
    summary="Read current user",
    description="Return the current authenticated employee and their roles.",
)
async def read_current_user(
    user=Depends(get_current_active_user),
    session: AsyncSession = Depends(get_tenant_session),
) -> UserRead:
    return await user_to_read(SecurityRepository(session), user)
