from __future__ import annotations

import logging
from typing import AsyncGenerator
from uuid import UUID

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.logging import user_id_var
from src.core.security import Caller, build_caller, decode_token
from src.db.session import get_async_session, tenant_context
from src.repositories.security import SecurityRepository
from src.services.pending_review import PendingReviewService, build_database_sources

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login")


# PUBLIC_INTERFACE
async def get_tenant_id(x_tenant_id: str | None = Header(default=None, alias="X-Tenant-ID")) -> UUID:
    """
    Extract and validate the tenant id from the X-Tenant-ID header.

    Raises:
        HTTPException: 400 Bad Request if header missing or invalid UUID.
    """
    if not x_tenant_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="X-Tenant-ID header is required.",
        )
    try:
        return UUID(x_tenant_id)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="X-Tenant-ID header must be a valid UUID string.",
        )


# PUBLIC_INTERFACE
async def get_tenant_session(
    tenant_id: UUID = Depends(get_tenant_id),
    session_dep=Depends(get_async_session),
) -> AsyncGenerator[AsyncSession, None]:
    """
    Yield an AsyncSession with Row-Level Security configured for the given tenant.
    """
    async for session in session_dep:
        async with tenant_context(session, tenant_id):
            yield session


# PUBLIC_INTERFACE
async def get_current_user(
    tenant_id: UUID = Depends(get_tenant_id),
    token: str = Depends(oauth2_scheme),
    session: AsyncSession = Depends(get_tenant_session),
):
    """
    Resolve the current user from the Authorization bearer token.

    Validates the token, ensures the tenant claim matches the tenant header,
    and loads the user through the RLS-scoped session.
    """
    try:
        payload = decode_token(token)
    except JWTError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")

    if payload.get("type") != "access":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token type")
    tok_tenant = payload.get("tenant_id")
    if not tok_tenant or str(tok_tenant) != str(tenant_id):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Tenant mismatch")

    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")

    repo = SecurityRepository(session)
    user = await repo.get_user_by_id(UUID(user_id))
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")
    user_id_var.set(str(user.id))
    return user


# PUBLIC_INTERFACE
async def get_current_active_user(user=Depends(get_current_user)):
    """Ensure user is active."""
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Inactive user")
    return user


# PUBLIC_INTERFACE
async def get_caller(
    tenant_id: UUID = Depends(get_tenant_id),
    user=Depends(get_current_active_user),
    session: AsyncSession = Depends(get_tenant_session),
) -> Caller:
    """
    Build the Caller for the request, with role names loaded from the database
    rather than trusted from the token.
    """
    repo = SecurityRepository(session)
    roles = [r.name for r in await repo.list_roles_for_user(user.id)]
    return build_caller(user.id, tenant_id, roles, email=user.email)


# PUBLIC_INTERFACE
def require_roles(*required: str):
    """
    Create a dependency that requires the caller to hold one of the given role names.
    """

    async def _dep(caller: Caller = Depends(get_caller)) -> Caller:
        if caller.roles.isdisjoint(required):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient role")
        return caller

    return _dep


# PUBLIC_INTERFACE
async def require_reviewer(caller: Caller = Depends(get_caller)) -> Caller:
    """Require an admin or manager caller."""
    if not caller.is_reviewer:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Reviewer role required")
    return caller


# PUBLIC_INTERFACE
def get_pending_review_service(tenant_id: UUID = Depends(get_tenant_id)) -> PendingReviewService:
    """
    Build the worklist service for the tenant.

    Each source opens its own tenant-scoped session so the three queries can
    run concurrently.
    """
    return PendingReviewService(build_database_sources(tenant_id))
