from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncGenerator, AsyncIterator, Union
from uuid import UUID

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from .config import get_settings


_ENGINE: AsyncEngine | None = None
_SESSION_MAKER: async_sessionmaker[AsyncSession] | None = None


def _ensure_engine_initialized() -> None:
    """
    Lazily initialize the AsyncEngine and session maker.
    """
    global _ENGINE, _SESSION_MAKER
    if _ENGINE is None:
        settings = get_settings()
        _ENGINE = create_async_engine(
            settings.async_database_url,
            echo=settings.SQL_ECHO,
            pool_pre_ping=True,
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
        )
    if _SESSION_MAKER is None:
        _SESSION_MAKER = async_sessionmaker(
            bind=_ENGINE, expire_on_commit=False, autoflush=False, autocommit=False
        )


# PUBLIC_INTERFACE
def get_engine() -> AsyncEngine:
    """Return the global AsyncEngine instance."""
    _ensure_engine_initialized()
    assert _ENGINE is not None
    return _ENGINE


# PUBLIC_INTERFACE
async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Yield an AsyncSession suitable for FastAPI dependency injection.
    """
    _ensure_engine_initialized()
    assert _SESSION_MAKER is not None
    async with _SESSION_MAKER() as session:
        yield session


# PUBLIC_INTERFACE
async def set_current_tenant(session: AsyncSession, tenant_id: Union[str, UUID]) -> None:
    """
    Set the app.tenant_id GUC used by the Row-Level Security policies.
    """
    await session.execute(
        text("SELECT set_config('app.tenant_id', :tenant_id, false);"),
        {"tenant_id": str(tenant_id)},
    )


# PUBLIC_INTERFACE
@asynccontextmanager
async def tenant_context(
    session: AsyncSession, tenant_id: Union[str, UUID]
) -> AsyncGenerator[AsyncSession, None]:
    """
    Set the tenant on the session for the duration of the block, then clear it.

    Usage:
        async with tenant_context(session, tenant_id):
            ...  # queries are filtered by RLS
    """
    await set_current_tenant(session, tenant_id)
    try:
        yield session
    finally:
        # Empty GUC matches no tenant, so a leaked connection sees nothing.
        await session.execute(text("SELECT set_config('app.tenant_id', '', false);"))


# PUBLIC_INTERFACE
@asynccontextmanager
async def tenant_session_scope(tenant_id: Union[str, UUID]) -> AsyncIterator[AsyncSession]:
    """
    Open a short-lived session bound to the tenant, outside FastAPI's dependency chain.

    Used where several queries must run concurrently (one session each) and by
    long-lived WebSocket handlers.
    """
    _ensure_engine_initialized()
    assert _SESSION_MAKER is not None
    async with _SESSION_MAKER() as session:
        async with tenant_context(session, tenant_id):
            yield session
