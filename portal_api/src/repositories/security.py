from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from sqlalchemy import delete, func, select

from src.db.models.security import Role, User, UserRole
from .base import BaseRepository


class SecurityRepository(BaseRepository):
    """Repository for employee accounts and their roles within a tenant."""

    # Users
    async def get_user_by_email(self, email: str) -> Optional[User]:
        stmt = select(User).where(func.lower(User.email) == email.lower())
        return await self.scalar_one_or_none(stmt)

    async def get_user_by_id(self, user_id: UUID) -> Optional[User]:
        return await self.get_by_id(User, user_id)

    async def count_users(self) -> int:
        result = await self.execute(select(func.count(User.id)))
        return int(result.scalar_one())

    async def list_users(self, limit: int = 100, offset: int = 0) -> List[User]:
        stmt = select(User).order_by(User.created_at.desc()).offset(offset).limit(limit)
        return list(await self.scalars(stmt))

    async def create_user(
        self,
        *,
        email: str,
        full_name: Optional[str],
        hashed_password: str,
        is_active: bool = True,
    ) -> User:
        user = User(email=email, full_name=full_name, hashed_password=hashed_password, is_active=is_active)
        await self.add(user)
        await self.commit()
        return (await self.get_user_by_email(email))  # type: ignore

    async def set_user_active(self, user_id: UUID, is_active: bool) -> Optional[User]:
        user = await self.get_user_by_id(user_id)
        if user is None:
            return None
        user.is_active = is_active
        await self.flush()
        await self.session.refresh(user)
        await self.commit()
        return user

    # Roles
    async def list_roles_for_user(self, user_id: UUID) -> List[Role]:
        stmt = (
            select(Role)
            .join(UserRole, Role.id == UserRole.role_id)
            .where(UserRole.user_id == user_id)
            .order_by(Role.name)
        )
        return list(await self.scalars(stmt))

    async def list_role_names_for_user(self, user_id: UUID) -> List[str]:
        return [r.name for r in await self.list_roles_for_user(user_id)]

    async def get_role_by_name(self, name: str) -> Optional[Role]:
        return await self.scalar_one_or_none(select(Role).where(Role.name == name))

    async def ensure_role(self, name: str, description: Optional[str] = None) -> Role:
        """Return the named role, creating it on first use."""
        role = await self.get_role_by_name(name)
        if role:
            return role
        role = Role(name=name, description=description or name.title())
        await self.add(role)
        await self.commit()
        return (await self.get_role_by_name(name))  # type: ignore

    # Associations
    async def assign_role_to_user(self, user_id: UUID, role_id: UUID) -> None:
        existing = await self.scalar_one_or_none(
            select(UserRole).where(UserRole.user_id == user_id, UserRole.role_id == role_id)
        )
        if existing:
            return
        await self.add(UserRole(user_id=user_id, role_id=role_id))
        await self.commit()

    async def remove_role_from_user(self, user_id: UUID, role_id: UUID) -> None:
        stmt = delete(UserRole).where(UserRole.user_id == user_id, UserRole.role_id == role_id)
        await self.execute(stmt)
        await self.commit()
