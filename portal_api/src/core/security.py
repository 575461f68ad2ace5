from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, FrozenSet, Iterable, Optional
from uuid import UUID

from jose import JWTError, jwt
from passlib.context import CryptContext

from src.core.settings import get_app_settings

_pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


@dataclass(frozen=True)
class Caller:
    """
    Identity of the employee making a request.

    is_reviewer is true for admins and managers (see AppSettings.REVIEWER_ROLES);
    reviewers approve or return items submitted by others.
    """

    user_id: UUID
    tenant_id: UUID
    roles: FrozenSet[str] = field(default_factory=frozenset)
    email: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return "admin" in self.roles

    @property
    def is_manager(self) -> bool:
        return "manager" in self.roles

    @property
    def is_reviewer(self) -> bool:
        reviewer_roles = set(get_app_settings().REVIEWER_ROLES)
        return not reviewer_roles.isdisjoint(self.roles)


# PUBLIC_INTERFACE
def build_caller(
    user_id: UUID, tenant_id: UUID, roles: Iterable[str], email: Optional[str] = None
) -> Caller:
    """Build a Caller from a user id, tenant and role names."""
    return Caller(user_id=user_id, tenant_id=tenant_id, roles=frozenset(roles), email=email)


# PUBLIC_INTERFACE
def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plain password against a bcrypt hash."""
    return _pwd_context.verify(plain_password, hashed_password)


# PUBLIC_INTERFACE
def get_password_hash(password: str) -> str:
    """Hash a password using bcrypt."""
    return _pwd_context.hash(password)


def _create_token(data: Dict[str, Any], expires_delta: timedelta, token_type: str) -> str:
    settings = get_app_settings()
    now = datetime.now(tz=timezone.utc)
    to_encode = {**data, "exp": now + expires_delta, "iat": now, "type": token_type}
    return jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


# PUBLIC_INTERFACE
def create_access_token(
    subject: str,
    tenant_id: str,
    roles: list[str] | None = None,
    expires_minutes: Optional[int] = None,
) -> str:
    """Create a signed access token carrying the user id, tenant claim and role names."""
    settings = get_app_settings()
    exp = timedelta(minutes=expires_minutes or settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    payload = {"sub": subject, "tenant_id": tenant_id, "roles": sorted(roles or [])}
    return _create_token(payload, exp, token_type="access")


# PUBLIC_INTERFACE
def create_refresh_token(subject: str, tenant_id: str, expires_minutes: Optional[int] = None) -> str:
    """Create a signed refresh token with subject and tenant claim."""
    settings = get_app_settings()
    exp = timedelta(minutes=expires_minutes or settings.REFRESH_TOKEN_EXPIRE_MINUTES)
    return _create_token({"sub": subject, "tenant_id": tenant_id}, exp, token_type="refresh")


# PUBLIC_INTERFACE
def decode_token(token: str) -> Dict[str, Any]:
    """Decode and validate a JWT; raises JWTError if invalid or expired."""
    settings = get_app_settings()
    return jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])


# PUBLIC_INTERFACE
def caller_from_token(token: str, tenant_id: str) -> Caller:
    """
    Resolve a Caller straight from an access token's claims.

    Used by the WebSocket channel, which cannot run the HTTP dependency chain.

    Raises:
        JWTError: token invalid, expired, not an access token, or for another tenant.
    """
    claims = decode_token(token)
    if claims.get("type") != "access":
        raise JWTError("Not an access token")
    if str(claims.get("tenant_id")) != str(tenant_id):
        raise JWTError("Tenant mismatch")
    sub = claims.get("sub")
    if not sub:
        raise JWTError("Missing subject")
    return build_caller(UUID(sub), UUID(str(tenant_id)), claims.get("roles") or [])
