from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class TokenPair(BaseModel):
    """Access and refresh tokens."""
    token_type: str = Field("bearer", description="Token type, typically 'bearer'")
    access_token: str = Field(..., description="JWT access token")
    refresh_token: str = Field(..., description="JWT refresh token")


class RefreshRequest(BaseModel):
    """Request to refresh an access token."""
    refresh_token: str = Field(..., description="Refresh token")


class RegisterRequest(BaseModel):
    """Self-registration details for a new employee."""
    email: EmailStr = Field(..., description="Work email")
    password: str = Field(..., min_length=8, description="Password")
    full_name: Optional[str] = Field(None, description="Full name")


class UserRead(BaseModel):
    """Employee account with role names."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID = Field(..., description="User ID")
    email: EmailStr = Field(..., description="Work email")
    full_name: Optional[str] = Field(None)
    is_active: bool = Field(..., description="Active flag")
    created_at: datetime = Field(..., description="Created timestamp")
    updated_at: datetime = Field(..., description="Updated timestamp")
    roles: List[str] = Field(default_factory=list, description="Role names assigned to the user")


class UserCreate(BaseModel):
    """Admin create-employee payload."""
    email: EmailStr = Field(..., description="Work email")
    password: str = Field(..., min_length=8, description="Initial password")
    full_name: Optional[str] = Field(None)
    roles: List[str] = Field(default_factory=lambda: ["employee"], description="Role names to assign")


class UserActiveUpdate(BaseModel):
    """Activate or deactivate an employee."""
    is_active: bool = Field(..., description="New active flag")
