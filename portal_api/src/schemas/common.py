from __future__ import annotations

from datetime import datetime
from typing import Any, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field

ErrorType = Literal[
    "http_error",
    "validation_error",
    "not_found",
    "invalid_transition",
    "forbidden",
    "review_error",
    "internal_error",
]


class MessageResponse(BaseModel):
    """Plain acknowledgement."""
    message: str = Field(..., description="Human readable message")


class TenantEcho(BaseModel):
    tenant_id: UUID = Field(..., description="Tenant ID read from the X-Tenant-ID header")


class ErrorInfo(BaseModel):
    """What went wrong, in machine and human form."""
    type: ErrorType = Field(..., description="Error code; review actions use not_found, invalid_transition, forbidden")
    message: str = Field(..., description="Human-readable error message")
    details: Optional[Any] = Field(default=None, description="Validation issues or other structured detail")


# PUBLIC_INTERFACE
class ErrorResponse(BaseModel):
    """
    Error envelope returned by every exception handler.

    correlation_id matches the X-Correlation-ID response header and the cid
    field in the service logs.
    """
    status: int = Field(..., description="HTTP status code")
    error: ErrorInfo
    correlation_id: Optional[str] = Field(default=None)
    tenant_id: Optional[str] = Field(default=None, description="X-Tenant-ID as sent, if any")
    path: Optional[str] = Field(default=None)
    method: Optional[str] = Field(default=None)
    timestamp: datetime = Field(..., description="Error timestamp (UTC)")
