from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator


class RequestRead(BaseModel):
    """Employee request as stored."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    type: Optional[str] = None
    description: Optional[str] = None
    status: str
    submitted_by: Optional[UUID] = None
    rejection_reason: Optional[str] = None
    manager_notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class RequestDecision(BaseModel):
    """Reviewer decision on a pending request. A reason is required unless approving."""
    decision: Literal["approve", "reject", "needs_info"] = Field(..., description="Decision to apply")
    reason: Optional[str] = Field(None, description="Shown to the submitter")

    @model_validator(mode="after")
    def _reason_required(self) -> "RequestDecision":
        if self.decision != "approve" and not (self.reason or "").strip():
            raise ValueError("reason is required to reject or ask for information")
        return self


class RequestResponse(BaseModel):
    """Submitter reply to a returned request."""
    note: Optional[str] = Field(None, description="Answer or summary of changes")
