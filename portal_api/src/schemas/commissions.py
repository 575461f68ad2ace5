from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator


class CommissionRead(BaseModel):
    """Commission submission as stored."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    job_name: str
    job_address: str
    job_type: Optional[str] = None
    status: str
    approval_stage: Optional[str] = None
    is_manager_submission: bool = False
    contract_amount: Decimal
    net_commission_owed: Optional[Decimal] = None
    submitted_by: Optional[UUID] = None
    rejection_reason: Optional[str] = None
    reviewer_notes: Optional[str] = None
    revision_count: int = 0
    manager_approved_at: Optional[datetime] = None
    manager_approved_by: Optional[UUID] = None
    created_at: datetime
    updated_at: datetime


class CommissionApprove(BaseModel):
    """Reviewer approval."""
    notes: Optional[str] = Field(None, description="Optional note to the submitter")


class CommissionRevisionRequest(BaseModel):
    """Return a commission to its submitter."""
    reason: str = Field(..., min_length=1, description="What the submitter must change")

    @field_validator("reason")
    @classmethod
    def _not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("reason must not be blank")
        return v


class CommissionResubmit(BaseModel):
    """Submitter sends a revised commission back for review."""
    notes: Optional[str] = Field(None, description="What was changed")
