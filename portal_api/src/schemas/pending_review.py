from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Annotated, List, Literal, Optional, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class ItemType(str, Enum):
    COMMISSION = "commission"
    REQUEST = "request"
    WARRANTY = "warranty"


class RequiredAction(str, Enum):
    """Next action expected on an item: reviewer review, or submitter revision/info."""
    REVIEW = "review"
    REVISION = "revision"
    INFO_NEEDED = "info_needed"


class Priority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class SlaStatus(str, Enum):
    OVERDUE = "overdue"
    DUE_TODAY = "due_today"
    DUE_TOMORROW = "due_tomorrow"
    ON_TRACK = "on_track"


class _ReviewableItemBase(BaseModel):
    """Fields shared by every worklist entry. Built per query, never stored."""
    model_config = ConfigDict(frozen=True)

    id: UUID = Field(..., description="Id of the source row")
    title: str = Field(..., description="Primary label (job name, request title, customer)")
    subtitle: str = Field("", description="Secondary label (address or request type)")
    status: str = Field(..., description="Source row status")
    priority: Priority = Field(...)
    created_at: datetime = Field(...)
    updated_at: datetime = Field(...)
    submitted_at: datetime = Field(..., description="Start of the SLA clock")
    requires_action: RequiredAction = Field(...)
    rejection_reason: Optional[str] = Field(None)
    submitted_by: Optional[UUID] = Field(None)
    age_days: int = Field(..., ge=0, description="Business days since submitted_at")
    sla_due_at: date = Field(..., description="Business date the item is due")
    sla_status: SlaStatus = Field(...)


class CommissionItem(_ReviewableItemBase):
    type: Literal["commission"] = "commission"


class RequestItem(_ReviewableItemBase):
    type: Literal["request"] = "request"


class WarrantyItem(_ReviewableItemBase):
    type: Literal["warranty"] = "warranty"


ReviewableItem = Annotated[
    Union[CommissionItem, RequestItem, WarrantyItem],
    Field(discriminator="type"),
]


class PendingReviewCounts(BaseModel):
    """Per-type tallies over the whole worklist."""
    commissions: int = Field(0, ge=0)
    requests: int = Field(0, ge=0)
    warranties: int = Field(0, ge=0)
    total: int = Field(0, ge=0)


class PendingReviewResult(BaseModel):
    """Worklist for one caller: sorted items plus counts."""
    items: List[ReviewableItem] = Field(default_factory=list)
    counts: PendingReviewCounts = Field(default_factory=PendingReviewCounts)


class SlaSnapshot(BaseModel):
    """Headline numbers for the dashboard SLA widget."""
    total: int = Field(0, ge=0)
    overdue: int = Field(0, ge=0)
    due_today: int = Field(0, ge=0)
    due_tomorrow: int = Field(0, ge=0)
    on_track: int = Field(0, ge=0)
    commissions: int = Field(0, ge=0)
    requests: int = Field(0, ge=0)
    warranties: int = Field(0, ge=0)


class PendingReviewEvent(BaseModel):
    """Envelope pushed on the live worklist channel."""
    type: Literal["pending_review.snapshot", "pending_review.error"] = Field(...)
    generation: int = Field(..., ge=1, description="Dispatch sequence number; higher wins")
    payload: Optional[PendingReviewResult] = Field(None)
    error: Optional[str] = Field(None)
    at: datetime = Field(..., description="Delivery timestamp (UTC)")
