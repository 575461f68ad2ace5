from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, Numeric, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from src.db.base import Base, ReviewableMixin, TenantMixin, TimestampMixin, UUIDPkMixin

# status values
PENDING_REVIEW = "pending_review"
REVISION_REQUIRED = "revision_required"
APPROVED = "approved"
DENIED = "denied"
PAID = "paid"

# approval_stage values
STAGE_PENDING_MANAGER = "pending_manager"
STAGE_PENDING_ADMIN = "pending_admin"
STAGE_MANAGER_APPROVED = "manager_approved"


class CommissionSubmission(UUIDPkMixin, TenantMixin, TimestampMixin, ReviewableMixin, Base):
    """Sales rep's commission claim for a completed roofing job."""
    __tablename__ = "commission_submissions"

    job_name: Mapped[str] = mapped_column(Text, nullable=False)
    job_address: Mapped[str] = mapped_column(Text, nullable=False)
    job_type: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    approval_stage: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_manager_submission: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default="false"
    )
    contract_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=0, server_default="0")
    net_commission_owed: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    reviewer_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    revision_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    manager_approved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    manager_approved_by: Mapped[Optional[UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
