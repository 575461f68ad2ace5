from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Text
from sqlalchemy.orm import Mapped, mapped_column

from src.db.base import Base, TenantMixin, TimestampMixin, UUIDPkMixin

# Statuses in which a warranty still needs reviewer attention.
OPEN_STATUSES = (
    "new",
    "assigned",
    "in_review",
    "scheduled",
    "in_progress",
    "waiting_on_materials",
    "waiting_on_manufacturer",
)
CLOSED_STATUSES = ("completed", "denied", "closed")

PRIORITY_LEVELS = ("low", "medium", "high", "urgent", "emergency")


class WarrantyRequest(UUIDPkMixin, TenantMixin, TimestampMixin, Base):
    """Customer warranty claim against a previously installed roof."""
    __tablename__ = "warranty_requests"

    customer_name: Mapped[str] = mapped_column(Text, nullable=False)
    job_address: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(Text, nullable=False, default="new", server_default="new", index=True)
    priority_level: Mapped[str] = mapped_column(Text, nullable=False, default="medium", server_default="medium")
    issue_description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    roof_type: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    # Null for claims imported without an intake date; created_at stands in.
    date_submitted: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
