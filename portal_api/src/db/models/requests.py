from __future__ import annotations

from typing import Optional

from sqlalchemy import Text
from sqlalchemy.orm import Mapped, mapped_column

from src.db.base import Base, ReviewableMixin, TenantMixin, TimestampMixin, UUIDPkMixin

# status values
PENDING = "pending"
NEEDS_INFO = "needs_info"
REJECTED = "rejected"
APPROVED = "approved"


class EmployeeRequest(UUIDPkMixin, TenantMixin, TimestampMixin, ReviewableMixin, Base):
    """Generic employee request (time off, equipment, reimbursement, ...)."""
    __tablename__ = "requests"

    title: Mapped[str] = mapped_column(Text, nullable=False)
    # snake_case request type, e.g. "time_off" or "equipment_purchase"
    type: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    manager_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
