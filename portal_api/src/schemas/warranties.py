from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class WarrantyRead(BaseModel):
    """Warranty claim as stored."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    customer_name: str
    job_address: str
    status: str
    priority_level: str
    issue_description: Optional[str] = None
    roof_type: Optional[str] = None
    date_submitted: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
