from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class AuditLogRead(BaseModel):
    """One audit log entry; `metadata` carries previous/new state and notes."""
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: UUID
    actor_user_id: Optional[UUID] = None
    action: str
    entity_type: Optional[str] = None
    entity_id: Optional[UUID] = None
    metadata: Dict[str, Any] = Field(default_factory=dict, validation_alias="details")
    created_at: datetime
