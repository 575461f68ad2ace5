"""
Public Pydantic schemas used by FastAPI routes, services, and tests.

Schemas are grouped by entity (commissions, requests, warranties, audit) plus
the pending-review worklist models and the shared error envelope.
"""

from .common import MessageResponse  # noqa: F401
from .pending_review import PendingReviewResult, ReviewableItem  # noqa: F401
