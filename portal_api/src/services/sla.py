"""
SLA policy and ordering rules for the pending-review worklist.

All functions are pure: they take "today" as an argument and never read the clock.
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import Dict, Optional, Tuple

from src.schemas.pending_review import ItemType, Priority, RequiredAction, SlaStatus
from src.services.business_days import add_business_days

# Business days allowed per (item type, required action).
SLA_POLICY: Dict[Tuple[ItemType, RequiredAction], int] = {
    (ItemType.COMMISSION, RequiredAction.REVIEW): 2,
    (ItemType.REQUEST, RequiredAction.REVIEW): 2,
    (ItemType.WARRANTY, RequiredAction.REVIEW): 1,
    **{(t, RequiredAction.REVISION): 3 for t in ItemType},
    **{(t, RequiredAction.INFO_NEEDED): 3 for t in ItemType},
}
DEFAULT_ALLOWANCE = SLA_POLICY[(ItemType.REQUEST, RequiredAction.REVIEW)]

SLA_RANK: Dict[SlaStatus, int] = {
    SlaStatus.OVERDUE: 0,
    SlaStatus.DUE_TODAY: 1,
    SlaStatus.DUE_TOMORROW: 2,
    SlaStatus.ON_TRACK: 3,
}
PRIORITY_RANK: Dict[Priority, int] = {
    Priority.HIGH: 0,
    Priority.MEDIUM: 1,
    Priority.LOW: 2,
}

# priority_level values on warranty claims, collapsed to worklist priority
_WARRANTY_PRIORITY: Dict[str, Priority] = {
    "emergency": Priority.HIGH,
    "urgent": Priority.HIGH,
    "high": Priority.HIGH,
    "medium": Priority.MEDIUM,
}


def sla_allowance(item_type: ItemType, action: RequiredAction) -> int:
    """Business days allowed for the pair; unknown pairs get the request-review default."""
    return SLA_POLICY.get((ItemType(item_type), RequiredAction(action)), DEFAULT_ALLOWANCE)


def sla_due_date(submitted_on: date, item_type: ItemType, action: RequiredAction) -> date:
    return add_business_days(submitted_on, sla_allowance(item_type, action))


def sla_status(due_on: date, today: date) -> SlaStatus:
    """Classify a due date relative to today (both plain dates)."""
    if due_on < today:
        return SlaStatus.OVERDUE
    if due_on == today:
        return SlaStatus.DUE_TODAY
    if due_on == today + timedelta(days=1):
        return SlaStatus.DUE_TOMORROW
    return SlaStatus.ON_TRACK


def warranty_priority(priority_level: Optional[str]) -> Priority:
    """Map a warranty priority_level onto high/medium/low; unknown or missing is low."""
    return _WARRANTY_PRIORITY.get((priority_level or "").strip().lower(), Priority.LOW)


def worklist_sort_key(item) -> Tuple[int, int, int]:
    """Most urgent SLA first, then priority, then oldest."""
    return (SLA_RANK[item.sla_status], PRIORITY_RANK[item.priority], -item.age_days)
