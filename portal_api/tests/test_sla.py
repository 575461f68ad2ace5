"""Unit tests for SLA policy, classification and worklist ordering."""

from datetime import date, timedelta
from types import SimpleNamespace

import pytest

from src.schemas.pending_review import ItemType, Priority, RequiredAction, SlaStatus
from src.services.sla import (
    sla_allowance,
    sla_due_date,
    sla_status,
    warranty_priority,
    worklist_sort_key,
)

TODAY = date(2026, 10, 14)


@pytest.mark.unit
class TestPolicy:

    @pytest.mark.parametrize(
        "item_type, action, days",
        [
            (ItemType.COMMISSION, RequiredAction.REVIEW, 2),
            (ItemType.REQUEST, RequiredAction.REVIEW, 2),
            (ItemType.WARRANTY, RequiredAction.REVIEW, 1),
            (ItemType.COMMISSION, RequiredAction.REVISION, 3),
            (ItemType.REQUEST, RequiredAction.REVISION, 3),
            (ItemType.REQUEST, RequiredAction.INFO_NEEDED, 3),
            (ItemType.WARRANTY, RequiredAction.INFO_NEEDED, 3),
        ],
    )
    def test_allowance(self, item_type, action, days):
        assert sla_allowance(item_type, action) == days

    def test_allowance_accepts_raw_values(self):
        assert sla_allowance("warranty", "review") == 1

    def test_due_date_skips_weekend(self):
        friday = date(2026, 10, 16)
        assert sla_due_date(friday, ItemType.WARRANTY, RequiredAction.REVIEW) == date(2026, 10, 19)


@pytest.mark.unit
class TestStatus:

    def test_due_today_is_never_overdue(self):
        assert sla_status(TODAY, TODAY) is SlaStatus.DUE_TODAY

    @pytest.mark.parametrize(
        "offset, expected",
        [
            (-1, SlaStatus.OVERDUE),
            (-10, SlaStatus.OVERDUE),
            (0, SlaStatus.DUE_TODAY),
            (1, SlaStatus.DUE_TOMORROW),
            (2, SlaStatus.ON_TRACK),
        ],
    )
    def test_classification(self, offset, expected):
        assert sla_status(TODAY + timedelta(days=offset), TODAY) is expected

    def test_tomorrow_is_calendar_tomorrow(self):
        friday = date(2026, 10, 16)
        # Monday is the next business day but not tomorrow
        assert sla_status(date(2026, 10, 19), friday) is SlaStatus.ON_TRACK


@pytest.mark.unit
class TestWarrantyPriority:

    @pytest.mark.parametrize(
        "level, expected",
        [
            ("emergency", Priority.HIGH),
            ("urgent", Priority.HIGH),
            ("high", Priority.HIGH),
            ("High ", Priority.HIGH),
            ("medium", Priority.MEDIUM),
            ("low", Priority.LOW),
            ("whenever", Priority.LOW),
            (None, Priority.LOW),
        ],
    )
    def test_mapping(self, level, expected):
        assert warranty_priority(level) is expected


def _item(sla, priority, age):
    return SimpleNamespace(sla_status=sla, priority=priority, age_days=age)


@pytest.mark.unit
def test_sort_key_orders_by_sla_then_priority_then_age():
    items = [
        _item(SlaStatus.ON_TRACK, Priority.HIGH, 9),
        _item(SlaStatus.OVERDUE, Priority.LOW, 1),
        _item(SlaStatus.DUE_TODAY, Priority.MEDIUM, 2),
        _item(SlaStatus.DUE_TODAY, Priority.HIGH, 1),
        _item(SlaStatus.DUE_TODAY, Priority.HIGH, 4),
        _item(SlaStatus.DUE_TOMORROW, Priority.LOW, 0),
    ]
    ordered = sorted(items, key=worklist_sort_key)
    assert [(i.sla_status, i.priority, i.age_days) for i in ordered] == [
        (SlaStatus.OVERDUE, Priority.LOW, 1),
        (SlaStatus.DUE_TODAY, Priority.HIGH, 4),
        (SlaStatus.DUE_TODAY, Priority.HIGH, 1),
        (SlaStatus.DUE_TODAY, Priority.MEDIUM, 2),
        (SlaStatus.DUE_TOMORROW, Priority.LOW, 0),
        (SlaStatus.ON_TRACK, Priority.HIGH, 9),
    ]
