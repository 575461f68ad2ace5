"""Unit tests for the pending-review worklist aggregator."""

from datetime import date, timedelta

import pytest
import pytest_asyncio

from conftest import TODAY, FakeSources, make_commission, make_request, make_warranty
from src.schemas.pending_review import (
    ItemType,
    PendingReviewResult,
    Priority,
    RequiredAction,
    SlaStatus,
)
from src.services.business_days import add_business_days
from src.services.pending_review import PendingReviewService, filter_items, sla_snapshot
from src.services.sla import worklist_sort_key

YESTERDAY = date(2026, 10, 13)
LAST_FRIDAY = date(2026, 10, 9)


def _service(sources, clock, limit=20):
    return PendingReviewService(sources, clock=clock, source_limit=limit)


@pytest.mark.unit
@pytest.mark.asyncio
class TestReviewerWorklist:

    async def test_commission_three_business_days_old_is_overdue(self, clock, manager):
        row = make_commission(created=LAST_FRIDAY)
        result = await _service(FakeSources(commissions=[row]), clock).get_worklist(manager)

        [item] = result.items
        assert item.type == "commission"
        assert item.requires_action is RequiredAction.REVIEW
        assert item.priority is Priority.HIGH
        assert item.age_days == 3
        assert item.sla_due_at == date(2026, 10, 13)
        assert item.sla_status is SlaStatus.OVERDUE
        assert item.title == "Hartley Residence"
        assert item.subtitle == "114 Oak Ridge Dr"

    async def test_emergency_warranty_submitted_today_is_due_tomorrow(self, clock, manager):
        row = make_warranty(status="in_progress", priority_level="emergency", submitted=TODAY)
        result = await _service(FakeSources(warranties=[row]), clock).get_worklist(manager)

        [item] = result.items
        assert item.type == "warranty"
        assert item.priority is Priority.HIGH
        assert item.sla_due_at == TODAY + timedelta(days=1)
        assert item.sla_status is SlaStatus.DUE_TOMORROW

    async def test_warranty_submitted_yesterday_is_due_today(self, clock, manager):
        row = make_warranty(priority_level="emergency", submitted=YESTERDAY, created=LAST_FRIDAY)
        result = await _service(FakeSources(warranties=[row]), clock).get_worklist(manager)

        [item] = result.items
        assert item.submitted_at.date() == YESTERDAY
        assert item.sla_status is SlaStatus.DUE_TODAY

    async def test_warranty_without_submission_date_uses_created_at(self, clock, manager):
        row = make_warranty(submitted=None, created=YESTERDAY)
        result = await _service(FakeSources(warranties=[row]), clock).get_worklist(manager)

        assert result.items[0].submitted_at == row.created_at

    async def test_due_exactly_today_is_due_today(self, clock, manager):
        monday = date(2026, 10, 12)
        assert add_business_days(monday, 2) == TODAY
        row = make_request(created=monday)
        result = await _service(FakeSources(requests=[row]), clock).get_worklist(manager)

        assert result.items[0].sla_status is SlaStatus.DUE_TODAY

    async def test_reviewer_queries_only_review_sources(self, clock, manager):
        sources = FakeSources()
        await _service(sources, clock, limit=7).get_worklist(manager)

        assert sources.called() == {
            "commissions_awaiting_review": None,
            "requests_awaiting_review": None,
            "open_warranties": None,
        }
        assert {limit for _, _, limit in sources.calls} == {7}

    async def test_admin_is_a_reviewer(self, clock, admin):
        sources = FakeSources(requests=[make_request()])
        result = await _service(sources, clock).get_worklist(admin)

        assert result.counts.requests == 1
        assert "commissions_returned_to" not in sources.called()

    async def test_items_sorted_by_urgency(self, clock, manager):
        sources = FakeSources(
            commissions=[make_commission(created=TODAY), make_commission(created=LAST_FRIDAY)],
            requests=[make_request(created=date(2026, 10, 12)), make_request(created=TODAY)],
            warranties=[
                make_warranty(priority_level="low", submitted=TODAY),
                make_warranty(priority_level="urgent", submitted=TODAY),
                make_warranty(priority_level="medium", submitted=date(2026, 10, 1)),
            ],
        )
        result = await _service(sources, clock).get_worklist(manager)

        keys = [worklist_sort_key(i) for i in result.items]
        assert keys == sorted(keys)
        first, second = result.items[:2]
        assert (first.type, first.sla_status, first.priority) == ("commission", SlaStatus.OVERDUE, Priority.HIGH)
        assert (second.type, second.sla_status, second.age_days) == ("warranty", SlaStatus.OVERDUE, 9)

    async def test_counts_match_items(self, clock, manager):
        sources = FakeSources(
            commissions=[make_commission(), make_commission()],
            requests=[make_request()],
            warranties=[make_warranty(), make_warranty(), make_warranty()],
        )
        result = await _service(sources, clock).get_worklist(manager)

        assert result.counts.commissions == 2
        assert result.counts.requests == 1
        assert result.counts.warranties == 3
        assert result.counts.total == len(result.items) == 6

    async def test_same_inputs_give_same_result(self, clock, manager):
        sources = FakeSources(
            commissions=[make_commission(created=LAST_FRIDAY)],
            requests=[make_request(created=YESTERDAY)],
            warranties=[make_warranty(submitted=TODAY)],
        )
        service = _service(sources, clock)

        first = await service.get_worklist(manager)
        second = await service.get_worklist(manager)
        assert first == second


@pytest.mark.unit
@pytest.mark.asyncio
class TestSubmitterWorklist:

    async def test_needs_info_request_updated_today_is_on_track(self, clock, employee):
        row = make_request(status="needs_info", created=LAST_FRIDAY, updated=TODAY, submitted_by=employee.user_id)
        result = await _service(FakeSources(returned_requests=[row]), clock).get_worklist(employee)

        [item] = result.items
        assert item.requires_action is RequiredAction.INFO_NEEDED
        assert item.priority is Priority.MEDIUM
        assert item.submitted_at == row.updated_at
        assert item.sla_due_at == date(2026, 10, 19)
        assert item.sla_status is SlaStatus.ON_TRACK

    async def test_rejected_request_needs_revision(self, clock, employee):
        row = make_request(status="rejected", updated=YESTERDAY, rejection_reason="Attach the mileage log")
        result = await _service(FakeSources(returned_requests=[row]), clock).get_worklist(employee)

        [item] = result.items
        assert item.requires_action is RequiredAction.REVISION
        assert item.priority is Priority.HIGH
        assert item.rejection_reason == "Attach the mileage log"
        assert item.subtitle == "time off"

    async def test_returned_commission_clock_starts_at_return(self, clock, employee):
        row = make_commission(status="revision_required", created=date(2026, 9, 1), updated=YESTERDAY)
        result = await _service(FakeSources(returned_commissions=[row]), clock).get_worklist(employee)

        [item] = result.items
        assert item.requires_action is RequiredAction.REVISION
        assert item.age_days == 1
        assert item.sla_due_at == add_business_days(YESTERDAY, 3)
        assert item.sla_status is SlaStatus.ON_TRACK

    async def test_submitter_queries_only_own_returned_items(self, clock, employee):
        sources = FakeSources(warranties=[make_warranty()], commissions=[make_commission()])
        result = await _service(sources, clock).get_worklist(employee)

        assert sources.called() == {
            "commissions_returned_to": employee.user_id,
            "requests_returned_to": employee.user_id,
        }
        assert result.items == []
        assert result.counts.warranties == 0


@pytest.mark.unit
@pytest.mark.asyncio
class TestFailures:

    async def test_missing_caller_returns_empty_without_queries(self, clock):
        sources = FakeSources(commissions=[make_commission()])
        result = await _service(sources, clock).get_worklist(None)

        assert result == PendingReviewResult()
        assert sources.calls == []

    async def test_source_failure_propagates(self, clock, manager):
        sources = FakeSources(commissions=[make_commission()], fail="open_warranties")

        with pytest.raises(RuntimeError, match="open_warranties unavailable"):
            await _service(sources, clock).get_worklist(manager)

    async def test_failure_cancels_queries_still_running(self, clock, manager):
        sources = FakeSources(fail="requests_awaiting_review", block=["open_warranties"])

        with pytest.raises(RuntimeError):
            await _service(sources, clock).get_worklist(manager)
        assert sources.cancelled == ["open_warranties"]


@pytest.mark.unit
@pytest.mark.asyncio
class TestFilteringAndSnapshot:

    @pytest_asyncio.fixture
    async def worklist(self, clock, manager):
        sources = FakeSources(
            commissions=[make_commission(created=LAST_FRIDAY, job_name="Lakeside Dental")],
            requests=[make_request(created=TODAY, title="New harness", type="equipment_purchase")],
            warranties=[
                make_warranty(submitted=TODAY, customer_name="Pine Hollow HOA"),
                make_warranty(submitted=YESTERDAY, job_address="9 Lakeside Ct"),
            ],
        )
        return await _service(sources, clock).get_worklist(manager)

    async def test_search_matches_title_or_subtitle(self, worklist):
        found = filter_items(worklist.items, search="lakeside")
        assert sorted(i.type for i in found) == ["commission", "warranty"]

    async def test_filter_by_type_and_sla(self, worklist):
        assert [i.type for i in filter_items(worklist.items, item_type=ItemType.WARRANTY)] == ["warranty", "warranty"]
        overdue = filter_items(worklist.items, sla=SlaStatus.OVERDUE)
        assert [i.title for i in overdue] == ["Lakeside Dental"]

    async def test_filters_keep_order(self, worklist):
        subset = filter_items(worklist.items, item_type="warranty")
        positions = [worklist.items.index(i) for i in subset]
        assert positions == sorted(positions)

    async def test_no_filters_returns_everything(self, worklist):
        assert filter_items(worklist.items) == worklist.items

    async def test_snapshot(self, worklist):
        snap = sla_snapshot(worklist)
        assert snap.total == 4
        assert snap.overdue == 1
        assert snap.due_today == 1
        assert snap.due_tomorrow == 1
        assert snap.on_track == 1
        assert (snap.commissions, snap.requests, snap.warranties) == (1, 1, 2)
