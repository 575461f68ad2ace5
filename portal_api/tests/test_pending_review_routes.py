"""API tests for the worklist and review action endpoints, with auth and data sources overridden."""

from datetime import date
from unittest.mock import MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from conftest import TENANT_ID, FakeSources, make_commission, make_request, make_warranty
from src.api.main import app
from src.api.routes import commissions as commission_routes
from src.core.deps import get_caller, get_pending_review_service, get_tenant_session
from src.services.pending_review import PendingReviewService
from src.services.review_actions import InvalidTransitionError, ItemNotFoundError

HEADERS = {"X-Tenant-ID": str(TENANT_ID)}


@pytest.fixture
def sources():
    return FakeSources(
        commissions=[make_commission(created=date(2026, 10, 9), job_name="Lakeside Dental")],
        requests=[make_request()],
        warranties=[make_warranty(priority_level="emergency", submitted=date(2026, 10, 14))],
    )


@pytest_asyncio.fixture
async def client_for(clock, sources):
    """Build a client acting as the given caller."""

    async def _session():
        yield MagicMock()

    def _factory(caller):
        app.dependency_overrides[get_caller] = lambda: caller
        app.dependency_overrides[get_pending_review_service] = lambda: PendingReviewService(
            sources, clock=clock, source_limit=20
        )
        app.dependency_overrides[get_tenant_session] = _session
        return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")

    yield _factory
    app.dependency_overrides.clear()


@pytest.mark.asyncio
class TestWorklistEndpoints:

    async def test_reviewer_worklist(self, client_for, manager):
        async with client_for(manager) as client:
            resp = await client.get("/api/v1/pending-review", headers=HEADERS)

        assert resp.status_code == 200
        body = resp.json()
        assert body["counts"] == {"commissions": 1, "requests": 1, "warranties": 1, "total": 3}
        assert [i["type"] for i in body["items"]] == ["commission", "warranty", "request"]
        assert body["items"][0]["sla_status"] == "overdue"
        assert body["items"][1]["priority"] == "high"
        assert body["items"][1]["sla_due_at"] == "2026-10-15"

    async def test_filters_keep_unfiltered_counts(self, client_for, manager):
        async with client_for(manager) as client:
            resp = await client.get(
                "/api/v1/pending-review", params={"type": "warranty", "sla": "due_tomorrow"}, headers=HEADERS
            )

        body = resp.json()
        assert [i["type"] for i in body["items"]] == ["warranty"]
        assert body["counts"]["total"] == 3

    async def test_search(self, client_for, manager):
        async with client_for(manager) as client:
            resp = await client.get("/api/v1/pending-review", params={"search": "LAKESIDE"}, headers=HEADERS)

        assert [i["title"] for i in resp.json()["items"]] == ["Lakeside Dental"]

    async def test_unknown_sla_filter_is_rejected(self, client_for, manager):
        async with client_for(manager) as client:
            resp = await client.get("/api/v1/pending-review", params={"sla": "soon"}, headers=HEADERS)

        assert resp.status_code == 422
        assert resp.json()["error"]["type"] == "validation_error"

    async def test_employee_sees_only_returned_items(self, client_for, employee, sources):
        async with client_for(employee) as client:
            resp = await client.get("/api/v1/pending-review", headers=HEADERS)

        assert resp.json()["items"] == []
        assert set(sources.called()) == {"commissions_returned_to", "requests_returned_to"}

    async def test_snapshot(self, client_for, manager):
        async with client_for(manager) as client:
            resp = await client.get("/api/v1/pending-review/snapshot", headers=HEADERS)

        assert resp.json() == {
            "total": 3,
            "overdue": 1,
            "due_today": 0,
            "due_tomorrow": 1,
            "on_track": 1,
            "commissions": 1,
            "requests": 1,
            "warranties": 1,
        }


class _FailingActions:
    def __init__(self, session):
        pass

    async def approve_commission(self, caller, commission_id, notes=None):
        raise InvalidTransitionError("Cannot approve an item in status 'paid'")

    async def request_commission_revision(self, caller, commission_id, reason):
        raise ItemNotFoundError("Commission not found")


@pytest.mark.asyncio
class TestReviewActionEndpoints:

    async def test_invalid_transition_is_conflict(self, client_for, manager, monkeypatch):
        monkeypatch.setattr(commission_routes, "ReviewActionService", _FailingActions)
        async with client_for(manager) as client:
            resp = await client.post(
                f"/api/v1/commissions/{make_commission().id}/approve", json={}, headers=HEADERS
            )

        assert resp.status_code == 409
        body = resp.json()
        assert body["error"]["type"] == "invalid_transition"
        assert body["tenant_id"] == str(TENANT_ID)
        assert resp.headers["X-Correlation-ID"] == body["correlation_id"]

    async def test_missing_item_is_not_found(self, client_for, manager, monkeypatch):
        monkeypatch.setattr(commission_routes, "ReviewActionService", _FailingActions)
        async with client_for(manager) as client:
            resp = await client.post(
                f"/api/v1/commissions/{make_commission().id}/request-revision",
                json={"reason": "Wrong amount"},
                headers=HEADERS,
            )

        assert resp.status_code == 404

    async def test_blank_revision_reason_is_unprocessable(self, client_for, manager):
        async with client_for(manager) as client:
            resp = await client.post(
                f"/api/v1/commissions/{make_commission().id}/request-revision",
                json={"reason": "   "},
                headers=HEADERS,
            )

        assert resp.status_code == 422
        body = resp.json()
        assert body["error"]["type"] == "validation_error"
        assert "reason must not be blank" in body["error"]["details"][0]["msg"]

    async def test_reject_without_reason_is_unprocessable(self, client_for, manager):
        async with client_for(manager) as client:
            resp = await client.post(
                f"/api/v1/requests/{make_request().id}/decision",
                json={"decision": "reject"},
                headers=HEADERS,
            )

        assert resp.status_code == 422
        body = resp.json()
        assert body["error"]["type"] == "validation_error"
        assert "reason is required" in body["error"]["details"][0]["msg"]

    async def test_employee_cannot_approve(self, client_for, employee):
        async with client_for(employee) as client:
            resp = await client.post(
                f"/api/v1/commissions/{make_commission().id}/approve", json={}, headers=HEADERS
            )

        assert resp.status_code == 403


@pytest.mark.asyncio
async def test_health():
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        resp = await client.get("/api/v1/health", headers={"X-Correlation-ID": "abc-123"})

    assert resp.status_code == 200
    assert resp.json()["message"] == "Healthy"
    assert resp.headers["X-Correlation-ID"] == "abc-123"


@pytest.mark.asyncio
async def test_missing_tenant_header():
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        resp = await client.get("/api/v1/health/tenant")

    assert resp.status_code == 400
    assert resp.json()["error"]["message"] == "X-Tenant-ID header is required."
