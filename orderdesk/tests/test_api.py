"""API tests: auth headers, admin gating and error mapping on the orders routes."""
from __future__ import annotations

import importlib
import os
import unittest
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

from fastapi.testclient import TestClient

from orderdesk.api.dependencies import get_current_actor, get_session, get_workflow_config
from orderdesk.api.main import app
from orderdesk.config.workflow import WorkflowConfig
from orderdesk.core.exceptions import InvalidStatusError, NotFoundError
from orderdesk.domain.status import STATUS_COLUMNS
from orderdesk.domain.types import Actor

ADMIN = Actor(id=uuid4(), name="Ada Admin", role="admin")
AGENT = Actor(id=uuid4(), name="Sam Agent", role="agent")


# ─── helpers ─────────────────────────────────────────────────────────────────

def _fake_order(**kwargs):
    defaults = {column: False for column in STATUS_COLUMNS.values()}
    defaults.update({
        "id": uuid4(),
        "company_name": "Acme",
        "contact_email": "ops@acme.test",
        "price": Decimal("150.00"),
        "currency": "EUR",
        "priority": "medium",
        "status_created": True,
        "is_yearly_package": False,
        "version": 2,
    })
    defaults.update(kwargs)
    return SimpleNamespace(**defaults)


async def _fake_session():
    yield SimpleNamespace(info={})


class _ApiTestCase(unittest.TestCase):
    actor = ADMIN

    def setUp(self):
        app.dependency_overrides[get_session] = _fake_session
        app.dependency_overrides[get_workflow_config] = lambda: WorkflowConfig()
        if self.actor is not None:
            app.dependency_overrides[get_current_actor] = lambda: self.actor
        self.client = TestClient(app, raise_server_exceptions=False)

    def tearDown(self):
        app.dependency_overrides.clear()


class TestHealth(_ApiTestCase):
    def test_health(self):
        resp = self.client.get("/health")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), {"status": "ok"})


class TestActorHeader(_ApiTestCase):
    actor = None

    def test_missing_user_header_is_401(self):
        resp = self.client.get(f"/api/v1/orders/{uuid4()}")
        self.assertEqual(resp.status_code, 401)
        self.assertEqual(resp.json()["code"], "UNAUTHORIZED")

    def test_malformed_user_header_is_401(self):
        resp = self.client.get(f"/api/v1/orders/{uuid4()}", headers={"X-User-Id": "not-a-uuid"})
        self.assertEqual(resp.status_code, 401)


class TestToggleStatusRoute(_ApiTestCase):
    def test_admin_toggles_status(self):
        order = _fake_order(status_resolved=True)
        ledger = MagicMock()
        ledger.toggle_status = AsyncMock(return_value=order)
        with patch("orderdesk.api.routers.orders.OrderStatusLedger", return_value=ledger):
            resp = self.client.patch(
                f"/api/v1/orders/{order.id}/statuses",
                json={"status": "Resolved", "enabled": True, "expected_version": 1},
            )

        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertEqual(body["active_statuses"], ["Created", "Resolved"])
        self.assertEqual(body["price"], "150.00")
        ledger.toggle_status.assert_awaited_once_with(order.id, "Resolved", True, ADMIN, expected_version=1)

    def test_unknown_status_is_400(self):
        ledger = MagicMock()
        ledger.toggle_status = AsyncMock(side_effect=InvalidStatusError("Unknown status: 'Shipped'"))
        with patch("orderdesk.api.routers.orders.OrderStatusLedger", return_value=ledger):
            resp = self.client.patch(
                f"/api/v1/orders/{uuid4()}/statuses", json={"status": "Shipped", "enabled": True},
            )
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["code"], "INVALID_STATUS")

    def test_missing_enabled_is_422(self):
        resp = self.client.patch(f"/api/v1/orders/{uuid4()}/statuses", json={"status": "Resolved"})
        self.assertEqual(resp.status_code, 422)


class TestAdminOnlyRoutes(_ApiTestCase):
    actor = AGENT

    def test_non_admin_cannot_toggle(self):
        with patch("orderdesk.api.routers.orders.OrderStatusLedger") as ledger_cls:
            resp = self.client.patch(
                f"/api/v1/orders/{uuid4()}/statuses", json={"status": "Resolved", "enabled": True},
            )
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(resp.json()["code"], "FORBIDDEN")
        ledger_cls.assert_not_called()

    def test_non_admin_cannot_hard_delete(self):
        resp = self.client.delete(f"/api/v1/orders/{uuid4()}")
        self.assertEqual(resp.status_code, 403)

    def test_non_admin_cannot_run_review_sweep(self):
        resp = self.client.post("/api/v1/workflows/review-sweep")
        self.assertEqual(resp.status_code, 403)


class TestOrderRoutes(_ApiTestCase):
    def test_auto_assign_without_users_is_404(self):
        with patch("orderdesk.api.routers.orders.WorkflowService") as workflow_cls:
            workflow_cls.return_value.auto_assign_order = AsyncMock(return_value=None)
            resp = self.client.post(f"/api/v1/orders/{uuid4()}/auto-assign")
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.json()["code"], "NOT_FOUND")

    def test_create_order(self):
        order = _fake_order()
        with patch("orderdesk.api.routers.orders.OrderService") as service_cls:
            service_cls.return_value.create_order = AsyncMock(return_value=order)
            resp = self.client.post("/api/v1/orders", json={
                "company_name": "Acme", "contact_email": "ops@acme.test", "price": "150.00",
            })
        self.assertEqual(resp.status_code, 201)
        self.assertEqual(resp.json()["active_statuses"], ["Created"])
        data, actor = service_cls.return_value.create_order.call_args.args
        self.assertEqual(data["company_name"], "Acme")
        self.assertEqual(actor, ADMIN)


class TestProposalRoutes(_ApiTestCase):
    def test_next_number(self):
        with patch("orderdesk.api.routers.proposals.ProposalService") as service_cls:
            service_cls.return_value.next_identifiers = AsyncMock(
                return_value={"number": "AN-9985", "reference": "REF-2026-001"},
            )
            resp = self.client.get("/api/v1/proposals/next-number")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), {"number": "AN-9985", "reference": "REF-2026-001"})

    def test_patch_sends_only_supplied_fields(self):
        proposal_id = uuid4()
        with patch("orderdesk.api.routers.proposals.ProposalService") as service_cls:
            service_cls.return_value.update_proposal = AsyncMock(side_effect=NotFoundError("gone"))
            resp = self.client.patch(f"/api/v1/proposals/{proposal_id}", json={"vat_enabled": False})
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(
            service_cls.return_value.update_proposal.call_args.args, (proposal_id, {"vat_enabled": False}),
        )

    def test_vat_rate_is_a_fraction(self):
        resp = self.client.post("/api/v1/proposals", json={"customer": "Acme", "vat_rate": 19})
        self.assertEqual(resp.status_code, 422)


class TestRateLimit(unittest.TestCase):
    def test_requests_over_the_limit_get_429(self):
        import orderdesk.api.main as main_module

        self.addCleanup(importlib.reload, main_module)
        with patch.dict(os.environ, {"API_RATE_LIMIT": "2/minute"}):
            limited = importlib.reload(main_module)

        client = TestClient(limited.app, raise_server_exceptions=False)
        codes = [client.get("/health").status_code for _ in range(5)]

        self.assertEqual(codes[:2], [200, 200])
        self.assertEqual(codes[2:], [429, 429, 429])


if __name__ == "__main__":
    unittest.main()
