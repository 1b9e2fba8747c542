"""Unit tests for OrderStatusLedger with an in-memory order store and mocked trails."""
from __future__ import annotations

import asyncio
import unittest
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

from sqlalchemy.exc import OperationalError

from orderdesk.config.workflow import WorkflowConfig
from orderdesk.core.exceptions import (
    ConflictError,
    ExternalServiceError,
    InvalidStatusError,
    NotFoundError,
    ValidationError,
)
from orderdesk.domain.events import pending_events
from orderdesk.domain.status import STATUS_COLUMNS, active_statuses
from orderdesk.domain.types import Actor
from orderdesk.services.notification_service import NotificationDeduper
from orderdesk.services.status_ledger import OrderStatusLedger


def _run(coro):
    return asyncio.run(coro)


class _Savepoint:
    def __init__(self, session):
        self._session = session

    async def __aenter__(self):
        self._session.savepoints += 1
        return self

    async def __aexit__(self, exc_type, exc, tb):
        if exc_type is not None:
            self._session.rolled_back += 1
        return False


class _FakeSession:
    def __init__(self):
        self.info = {}
        self.savepoints = 0
        self.rolled_back = 0

    def begin_nested(self):
        return _Savepoint(self)


class _FakeOrders:
    """Just enough of OrderRepository for the ledger."""

    def __init__(self, *orders):
        self.rows = {o.id: o for o in orders}
        self.fail_set_flag = False
        self.set_flag_calls = 0

    async def get_by_id(self, id):
        return self.rows.get(id)

    async def set_flag(self, order, status, enabled):
        self.set_flag_calls += 1
        if self.fail_set_flag:
            raise OperationalError("UPDATE orders", {}, Exception("connection lost"))
        setattr(order, status.column, enabled)
        order.version += 1
        return order

    async def soft_delete(self, id):
        order = self.rows.get(id)
        order.deleted_at = "now"
        order.status_deleted = True
        order.version += 1
        return order

    async def restore(self, id):
        order = self.rows.get(id)
        order.deleted_at = None
        order.status_deleted = False
        order.version += 1
        return order


def _fake_order(**kwargs):
    defaults = {column: False for column in STATUS_COLUMNS.values()}
    defaults.update({
        "id": uuid4(),
        "company_name": "Acme",
        "assigned_to": None,
        "deleted_at": None,
        "version": 1,
        "status_created": True,
    })
    defaults.update(kwargs)
    return SimpleNamespace(**defaults)


ADMIN = Actor(id=uuid4(), name="Ada Admin", role="admin")


def _ledger(*orders, triggers=None):
    session = _FakeSession()
    workflow = MagicMock()
    workflow.triggers_for = MagicMock(return_value=triggers or [])
    workflow.run_trigger = AsyncMock()
    ledger = OrderStatusLedger(
        session, config=WorkflowConfig(), deduper=NotificationDeduper(60), workflow=workflow,
    )
    ledger._orders = _FakeOrders(*orders)
    ledger._history.add_entry = AsyncMock()
    ledger._audit.log = AsyncMock()
    ledger._outbox.record_failure = AsyncMock()
    ledger._outbox.list_failed = AsyncMock(return_value=[])
    ledger._outbox.apply = AsyncMock()
    ledger._notifications.send = AsyncMock()
    return ledger, session


class TestToggleStatus(unittest.TestCase):
    def test_enable_sets_flag_and_writes_one_history_and_one_audit(self):
        order = _fake_order()
        ledger, _ = _ledger(order)

        result = _run(ledger.toggle_status(order.id, "In Progress", True, ADMIN))

        self.assertTrue(result.status_in_progress)
        self.assertIn("In Progress", active_statuses(result))
        ledger._history.add_entry.assert_awaited_once()
        kwargs = ledger._history.add_entry.call_args.kwargs
        self.assertEqual(kwargs["order_id"], order.id)
        self.assertEqual(kwargs["status"], "In Progress")
        self.assertTrue(kwargs["enabled"])
        self.assertEqual(kwargs["actor_id"], ADMIN.id)
        self.assertEqual(kwargs["actor_name"], "Ada Admin")

        ledger._audit.log.assert_awaited_once()
        audit = ledger._audit.log.call_args.kwargs
        self.assertEqual(audit["order_id"], order.id)
        self.assertEqual(audit["action"], "status_change")
        self.assertEqual(audit["details"], "In Progress: Status added")

    def test_disable_clears_flag(self):
        order = _fake_order(status_in_progress=True)
        ledger, _ = _ledger(order)

        result = _run(ledger.toggle_status(order.id, "In Progress", False, ADMIN))

        self.assertNotIn("In Progress", active_statuses(result))
        self.assertEqual(ledger._audit.log.call_args.kwargs["details"], "In Progress: Status removed")

    def test_every_status_can_be_toggled_on_and_off(self):
        for name in ("Created", "Complaint", "Invoice Sent", "Resolved", "Cancelled", "Review"):
            order = _fake_order(status_created=False)
            ledger, _ = _ledger(order)
            _run(ledger.toggle_status(order.id, name, True, ADMIN))
            self.assertIn(name, active_statuses(order))
            _run(ledger.toggle_status(order.id, name, False, ADMIN))
            self.assertNotIn(name, active_statuses(order))

    def test_invalid_status_writes_nothing(self):
        order = _fake_order()
        ledger, _ = _ledger(order)
        ledger._orders.get_by_id = AsyncMock(return_value=order)

        with self.assertRaises(InvalidStatusError):
            _run(ledger.toggle_status(order.id, "Shipped", True, ADMIN))

        ledger._orders.get_by_id.assert_not_awaited()
        self.assertEqual(ledger._orders.set_flag_calls, 0)
        ledger._history.add_entry.assert_not_awaited()
        ledger._audit.log.assert_not_awaited()

    def test_non_boolean_enabled_rejected(self):
        order = _fake_order()
        ledger, _ = _ledger(order)
        with self.assertRaises(ValidationError):
            _run(ledger.toggle_status(order.id, "Review", "yes", ADMIN))
        self.assertEqual(ledger._orders.set_flag_calls, 0)

    def test_unknown_order(self):
        ledger, _ = _ledger()
        with self.assertRaises(NotFoundError):
            _run(ledger.toggle_status(uuid4(), "Review", True, ADMIN))
        ledger._history.add_entry.assert_not_awaited()

    def test_stale_expected_version_conflicts(self):
        order = _fake_order(version=4)
        ledger, _ = _ledger(order)

        with self.assertRaises(ConflictError) as ctx:
            _run(ledger.toggle_status(order.id, "Review", True, ADMIN, expected_version=3))

        self.assertEqual(ctx.exception.details["current_version"], 4)
        self.assertEqual(ledger._orders.set_flag_calls, 0)
        self.assertFalse(order.status_review)

    def test_matching_expected_version_bumps_version(self):
        order = _fake_order(version=4)
        ledger, _ = _ledger(order)
        result = _run(ledger.toggle_status(order.id, "Review", True, ADMIN, expected_version=4))
        self.assertEqual(result.version, 5)

    def test_primary_write_failure_aborts_without_trail(self):
        order = _fake_order()
        ledger, _ = _ledger(order)
        ledger._orders.fail_set_flag = True

        with self.assertRaises(ExternalServiceError):
            _run(ledger.toggle_status(order.id, "Complaint", True, ADMIN))

        ledger._history.add_entry.assert_not_awaited()
        ledger._audit.log.assert_not_awaited()
        ledger._outbox.record_failure.assert_not_awaited()

    def test_deleted_goes_through_soft_delete_and_restore(self):
        order = _fake_order()
        ledger, _ = _ledger(order)

        _run(ledger.toggle_status(order.id, "Deleted", True, ADMIN))
        self.assertEqual(order.deleted_at, "now")
        self.assertTrue(order.status_deleted)

        _run(ledger.toggle_status(order.id, "Deleted", False, ADMIN))
        self.assertIsNone(order.deleted_at)
        self.assertFalse(order.status_deleted)
        self.assertEqual(ledger._orders.set_flag_calls, 0)

    def test_deleting_an_already_deleted_order_records_nothing(self):
        order = _fake_order(deleted_at="earlier", status_deleted=True, assigned_to=uuid4())
        ledger, session = _ledger(order)
        ledger._orders.soft_delete = AsyncMock()

        result = _run(ledger.toggle_status(order.id, "Deleted", True, ADMIN))

        self.assertIs(result, order)
        self.assertEqual(order.version, 1)
        ledger._orders.soft_delete.assert_not_awaited()
        ledger._history.add_entry.assert_not_awaited()
        ledger._audit.log.assert_not_awaited()
        ledger._notifications.send.assert_not_awaited()
        self.assertEqual(pending_events(session), [])

    def test_restoring_an_active_order_records_nothing(self):
        order = _fake_order()
        ledger, session = _ledger(order)
        ledger._orders.restore = AsyncMock()

        _run(ledger.toggle_status(order.id, "Deleted", False, ADMIN))

        ledger._orders.restore.assert_not_awaited()
        ledger._history.add_entry.assert_not_awaited()
        ledger._audit.log.assert_not_awaited()
        self.assertEqual(pending_events(session), [])

    def test_queues_order_changed_event(self):
        order = _fake_order()
        ledger, session = _ledger(order)

        _run(ledger.toggle_status(order.id, "Review", True, ADMIN))

        events = pending_events(session)
        self.assertEqual(len(events), 1)
        self.assertEqual(events[0].order_id, order.id)
        self.assertEqual(events[0].field, "Review")
        self.assertTrue(events[0].value)
        self.assertEqual(events[0].actor_id, ADMIN.id)


class TestStatusNotifications(unittest.TestCase):
    def test_assignee_is_notified(self):
        assignee = uuid4()
        order = _fake_order(assigned_to=assignee)
        ledger, _ = _ledger(order)

        _run(ledger.toggle_status(order.id, "Complaint", True, ADMIN))

        ledger._notifications.send.assert_awaited_once()
        kwargs = ledger._notifications.send.call_args.kwargs
        self.assertEqual(kwargs["user_id"], assignee)
        self.assertEqual(kwargs["order_id"], order.id)
        self.assertEqual(kwargs["action_url"], f"/dashboard?order={order.id}")
        self.assertIn("Complaint", kwargs["message"])

    def test_actor_changing_own_order_is_not_notified(self):
        order = _fake_order(assigned_to=ADMIN.id)
        ledger, _ = _ledger(order)
        _run(ledger.toggle_status(order.id, "Complaint", True, ADMIN))
        ledger._notifications.send.assert_not_awaited()

    def test_unassigned_order_is_not_notified(self):
        order = _fake_order()
        ledger, _ = _ledger(order)
        _run(ledger.toggle_status(order.id, "Complaint", True, ADMIN))
        ledger._notifications.send.assert_not_awaited()

    def test_repeat_within_window_is_deduplicated(self):
        order = _fake_order(assigned_to=uuid4())
        ledger, _ = _ledger(order)

        _run(ledger.toggle_status(order.id, "Review", True, ADMIN))
        _run(ledger.toggle_status(order.id, "Review", True, ADMIN))

        ledger._notifications.send.assert_awaited_once()
        self.assertEqual(ledger._history.add_entry.await_count, 2)

    def test_notify_false_skips_notification(self):
        order = _fake_order(assigned_to=uuid4())
        ledger, _ = _ledger(order)
        _run(ledger.toggle_status(order.id, "Review", True, ADMIN, notify=False))
        ledger._notifications.send.assert_not_awaited()


class TestSideEffectIsolation(unittest.TestCase):
    def test_history_failure_is_parked_and_flag_kept(self):
        order = _fake_order()
        ledger, session = _ledger(order)
        ledger._history.add_entry = AsyncMock(side_effect=RuntimeError("history table locked"))

        result = _run(ledger.toggle_status(order.id, "Complaint", True, ADMIN))

        self.assertTrue(result.status_complaint)
        ledger._audit.log.assert_awaited_once()
        ledger._outbox.record_failure.assert_awaited_once()
        parked = ledger._outbox.record_failure.call_args.kwargs
        self.assertEqual(parked["kind"], "history")
        self.assertEqual(parked["order_id"], order.id)
        self.assertEqual(parked["payload"]["status"], "Complaint")
        self.assertIn("history table locked", parked["error"])
        self.assertEqual(session.rolled_back, 1)

    def test_notification_failure_does_not_raise(self):
        order = _fake_order(assigned_to=uuid4())
        ledger, _ = _ledger(order)
        ledger._notifications.send = AsyncMock(side_effect=RuntimeError("smtp down"))

        result = _run(ledger.toggle_status(order.id, "Resolved", True, ADMIN))

        self.assertTrue(result.status_resolved)
        self.assertEqual(ledger._outbox.record_failure.call_args.kwargs["kind"], "notification")

    def test_outbox_failure_is_swallowed(self):
        order = _fake_order()
        ledger, _ = _ledger(order)
        ledger._audit.log = AsyncMock(side_effect=RuntimeError("audit down"))
        ledger._outbox.record_failure = AsyncMock(side_effect=RuntimeError("outbox down"))

        result = _run(ledger.toggle_status(order.id, "Review", True, ADMIN))
        self.assertTrue(result.status_review)

    def test_triggers_run_as_automation_steps(self):
        order = _fake_order()
        ledger, _ = _ledger(order, triggers=["sync_invoice", "clear_invoice_sent"])

        _run(ledger.toggle_status(order.id, "Invoice Paid", True, ADMIN))

        self.assertEqual(ledger.workflow.run_trigger.await_count, 2)
        names = [c.args[0] for c in ledger.workflow.run_trigger.call_args_list]
        self.assertEqual(names, ["sync_invoice", "clear_invoice_sent"])
        self.assertEqual(ledger.workflow.run_trigger.call_args.args[1], order.id)
        self.assertEqual(ledger.workflow.run_trigger.call_args.args[2].id, ADMIN.id)

    def test_failed_trigger_is_parked(self):
        order = _fake_order()
        ledger, _ = _ledger(order, triggers=["sync_invoice"])
        ledger.workflow.run_trigger = AsyncMock(side_effect=RuntimeError("invoice service down"))

        result = _run(ledger.toggle_status(order.id, "Invoice Sent", True, ADMIN))

        self.assertTrue(result.status_invoice_sent)
        parked = ledger._outbox.record_failure.call_args.kwargs
        self.assertEqual(parked["kind"], "automation")
        self.assertEqual(parked["payload"]["trigger"], "sync_invoice")

    def test_run_triggers_false_skips_automation(self):
        order = _fake_order()
        ledger, _ = _ledger(order, triggers=["sync_invoice"])
        _run(ledger.toggle_status(order.id, "Invoice Sent", True, ADMIN, run_triggers=False))
        ledger.workflow.triggers_for.assert_not_called()
        ledger.workflow.run_trigger.assert_not_awaited()


class TestRetryFailedSideEffects(unittest.TestCase):
    def _effect(self, kind, payload, attempts=1):
        return SimpleNamespace(id=uuid4(), kind=kind, order_id=uuid4(), payload=payload, attempts=attempts)

    def test_successful_replay_marks_done(self):
        ledger, _ = _ledger()
        order_id = uuid4()
        effect = self._effect("history", {
            "order_id": str(order_id), "status": "Review", "enabled": True,
            "actor_id": None, "actor_name": "System",
        })
        ledger._outbox.list_failed = AsyncMock(return_value=[effect])

        result = _run(ledger.retry_failed_side_effects())

        self.assertEqual(result, {"retried": 1, "succeeded": 1})
        ledger._history.add_entry.assert_awaited_once()
        self.assertEqual(ledger._history.add_entry.call_args.kwargs["order_id"], order_id)
        ledger._outbox.apply.assert_awaited_once_with(effect, {"status": "done", "attempts": 2})

    def test_failed_replay_bumps_attempts(self):
        ledger, _ = _ledger()
        effect = self._effect("audit", {"order_id": None, "action": "updated", "details": "x"}, attempts=2)
        ledger._outbox.list_failed = AsyncMock(return_value=[effect])
        ledger._audit.log = AsyncMock(side_effect=RuntimeError("still down"))

        result = _run(ledger.retry_failed_side_effects())

        self.assertEqual(result, {"retried": 1, "succeeded": 0})
        data = ledger._outbox.apply.call_args.args[1]
        self.assertEqual(data["attempts"], 3)
        self.assertIn("still down", data["last_error"])

    def test_automation_replay_calls_trigger(self):
        ledger, _ = _ledger()
        order_id = uuid4()
        effect = self._effect("automation", {
            "trigger": "resolve_complaint", "order_id": str(order_id),
            "actor_id": str(ADMIN.id), "actor_name": ADMIN.name, "actor_role": "admin",
        })
        ledger._outbox.list_failed = AsyncMock(return_value=[effect])

        _run(ledger.retry_failed_side_effects())

        name, replay_order_id, actor = ledger.workflow.run_trigger.call_args.args
        self.assertEqual(name, "resolve_complaint")
        self.assertEqual(replay_order_id, order_id)
        self.assertEqual(actor, ADMIN)

    def test_unknown_kind_stays_failed(self):
        ledger, _ = _ledger()
        ledger._outbox.list_failed = AsyncMock(return_value=[self._effect("fax", {})])
        result = _run(ledger.retry_failed_side_effects())
        self.assertEqual(result["succeeded"], 0)


if __name__ == "__main__":
    unittest.main()
