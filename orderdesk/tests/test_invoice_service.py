"""Unit tests for InvoiceService: money arithmetic and order workflow hand-off."""
from __future__ import annotations

import asyncio
import datetime as _dt
import unittest
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

from orderdesk.core.exceptions import NotFoundError, ValidationError
from orderdesk.domain.types import Actor
from orderdesk.services.invoice_service import (
    InvoiceService,
    compute_line_total,
    compute_totals,
    normalize_line_item,
)


def _run(coro):
    return asyncio.run(coro)


ADMIN = Actor(id=uuid4(), name="Ada Admin", role="admin")


def _service(invoice=None):
    session = MagicMock()
    session.refresh = AsyncMock()
    workflow = MagicMock()
    workflow.handle_invoice_created = AsyncMock(return_value=True)
    workflow.handle_payment_received = AsyncMock(return_value=True)
    svc = InvoiceService(session, workflow=workflow)

    async def _apply(inv, data):
        for key, value in data.items():
            setattr(inv, key, value)
        return inv

    svc._repo.get_by_id = AsyncMock(return_value=invoice)
    svc._repo.apply = AsyncMock(side_effect=_apply)
    svc._repo.next_invoice_number = AsyncMock(return_value="INV-2026-0001")
    svc._repo.create = AsyncMock(side_effect=lambda data: SimpleNamespace(id=uuid4(), total_amount=Decimal("0"), **data))
    svc._items.list_for_invoice = AsyncMock(return_value=[])
    svc._items.create = AsyncMock()
    return svc, workflow, session


class TestInvoiceArithmetic(unittest.TestCase):
    def test_line_total_applies_discount(self):
        self.assertEqual(compute_line_total(Decimal("3"), Decimal("100"), Decimal("0.1")), Decimal("270.00"))

    def test_line_total_rounds_half_up(self):
        self.assertEqual(compute_line_total(Decimal("1"), Decimal("0.125")), Decimal("0.13"))

    def test_totals(self):
        items = [
            SimpleNamespace(line_total=Decimal("270.00"), vat_rate=Decimal("0.2")),
            SimpleNamespace(line_total=Decimal("100.00"), vat_rate=Decimal("0")),
        ]
        self.assertEqual(compute_totals(items), (Decimal("370.00"), Decimal("54.00"), Decimal("424.00")))

    def test_totals_of_nothing(self):
        self.assertEqual(compute_totals([]), (Decimal("0.00"), Decimal("0.00"), Decimal("0.00")))


class TestNormalizeLineItem(unittest.TestCase):
    def test_defaults_and_total(self):
        item = normalize_line_item({"description": " Setup ", "unit_price": "49.90"})
        self.assertEqual(item["description"], "Setup")
        self.assertEqual(item["quantity"], Decimal("1"))
        self.assertEqual(item["line_total"], Decimal("49.90"))

    def test_rejects_bad_items(self):
        bad_items = [
            {"unit_price": 10},
            {"description": "x", "quantity": 0},
            {"description": "x", "unit_price": -1},
            {"description": "x", "vat_rate": "1.5"},
            {"description": "x", "discount_rate": "-0.1"},
            {"description": "x", "quantity": "many"},
        ]
        for item in bad_items:
            with self.assertRaises(ValidationError, msg=repr(item)):
                normalize_line_item(item)


class TestCreateInvoice(unittest.TestCase):
    def test_due_date_defaults_to_payment_terms(self):
        svc, workflow, _ = _service()
        invoice = _run(svc.create_invoice({"issue_date": _dt.date(2026, 1, 1)}, ADMIN))
        self.assertEqual(invoice.due_date, _dt.date(2026, 1, 15))
        self.assertEqual(invoice.status, "draft")
        workflow.handle_invoice_created.assert_not_awaited()

    def test_linked_order_is_marked_invoice_sent(self):
        svc, workflow, session = _service()
        order_id = uuid4()
        invoice = _run(svc.create_invoice({"order_id": order_id, "line_items": [
            {"description": "Consulting", "quantity": 3, "unit_price": 100, "discount_rate": "0.1"},
        ]}, ADMIN))
        workflow.handle_invoice_created.assert_awaited_once_with(order_id, ADMIN)
        session.refresh.assert_awaited_once_with(invoice)
        created = svc._items.create.call_args.args[0]
        self.assertEqual(created["line_total"], Decimal("270.00"))

    def test_invalid_currency(self):
        svc, _, _ = _service()
        with self.assertRaises(ValidationError):
            _run(svc.create_invoice({"currency": "JPY"}, ADMIN))

    def test_due_before_issue(self):
        svc, _, _ = _service()
        with self.assertRaises(ValidationError):
            _run(svc.create_invoice({"issue_date": _dt.date(2026, 2, 1), "due_date": _dt.date(2026, 1, 1)}))


class TestUpdateStatus(unittest.TestCase):
    def test_paid_marks_payment_received(self):
        order_id = uuid4()
        invoice = SimpleNamespace(id=uuid4(), invoice_number="INV-1", status="sent", order_id=order_id)
        svc, workflow, _ = _service(invoice)

        result = _run(svc.update_status(invoice.id, "paid", ADMIN))

        self.assertEqual(result.status, "paid")
        workflow.handle_payment_received.assert_awaited_once_with(order_id, ADMIN)
        workflow.handle_invoice_created.assert_not_awaited()

    def test_sent_marks_invoice_sent(self):
        order_id = uuid4()
        invoice = SimpleNamespace(id=uuid4(), invoice_number="INV-1", status="draft", order_id=order_id)
        svc, workflow, _ = _service(invoice)
        _run(svc.update_status(invoice.id, "sent", ADMIN))
        workflow.handle_invoice_created.assert_awaited_once_with(order_id, ADMIN)

    def test_same_status_is_a_no_op(self):
        invoice = SimpleNamespace(id=uuid4(), invoice_number="INV-1", status="paid", order_id=uuid4())
        svc, workflow, _ = _service(invoice)
        _run(svc.update_status(invoice.id, "paid", ADMIN))
        svc._repo.apply.assert_not_awaited()
        workflow.handle_payment_received.assert_not_awaited()

    def test_unlinked_invoice_leaves_orders_alone(self):
        invoice = SimpleNamespace(id=uuid4(), invoice_number="INV-1", status="sent", order_id=None)
        svc, workflow, _ = _service(invoice)
        _run(svc.update_status(invoice.id, "paid", ADMIN))
        workflow.handle_payment_received.assert_not_awaited()

    def test_unknown_status_and_invoice(self):
        svc, _, _ = _service(None)
        with self.assertRaises(ValidationError):
            _run(svc.update_status(uuid4(), "lost", ADMIN))
        with self.assertRaises(NotFoundError):
            _run(svc.update_status(uuid4(), "paid", ADMIN))


class TestLineItems(unittest.TestCase):
    def test_remove_item_from_other_invoice(self):
        invoice = SimpleNamespace(id=uuid4(), invoice_number="INV-1", status="draft", order_id=None)
        svc, _, _ = _service(invoice)
        svc._items.get_by_id = AsyncMock(return_value=SimpleNamespace(id=uuid4(), invoice_id=uuid4()))
        with self.assertRaises(NotFoundError):
            _run(svc.remove_line_item(invoice.id, uuid4()))

    def test_recalculate_totals(self):
        invoice = SimpleNamespace(id=uuid4(), invoice_number="INV-1", status="draft", order_id=None)
        svc, _, _ = _service(invoice)
        svc._items.list_for_invoice = AsyncMock(return_value=[
            SimpleNamespace(line_total=Decimal("270.00"), vat_rate=Decimal("0.2")),
            SimpleNamespace(line_total=Decimal("100.00"), vat_rate=Decimal("0")),
        ])
        result = _run(svc.recalculate_totals(invoice))
        self.assertEqual(result.total_amount, Decimal("424.00"))


if __name__ == "__main__":
    unittest.main()
