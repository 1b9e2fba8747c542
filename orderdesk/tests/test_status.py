"""Tests for order status names, parsing and the active-status view."""
from __future__ import annotations

import unittest
from types import SimpleNamespace

from orderdesk.core.exceptions import InvalidStatusError, ValidationError
from orderdesk.domain.status import (
    STATUS_COLUMNS,
    STATUS_NAMES,
    OrderStatus,
    active_statuses,
    parse_status,
)


def _fake_order(**flags):
    defaults = {column: False for column in STATUS_COLUMNS.values()}
    defaults.update(flags)
    return SimpleNamespace(**defaults)


class TestStatusNames(unittest.TestCase):
    def test_nine_statuses_in_priority_order(self):
        self.assertEqual(STATUS_NAMES, [
            "Created", "In Progress", "Complaint", "Invoice Sent", "Invoice Paid",
            "Resolved", "Cancelled", "Deleted", "Review",
        ])

    def test_columns(self):
        self.assertEqual(OrderStatus.IN_PROGRESS.column, "status_in_progress")
        self.assertEqual(OrderStatus.INVOICE_PAID.column, "status_invoice_paid")
        self.assertEqual(OrderStatus.CREATED.column, "status_created")


class TestParseStatus(unittest.TestCase):
    def test_display_name(self):
        self.assertIs(parse_status("Invoice Sent"), OrderStatus.INVOICE_SENT)

    def test_column_name(self):
        self.assertIs(parse_status("status_review"), OrderStatus.REVIEW)

    def test_enum_passthrough(self):
        self.assertIs(parse_status(OrderStatus.DELETED), OrderStatus.DELETED)

    def test_unknown_name_raises(self):
        with self.assertRaises(InvalidStatusError) as ctx:
            parse_status("Shipped")
        self.assertEqual(ctx.exception.code, "INVALID_STATUS")
        self.assertEqual(ctx.exception.http_status, 400)
        self.assertIn("Review", ctx.exception.details["allowed"])

    def test_invalid_status_is_a_validation_error(self):
        with self.assertRaises(ValidationError):
            parse_status("in progress")

    def test_non_string_raises(self):
        with self.assertRaises(InvalidStatusError):
            parse_status(None)


class TestActiveStatuses(unittest.TestCase):
    def test_returns_set_flags_in_fixed_order(self):
        order = _fake_order(status_review=True, status_created=True, status_complaint=True)
        self.assertEqual(active_statuses(order), ["Created", "Complaint", "Review"])

    def test_pure_and_repeatable(self):
        order = _fake_order(status_in_progress=True, status_invoice_paid=True)
        first = active_statuses(order)
        second = active_statuses(order)
        self.assertEqual(first, second)
        self.assertEqual(first, ["In Progress", "Invoice Paid"])

    def test_missing_or_none_attributes_count_as_unset(self):
        order = SimpleNamespace(status_resolved=True, status_complaint=None)
        self.assertEqual(active_statuses(order), ["Resolved"])

    def test_empty(self):
        self.assertEqual(active_statuses(_fake_order()), [])

    def test_each_status_round_trips_through_its_flag(self):
        for status in OrderStatus:
            order = _fake_order(**{status.column: True})
            self.assertEqual(active_statuses(order), [status.value])


if __name__ == "__main__":
    unittest.main()
