"""Unit tests for CompanyService, mainly the sync from order contact data."""
from __future__ import annotations

import asyncio
import unittest
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

from orderdesk.core.exceptions import ConflictError, NotFoundError, ValidationError
from orderdesk.services.company_service import CompanyService, company_key


def _run(coro):
    return asyncio.run(coro)


class _Savepoint:
    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False


def _service():
    session = MagicMock()
    session.begin_nested = MagicMock(side_effect=lambda: _Savepoint())
    svc = CompanyService(session)
    svc._repo.create = AsyncMock(side_effect=lambda data: SimpleNamespace(id=uuid4(), **data))
    return svc


def _order(name, email, contact=None):
    return SimpleNamespace(
        company_name=name, contact_email=email, contact_name=contact,
        contact_phone=None, company_address=None, company_link=None,
    )


class TestCompanyKey(unittest.TestCase):
    def test_trims_and_lowercases(self):
        self.assertEqual(company_key("  ACME GmbH "), "acme gmbh")


class TestSyncFromOrders(unittest.TestCase):
    def test_creates_missing_companies_from_newest_order(self):
        svc = _service()
        svc._repo.existing_name_keys = AsyncMock(return_value={"globex"})
        # newest first
        svc._orders.list_for_company_sync = AsyncMock(return_value=[
            _order("Acme ", "new@acme.test", "Nora New"),
            _order("acme", "old@acme.test", "Olaf Old"),
            _order("Globex", "ops@globex.test"),
            _order("", "nobody@example.test"),
        ])

        created = _run(svc.sync_from_orders())

        self.assertEqual(created, 1)
        data = svc._repo.create.call_args.args[0]
        self.assertEqual(data["name"], "Acme")
        self.assertEqual(data["email"], "new@acme.test")
        self.assertEqual(data["contact_person"], "Nora New")

    def test_failure_skips_one_company(self):
        svc = _service()
        svc._repo.existing_name_keys = AsyncMock(return_value=set())
        svc._orders.list_for_company_sync = AsyncMock(return_value=[
            _order("Acme", "a@acme.test"),
            _order("Initech", "i@initech.test"),
        ])
        svc._repo.create = AsyncMock(side_effect=[RuntimeError("unique violation"), SimpleNamespace(id=uuid4())])

        self.assertEqual(_run(svc.sync_from_orders()), 1)
        self.assertEqual(svc._repo.create.await_count, 2)

    def test_missing_contact_name_becomes_empty(self):
        svc = _service()
        svc._repo.existing_name_keys = AsyncMock(return_value=set())
        svc._orders.list_for_company_sync = AsyncMock(return_value=[_order("Acme", "a@acme.test")])
        _run(svc.sync_from_orders())
        self.assertEqual(svc._repo.create.call_args.args[0]["contact_person"], "")


class TestCompanyCrud(unittest.TestCase):
    def test_duplicate_name(self):
        svc = _service()
        svc._repo.find_by_name = AsyncMock(return_value=SimpleNamespace(id=uuid4(), name="Acme"))
        with self.assertRaises(ConflictError):
            _run(svc.create_company({"name": "ACME", "email": "a@acme.test"}))

    def test_required_and_unknown_fields(self):
        svc = _service()
        with self.assertRaises(ValidationError):
            _run(svc.create_company({"name": "Acme"}))
        with self.assertRaises(ValidationError):
            _run(svc.create_company({"name": "Acme", "email": "a@acme.test", "vat_id": "X"}))

    def test_delete_missing(self):
        svc = _service()
        svc._repo.delete = AsyncMock(return_value=False)
        with self.assertRaises(NotFoundError):
            _run(svc.delete_company(uuid4()))


if __name__ == "__main__":
    unittest.main()
