"""Tests for the outbound order webhook: signing, payload and delivery."""
from __future__ import annotations

import asyncio
import hashlib
import hmac
import json
import unittest
from uuid import uuid4

import httpx

from orderdesk.domain.types import OrderChanged
from orderdesk.services.order_webhook_service import (
    EVENT_NAME,
    _build_payload,
    _sign,
    dispatch,
    verify_inbound,
)

SECRET = "s3cret"
URL = "https://hooks.example.test/orders"


def _run(coro):
    return asyncio.run(coro)


def _event():
    return OrderChanged(order_id=uuid4(), field="Invoice Paid", value=True, actor_id=uuid4())


class TestSignature(unittest.TestCase):
    def test_sign_matches_hmac(self):
        body = b'{"event":"order.changed"}'
        expected = hmac.new(SECRET.encode(), body, hashlib.sha256).hexdigest()
        self.assertEqual(_sign(body, SECRET), f"sha256={expected}")

    def test_verify_inbound(self):
        body = b"payload"
        sig = _sign(body, SECRET)
        self.assertTrue(verify_inbound(body, SECRET, sig))
        self.assertTrue(verify_inbound(body, SECRET, sig.removeprefix("sha256=")))
        self.assertFalse(verify_inbound(b"tampered", SECRET, sig))
        self.assertFalse(verify_inbound(body, "", sig))


class TestPayload(unittest.TestCase):
    def test_payload_shape(self):
        event = _event()
        payload = _build_payload(event)
        self.assertEqual(payload["event"], EVENT_NAME)
        self.assertEqual(payload["data"]["order_id"], str(event.order_id))
        self.assertEqual(payload["data"]["field"], "Invoice Paid")
        self.assertIs(payload["data"]["value"], True)
        json.dumps(payload)

    def test_non_json_values_are_stringified(self):
        assignee = uuid4()
        payload = _build_payload(OrderChanged(order_id=uuid4(), field="assignment", value=assignee))
        self.assertEqual(payload["data"]["value"], str(assignee))
        self.assertIsNone(payload["data"]["actor_id"])


class TestDispatch(unittest.TestCase):
    def _client(self, status_code, captured):
        def handler(request: httpx.Request) -> httpx.Response:
            captured.append(request)
            return httpx.Response(status_code)

        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    def test_success_is_signed(self):
        captured = []

        async def go():
            async with self._client(200, captured) as client:
                return await dispatch(_event(), URL, SECRET, client=client)

        self.assertTrue(_run(go()))
        request = captured[0]
        self.assertEqual(request.headers["X-Orderdesk-Event"], EVENT_NAME)
        self.assertTrue(verify_inbound(request.content, SECRET, request.headers["X-Orderdesk-Signature"]))

    def test_error_status_returns_false(self):
        captured = []

        async def go():
            async with self._client(500, captured) as client:
                return await dispatch(_event(), URL, SECRET, client=client)

        self.assertFalse(_run(go()))

    def test_transport_error_returns_false(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        async def go():
            async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
                return await dispatch(_event(), URL, SECRET, client=client)

        self.assertFalse(_run(go()))

    def test_missing_url_or_secret(self):
        self.assertFalse(_run(dispatch(_event(), None, SECRET)))
        self.assertFalse(_run(dispatch(_event(), URL, None)))


if __name__ == "__main__":
    unittest.main()
