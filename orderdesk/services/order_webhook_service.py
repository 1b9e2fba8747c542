"""OrderWebhookService: outbound HMAC-signed webhook for order changes.

Outbound security model
-----------------------
Every event is signed with HMAC-SHA256 using ``ORDER_WEBHOOK_SECRET``.
The hex digest is sent in the ``X-Orderdesk-Signature: sha256=<hex>``
header so the receiving server can verify authenticity.

Typical verification (Python):
    import hashlib, hmac
    expected = hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()
    assert hmac.compare_digest(expected, received_sig.removeprefix("sha256="))

The dispatcher is registered on the OrderEventBus at startup, so it only
sees events from transactions that committed.
"""
from __future__ import annotations

import datetime as _dt
import hashlib
import hmac
import json
import logging
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx

from orderdesk.domain.types import OrderChanged

logger = logging.getLogger(__name__)

_TIMEOUT_SECONDS = 10
EVENT_NAME = "order.changed"


def _build_payload(event: OrderChanged) -> Dict[str, Any]:
    """Serialize an OrderChanged event into a flat webhook payload dict."""
    ts = _dt.datetime.now(_dt.timezone.utc).isoformat().replace("+00:00", "Z")
    value = event.value
    if not isinstance(value, (str, int, float, bool, list, type(None))):
        value = str(value)
    return {
        "event": EVENT_NAME,
        "timestamp": ts,
        "data": {
            "order_id": str(event.order_id),
            "field": event.field,
            "value": value,
            "actor_id": str(event.actor_id) if event.actor_id else None,
            "occurred_at": event.occurred_at.isoformat(),
        },
    }


def _sign(body: bytes, secret: str) -> str:
    """Return ``sha256=<hex>`` HMAC signature for *body* using *secret*."""
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
    return f"sha256={digest}"


async def dispatch(
    event: OrderChanged,
    webhook_url: Optional[str],
    webhook_secret: Optional[str],
    *,
    client: Optional[httpx.AsyncClient] = None,
) -> bool:
    """POST a signed JSON event to *webhook_url*.

    Drops the event if URL or secret is missing. Never raises; returns True
    when the receiver answered with a non-error status.
    """
    if not webhook_url or not webhook_secret:
        return False

    body = json.dumps(_build_payload(event), ensure_ascii=False).encode("utf-8")
    headers = {
        "Content-Type": "application/json",
        "X-Orderdesk-Signature": _sign(body, webhook_secret),
        "X-Orderdesk-Event": EVENT_NAME,
    }
    try:
        if client is not None:
            resp = await client.post(webhook_url, content=body, headers=headers)
        else:
            async with httpx.AsyncClient(timeout=_TIMEOUT_SECONDS) as own_client:
                resp = await own_client.post(webhook_url, content=body, headers=headers)
    except httpx.HTTPError as exc:
        logger.warning("OrderWebhook: %s for order %s → %s failed: %s",
                       event.field, event.order_id, webhook_url, exc,
                       extra={"order_id": str(event.order_id)})
        return False

    if resp.status_code >= 400:
        logger.warning("OrderWebhook: %s → %s returned HTTP %d",
                       event.field, webhook_url, resp.status_code,
                       extra={"order_id": str(event.order_id)})
        return False
    logger.info("OrderWebhook: %s for order %s dispatched → %s (%d)",
                event.field, event.order_id, webhook_url, resp.status_code,
                extra={"order_id": str(event.order_id)})
    return True


def make_webhook_handler(webhook_url: str, webhook_secret: str) -> Callable[[OrderChanged], Awaitable[bool]]:
    """Event bus subscriber that forwards every OrderChanged to the webhook."""

    async def _handler(event: OrderChanged) -> bool:
        return await dispatch(event, webhook_url, webhook_secret)

    return _handler


def verify_inbound(body: bytes, secret: str, provided_sig: str) -> bool:
    """Verify that *provided_sig* matches the HMAC of *body* with *secret*.

    *provided_sig* may be bare hex or ``sha256=<hex>``.
    """
    if not secret:
        return False
    clean = provided_sig.removeprefix("sha256=")
    expected = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
    return hmac.compare_digest(expected, clean)
