"""In-process order event bus.

Views and integrations subscribe to ``OrderChanged`` events instead of polling
for a refresh. Delivery is same-process and best-effort: a failing handler is
logged and the remaining handlers still run.
"""
from __future__ import annotations

import inspect
import logging
from typing import Any, Awaitable, Callable, List, Optional, Union

from orderdesk.domain.types import OrderChanged

logger = logging.getLogger(__name__)

OrderEventHandler = Callable[[OrderChanged], Union[None, Awaitable[None]]]


class OrderEventBus:
    def __init__(self) -> None:
        self._handlers: List[OrderEventHandler] = []

    def subscribe(self, handler: OrderEventHandler) -> Callable[[], None]:
        """Register *handler*; returns a callable that unsubscribes it."""
        self._handlers.append(handler)

        def _unsubscribe() -> None:
            if handler in self._handlers:
                self._handlers.remove(handler)

        return _unsubscribe

    @property
    def handler_count(self) -> int:
        return len(self._handlers)

    async def publish(self, event: OrderChanged) -> None:
        """Deliver *event* to every handler in subscription order."""
        for handler in list(self._handlers):
            try:
                result = handler(event)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception(
                    "OrderEventBus: handler %r failed for %s on order %s",
                    handler, event.field, event.order_id,
                )


# Events raised inside a request are parked on the session and only delivered
# once the surrounding transaction has committed.
PENDING_EVENTS_KEY = "orderdesk.pending_order_events"


def queue_event(session: Any, event: OrderChanged) -> None:
    session.info.setdefault(PENDING_EVENTS_KEY, []).append(event)


def pending_events(session: Any) -> List[OrderChanged]:
    return list(session.info.get(PENDING_EVENTS_KEY, []))


async def publish_pending(session: Any, bus: Optional[OrderEventBus]) -> int:
    """Publish and clear the events queued on *session*. Returns how many were sent."""
    events = session.info.pop(PENDING_EVENTS_KEY, [])
    if bus is None:
        return 0
    for event in events:
        await bus.publish(event)
    return len(events)


def discard_pending(session: Any) -> None:
    session.info.pop(PENDING_EVENTS_KEY, None)
