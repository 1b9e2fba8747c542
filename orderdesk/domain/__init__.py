"""Domain types: order statuses, value objects and the in-process event bus."""
from orderdesk.domain.events import OrderEventBus, publish_pending, queue_event
from orderdesk.domain.status import OrderStatus, active_statuses, parse_status
from orderdesk.domain.types import (
    SYSTEM_ACTOR,
    Actor,
    AuditAction,
    Currency,
    DeletedScope,
    NotificationType,
    OrderChanged,
    OrderFilters,
    Priority,
)

__all__ = [
    "OrderStatus",
    "active_statuses",
    "parse_status",
    "OrderEventBus",
    "queue_event",
    "publish_pending",
    "Actor",
    "SYSTEM_ACTOR",
    "AuditAction",
    "Currency",
    "DeletedScope",
    "NotificationType",
    "OrderChanged",
    "OrderFilters",
    "Priority",
]
