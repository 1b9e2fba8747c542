"""Order status flags: the fixed set of names, their columns, and the active view."""
from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Union

from orderdesk.core.exceptions import InvalidStatusError


class OrderStatus(str, Enum):
    """The nine independent status flags. Declaration order is display priority."""
    CREATED = "Created"
    IN_PROGRESS = "In Progress"
    COMPLAINT = "Complaint"
    INVOICE_SENT = "Invoice Sent"
    INVOICE_PAID = "Invoice Paid"
    RESOLVED = "Resolved"
    CANCELLED = "Cancelled"
    DELETED = "Deleted"
    REVIEW = "Review"

    @property
    def column(self) -> str:
        """Boolean column on ``orders`` backing this flag (e.g. ``status_in_progress``)."""
        return STATUS_COLUMNS[self]


STATUS_COLUMNS: Dict[OrderStatus, str] = {
    status: "status_" + status.value.lower().replace(" ", "_")
    for status in OrderStatus
}

STATUS_NAMES: List[str] = [s.value for s in OrderStatus]

# Statuses that close an order for workload counting
CLOSED_STATUSES = (OrderStatus.RESOLVED, OrderStatus.CANCELLED)


def parse_status(name: Union[str, OrderStatus]) -> OrderStatus:
    """Return the OrderStatus for *name*; raise InvalidStatusError otherwise.

    Accepts the display name ("Invoice Sent") or the column name
    ("status_invoice_sent").
    """
    if isinstance(name, OrderStatus):
        return name
    if isinstance(name, str):
        try:
            return OrderStatus(name)
        except ValueError:
            for status, column in STATUS_COLUMNS.items():
                if name == column:
                    return status
    raise InvalidStatusError(
        f"Unknown order status: {name!r}",
        details={"status": name, "allowed": STATUS_NAMES},
    )


def is_active(order: Any, status: OrderStatus) -> bool:
    return getattr(order, status.column, None) is True


def active_statuses(order: Any) -> List[str]:
    """Names of the flags that are set on *order*, in priority order.

    Works on ORM rows and on any object exposing the ``status_*`` attributes;
    a missing or None attribute counts as not set.
    """
    return [status.value for status in OrderStatus if is_active(order, status)]
