"""Value types shared by the services and the API layer."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, List, Optional
from uuid import UUID


class Currency(str, Enum):
    EUR = "EUR"
    USD = "USD"
    GBP = "GBP"
    CHF = "CHF"


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class DeletedScope(str, Enum):
    """Which orders a listing sees with respect to soft deletion."""
    ACTIVE = "active"
    DELETED_ONLY = "deleted_only"
    ALL = "all"


class AuditAction(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    ASSIGNMENT = "assignment"
    STATUS_CHANGE = "status_change"
    DELETED = "deleted"
    RESTORED = "restored"


class NotificationType(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class Actor:
    """The user performing an operation, used for audit attribution."""

    id: Optional[UUID]
    name: str
    role: str = "user"

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


SYSTEM_ACTOR = Actor(id=None, name="System", role="system")


@dataclass(frozen=True)
class OrderChanged:
    """Payload published on the event bus after an order mutation succeeds.

    ``field`` names what changed: a status name for flag toggles, or one of
    "created", "updated", "assignment", "deleted", "restored".
    """

    order_id: UUID
    field: str
    value: Any = None
    actor_id: Optional[UUID] = None
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class OrderFilters:
    """Criteria for listing orders. Empty lists and None mean "no constraint"."""

    text: Optional[str] = None
    company_name: Optional[str] = None
    contact_email: Optional[str] = None
    statuses: List[str] = field(default_factory=list)
    priorities: List[str] = field(default_factory=list)
    assignees: List[str] = field(default_factory=list)
    """Profile ids as strings; the literal "unassigned" matches orders without one."""
    currencies: List[str] = field(default_factory=list)
    created_from: Optional[datetime] = None
    created_to: Optional[datetime] = None
    price_min: Optional[Decimal] = None
    price_max: Optional[Decimal] = None
    is_yearly_package: Optional[bool] = None
    deleted: DeletedScope = DeletedScope.ACTIVE
    skip: int = 0
    limit: int = 100
