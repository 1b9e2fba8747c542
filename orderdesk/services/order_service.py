"""OrderService: create, edit, assign, list and delete orders.

Status flags are not edited here; they go through OrderStatusLedger so every
change is recorded in the history and audit logs.
"""
from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING, Any, Dict, List, Optional
from uuid import UUID

from orderdesk.config.workflow import WorkflowConfig
from orderdesk.core.exceptions import ConflictError, NotFoundError, ValidationError
from orderdesk.domain.events import queue_event
from orderdesk.domain.status import STATUS_COLUMNS
from orderdesk.domain.types import (
    Actor,
    AuditAction,
    Currency,
    NotificationType,
    OrderChanged,
    OrderFilters,
    Priority,
)
from orderdesk.infra.database.repositories.order import OrderRepository
from orderdesk.infra.database.repositories.profile import ProfileRepository
from orderdesk.services.status_ledger import OrderStatusLedger

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from orderdesk.infra.database.models.history import OrderAuditLog, OrderStatusHistory
    from orderdesk.infra.database.models.order import Order

logger = logging.getLogger(__name__)

# Plain text columns callers may set
_TEXT_FIELDS = (
    "company_name",
    "contact_name",
    "contact_email",
    "contact_phone",
    "company_address",
    "company_link",
    "description",
    "internal_notes",
)
_REQUIRED_FIELDS = ("company_name", "contact_email")
_EDITABLE_FIELDS = set(_TEXT_FIELDS) | {"price", "currency", "priority", "is_yearly_package"}
_STATUS_FIELDS = set(STATUS_COLUMNS.values())


def _parse_price(value: Any) -> Decimal:
    if value is None or value == "":
        return Decimal("0")
    try:
        price = Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise ValidationError(f"Invalid price: {value!r}", details={"field": "price"}, cause=exc) from exc
    if not price.is_finite():
        raise ValidationError(f"Invalid price: {value!r}", details={"field": "price"})
    return max(price, Decimal("0")).quantize(Decimal("0.01"))


def _parse_choice(enum_cls, field: str, value: Any, default):
    if value is None or value == "":
        return default.value
    raw = str(value).strip()
    raw = raw.upper() if enum_cls is Currency else raw.lower()
    try:
        return enum_cls(raw).value
    except ValueError as exc:
        raise ValidationError(
            f"Invalid {field}: {value!r}",
            details={"field": field, "allowed": [m.value for m in enum_cls]},
            cause=exc,
        ) from exc


def normalize_order_fields(data: Dict[str, Any], *, partial: bool = False) -> Dict[str, Any]:
    """Validate and normalise order input.

    With ``partial=False`` (creation) the required fields must be present and
    defaults are filled in. With ``partial=True`` (update) only the supplied
    keys are checked and returned. Status columns are always rejected.
    """
    status_keys = sorted(k for k in data if k in _STATUS_FIELDS)
    if status_keys:
        raise ValidationError(
            "Status flags cannot be set directly; toggle them instead",
            details={"fields": status_keys},
        )
    unknown = sorted(k for k in data if k not in _EDITABLE_FIELDS)
    if unknown:
        raise ValidationError(f"Unknown order fields: {', '.join(unknown)}", details={"fields": unknown})

    clean: Dict[str, Any] = {}
    for key in _TEXT_FIELDS:
        if key not in data:
            continue
        value = data[key]
        clean[key] = value.strip() if isinstance(value, str) else value

    for key in _REQUIRED_FIELDS:
        if (key in data or not partial) and not clean.get(key):
            raise ValidationError(f"{key} is required", details={"field": key})

    if "price" in data or not partial:
        clean["price"] = _parse_price(data.get("price"))
    if "currency" in data or not partial:
        clean["currency"] = _parse_choice(Currency, "currency", data.get("currency"), Currency.EUR)
    if "priority" in data or not partial:
        clean["priority"] = _parse_choice(Priority, "priority", data.get("priority"), Priority.MEDIUM)
    if "is_yearly_package" in data or not partial:
        clean["is_yearly_package"] = bool(data.get("is_yearly_package") or False)
    return clean


class OrderService:
    def __init__(
        self,
        session: "AsyncSession",
        *,
        config: Optional[WorkflowConfig] = None,
        ledger: Optional[OrderStatusLedger] = None,
    ) -> None:
        self._session = session
        self._repo = OrderRepository(session)
        self._profiles = ProfileRepository(session)
        self.ledger = ledger or OrderStatusLedger(session, config=config)

    async def _require(self, order_id: UUID) -> "Order":
        order = await self._repo.get_by_id(order_id)
        if order is None:
            raise NotFoundError(f"Order {order_id} not found", details={"order_id": str(order_id)})
        return order

    # ── Reads ────────────────────────────────────────────────────

    async def list_orders(self, filters: Optional[OrderFilters] = None) -> List["Order"]:
        return await self._repo.list_filtered(filters or OrderFilters())

    async def get_order(self, order_id: UUID) -> "Order":
        return await self._require(order_id)

    async def get_status_history(self, order_id: UUID) -> List["OrderStatusHistory"]:
        return await self.ledger.get_history(order_id)

    async def get_audit_log(self, order_id: UUID) -> List["OrderAuditLog"]:
        return await self.ledger.get_audit_log(order_id)

    # ── Writes ───────────────────────────────────────────────────

    async def create_order(self, data: Dict[str, Any], actor: Actor) -> "Order":
        fields = normalize_order_fields(data)
        fields["created_by"] = actor.id
        order = await self._repo.create(fields)
        logger.info(
            "OrderService: created order %s for %s (%s %s)",
            order.id, order.company_name, order.price, order.currency,
            extra={"order_id": str(order.id), "actor_id": str(actor.id) if actor.id else None},
        )
        await self.ledger.record_action(
            order.id, AuditAction.CREATED, f"Order created for {order.company_name}", actor,
        )
        queue_event(self._session, OrderChanged(
            order_id=order.id, field=AuditAction.CREATED.value, actor_id=actor.id,
        ))
        return order

    async def update_order(
        self,
        order_id: UUID,
        data: Dict[str, Any],
        actor: Actor,
        *,
        expected_version: Optional[int] = None,
    ) -> "Order":
        fields = normalize_order_fields(data, partial=True)
        order = await self._require(order_id)
        if expected_version is not None and order.version != expected_version:
            raise ConflictError(
                "Order was modified by someone else",
                details={
                    "order_id": str(order_id),
                    "expected_version": expected_version,
                    "current_version": order.version,
                },
            )
        changed = {k: v for k, v in fields.items() if getattr(order, k) != v}
        if not changed:
            return order

        order = await self._repo.save(order, changed)
        names = ", ".join(sorted(changed))
        logger.info("OrderService: updated order %s (%s)", order.id, names,
                    extra={"order_id": str(order.id)})
        await self.ledger.record_action(order.id, AuditAction.UPDATED, f"Updated fields: {names}", actor)
        queue_event(self._session, OrderChanged(
            order_id=order.id, field=AuditAction.UPDATED.value, value=sorted(changed), actor_id=actor.id,
        ))
        return order

    async def assign_order(self, order_id: UUID, assignee_id: Optional[UUID], actor: Actor) -> "Order":
        """Set or clear the assignee. The assignee is notified unless they assigned themselves."""
        order = await self._require(order_id)
        assignee = None
        if assignee_id is not None:
            assignee = await self._profiles.get_by_id(assignee_id)
            if assignee is None:
                raise NotFoundError(f"Profile {assignee_id} not found", details={"profile_id": str(assignee_id)})
            if assignee.disabled:
                raise ValidationError(f"Profile {assignee_id} is disabled", details={"profile_id": str(assignee_id)})

        order = await self._repo.save(order, {"assigned_to": assignee_id})
        details = f"Assigned to {assignee.full_name}" if assignee is not None else "Unassigned"
        logger.info("OrderService: order %s %s by %s", order.id, details.lower(), actor.name,
                    extra={"order_id": str(order.id)})
        await self.ledger.record_action(order.id, AuditAction.ASSIGNMENT, details, actor)

        if assignee is not None and assignee.id != actor.id:
            await self.ledger.notify(
                user_id=assignee.id,
                title="New Order Assigned",
                message=f"You have been assigned to the order from {order.company_name}",
                type=NotificationType.INFO.value,
                order_id=order.id,
            )
        queue_event(self._session, OrderChanged(
            order_id=order.id, field=AuditAction.ASSIGNMENT.value,
            value=str(assignee_id) if assignee_id else None, actor_id=actor.id,
        ))
        return order

    async def soft_delete_order(self, order_id: UUID, actor: Actor) -> "Order":
        """Soft delete by toggling the Deleted flag, which sets ``deleted_at``."""
        order = await self._require(order_id)
        if order.deleted_at is not None:
            return order
        order = await self.ledger.toggle_status(order_id, "Deleted", True, actor, run_triggers=False)
        await self.ledger.record_action(order.id, AuditAction.DELETED, "Order moved to trash", actor)
        return order

    async def restore_order(self, order_id: UUID, actor: Actor) -> "Order":
        order = await self._require(order_id)
        if order.deleted_at is None:
            return order
        order = await self.ledger.toggle_status(order_id, "Deleted", False, actor, run_triggers=False)
        await self.ledger.record_action(order.id, AuditAction.RESTORED, "Order restored from trash", actor)
        return order

    async def hard_delete_order(self, order_id: UUID, actor: Actor) -> None:
        """Remove the row. History goes with it; audit rows stay with a NULL order reference."""
        order = await self._require(order_id)
        await self.ledger.record_action(
            order.id, AuditAction.DELETED, f"Order for {order.company_name} permanently deleted", actor,
        )
        await self._repo.delete(order_id)
        logger.warning("OrderService: order %s permanently deleted by %s", order_id, actor.name,
                       extra={"order_id": str(order_id)})
        queue_event(self._session, OrderChanged(
            order_id=order_id, field=AuditAction.DELETED.value, value="hard", actor_id=actor.id,
        ))
