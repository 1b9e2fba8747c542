"""OrderStatusLedger: toggles order status flags and records every change.

A toggle is one primary write (the flag column) followed by secondary steps:
status history, audit log, assignee notification and automation triggers.
Each secondary step runs in its own SAVEPOINT. A failed step is logged and
parked in the ``order_side_effects`` outbox so it can be replayed later. It
never undoes the flag change.
"""
from __future__ import annotations

import logging
from functools import lru_cache
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Union
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError

from orderdesk.config.workflow import WorkflowConfig
from orderdesk.core.exceptions import (
    ConflictError,
    ExternalServiceError,
    NotFoundError,
    ProjectError,
    ValidationError,
)
from orderdesk.domain.events import queue_event
from orderdesk.domain.status import OrderStatus, active_statuses, parse_status
from orderdesk.domain.types import Actor, AuditAction, NotificationType, OrderChanged
from orderdesk.infra.database.repositories.history import (
    OrderAuditLogRepository,
    OrderStatusHistoryRepository,
)
from orderdesk.infra.database.repositories.order import OrderRepository
from orderdesk.infra.database.repositories.side_effect import SideEffectRepository
from orderdesk.services.notification_service import (
    NotificationDeduper,
    NotificationService,
    order_action_url,
)

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from orderdesk.infra.database.models.history import OrderAuditLog, OrderStatusHistory
    from orderdesk.infra.database.models.order import Order
    from orderdesk.infra.database.models.side_effect import OrderSideEffect
    from orderdesk.services.workflow_service import WorkflowService

logger = logging.getLogger(__name__)

HISTORY = "history"
AUDIT = "audit"
NOTIFICATION = "notification"
AUTOMATION = "automation"


@lru_cache(maxsize=None)
def default_deduper(window_seconds: int) -> NotificationDeduper:
    """Process-wide deduper shared by every ledger with the same window."""
    return NotificationDeduper(window_seconds)


def _uuid_or_none(value: Optional[str]) -> Optional[UUID]:
    return UUID(value) if value else None


def _actor_payload(actor: Actor) -> Dict[str, Any]:
    return {
        "actor_id": str(actor.id) if actor.id else None,
        "actor_name": actor.name,
        "actor_role": actor.role,
    }


def _actor_from_payload(payload: Dict[str, Any]) -> Actor:
    return Actor(
        id=_uuid_or_none(payload.get("actor_id")),
        name=payload.get("actor_name") or "System",
        role=payload.get("actor_role") or "system",
    )


class OrderStatusLedger:
    def __init__(
        self,
        session: "AsyncSession",
        *,
        config: Optional[WorkflowConfig] = None,
        deduper: Optional[NotificationDeduper] = None,
        workflow: Optional["WorkflowService"] = None,
    ) -> None:
        self._session = session
        self._config = config or WorkflowConfig()
        self._orders = OrderRepository(session)
        self._history = OrderStatusHistoryRepository(session)
        self._audit = OrderAuditLogRepository(session)
        self._outbox = SideEffectRepository(session)
        self._notifications = NotificationService(session)
        self._deduper = deduper or default_deduper(self._config.notification_dedupe_seconds)
        self._workflow = workflow

    @property
    def workflow(self) -> "WorkflowService":
        if self._workflow is None:
            from orderdesk.services.workflow_service import WorkflowService
            self._workflow = WorkflowService(self._session, config=self._config, ledger=self)
        return self._workflow

    # ── Queries ──────────────────────────────────────────────────

    @staticmethod
    def active_statuses(order: Any) -> List[str]:
        return active_statuses(order)

    async def get_history(self, order_id: UUID) -> List["OrderStatusHistory"]:
        return await self._history.list_for_order(order_id)

    async def get_audit_log(self, order_id: UUID) -> List["OrderAuditLog"]:
        return await self._audit.list_for_order(order_id)

    # ── Toggle ───────────────────────────────────────────────────

    async def toggle_status(
        self,
        order_id: UUID,
        status_name: Union[str, OrderStatus],
        enabled: bool,
        actor: Actor,
        *,
        expected_version: Optional[int] = None,
        notify: bool = True,
        run_triggers: bool = True,
    ) -> "Order":
        """Set one status flag on an order and record the change.

        Raises InvalidStatusError before touching the database when the name
        is unknown, NotFoundError for a missing order, ConflictError when
        *expected_version* no longer matches and ExternalServiceError when the
        flag write itself fails. Secondary-step failures never raise.
        """
        status = parse_status(status_name)
        if not isinstance(enabled, bool):
            raise ValidationError("enabled must be a boolean", details={"field": "enabled"})

        order = await self._orders.get_by_id(order_id)
        if order is None:
            raise NotFoundError(f"Order {order_id} not found", details={"order_id": str(order_id)})
        if expected_version is not None and order.version != expected_version:
            raise ConflictError(
                "Order was modified by someone else",
                details={
                    "order_id": str(order_id),
                    "expected_version": expected_version,
                    "current_version": order.version,
                },
            )

        if status is OrderStatus.DELETED and (order.deleted_at is not None) == enabled:
            logger.debug("Order %s already %s, nothing to record", order.id, "deleted" if enabled else "active")
            return order

        order = await self._write_flag(order, status, enabled)
        logger.info(
            "Order %s: %s %s by %s",
            order.id, "added" if enabled else "removed", status.value, actor.name,
            extra={"order_id": str(order.id), "status": status.value,
                   "actor_id": str(actor.id) if actor.id else None},
        )

        actor_fields = _actor_payload(actor)
        await self.run_step(HISTORY, order.id, {
            "order_id": str(order.id),
            "status": status.value,
            "enabled": enabled,
            **actor_fields,
        })
        await self.record_action(
            order.id,
            AuditAction.STATUS_CHANGE,
            f"{status.value}: {'Status added' if enabled else 'Status removed'}",
            actor,
        )
        if notify:
            await self._notify_status_change(order, status, enabled, actor)
        if run_triggers:
            for trigger in self.workflow.triggers_for(order, status, enabled):
                await self.run_step(AUTOMATION, order.id, {
                    "trigger": trigger,
                    "order_id": str(order.id),
                    **actor_fields,
                })

        queue_event(self._session, OrderChanged(
            order_id=order.id, field=status.value, value=enabled, actor_id=actor.id,
        ))
        return order

    async def _write_flag(self, order: "Order", status: OrderStatus, enabled: bool) -> "Order":
        try:
            if status is OrderStatus.DELETED:
                # deleted_at is authoritative; the flag follows it
                changed = (
                    await self._orders.soft_delete(order.id)
                    if enabled
                    else await self._orders.restore(order.id)
                )
                if changed is None:
                    raise NotFoundError(f"Order {order.id} not found")
                return changed
            return await self._orders.set_flag(order, status, enabled)
        except ProjectError:
            raise
        except SQLAlchemyError as exc:
            raise ExternalServiceError(
                f"Could not update status {status.value!r} on order {order.id}",
                details={"order_id": str(order.id), "status": status.value},
                cause=exc,
            ) from exc

    async def _notify_status_change(
        self, order: "Order", status: OrderStatus, enabled: bool, actor: Actor,
    ) -> None:
        if order.assigned_to is None or order.assigned_to == actor.id:
            return
        if not self._deduper.should_send((order.id, status.value, enabled)):
            logger.debug("Duplicate status notification dropped for order %s (%s)", order.id, status.value)
            return
        verb = "added" if enabled else "removed"
        await self.notify(
            user_id=order.assigned_to,
            title="Order status updated",
            message=f'{actor.name} {verb} status "{status.value}" on the order for {order.company_name}',
            type=NotificationType.INFO.value,
            order_id=order.id,
        )

    # ── Secondary steps ──────────────────────────────────────────

    async def record_action(
        self,
        order_id: Optional[UUID],
        action: AuditAction,
        details: Optional[str],
        actor: Actor,
    ) -> bool:
        return await self.run_step(AUDIT, order_id, {
            "order_id": str(order_id) if order_id else None,
            "action": action.value,
            "details": details,
            **_actor_payload(actor),
        })

    async def notify(
        self,
        *,
        user_id: UUID,
        title: str,
        message: str,
        type: str,
        order_id: Optional[UUID],
    ) -> bool:
        return await self.run_step(NOTIFICATION, order_id, {
            "user_id": str(user_id),
            "title": title,
            "message": message,
            "type": type,
            "order_id": str(order_id) if order_id else None,
            "action_url": order_action_url(order_id) if order_id else None,
        })

    async def run_step(self, kind: str, order_id: Optional[UUID], payload: Dict[str, Any]) -> bool:
        """Run one secondary step in a savepoint; park it in the outbox on failure."""
        try:
            async with self._session.begin_nested():
                await self._execute(kind, payload)
            return True
        except Exception as exc:
            logger.error(
                "Side effect %s failed for order %s: %s", kind, order_id, exc,
                exc_info=True,
                extra={"order_id": str(order_id) if order_id else None, "side_effect": kind},
            )
            await self._park(kind, order_id, payload, exc)
            return False

    async def _park(
        self, kind: str, order_id: Optional[UUID], payload: Dict[str, Any], exc: BaseException,
    ) -> None:
        try:
            async with self._session.begin_nested():
                await self._outbox.record_failure(
                    kind=kind, order_id=order_id, payload=payload, error=repr(exc),
                )
        except Exception:
            logger.exception(
                "Could not record failed %s side effect for order %s", kind, order_id,
                extra={"order_id": str(order_id) if order_id else None, "side_effect": kind},
            )

    async def _execute(self, kind: str, payload: Dict[str, Any]) -> None:
        if kind == HISTORY:
            await self._history.add_entry(
                order_id=UUID(payload["order_id"]),
                status=payload["status"],
                enabled=bool(payload["enabled"]),
                actor_id=_uuid_or_none(payload.get("actor_id")),
                actor_name=payload.get("actor_name"),
            )
        elif kind == AUDIT:
            await self._audit.log(
                order_id=_uuid_or_none(payload.get("order_id")),
                action=payload["action"],
                details=payload.get("details"),
                actor_id=_uuid_or_none(payload.get("actor_id")),
            )
        elif kind == NOTIFICATION:
            await self._notifications.send(
                user_id=UUID(payload["user_id"]),
                title=payload["title"],
                message=payload["message"],
                type=payload.get("type") or NotificationType.INFO.value,
                order_id=_uuid_or_none(payload.get("order_id")),
                action_url=payload.get("action_url"),
            )
        elif kind == AUTOMATION:
            await self.workflow.run_trigger(
                payload["trigger"],
                UUID(payload["order_id"]),
                _actor_from_payload(payload),
            )
        else:
            raise ValidationError(f"Unknown side effect kind: {kind!r}")

    # ── Outbox replay ────────────────────────────────────────────

    async def retry_failed_side_effects(self, limit: int = 100) -> Dict[str, int]:
        """Replay parked side effects. Returns counts of ``retried`` and ``succeeded``."""
        effects = await self._outbox.list_failed(limit=limit)
        succeeded = 0
        for effect in effects:
            if await self._replay(effect):
                succeeded += 1
        logger.info("Side-effect retry: %d/%d succeeded", succeeded, len(effects))
        return {"retried": len(effects), "succeeded": succeeded}

    async def _replay(self, effect: "OrderSideEffect") -> bool:
        try:
            async with self._session.begin_nested():
                await self._execute(effect.kind, effect.payload)
        except Exception as exc:
            logger.warning(
                "Replay of %s side effect %s failed (attempt %d): %s",
                effect.kind, effect.id, effect.attempts + 1, exc,
                extra={"order_id": str(effect.order_id) if effect.order_id else None,
                       "side_effect": effect.kind},
            )
            await self._outbox.apply(effect, {"attempts": effect.attempts + 1, "last_error": repr(exc)})
            return False
        await self._outbox.apply(effect, {"status": "done", "attempts": effect.attempts + 1})
        return True
