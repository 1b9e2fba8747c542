"""WorkflowService: automation that reacts to order status changes.

Triggers run after the ledger has committed a flag change (see
``OrderStatusLedger.toggle_status``). Flag changes made by a trigger go back
through the ledger with ``run_triggers=False`` so they are audited like any
other change but cannot cascade.
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, List, Optional
from uuid import UUID

from orderdesk.config.workflow import WorkflowConfig
from orderdesk.core.exceptions import NotFoundError, ValidationError
from orderdesk.domain.status import OrderStatus, is_active
from orderdesk.domain.types import SYSTEM_ACTOR, Actor, NotificationType
from orderdesk.infra.database.repositories.invoice import InvoiceRepository
from orderdesk.infra.database.repositories.order import OrderRepository
from orderdesk.infra.database.repositories.profile import ProfileRepository
from orderdesk.services.status_ledger import OrderStatusLedger

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from orderdesk.infra.database.models.order import Order
    from orderdesk.infra.database.models.profile import Profile

logger = logging.getLogger(__name__)

SYNC_INVOICE = "sync_invoice"
CLEAR_INVOICE_SENT = "clear_invoice_sent"
RESOLVE_COMPLAINT = "resolve_complaint"

# Order status → invoice status it implies
_INVOICE_STATUS_FOR = {
    OrderStatus.INVOICE_SENT: "sent",
    OrderStatus.INVOICE_PAID: "paid",
}


class WorkflowService:
    def __init__(
        self,
        session: "AsyncSession",
        *,
        config: Optional[WorkflowConfig] = None,
        ledger: Optional[OrderStatusLedger] = None,
    ) -> None:
        self._session = session
        self._config = config or WorkflowConfig()
        self._orders = OrderRepository(session)
        self._profiles = ProfileRepository(session)
        self._invoices = InvoiceRepository(session)
        self.ledger = ledger or OrderStatusLedger(session, config=self._config, workflow=self)

    # ── Status-change triggers ───────────────────────────────────

    def triggers_for(self, order: "Order", status: OrderStatus, enabled: bool) -> List[str]:
        """Names of the triggers a change of *status* to *enabled* fires, in run order."""
        if not enabled:
            return []
        triggers: List[str] = []
        if status in _INVOICE_STATUS_FOR:
            triggers.append(SYNC_INVOICE)
        if status is OrderStatus.INVOICE_PAID:
            triggers.append(CLEAR_INVOICE_SENT)
        if status is OrderStatus.RESOLVED and is_active(order, OrderStatus.COMPLAINT):
            triggers.append(RESOLVE_COMPLAINT)
        return triggers

    async def run_trigger(self, name: str, order_id: UUID, actor: Actor) -> None:
        order = await self._orders.get_by_id(order_id)
        if order is None:
            raise NotFoundError(f"Order {order_id} not found", details={"order_id": str(order_id)})
        if name == SYNC_INVOICE:
            await self._sync_invoice(order, actor)
        elif name == CLEAR_INVOICE_SENT:
            await self._clear_invoice_sent(order, actor)
        elif name == RESOLVE_COMPLAINT:
            await self._resolve_complaint(order, actor)
        else:
            raise ValidationError(f"Unknown workflow trigger: {name!r}")

    async def _sync_invoice(self, order: "Order", actor: Actor) -> None:
        # The newest of the two flags decides: Paid wins over Sent
        if is_active(order, OrderStatus.INVOICE_PAID):
            status = OrderStatus.INVOICE_PAID
        elif is_active(order, OrderStatus.INVOICE_SENT):
            status = OrderStatus.INVOICE_SENT
        else:
            return
        invoice_status = _INVOICE_STATUS_FOR[status]

        from orderdesk.services.invoice_service import InvoiceService
        invoice_svc = InvoiceService(self._session, workflow=self)
        invoice = await self._invoices.get_latest_for_order(order.id)
        created = invoice is None
        if created:
            invoice = await invoice_svc.create_for_order(order, actor)
        if invoice.status != invoice_status:
            await self._invoices.apply(invoice, {"status": invoice_status})
        logger.info(
            "Workflow: invoice %s for order %s is %s%s",
            invoice.invoice_number, order.id, invoice_status, " (created)" if created else "",
            extra={"order_id": str(order.id), "invoice_id": str(invoice.id)},
        )

        if order.assigned_to is not None:
            if status is OrderStatus.INVOICE_PAID:
                title = "Payment Received"
                message = f"Payment has been received for the order from {order.company_name}"
            elif created:
                title = "Invoice Created"
                message = f"Invoice has been automatically created for the order from {order.company_name}"
            else:
                title = "Invoice Sent"
                message = f"Invoice {invoice.invoice_number} for {order.company_name} was marked as sent"
            await self.ledger.notify(
                user_id=order.assigned_to,
                title=title,
                message=message,
                type=NotificationType.SUCCESS.value,
                order_id=order.id,
            )

    async def _clear_invoice_sent(self, order: "Order", actor: Actor) -> None:
        if not is_active(order, OrderStatus.INVOICE_SENT):
            return
        await self.ledger.toggle_status(
            order.id, OrderStatus.INVOICE_SENT, False, actor, notify=False, run_triggers=False,
        )

    async def _resolve_complaint(self, order: "Order", actor: Actor) -> None:
        if not is_active(order, OrderStatus.COMPLAINT):
            return
        await self.ledger.toggle_status(
            order.id, OrderStatus.COMPLAINT, False, actor, notify=False, run_triggers=False,
        )
        if order.assigned_to is not None:
            await self.ledger.notify(
                user_id=order.assigned_to,
                title="Complaint Resolved",
                message=f"Complaint for the order from {order.company_name} has been resolved",
                type=NotificationType.SUCCESS.value,
                order_id=order.id,
            )

    # ── Explicit entry points ────────────────────────────────────

    async def handle_invoice_created(self, order_id: UUID, actor: Actor = SYSTEM_ACTOR) -> bool:
        """Mark the order "Invoice Sent" after an invoice was created for it."""
        return await self._enable_guarded(order_id, OrderStatus.INVOICE_SENT, actor, "invoice created")

    async def handle_payment_received(self, order_id: UUID, actor: Actor = SYSTEM_ACTOR) -> bool:
        """Mark the order "Invoice Paid"; the ledger's triggers clear "Invoice Sent"."""
        return await self._enable_guarded(order_id, OrderStatus.INVOICE_PAID, actor, "payment received")

    async def _enable_guarded(self, order_id: UUID, status: OrderStatus, actor: Actor, what: str) -> bool:
        try:
            async with self._session.begin_nested():
                order = await self._orders.get_by_id(order_id)
                if order is None:
                    raise NotFoundError(f"Order {order_id} not found")
                if not is_active(order, status):
                    await self.ledger.toggle_status(order_id, status, True, actor)
            return True
        except Exception as exc:
            logger.error(
                "Workflow: %s handling failed for order %s: %s", what, order_id, exc,
                exc_info=True, extra={"order_id": str(order_id)},
            )
            return False

    # ── Assignment ───────────────────────────────────────────────

    async def pick_assignee(self) -> Optional["Profile"]:
        """Assignable profile with the fewest open orders; ties go to the first in name order."""
        candidates = await self._profiles.list_assignable(self._config.assignable_roles)
        if not candidates:
            return None
        workloads = await self._orders.count_open_by_assignee([p.id for p in candidates])
        return min(candidates, key=lambda p: workloads.get(p.id, 0))

    async def auto_assign_order(self, order_id: UUID, actor: Actor = SYSTEM_ACTOR) -> Optional["Order"]:
        """Assign an order to the least busy assignable user. Returns None when nobody is available."""
        assignee = await self.pick_assignee()
        if assignee is None:
            logger.warning("Workflow: no assignable users for order %s", order_id,
                           extra={"order_id": str(order_id)})
            return None

        from orderdesk.services.order_service import OrderService
        order = await OrderService(self._session, config=self._config, ledger=self.ledger).assign_order(
            order_id, assignee.id, actor,
        )
        logger.info("Workflow: order %s auto-assigned to %s", order_id, assignee.full_name,
                    extra={"order_id": str(order_id)})
        return order

    # ── Time-based sweep ─────────────────────────────────────────

    async def check_review_required(self, now: Optional[datetime] = None) -> List[UUID]:
        """Flag long-running in-progress orders for Review. Returns the flagged ids."""
        now = now or datetime.now(timezone.utc)
        cutoff = now - timedelta(days=self._config.review_after_days)
        candidates = await self._orders.list_review_candidates(cutoff)
        flagged: List[UUID] = []
        for order in candidates:
            try:
                async with self._session.begin_nested():
                    await self.ledger.toggle_status(
                        order.id, OrderStatus.REVIEW, True, SYSTEM_ACTOR,
                        notify=False, run_triggers=False,
                    )
            except Exception as exc:
                logger.error("Workflow: review flag failed for order %s: %s", order.id, exc,
                             exc_info=True, extra={"order_id": str(order.id)})
                continue
            flagged.append(order.id)
            if order.assigned_to is not None:
                await self.ledger.notify(
                    user_id=order.assigned_to,
                    title="Order Needs Review",
                    message=(
                        f"Order from {order.company_name} has been in progress for over "
                        f"{self._config.review_after_days} days and needs review"
                    ),
                    type=NotificationType.WARNING.value,
                    order_id=order.id,
                )
        logger.info("Workflow: review sweep flagged %d of %d candidates", len(flagged), len(candidates))
        return flagged
