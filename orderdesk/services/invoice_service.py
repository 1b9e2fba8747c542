"""InvoiceService: invoices, line items and their derived totals."""
from __future__ import annotations

import datetime as _dt
import logging
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional, Tuple
from uuid import UUID

from orderdesk.core.exceptions import NotFoundError, ValidationError
from orderdesk.domain.types import SYSTEM_ACTOR, Actor, Currency
from orderdesk.infra.database.repositories.company import CompanyRepository
from orderdesk.infra.database.repositories.invoice import (
    InvoiceLineItemRepository,
    InvoiceRepository,
)

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from orderdesk.infra.database.models.invoice import Invoice
    from orderdesk.infra.database.models.order import Order
    from orderdesk.services.workflow_service import WorkflowService

logger = logging.getLogger(__name__)

INVOICE_STATUSES = ("draft", "sent", "paid", "partially_paid", "overdue", "cancelled", "refunded")
DEFAULT_PAYMENT_DAYS = 14

_CENT = Decimal("0.01")
_ZERO = Decimal("0")
_ONE = Decimal("1")


def round_money(value: Decimal) -> Decimal:
    """Round half up to cents."""
    return value.quantize(_CENT, rounding=ROUND_HALF_UP)


def parse_decimal(item: Dict[str, Any], key: str, default: Decimal) -> Decimal:
    """Finite Decimal from item[key]; *default* when missing or blank."""
    value = item.get(key)
    if value is None or value == "":
        return default
    try:
        number = Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise ValidationError(f"Invalid {key}: {value!r}", details={"field": key}, cause=exc) from exc
    if not number.is_finite():
        raise ValidationError(f"Invalid {key}: {value!r}", details={"field": key})
    return number


def compute_line_total(quantity: Decimal, unit_price: Decimal, discount_rate: Decimal = _ZERO) -> Decimal:
    """quantity × unit_price × (1 − discount_rate), rounded to cents."""
    return round_money(quantity * unit_price * (_ONE - discount_rate))


def compute_totals(items: Iterable[Any]) -> Tuple[Decimal, Decimal, Decimal]:
    """(net, vat, total) for line items exposing ``line_total`` and ``vat_rate``."""
    net = _ZERO
    vat = _ZERO
    for item in items:
        line_total = Decimal(item.line_total)
        net += line_total
        vat += line_total * Decimal(item.vat_rate)
    net = round_money(net)
    vat = round_money(vat)
    return net, vat, net + vat


def normalize_line_item(item: Dict[str, Any]) -> Dict[str, Any]:
    description = (item.get("description") or "").strip()
    if not description:
        raise ValidationError("Line item description is required", details={"field": "description"})
    quantity = parse_decimal(item, "quantity", _ONE)
    unit_price = parse_decimal(item, "unit_price", _ZERO)
    vat_rate = parse_decimal(item, "vat_rate", _ZERO)
    discount_rate = parse_decimal(item, "discount_rate", _ZERO)
    if quantity <= 0:
        raise ValidationError("Line item quantity must be positive", details={"field": "quantity"})
    if unit_price < 0:
        raise ValidationError("Line item unit_price cannot be negative", details={"field": "unit_price"})
    for key, rate in (("vat_rate", vat_rate), ("discount_rate", discount_rate)):
        if not _ZERO <= rate <= _ONE:
            raise ValidationError(f"{key} must be between 0 and 1", details={"field": key})
    return {
        "description": description,
        "quantity": quantity,
        "unit": item.get("unit"),
        "unit_price": unit_price,
        "vat_rate": vat_rate,
        "discount_rate": discount_rate,
        "line_total": compute_line_total(quantity, unit_price, discount_rate),
    }


class InvoiceService:
    def __init__(self, session: "AsyncSession", *, workflow: Optional["WorkflowService"] = None) -> None:
        self._session = session
        self._repo = InvoiceRepository(session)
        self._items = InvoiceLineItemRepository(session)
        self._companies = CompanyRepository(session)
        self._workflow = workflow

    @property
    def workflow(self) -> "WorkflowService":
        if self._workflow is None:
            from orderdesk.services.workflow_service import WorkflowService
            self._workflow = WorkflowService(self._session)
        return self._workflow

    async def _require(self, invoice_id: UUID) -> "Invoice":
        invoice = await self._repo.get_by_id(invoice_id)
        if invoice is None:
            raise NotFoundError(f"Invoice {invoice_id} not found", details={"invoice_id": str(invoice_id)})
        return invoice

    # ── Reads ────────────────────────────────────────────────────

    async def list_invoices(
        self,
        *,
        status: Optional[str] = None,
        order_id: Optional[UUID] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List["Invoice"]:
        if status is not None and status not in INVOICE_STATUSES:
            raise ValidationError(f"Invalid invoice status: {status!r}", details={"allowed": list(INVOICE_STATUSES)})
        return await self._repo.list_all(status=status, order_id=order_id, skip=skip, limit=limit)

    async def get_invoice(self, invoice_id: UUID) -> "Invoice":
        return await self._require(invoice_id)

    # ── Writes ───────────────────────────────────────────────────

    async def create_invoice(self, data: Dict[str, Any], actor: Actor = SYSTEM_ACTOR) -> "Invoice":
        """Create an invoice with its line items.

        When the invoice belongs to an order, the order is marked "Invoice Sent".
        """
        items = [normalize_line_item(i) for i in data.get("line_items") or []]
        currency = str(data.get("currency") or Currency.EUR.value).upper()
        if currency not in Currency.__members__:
            raise ValidationError(f"Invalid currency: {currency!r}", details={"field": "currency"})
        issue_date = data.get("issue_date") or _dt.date.today()
        due_date = data.get("due_date") or issue_date + _dt.timedelta(days=DEFAULT_PAYMENT_DAYS)
        if due_date < issue_date:
            raise ValidationError("due_date cannot be before issue_date", details={"field": "due_date"})

        invoice = await self._repo.create({
            "invoice_number": await self._repo.next_invoice_number(issue_date),
            "order_id": data.get("order_id"),
            "company_id": data.get("company_id"),
            "currency": currency,
            "status": "draft",
            "issue_date": issue_date,
            "due_date": due_date,
            "payment_terms": data.get("payment_terms"),
            "notes": data.get("notes"),
        })
        if items:
            invoice = await self._insert_items(invoice, items)
        logger.info("InvoiceService: created %s (%s %s)", invoice.invoice_number, invoice.total_amount, currency,
                    extra={"invoice_id": str(invoice.id),
                           "order_id": str(invoice.order_id) if invoice.order_id else None})

        if invoice.order_id is not None:
            await self.workflow.handle_invoice_created(invoice.order_id, actor)
            await self._session.refresh(invoice)
        return invoice

    async def create_for_order(self, order: "Order", actor: Actor = SYSTEM_ACTOR) -> "Invoice":
        """Draft invoice with one line item taken from the order's description and price.

        Used by the status triggers, so it does not feed back into the order's flags.
        """
        company = await self._companies.find_by_name(order.company_name)
        issue_date = _dt.date.today()
        invoice = await self._repo.create({
            "invoice_number": await self._repo.next_invoice_number(issue_date),
            "order_id": order.id,
            "company_id": company.id if company is not None else None,
            "currency": order.currency,
            "status": "draft",
            "issue_date": issue_date,
            "due_date": issue_date + _dt.timedelta(days=DEFAULT_PAYMENT_DAYS),
            "notes": f"Generated from order for {order.company_name}",
        })
        invoice = await self._insert_items(invoice, [normalize_line_item({
            "description": order.description or f"Services for {order.company_name}",
            "quantity": 1,
            "unit_price": order.price,
        })])
        logger.info("InvoiceService: %s generated for order %s by %s",
                    invoice.invoice_number, order.id, actor.name,
                    extra={"invoice_id": str(invoice.id), "order_id": str(order.id)})
        return invoice

    async def add_line_items(self, invoice_id: UUID, items: List[Dict[str, Any]]) -> "Invoice":
        invoice = await self._require(invoice_id)
        if not items:
            raise ValidationError("At least one line item is required", details={"field": "line_items"})
        return await self._insert_items(invoice, [normalize_line_item(i) for i in items])

    async def remove_line_item(self, invoice_id: UUID, item_id: UUID) -> "Invoice":
        invoice = await self._require(invoice_id)
        item = await self._items.get_by_id(item_id)
        if item is None or item.invoice_id != invoice.id:
            raise NotFoundError(f"Line item {item_id} not found on invoice {invoice_id}")
        await self._items.delete(item_id)
        return await self.recalculate_totals(invoice)

    async def _insert_items(self, invoice: "Invoice", items: List[Dict[str, Any]]) -> "Invoice":
        for item in items:
            await self._items.create({**item, "invoice_id": invoice.id})
        return await self.recalculate_totals(invoice)

    async def recalculate_totals(self, invoice: "Invoice") -> "Invoice":
        items = await self._items.list_for_invoice(invoice.id)
        net, vat, total = compute_totals(items)
        return await self._repo.apply(invoice, {
            "net_amount": net,
            "vat_amount": vat,
            "total_amount": total,
        })

    async def update_status(self, invoice_id: UUID, status: str, actor: Actor = SYSTEM_ACTOR) -> "Invoice":
        """Change the invoice status; "sent" and "paid" are mirrored onto the linked order."""
        if status not in INVOICE_STATUSES:
            raise ValidationError(f"Invalid invoice status: {status!r}", details={"allowed": list(INVOICE_STATUSES)})
        invoice = await self._require(invoice_id)
        previous = invoice.status
        if previous == status:
            return invoice
        invoice = await self._repo.apply(invoice, {"status": status})
        logger.info("InvoiceService: %s %s -> %s", invoice.invoice_number, previous, status,
                    extra={"invoice_id": str(invoice.id)})

        if invoice.order_id is not None:
            if status == "paid":
                await self.workflow.handle_payment_received(invoice.order_id, actor)
            elif status == "sent":
                await self.workflow.handle_invoice_created(invoice.order_id, actor)
        return invoice

    async def delete_invoice(self, invoice_id: UUID) -> None:
        invoice = await self._require(invoice_id)
        await self._repo.delete(invoice.id)
        logger.info("InvoiceService: deleted %s", invoice.invoice_number, extra={"invoice_id": str(invoice_id)})
