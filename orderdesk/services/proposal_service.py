"""ProposalService: quotes sent to customers before an order exists, with their line items."""
from __future__ import annotations

import datetime as _dt
import logging
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional, Tuple
from uuid import UUID

from orderdesk.core.exceptions import NotFoundError, ValidationError
from orderdesk.domain.types import SYSTEM_ACTOR, Actor, Currency
from orderdesk.infra.database.repositories.proposal import (
    ProposalLineItemRepository,
    ProposalRepository,
)
from orderdesk.services.invoice_service import compute_line_total, parse_decimal, round_money

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from orderdesk.infra.database.models.proposal import Proposal

logger = logging.getLogger(__name__)

PROPOSAL_STATUSES = (
    "draft", "unpaid", "paid", "received", "calculated", "partially_calculated", "rejected", "archived",
)
DEFAULT_VAT_RATE = Decimal("0.19")
DEFAULT_UNIT = "unit"

_FIELDS = (
    "customer", "subject", "currency", "vat_enabled", "vat_rate",
    "customer_name", "customer_address", "customer_email",
    "proposal_title", "proposal_description", "delivery_terms", "payment_terms",
    "proposal_date", "company_id", "order_id",
)
_ZERO = Decimal("0")
_ONE = Decimal("1")


def compute_proposal_totals(
    items: Iterable[Any], vat_enabled: bool, vat_rate: Decimal,
) -> Tuple[Decimal, Decimal, Decimal]:
    """(net, vat, total); VAT is charged once on the net at the proposal's rate."""
    net = round_money(sum((Decimal(item.total_price) for item in items), _ZERO))
    vat = round_money(net * Decimal(vat_rate)) if vat_enabled else round_money(_ZERO)
    return net, vat, net + vat


def normalize_proposal_item(item: Dict[str, Any]) -> Dict[str, Any]:
    name = (item.get("name") or "").strip()
    if not name:
        raise ValidationError("Line item name is required", details={"field": "name"})
    quantity = parse_decimal(item, "quantity", _ONE)
    unit_price = parse_decimal(item, "unit_price", _ZERO)
    if quantity <= 0:
        raise ValidationError("Line item quantity must be positive", details={"field": "quantity"})
    if unit_price < 0:
        raise ValidationError("Line item unit_price cannot be negative", details={"field": "unit_price"})
    return {
        "name": name,
        "description": item.get("description") or None,
        "quantity": quantity,
        "unit": (item.get("unit") or DEFAULT_UNIT).strip(),
        "unit_price": unit_price,
        "total_price": compute_line_total(quantity, unit_price),
        "category": item.get("category") or None,
    }


def _clean(data: Dict[str, Any], *, partial: bool) -> Dict[str, Any]:
    unknown = sorted(k for k in data if k not in _FIELDS)
    if unknown:
        raise ValidationError(f"Unknown proposal fields: {', '.join(unknown)}", details={"fields": unknown})
    clean = {k: (v.strip() if isinstance(v, str) else v) for k, v in data.items()}
    if (not partial or "customer" in clean) and not clean.get("customer"):
        raise ValidationError("customer is required", details={"field": "customer"})
    if "currency" in clean or not partial:
        currency = str(clean.get("currency") or Currency.EUR.value).upper()
        if currency not in Currency.__members__:
            raise ValidationError(f"Invalid currency: {currency!r}", details={"field": "currency"})
        clean["currency"] = currency
    if "vat_enabled" in clean and not isinstance(clean["vat_enabled"], bool):
        raise ValidationError("vat_enabled must be a boolean", details={"field": "vat_enabled"})
    if "vat_rate" in clean or not partial:
        rate = parse_decimal(clean, "vat_rate", DEFAULT_VAT_RATE)
        if not _ZERO <= rate <= _ONE:
            raise ValidationError("vat_rate must be between 0 and 1", details={"field": "vat_rate"})
        clean["vat_rate"] = rate
    return clean


class ProposalService:
    def __init__(self, session: "AsyncSession") -> None:
        self._session = session
        self._repo = ProposalRepository(session)
        self._items = ProposalLineItemRepository(session)

    async def _require(self, proposal_id: UUID) -> "Proposal":
        proposal = await self._repo.get_by_id(proposal_id)
        if proposal is None:
            raise NotFoundError(f"Proposal {proposal_id} not found", details={"proposal_id": str(proposal_id)})
        return proposal

    # ── Reads ────────────────────────────────────────────────────

    async def list_proposals(
        self,
        *,
        status: Optional[str] = None,
        search: Optional[str] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List["Proposal"]:
        if status is not None and status not in PROPOSAL_STATUSES:
            raise ValidationError(f"Invalid proposal status: {status!r}", details={"allowed": list(PROPOSAL_STATUSES)})
        return await self._repo.list_all(status=status, search=search, skip=skip, limit=limit)

    async def get_proposal(self, proposal_id: UUID) -> "Proposal":
        return await self._require(proposal_id)

    async def next_identifiers(self, today: Optional[_dt.date] = None) -> Dict[str, str]:
        """Number and reference the next proposal will get."""
        year = (today or _dt.date.today()).year
        return {
            "number": await self._repo.next_proposal_number(),
            "reference": await self._repo.next_reference(year),
        }

    # ── Writes ───────────────────────────────────────────────────

    async def create_proposal(self, data: Dict[str, Any], actor: Actor = SYSTEM_ACTOR) -> "Proposal":
        """Create a draft proposal with the next number and reference, plus its line items."""
        data = dict(data)
        items = [normalize_proposal_item(i) for i in data.pop("line_items", None) or []]
        clean = _clean(data, partial=False)
        clean.setdefault("vat_enabled", True)
        clean.setdefault("proposal_date", _dt.date.today())

        identifiers = await self.next_identifiers(clean["proposal_date"])
        proposal = await self._repo.create({
            **clean,
            **identifiers,
            "status": "draft",
            "created_by": actor.id,
        })
        if items:
            proposal = await self._insert_items(proposal, items)
        logger.info("ProposalService: created %s for %s (%s %s)",
                    proposal.number, proposal.customer, proposal.total_amount, proposal.currency,
                    extra={"proposal_id": str(proposal.id)})
        return proposal

    async def update_proposal(self, proposal_id: UUID, data: Dict[str, Any]) -> "Proposal":
        """Apply field changes; ``line_items`` replaces every existing item.

        Totals are recomputed when the items or the VAT settings change.
        """
        proposal = await self._require(proposal_id)
        data = dict(data)
        replace_items = "line_items" in data
        items = [normalize_proposal_item(i) for i in data.pop("line_items", None) or []]
        clean = _clean(data, partial=True)

        if clean:
            proposal = await self._repo.apply(proposal, clean)
        if replace_items:
            await self._items.delete_for_proposal(proposal.id)
            return await self._insert_items(proposal, items)
        if "vat_enabled" in clean or "vat_rate" in clean:
            return await self.recalculate_totals(proposal)
        return proposal

    async def add_line_items(self, proposal_id: UUID, items: List[Dict[str, Any]]) -> "Proposal":
        proposal = await self._require(proposal_id)
        if not items:
            raise ValidationError("At least one line item is required", details={"field": "line_items"})
        return await self._insert_items(proposal, [normalize_proposal_item(i) for i in items])

    async def remove_line_item(self, proposal_id: UUID, item_id: UUID) -> "Proposal":
        proposal = await self._require(proposal_id)
        item = await self._items.get_by_id(item_id)
        if item is None or item.proposal_id != proposal.id:
            raise NotFoundError(f"Line item {item_id} not found on proposal {proposal_id}")
        await self._items.delete(item_id)
        return await self.recalculate_totals(proposal)

    async def _insert_items(self, proposal: "Proposal", items: List[Dict[str, Any]]) -> "Proposal":
        for item in items:
            await self._items.create({**item, "proposal_id": proposal.id})
        return await self.recalculate_totals(proposal)

    async def recalculate_totals(self, proposal: "Proposal") -> "Proposal":
        items = await self._items.list_for_proposal(proposal.id)
        net, vat, total = compute_proposal_totals(items, proposal.vat_enabled, proposal.vat_rate)
        return await self._repo.apply(proposal, {
            "net_amount": net,
            "vat_amount": vat,
            "total_amount": total,
        })

    async def update_status(self, proposal_id: UUID, status: str) -> "Proposal":
        if status not in PROPOSAL_STATUSES:
            raise ValidationError(f"Invalid proposal status: {status!r}", details={"allowed": list(PROPOSAL_STATUSES)})
        proposal = await self._require(proposal_id)
        previous = proposal.status
        if previous == status:
            return proposal
        proposal = await self._repo.apply(proposal, {"status": status})
        logger.info("ProposalService: %s %s -> %s", proposal.number, previous, status,
                    extra={"proposal_id": str(proposal.id)})
        return proposal

    async def delete_proposal(self, proposal_id: UUID) -> None:
        proposal = await self._require(proposal_id)
        await self._repo.delete(proposal.id)
        logger.info("ProposalService: deleted %s", proposal.number, extra={"proposal_id": str(proposal_id)})
