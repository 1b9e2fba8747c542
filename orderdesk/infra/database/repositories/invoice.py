"""Invoice and line item repositories."""
from __future__ import annotations

import datetime as _dt
from typing import List, Optional
from uuid import UUID

from sqlalchemy import func, select

from orderdesk.infra.database.models.invoice import Invoice, InvoiceLineItem
from orderdesk.infra.database.repositories.base import BaseRepository, numbered_part


class InvoiceRepository(BaseRepository[Invoice]):
    model = Invoice

    async def list_all(
        self,
        *,
        status: Optional[str] = None,
        order_id: Optional[UUID] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[Invoice]:
        stmt = select(Invoice).order_by(Invoice.created_at.desc())
        if status:
            stmt = stmt.where(Invoice.status == status)
        if order_id:
            stmt = stmt.where(Invoice.order_id == order_id)
        stmt = stmt.offset(skip).limit(limit)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_latest_for_order(self, order_id: UUID) -> Optional[Invoice]:
        stmt = (
            select(Invoice)
            .where(Invoice.order_id == order_id)
            .order_by(Invoice.created_at.desc())
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def next_invoice_number(self, today: Optional[_dt.date] = None) -> str:
        """Next sequential number for the year, e.g. INV-2026-0001."""
        year = (today or _dt.date.today()).year
        stmt = (
            select(func.max(numbered_part(Invoice.invoice_number, 3)))
            .where(Invoice.invoice_number.like(f"INV-{year}-%"))
        )
        max_seq = (await self.session.execute(stmt)).scalar()
        seq = int(max_seq) + 1 if max_seq else 1
        return f"INV-{year}-{seq:04d}"


class InvoiceLineItemRepository(BaseRepository[InvoiceLineItem]):
    model = InvoiceLineItem

    async def list_for_invoice(self, invoice_id: UUID) -> List[InvoiceLineItem]:
        stmt = (
            select(InvoiceLineItem)
            .where(InvoiceLineItem.invoice_id == invoice_id)
            .order_by(InvoiceLineItem.created_at)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
