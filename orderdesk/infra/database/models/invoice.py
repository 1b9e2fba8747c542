"""Invoice and InvoiceLineItem ORM models."""
from __future__ import annotations

import uuid
from datetime import date
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import Date, ForeignKey, Index, Numeric, String, Text, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from orderdesk.infra.database.models.base import Base, TimestampMixin, _uuid_pk

_MONEY = Numeric(12, 2)
_RATE = Numeric(5, 4)


class Invoice(Base, TimestampMixin):
    __tablename__ = "invoices"
    __table_args__ = (
        Index("ix_invoices_invoice_number", "invoice_number", unique=True),
        Index("ix_invoices_order_id", "order_id"),
    )

    id: Mapped[uuid.UUID] = _uuid_pk()
    invoice_number: Mapped[str] = mapped_column(String(20), nullable=False)
    """Sequential per year, e.g. INV-2026-0001."""

    order_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("orders.id", ondelete="SET NULL"), nullable=True,
    )
    company_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("companies.id", ondelete="SET NULL"), nullable=True,
    )

    currency: Mapped[str] = mapped_column(String(3), nullable=False, server_default="EUR")
    status: Mapped[str] = mapped_column(String(16), nullable=False, server_default="draft")
    """draft | sent | paid | partially_paid | overdue | cancelled | refunded."""

    issue_date: Mapped[date] = mapped_column(Date, nullable=False, server_default=func.current_date())
    due_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    payment_terms: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    net_amount: Mapped[Decimal] = mapped_column(_MONEY, nullable=False, default=Decimal("0"), server_default="0")
    vat_amount: Mapped[Decimal] = mapped_column(_MONEY, nullable=False, default=Decimal("0"), server_default="0")
    total_amount: Mapped[Decimal] = mapped_column(_MONEY, nullable=False, default=Decimal("0"), server_default="0")

    line_items: Mapped[List["InvoiceLineItem"]] = relationship(
        "InvoiceLineItem",
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="InvoiceLineItem.created_at",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"Invoice(number={self.invoice_number!r}, status={self.status!r}, total={self.total_amount})"


class InvoiceLineItem(Base, TimestampMixin):
    __tablename__ = "invoice_line_items"

    id: Mapped[uuid.UUID] = _uuid_pk()
    invoice_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("invoices.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    description: Mapped[str] = mapped_column(Text, nullable=False)
    quantity: Mapped[Decimal] = mapped_column(Numeric(12, 3), nullable=False, default=Decimal("1"))
    unit: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    unit_price: Mapped[Decimal] = mapped_column(_MONEY, nullable=False, default=Decimal("0"))
    vat_rate: Mapped[Decimal] = mapped_column(_RATE, nullable=False, default=Decimal("0"))
    discount_rate: Mapped[Decimal] = mapped_column(_RATE, nullable=False, default=Decimal("0"))
    line_total: Mapped[Decimal] = mapped_column(_MONEY, nullable=False, default=Decimal("0"))

    invoice: Mapped[Invoice] = relationship("Invoice", back_populates="line_items")
