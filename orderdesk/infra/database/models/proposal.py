"""Proposal (quote) and ProposalLineItem ORM models."""
from __future__ import annotations

import uuid
from datetime import date
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import Boolean, Date, ForeignKey, Index, Numeric, String, Text, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from orderdesk.infra.database.models.base import Base, TimestampMixin, _uuid_pk

_MONEY = Numeric(12, 2)
_RATE = Numeric(5, 4)


class Proposal(Base, TimestampMixin):
    __tablename__ = "proposals"
    __table_args__ = (
        Index("ix_proposals_number", "number", unique=True),
        Index("ix_proposals_status", "status"),
    )

    id: Mapped[uuid.UUID] = _uuid_pk()
    number: Mapped[str] = mapped_column(String(20), nullable=False)
    """AN-9985, AN-9986, ..."""
    reference: Mapped[str] = mapped_column(String(20), nullable=False)
    """Per year, e.g. REF-2026-001."""

    customer: Mapped[str] = mapped_column(String(255), nullable=False)
    subject: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    status: Mapped[str] = mapped_column(String(24), nullable=False, server_default="draft")

    company_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("companies.id", ondelete="SET NULL"), nullable=True,
    )
    order_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("orders.id", ondelete="SET NULL"), nullable=True,
    )
    created_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True,
    )

    currency: Mapped[str] = mapped_column(String(3), nullable=False, server_default="EUR")
    vat_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")
    vat_rate: Mapped[Decimal] = mapped_column(_RATE, nullable=False, default=Decimal("0.19"), server_default="0.19")

    customer_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    customer_address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    customer_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    proposal_title: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    proposal_description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    delivery_terms: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    payment_terms: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    proposal_date: Mapped[date] = mapped_column(Date, nullable=False, server_default=func.current_date())

    net_amount: Mapped[Decimal] = mapped_column(_MONEY, nullable=False, default=Decimal("0"), server_default="0")
    vat_amount: Mapped[Decimal] = mapped_column(_MONEY, nullable=False, default=Decimal("0"), server_default="0")
    total_amount: Mapped[Decimal] = mapped_column(_MONEY, nullable=False, default=Decimal("0"), server_default="0")

    line_items: Mapped[List["ProposalLineItem"]] = relationship(
        "ProposalLineItem",
        back_populates="proposal",
        cascade="all, delete-orphan",
        order_by="ProposalLineItem.created_at",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"Proposal(number={self.number!r}, status={self.status!r}, total={self.total_amount})"


class ProposalLineItem(Base, TimestampMixin):
    __tablename__ = "proposal_line_items"

    id: Mapped[uuid.UUID] = _uuid_pk()
    proposal_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("proposals.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    quantity: Mapped[Decimal] = mapped_column(Numeric(12, 3), nullable=False, default=Decimal("1"))
    unit: Mapped[str] = mapped_column(String(32), nullable=False, default="unit")
    unit_price: Mapped[Decimal] = mapped_column(_MONEY, nullable=False, default=Decimal("0"))
    total_price: Mapped[Decimal] = mapped_column(_MONEY, nullable=False, default=Decimal("0"))
    category: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    proposal: Mapped[Proposal] = relationship("Proposal", back_populates="line_items")
