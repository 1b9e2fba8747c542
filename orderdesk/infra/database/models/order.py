"""Order ORM model: one unit of sold work with independent status flags."""
from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from orderdesk.infra.database.models.base import Base, TimestampMixin, _uuid_pk
from orderdesk.infra.database.models.profile import Profile


def _flag(default: bool = False) -> Mapped[bool]:
    return mapped_column(
        Boolean,
        nullable=False,
        default=default,
        server_default="true" if default else "false",
    )


class Order(Base, TimestampMixin):
    __tablename__ = "orders"
    __table_args__ = (
        Index("ix_orders_company_name", "company_name"),
        Index("ix_orders_assigned_to", "assigned_to"),
        Index("ix_orders_deleted_at", "deleted_at"),
        Index("ix_orders_created_at", "created_at"),
    )

    id: Mapped[uuid.UUID] = _uuid_pk()

    # Company / contact
    company_name: Mapped[str] = mapped_column(Text, nullable=False)
    contact_name: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    contact_email: Mapped[str] = mapped_column(Text, nullable=False)
    contact_phone: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    company_address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    company_link: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    internal_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    price: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0"), server_default="0",
    )
    currency: Mapped[str] = mapped_column(String(3), nullable=False, server_default="EUR")
    priority: Mapped[str] = mapped_column(String(16), nullable=False, server_default="medium")

    # Status flags; any combination may be set at once
    status_created: Mapped[bool] = _flag(default=True)
    status_in_progress: Mapped[bool] = _flag()
    status_complaint: Mapped[bool] = _flag()
    status_invoice_sent: Mapped[bool] = _flag()
    status_invoice_paid: Mapped[bool] = _flag()
    status_resolved: Mapped[bool] = _flag()
    status_cancelled: Mapped[bool] = _flag()
    status_deleted: Mapped[bool] = _flag()
    """Mirror of ``deleted_at IS NOT NULL``; only the soft-delete functions write it."""
    status_review: Mapped[bool] = _flag()

    is_yearly_package: Mapped[bool] = _flag()

    assigned_to: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True,
    )
    created_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True,
    )

    deleted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )

    version: Mapped[int] = mapped_column(Integer, nullable=False, server_default="1")
    """Optimistic-lock counter; bumped on every ORM flush and by the delete/restore functions."""

    assignee: Mapped[Optional[Profile]] = relationship(
        Profile, foreign_keys=[assigned_to], lazy="selectin",
    )

    __mapper_args__ = {"version_id_col": version}

    @property
    def assignee_name(self) -> Optional[str]:
        return self.assignee.full_name if self.assignee is not None else None

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def __repr__(self) -> str:
        return (
            f"Order(id={self.id!r}, company={self.company_name!r}, "
            f"version={self.version}, deleted={self.is_deleted})"
        )
