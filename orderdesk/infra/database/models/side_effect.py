"""Outbox of order side effects that failed and can be replayed."""
from __future__ import annotations

import uuid
from typing import Any, Optional

from sqlalchemy import Index, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from orderdesk.infra.database.models.base import Base, TimestampMixin, _uuid_pk


class OrderSideEffect(Base, TimestampMixin):
    __tablename__ = "order_side_effects"
    __table_args__ = (
        Index("ix_order_side_effects_status", "status"),
    )

    id: Mapped[uuid.UUID] = _uuid_pk()
    kind: Mapped[str] = mapped_column(String(32), nullable=False)
    """history | audit | notification | automation."""

    # No FK: the outbox must outlive a hard-deleted order
    order_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True), nullable=True)
    payload: Mapped[dict[str, Any]] = mapped_column(JSONB, nullable=False, default=dict)
    status: Mapped[str] = mapped_column(String(16), nullable=False, server_default="failed")
    """failed | done."""

    attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=1, server_default="1")
    last_error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"OrderSideEffect(kind={self.kind!r}, status={self.status!r}, attempts={self.attempts})"
