"""Profile ORM model: the people orders are assigned to and audited against."""
from __future__ import annotations

import uuid

from sqlalchemy import Boolean, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from orderdesk.infra.database.models.base import Base, TimestampMixin, _uuid_pk


class Profile(Base, TimestampMixin):
    __tablename__ = "profiles"
    __table_args__ = (
        Index("ix_profiles_role", "role"),
    )

    id: Mapped[uuid.UUID] = _uuid_pk()
    first_name: Mapped[str] = mapped_column(String(255), nullable=False, server_default="")
    last_name: Mapped[str] = mapped_column(String(255), nullable=False, server_default="")
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    role: Mapped[str] = mapped_column(String(16), nullable=False, server_default="user")
    """user | agent | admin."""

    disabled: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default="false")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip() or self.email

    def __repr__(self) -> str:
        return f"Profile(id={self.id!r}, role={self.role!r}, name={self.full_name!r})"
