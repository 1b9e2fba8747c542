"""Append-only repositories for status history and audit log entries."""
from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from sqlalchemy import select

from orderdesk.infra.database.models.history import OrderAuditLog, OrderStatusHistory
from orderdesk.infra.database.repositories.base import BaseRepository


class OrderStatusHistoryRepository(BaseRepository[OrderStatusHistory]):
    model = OrderStatusHistory

    async def add_entry(
        self,
        *,
        order_id: UUID,
        status: str,
        enabled: bool,
        actor_id: Optional[UUID],
        actor_name: Optional[str],
    ) -> OrderStatusHistory:
        return await self.create({
            "order_id": order_id,
            "status": status,
            "enabled": enabled,
            "details": "Status added" if enabled else "Status removed",
            "actor_id": actor_id,
            "actor_name": actor_name,
        })

    async def list_for_order(self, order_id: UUID, limit: int = 200) -> List[OrderStatusHistory]:
        stmt = (
            select(OrderStatusHistory)
            .where(OrderStatusHistory.order_id == order_id)
            .order_by(OrderStatusHistory.changed_at.desc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())


class OrderAuditLogRepository(BaseRepository[OrderAuditLog]):
    model = OrderAuditLog

    async def log(
        self,
        *,
        order_id: Optional[UUID],
        action: str,
        details: Optional[str],
        actor_id: Optional[UUID],
    ) -> OrderAuditLog:
        return await self.create({
            "order_id": order_id,
            "action": action,
            "details": details,
            "actor_id": actor_id,
        })

    async def list_for_order(self, order_id: UUID, limit: int = 200) -> List[OrderAuditLog]:
        stmt = (
            select(OrderAuditLog)
            .where(OrderAuditLog.order_id == order_id)
            .order_by(OrderAuditLog.created_at.desc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
