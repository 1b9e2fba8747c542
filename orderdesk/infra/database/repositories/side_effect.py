"""Repository for the order side-effect outbox."""
from __future__ import annotations

from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import select

from orderdesk.infra.database.models.side_effect import OrderSideEffect
from orderdesk.infra.database.repositories.base import BaseRepository


class SideEffectRepository(BaseRepository[OrderSideEffect]):
    model = OrderSideEffect

    async def record_failure(
        self,
        *,
        kind: str,
        order_id: Optional[UUID],
        payload: Dict[str, Any],
        error: str,
    ) -> OrderSideEffect:
        return await self.create({
            "kind": kind,
            "order_id": order_id,
            "payload": payload,
            "status": "failed",
            "attempts": 1,
            "last_error": error,
        })

    async def list_failed(self, limit: int = 100) -> List[OrderSideEffect]:
        stmt = (
            select(OrderSideEffect)
            .where(OrderSideEffect.status == "failed")
            .order_by(OrderSideEffect.created_at)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
