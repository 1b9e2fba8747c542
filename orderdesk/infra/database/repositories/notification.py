"""Notification repository."""
from __future__ import annotations

from typing import List
from uuid import UUID

from sqlalchemy import func, select, update

from orderdesk.infra.database.models.notification import Notification
from orderdesk.infra.database.repositories.base import BaseRepository


class NotificationRepository(BaseRepository[Notification]):
    model = Notification

    async def list_for_user(self, user_id: UUID, *, unread_only: bool = False, limit: int = 50) -> List[Notification]:
        stmt = select(Notification).where(Notification.user_id == user_id)
        if unread_only:
            stmt = stmt.where(Notification.read.is_(False))
        stmt = stmt.order_by(Notification.created_at.desc()).limit(limit)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def mark_read(self, notification_id: UUID, user_id: UUID) -> bool:
        stmt = (
            update(Notification)
            .where(Notification.id == notification_id, Notification.user_id == user_id)
            .values(read=True, updated_at=func.now())
        )
        result = await self.session.execute(stmt)
        return (result.rowcount or 0) > 0

    async def mark_all_read(self, user_id: UUID) -> int:
        stmt = (
            update(Notification)
            .where(Notification.user_id == user_id, Notification.read.is_(False))
            .values(read=True, updated_at=func.now())
        )
        result = await self.session.execute(stmt)
        return result.rowcount or 0
