"""NotificationService: user-facing alerts for order activity."""
from __future__ import annotations

import logging
import threading
import time
from typing import TYPE_CHECKING, Callable, Dict, Hashable, List, Optional
from uuid import UUID

from orderdesk.domain.types import NotificationType
from orderdesk.infra.database.repositories.notification import NotificationRepository

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from orderdesk.infra.database.models.notification import Notification

logger = logging.getLogger(__name__)


def order_action_url(order_id: UUID) -> str:
    return f"/dashboard?order={order_id}"


class NotificationDeduper:
    """Remembers recently sent keys so repeats inside *window_seconds* can be dropped."""

    def __init__(self, window_seconds: float, clock: Callable[[], float] = time.monotonic) -> None:
        self.window_seconds = window_seconds
        self._clock = clock
        self._seen: Dict[Hashable, float] = {}
        self._lock = threading.Lock()

    def should_send(self, key: Hashable) -> bool:
        """True (and remember *key*) unless *key* was sent within the window."""
        if self.window_seconds <= 0:
            return True
        now = self._clock()
        with self._lock:
            last = self._seen.get(key)
            if last is not None and now - last < self.window_seconds:
                return False
            self._seen[key] = now
            # Keep the map from growing without bound
            if len(self._seen) > 10_000:
                cutoff = now - self.window_seconds
                self._seen = {k: t for k, t in self._seen.items() if t >= cutoff}
        return True


class NotificationService:
    def __init__(self, session: "AsyncSession") -> None:
        self._session = session
        self._repo = NotificationRepository(session)

    async def send(
        self,
        *,
        user_id: UUID,
        title: str,
        message: str,
        type: str = NotificationType.INFO.value,
        order_id: Optional[UUID] = None,
        action_url: Optional[str] = None,
    ) -> "Notification":
        """Insert a notification. Errors propagate; see create_notification for the safe variant."""
        notification = await self._repo.create({
            "user_id": user_id,
            "title": title,
            "message": message,
            "type": NotificationType(type).value,
            "order_id": order_id,
            "action_url": action_url,
            "read": False,
        })
        logger.debug("Notification %s queued for user %s", notification.id, user_id)
        return notification

    async def create_notification(
        self,
        *,
        user_id: UUID,
        title: str,
        message: str,
        type: str = NotificationType.INFO.value,
        order_id: Optional[UUID] = None,
        action_url: Optional[str] = None,
    ) -> Optional["Notification"]:
        """Fire-and-forget: never raises, returns None when the insert failed."""
        try:
            async with self._session.begin_nested():
                return await self.send(
                    user_id=user_id,
                    title=title,
                    message=message,
                    type=type,
                    order_id=order_id,
                    action_url=action_url,
                )
        except Exception as exc:
            logger.warning(
                "NotificationService: could not notify user %s (%s): %s",
                user_id, title, exc,
                extra={"order_id": str(order_id) if order_id else None},
            )
            return None

    async def list_for_user(
        self, user_id: UUID, *, unread_only: bool = False, limit: int = 50,
    ) -> List["Notification"]:
        return await self._repo.list_for_user(user_id, unread_only=unread_only, limit=limit)

    async def mark_read(self, notification_id: UUID, user_id: UUID) -> bool:
        return await self._repo.mark_read(notification_id, user_id)

    async def mark_all_read(self, user_id: UUID) -> int:
        count = await self._repo.mark_all_read(user_id)
        logger.info("Marked %d notifications read for user %s", count, user_id)
        return count
