"""Notifications API: the current user's alerts."""
from __future__ import annotations

import uuid
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from orderdesk.api.dependencies import get_current_actor, get_session
from orderdesk.api.schemas.notifications import MarkAllReadResponse, NotificationResponse
from orderdesk.core.exceptions import NotFoundError
from orderdesk.domain.types import Actor
from orderdesk.services.notification_service import NotificationService

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=List[NotificationResponse])
async def list_notifications(
    unread_only: bool = False,
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
):
    """Newest 50 notifications for the calling user."""
    return await NotificationService(session).list_for_user(actor.id, unread_only=unread_only)


@router.post("/read-all", response_model=MarkAllReadResponse)
async def mark_all_read(
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
):
    updated = await NotificationService(session).mark_all_read(actor.id)
    return MarkAllReadResponse(updated=updated)


@router.post("/{notification_id}/read", status_code=204)
async def mark_read(
    notification_id: uuid.UUID,
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
):
    if not await NotificationService(session).mark_read(notification_id, actor.id):
        raise NotFoundError("Notification not found", details={"notification_id": str(notification_id)})
