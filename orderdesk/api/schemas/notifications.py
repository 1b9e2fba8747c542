"""Pydantic v2 schemas for the Notifications API."""
from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel


class NotificationResponse(BaseModel):
    id: UUID
    title: str
    message: str
    type: str
    order_id: Optional[UUID] = None
    action_url: Optional[str] = None
    read: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class MarkAllReadResponse(BaseModel):
    updated: int
