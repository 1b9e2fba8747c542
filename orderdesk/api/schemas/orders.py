"""Pydantic v2 schemas for the Orders API."""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, computed_field

from orderdesk.domain.status import active_statuses


class OrderResponse(BaseModel):
    id: UUID
    company_name: str
    contact_name: Optional[str] = None
    contact_email: str
    contact_phone: Optional[str] = None
    company_address: Optional[str] = None
    company_link: Optional[str] = None
    description: Optional[str] = None
    internal_notes: Optional[str] = None
    price: Decimal
    currency: str
    priority: str
    status_created: bool
    status_in_progress: bool
    status_complaint: bool
    status_invoice_sent: bool
    status_invoice_paid: bool
    status_resolved: bool
    status_cancelled: bool
    status_deleted: bool
    status_review: bool
    is_yearly_package: bool
    assigned_to: Optional[UUID] = None
    assignee_name: Optional[str] = None
    created_by: Optional[UUID] = None
    version: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None

    model_config = {"from_attributes": True}

    @computed_field  # type: ignore[prop-decorator]
    @property
    def active_statuses(self) -> List[str]:
        return active_statuses(self)


class OrderCreateRequest(BaseModel):
    company_name: str = Field(..., min_length=1, max_length=255)
    contact_email: str = Field(..., min_length=3, max_length=255)
    contact_name: Optional[str] = None
    contact_phone: Optional[str] = None
    company_address: Optional[str] = None
    company_link: Optional[str] = None
    description: Optional[str] = None
    internal_notes: Optional[str] = None
    price: Optional[Decimal] = None
    currency: Optional[str] = None
    priority: Optional[str] = None
    is_yearly_package: bool = False


class OrderUpdateRequest(BaseModel):
    company_name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    contact_email: Optional[str] = Field(default=None, min_length=3, max_length=255)
    contact_name: Optional[str] = None
    contact_phone: Optional[str] = None
    company_address: Optional[str] = None
    company_link: Optional[str] = None
    description: Optional[str] = None
    internal_notes: Optional[str] = None
    price: Optional[Decimal] = None
    currency: Optional[str] = None
    priority: Optional[str] = None
    is_yearly_package: Optional[bool] = None
    expected_version: Optional[int] = Field(default=None, ge=1)

    def changes(self) -> Dict[str, Any]:
        """Fields the client actually sent, without the version token."""
        return self.model_dump(exclude_unset=True, exclude={"expected_version"})


class StatusToggleRequest(BaseModel):
    status: str = Field(..., min_length=1)
    enabled: bool
    expected_version: Optional[int] = Field(default=None, ge=1)


class AssignRequest(BaseModel):
    assignee_id: Optional[UUID] = None


class StatusHistoryResponse(BaseModel):
    id: UUID
    order_id: UUID
    status: str
    enabled: bool
    details: Optional[str] = None
    actor_id: Optional[UUID] = None
    actor_name: Optional[str] = None
    changed_at: datetime

    model_config = {"from_attributes": True}


class AuditLogResponse(BaseModel):
    id: UUID
    order_id: Optional[UUID] = None
    action: str
    details: Optional[str] = None
    actor_id: Optional[UUID] = None
    created_at: datetime

    model_config = {"from_attributes": True}
