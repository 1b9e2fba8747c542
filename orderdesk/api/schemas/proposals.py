"""Pydantic v2 schemas for the Proposals API."""
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class ProposalLineItemResponse(BaseModel):
    id: UUID
    name: str
    description: Optional[str] = None
    quantity: Decimal
    unit: str
    unit_price: Decimal
    total_price: Decimal
    category: Optional[str] = None

    model_config = {"from_attributes": True}


class ProposalResponse(BaseModel):
    id: UUID
    number: str
    reference: str
    customer: str
    subject: Optional[str] = None
    status: str
    company_id: Optional[UUID] = None
    order_id: Optional[UUID] = None
    created_by: Optional[UUID] = None
    currency: str
    vat_enabled: bool
    vat_rate: Decimal
    customer_name: Optional[str] = None
    customer_address: Optional[str] = None
    customer_email: Optional[str] = None
    proposal_title: Optional[str] = None
    proposal_description: Optional[str] = None
    delivery_terms: Optional[str] = None
    payment_terms: Optional[str] = None
    proposal_date: date
    net_amount: Decimal
    vat_amount: Decimal
    total_amount: Decimal
    line_items: List[ProposalLineItemResponse] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class ProposalLineItemRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    quantity: Decimal = Field(default=Decimal("1"), gt=0)
    unit: str = Field(default="unit", min_length=1, max_length=32)
    unit_price: Decimal = Field(default=Decimal("0"), ge=0)
    category: Optional[str] = Field(default=None, max_length=64)


class _ProposalFields(BaseModel):
    subject: Optional[str] = Field(default=None, max_length=255)
    company_id: Optional[UUID] = None
    order_id: Optional[UUID] = None
    customer_name: Optional[str] = Field(default=None, max_length=255)
    customer_address: Optional[str] = None
    customer_email: Optional[str] = Field(default=None, max_length=255)
    proposal_title: Optional[str] = Field(default=None, max_length=255)
    proposal_description: Optional[str] = None
    delivery_terms: Optional[str] = None
    payment_terms: Optional[str] = None
    proposal_date: Optional[date] = None


class ProposalCreateRequest(_ProposalFields):
    customer: str = Field(..., min_length=1, max_length=255)
    currency: str = Field(default="EUR", min_length=3, max_length=3)
    vat_enabled: bool = True
    vat_rate: Decimal = Field(default=Decimal("0.19"), ge=0, le=1)
    """Fraction, 0.19 for 19 %."""
    line_items: List[ProposalLineItemRequest] = Field(default_factory=list)


class ProposalUpdateRequest(_ProposalFields):
    """Only the fields sent are changed; ``line_items`` replaces the whole list."""

    customer: Optional[str] = Field(default=None, min_length=1, max_length=255)
    currency: Optional[str] = Field(default=None, min_length=3, max_length=3)
    vat_enabled: Optional[bool] = None
    vat_rate: Optional[Decimal] = Field(default=None, ge=0, le=1)
    line_items: Optional[List[ProposalLineItemRequest]] = None


class ProposalStatusUpdate(BaseModel):
    status: str


class ProposalItemsAddRequest(BaseModel):
    line_items: List[ProposalLineItemRequest] = Field(..., min_length=1)


class NextProposalIdentifiers(BaseModel):
    number: str
    reference: str
