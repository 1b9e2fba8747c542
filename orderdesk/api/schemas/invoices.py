"""Pydantic v2 schemas for the Invoices API."""
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class LineItemResponse(BaseModel):
    id: UUID
    description: str
    quantity: Decimal
    unit: Optional[str] = None
    unit_price: Decimal
    vat_rate: Decimal
    discount_rate: Decimal
    line_total: Decimal

    model_config = {"from_attributes": True}


class InvoiceResponse(BaseModel):
    id: UUID
    invoice_number: str
    order_id: Optional[UUID] = None
    company_id: Optional[UUID] = None
    currency: str
    status: str
    issue_date: date
    due_date: Optional[date] = None
    payment_terms: Optional[str] = None
    notes: Optional[str] = None
    net_amount: Decimal
    vat_amount: Decimal
    total_amount: Decimal
    line_items: List[LineItemResponse] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class LineItemRequest(BaseModel):
    description: str = Field(..., min_length=1)
    quantity: Decimal = Field(default=Decimal("1"), gt=0)
    unit: Optional[str] = Field(default=None, max_length=32)
    unit_price: Decimal = Field(default=Decimal("0"), ge=0)
    vat_rate: Decimal = Field(default=Decimal("0"), ge=0, le=1)
    discount_rate: Decimal = Field(default=Decimal("0"), ge=0, le=1)


class InvoiceCreateRequest(BaseModel):
    order_id: Optional[UUID] = None
    company_id: Optional[UUID] = None
    currency: str = Field(default="EUR", min_length=3, max_length=3)
    issue_date: Optional[date] = None
    due_date: Optional[date] = None
    payment_terms: Optional[str] = None
    notes: Optional[str] = None
    line_items: List[LineItemRequest] = Field(default_factory=list)


class InvoiceStatusUpdate(BaseModel):
    status: str


class LineItemsAddRequest(BaseModel):
    line_items: List[LineItemRequest] = Field(..., min_length=1)
