"""Pydantic v2 schemas for the Companies API."""
from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class CompanyResponse(BaseModel):
    id: UUID
    name: str
    contact_person: str
    email: str
    phone: Optional[str] = None
    address: Optional[str] = None
    map_link: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class CompanyCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: str = Field(..., min_length=3, max_length=255)
    contact_person: str = Field(default="", max_length=255)
    phone: Optional[str] = Field(default=None, max_length=64)
    address: Optional[str] = None
    map_link: Optional[str] = None


class CompanyPatchRequest(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    email: Optional[str] = Field(default=None, min_length=3, max_length=255)
    contact_person: Optional[str] = Field(default=None, max_length=255)
    phone: Optional[str] = Field(default=None, max_length=64)
    address: Optional[str] = None
    map_link: Optional[str] = None


class CompanySyncResponse(BaseModel):
    created: int
