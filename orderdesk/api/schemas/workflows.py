"""Pydantic v2 schemas for the Workflows API."""
from __future__ import annotations

from typing import List
from uuid import UUID

from pydantic import BaseModel


class ReviewSweepResponse(BaseModel):
    flagged: List[UUID]
    count: int


class SideEffectRetryResponse(BaseModel):
    retried: int
    succeeded: int
