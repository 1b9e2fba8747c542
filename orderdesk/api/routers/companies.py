"""Companies API: CRUD and sync from order data."""
from __future__ import annotations

import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from orderdesk.api.dependencies import get_current_actor, get_session
from orderdesk.api.schemas.companies import (
    CompanyCreateRequest,
    CompanyPatchRequest,
    CompanyResponse,
    CompanySyncResponse,
)
from orderdesk.domain.types import Actor
from orderdesk.services.company_service import CompanyService

router = APIRouter(prefix="/companies", tags=["companies"])


@router.get("", response_model=List[CompanyResponse])
async def list_companies(
    q: Optional[str] = None,
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=500),
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
):
    return await CompanyService(session).list_companies(search=q, skip=skip, limit=limit)


@router.post("/sync", response_model=CompanySyncResponse)
async def sync_companies(
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
):
    """Create companies for order company names that have none yet."""
    created = await CompanyService(session).sync_from_orders()
    return CompanySyncResponse(created=created)


@router.get("/{company_id}", response_model=CompanyResponse)
async def get_company(
    company_id: uuid.UUID,
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
):
    return await CompanyService(session).get_company(company_id)


@router.post("", response_model=CompanyResponse, status_code=201)
async def create_company(
    body: CompanyCreateRequest,
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
):
    return await CompanyService(session).create_company(body.model_dump())


@router.patch("/{company_id}", response_model=CompanyResponse)
async def patch_company(
    company_id: uuid.UUID,
    body: CompanyPatchRequest,
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
):
    return await CompanyService(session).update_company(company_id, body.model_dump(exclude_unset=True))


@router.delete("/{company_id}", status_code=204)
async def delete_company(
    company_id: uuid.UUID,
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
):
    await CompanyService(session).delete_company(company_id)
