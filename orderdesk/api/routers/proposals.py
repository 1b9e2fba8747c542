"""Proposals API: quotes with line items, numbering and status changes."""
from __future__ import annotations

import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from orderdesk.api.dependencies import get_current_actor, get_session
from orderdesk.api.schemas.proposals import (
    NextProposalIdentifiers,
    ProposalCreateRequest,
    ProposalItemsAddRequest,
    ProposalResponse,
    ProposalStatusUpdate,
    ProposalUpdateRequest,
)
from orderdesk.domain.types import Actor
from orderdesk.services.proposal_service import ProposalService

router = APIRouter(prefix="/proposals", tags=["proposals"])


@router.get("", response_model=List[ProposalResponse])
async def list_proposals(
    status: Optional[str] = None,
    search: Optional[str] = None,
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=500),
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
):
    return await ProposalService(session).list_proposals(status=status, search=search, skip=skip, limit=limit)


@router.get("/next-number", response_model=NextProposalIdentifiers)
async def next_proposal_number(
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
):
    return await ProposalService(session).next_identifiers()


@router.get("/{proposal_id}", response_model=ProposalResponse)
async def get_proposal(
    proposal_id: uuid.UUID,
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
):
    return await ProposalService(session).get_proposal(proposal_id)


@router.post("", response_model=ProposalResponse, status_code=201)
async def create_proposal(
    body: ProposalCreateRequest,
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
):
    """Create a draft proposal; number and reference are assigned here."""
    data = body.model_dump(exclude_none=True)
    return await ProposalService(session).create_proposal(data, actor)


@router.patch("/{proposal_id}", response_model=ProposalResponse)
async def update_proposal(
    proposal_id: uuid.UUID,
    body: ProposalUpdateRequest,
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
):
    data = body.model_dump(exclude_unset=True)
    return await ProposalService(session).update_proposal(proposal_id, data)


@router.patch("/{proposal_id}/status", response_model=ProposalResponse)
async def update_proposal_status(
    proposal_id: uuid.UUID,
    body: ProposalStatusUpdate,
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
):
    return await ProposalService(session).update_status(proposal_id, body.status)


@router.post("/{proposal_id}/items", response_model=ProposalResponse)
async def add_line_items(
    proposal_id: uuid.UUID,
    body: ProposalItemsAddRequest,
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
):
    items = [item.model_dump() for item in body.line_items]
    return await ProposalService(session).add_line_items(proposal_id, items)


@router.delete("/{proposal_id}/items/{item_id}", response_model=ProposalResponse)
async def remove_line_item(
    proposal_id: uuid.UUID,
    item_id: uuid.UUID,
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
):
    return await ProposalService(session).remove_line_item(proposal_id, item_id)


@router.delete("/{proposal_id}", status_code=204)
async def delete_proposal(
    proposal_id: uuid.UUID,
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
):
    await ProposalService(session).delete_proposal(proposal_id)
