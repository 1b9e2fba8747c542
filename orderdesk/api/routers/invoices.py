"""Invoices API: CRUD, line items and status changes."""
from __future__ import annotations

import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from orderdesk.api.dependencies import get_current_actor, get_session, get_workflow_config
from orderdesk.api.schemas.invoices import (
    InvoiceCreateRequest,
    InvoiceResponse,
    InvoiceStatusUpdate,
    LineItemsAddRequest,
)
from orderdesk.config.workflow import WorkflowConfig
from orderdesk.domain.types import Actor
from orderdesk.services.invoice_service import InvoiceService
from orderdesk.services.workflow_service import WorkflowService

router = APIRouter(prefix="/invoices", tags=["invoices"])


def _service(session: AsyncSession, config: WorkflowConfig) -> InvoiceService:
    return InvoiceService(session, workflow=WorkflowService(session, config=config))


@router.get("", response_model=List[InvoiceResponse])
async def list_invoices(
    status: Optional[str] = None,
    order_id: Optional[uuid.UUID] = None,
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=500),
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
    config: WorkflowConfig = Depends(get_workflow_config),
):
    return await _service(session, config).list_invoices(status=status, order_id=order_id, skip=skip, limit=limit)


@router.get("/{invoice_id}", response_model=InvoiceResponse)
async def get_invoice(
    invoice_id: uuid.UUID,
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
    config: WorkflowConfig = Depends(get_workflow_config),
):
    return await _service(session, config).get_invoice(invoice_id)


@router.post("", response_model=InvoiceResponse, status_code=201)
async def create_invoice(
    body: InvoiceCreateRequest,
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
    config: WorkflowConfig = Depends(get_workflow_config),
):
    """Create an invoice. A linked order is marked "Invoice Sent"."""
    data = body.model_dump()
    return await _service(session, config).create_invoice(data, actor)


@router.patch("/{invoice_id}/status", response_model=InvoiceResponse)
async def update_invoice_status(
    invoice_id: uuid.UUID,
    body: InvoiceStatusUpdate,
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
    config: WorkflowConfig = Depends(get_workflow_config),
):
    return await _service(session, config).update_status(invoice_id, body.status, actor)


@router.post("/{invoice_id}/items", response_model=InvoiceResponse)
async def add_line_items(
    invoice_id: uuid.UUID,
    body: LineItemsAddRequest,
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
    config: WorkflowConfig = Depends(get_workflow_config),
):
    items = [item.model_dump() for item in body.line_items]
    return await _service(session, config).add_line_items(invoice_id, items)


@router.delete("/{invoice_id}/items/{item_id}", response_model=InvoiceResponse)
async def remove_line_item(
    invoice_id: uuid.UUID,
    item_id: uuid.UUID,
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
    config: WorkflowConfig = Depends(get_workflow_config),
):
    return await _service(session, config).remove_line_item(invoice_id, item_id)


@router.delete("/{invoice_id}", status_code=204)
async def delete_invoice(
    invoice_id: uuid.UUID,
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
    config: WorkflowConfig = Depends(get_workflow_config),
):
    await _service(session, config).delete_invoice(invoice_id)
