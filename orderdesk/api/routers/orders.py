"""Orders API: CRUD, status flags, assignment, trash and activity trails."""
from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from orderdesk.api.dependencies import (
    get_current_actor,
    get_session,
    get_workflow_config,
    require_admin,
)
from orderdesk.api.schemas.orders import (
    AssignRequest,
    AuditLogResponse,
    OrderCreateRequest,
    OrderResponse,
    OrderUpdateRequest,
    StatusHistoryResponse,
    StatusToggleRequest,
)
from orderdesk.config.workflow import WorkflowConfig
from orderdesk.core.exceptions import NotFoundError
from orderdesk.domain.types import Actor, DeletedScope, OrderFilters
from orderdesk.services.order_service import OrderService
from orderdesk.services.status_ledger import OrderStatusLedger
from orderdesk.services.workflow_service import WorkflowService

router = APIRouter(prefix="/orders", tags=["orders"])


@router.post("", response_model=OrderResponse, status_code=201)
async def create_order(
    body: OrderCreateRequest,
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
    config: WorkflowConfig = Depends(get_workflow_config),
):
    svc = OrderService(session, config=config)
    return await svc.create_order(body.model_dump(exclude_unset=True), actor)


@router.get("", response_model=List[OrderResponse])
async def list_orders(
    q: Optional[str] = None,
    company_name: Optional[str] = None,
    contact_email: Optional[str] = None,
    statuses: List[str] = Query(default=[]),
    priorities: List[str] = Query(default=[]),
    assignees: List[str] = Query(default=[]),
    currencies: List[str] = Query(default=[]),
    created_from: Optional[datetime] = None,
    created_to: Optional[datetime] = None,
    price_min: Optional[Decimal] = None,
    price_max: Optional[Decimal] = None,
    is_yearly_package: Optional[bool] = None,
    deleted: DeletedScope = DeletedScope.ACTIVE,
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=500),
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
):
    """List orders. Soft-deleted orders are hidden unless ``deleted`` says otherwise."""
    filters = OrderFilters(
        text=q,
        company_name=company_name,
        contact_email=contact_email,
        statuses=statuses,
        priorities=priorities,
        assignees=assignees,
        currencies=currencies,
        created_from=created_from,
        created_to=created_to,
        price_min=price_min,
        price_max=price_max,
        is_yearly_package=is_yearly_package,
        deleted=deleted,
        skip=skip,
        limit=limit,
    )
    return await OrderService(session).list_orders(filters)


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: uuid.UUID,
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
):
    return await OrderService(session).get_order(order_id)


@router.put("/{order_id}", response_model=OrderResponse)
async def update_order(
    order_id: uuid.UUID,
    body: OrderUpdateRequest,
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
    config: WorkflowConfig = Depends(get_workflow_config),
):
    """Update order fields. Status flags are changed through ``/statuses``."""
    svc = OrderService(session, config=config)
    return await svc.update_order(order_id, body.changes(), actor, expected_version=body.expected_version)


@router.patch("/{order_id}/statuses", response_model=OrderResponse)
async def toggle_status(
    order_id: uuid.UUID,
    body: StatusToggleRequest,
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(require_admin),
    config: WorkflowConfig = Depends(get_workflow_config),
):
    """Turn one status flag on or off. Admin only."""
    ledger = OrderStatusLedger(session, config=config)
    return await ledger.toggle_status(
        order_id, body.status, body.enabled, actor, expected_version=body.expected_version,
    )


@router.post("/{order_id}/assign", response_model=OrderResponse)
async def assign_order(
    order_id: uuid.UUID,
    body: AssignRequest,
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
    config: WorkflowConfig = Depends(get_workflow_config),
):
    return await OrderService(session, config=config).assign_order(order_id, body.assignee_id, actor)


@router.post("/{order_id}/auto-assign", response_model=OrderResponse)
async def auto_assign_order(
    order_id: uuid.UUID,
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
    config: WorkflowConfig = Depends(get_workflow_config),
):
    """Assign to the assignable user with the fewest open orders."""
    order = await WorkflowService(session, config=config).auto_assign_order(order_id, actor)
    if order is None:
        raise NotFoundError("No assignable users available", details={"order_id": str(order_id)})
    return order


@router.post("/{order_id}/soft-delete", response_model=OrderResponse)
async def soft_delete_order(
    order_id: uuid.UUID,
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
    config: WorkflowConfig = Depends(get_workflow_config),
):
    return await OrderService(session, config=config).soft_delete_order(order_id, actor)


@router.post("/{order_id}/restore", response_model=OrderResponse)
async def restore_order(
    order_id: uuid.UUID,
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
    config: WorkflowConfig = Depends(get_workflow_config),
):
    return await OrderService(session, config=config).restore_order(order_id, actor)


@router.delete("/{order_id}", status_code=204)
async def hard_delete_order(
    order_id: uuid.UUID,
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(require_admin),
    config: WorkflowConfig = Depends(get_workflow_config),
):
    """Permanently remove an order. Admin only."""
    await OrderService(session, config=config).hard_delete_order(order_id, actor)


@router.get("/{order_id}/history", response_model=List[StatusHistoryResponse])
async def get_status_history(
    order_id: uuid.UUID,
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
):
    svc = OrderService(session)
    await svc.get_order(order_id)
    return await svc.get_status_history(order_id)


@router.get("/{order_id}/audit", response_model=List[AuditLogResponse])
async def get_audit_log(
    order_id: uuid.UUID,
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
):
    svc = OrderService(session)
    await svc.get_order(order_id)
    return await svc.get_audit_log(order_id)
