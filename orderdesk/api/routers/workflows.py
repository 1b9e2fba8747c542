"""Workflows API: on-demand review sweep and side-effect retry."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from orderdesk.api.dependencies import get_session, get_workflow_config, require_admin
from orderdesk.api.schemas.workflows import ReviewSweepResponse, SideEffectRetryResponse
from orderdesk.config.workflow import WorkflowConfig
from orderdesk.domain.types import Actor
from orderdesk.services.workflow_service import WorkflowService

router = APIRouter(prefix="/workflows", tags=["workflows"])


@router.post("/review-sweep", response_model=ReviewSweepResponse)
async def review_sweep(
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(require_admin),
    config: WorkflowConfig = Depends(get_workflow_config),
):
    """Flag orders that have been in progress too long for Review."""
    flagged = await WorkflowService(session, config=config).check_review_required()
    return ReviewSweepResponse(flagged=flagged, count=len(flagged))


@router.post("/side-effects/retry", response_model=SideEffectRetryResponse)
async def retry_side_effects(
    limit: int = Query(default=100, ge=1, le=1000),
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(require_admin),
    config: WorkflowConfig = Depends(get_workflow_config),
):
    """Replay history, audit, notification and automation steps that failed earlier."""
    ledger = WorkflowService(session, config=config).ledger
    result = await ledger.retry_failed_side_effects(limit=limit)
    return SideEffectRetryResponse(**result)
