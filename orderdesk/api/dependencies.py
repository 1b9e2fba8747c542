"""FastAPI dependency providers."""
from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from typing import Optional
from uuid import UUID

from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from orderdesk.config.workflow import WorkflowConfig
from orderdesk.core.exceptions import ForbiddenError, UnauthorizedError
from orderdesk.domain.events import discard_pending, publish_pending
from orderdesk.domain.types import Actor
from orderdesk.infra.database.repositories.profile import ProfileRepository

logger = logging.getLogger(__name__)


async def get_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Yield a transactional AsyncSession from the app-level session factory.

    Order events queued during the request are published only after commit.
    """
    session_factory = request.app.state.session_factory
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            discard_pending(session)
            await session.rollback()
            raise
        await publish_pending(session, getattr(request.app.state, "event_bus", None))


def get_workflow_config(request: Request) -> WorkflowConfig:
    config = getattr(request.app.state, "workflow_config", None)
    return config if config is not None else WorkflowConfig()


async def get_current_actor(
    x_user_id: Optional[str] = Header(default=None),
    session: AsyncSession = Depends(get_session),
) -> Actor:
    """Resolve the acting profile from the ``X-User-Id`` header."""
    if not x_user_id:
        raise UnauthorizedError("X-User-Id header is required")
    try:
        profile_id = UUID(x_user_id)
    except ValueError as exc:
        raise UnauthorizedError("X-User-Id must be a profile id", cause=exc) from exc
    profile = await ProfileRepository(session).get_by_id(profile_id)
    if profile is None or profile.disabled:
        raise UnauthorizedError("Unknown or disabled user", details={"user_id": x_user_id})
    return Actor(id=profile.id, name=profile.full_name, role=profile.role)


async def require_admin(actor: Actor = Depends(get_current_actor)) -> Actor:
    if not actor.is_admin:
        logger.warning("Admin-only action refused for %s (%s)", actor.name, actor.role,
                       extra={"actor_id": str(actor.id) if actor.id else None})
        raise ForbiddenError("Admin role required")
    return actor
