"""Order repository: filtered listing, flag writes, soft delete and workload queries."""
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence
from uuid import UUID

from sqlalchemy import ColumnElement, and_, func, or_, select, text
from sqlalchemy.orm.exc import StaleDataError

from orderdesk.core.exceptions import ConflictError, ValidationError
from orderdesk.domain.status import OrderStatus, parse_status
from orderdesk.domain.types import DeletedScope, OrderFilters
from orderdesk.infra.database.models.order import Order
from orderdesk.infra.database.models.profile import Profile
from orderdesk.infra.database.repositories.base import LIKE_ESCAPE, BaseRepository, contains_pattern

UNASSIGNED = "unassigned"


def _not_set(status: OrderStatus) -> ColumnElement[bool]:
    return getattr(Order, status.column).is_(False)


def build_filter_clauses(filters: OrderFilters) -> List[ColumnElement[bool]]:
    """Translate OrderFilters into WHERE clauses (raises ValidationError on bad input)."""
    clauses: List[ColumnElement[bool]] = []

    if filters.deleted == DeletedScope.ACTIVE:
        clauses.append(Order.deleted_at.is_(None))
    elif filters.deleted == DeletedScope.DELETED_ONLY:
        clauses.append(Order.deleted_at.is_not(None))

    if filters.is_yearly_package is not None:
        clauses.append(Order.is_yearly_package.is_(filters.is_yearly_package))

    if filters.text:
        q = contains_pattern(filters.text)
        clauses.append(or_(
            Order.company_name.ilike(q, escape=LIKE_ESCAPE),
            Order.contact_email.ilike(q, escape=LIKE_ESCAPE),
            Order.description.ilike(q, escape=LIKE_ESCAPE),
            Order.company_address.ilike(q, escape=LIKE_ESCAPE),
            Order.assignee.has(or_(
                Profile.first_name.ilike(q, escape=LIKE_ESCAPE),
                Profile.last_name.ilike(q, escape=LIKE_ESCAPE),
            )),
        ))
    if filters.company_name:
        clauses.append(Order.company_name.ilike(
            contains_pattern(filters.company_name), escape=LIKE_ESCAPE,
        ))
    if filters.contact_email:
        clauses.append(Order.contact_email.ilike(
            contains_pattern(filters.contact_email), escape=LIKE_ESCAPE,
        ))

    if filters.statuses:
        flags = [getattr(Order, parse_status(s).column).is_(True) for s in filters.statuses]
        clauses.append(or_(*flags))

    if filters.priorities:
        clauses.append(Order.priority.in_([p.lower() for p in filters.priorities]))
    if filters.currencies:
        clauses.append(Order.currency.in_([c.upper() for c in filters.currencies]))

    if filters.assignees:
        ids: List[UUID] = []
        want_unassigned = False
        for raw in filters.assignees:
            if raw == UNASSIGNED:
                want_unassigned = True
                continue
            try:
                ids.append(UUID(str(raw)))
            except ValueError as exc:
                raise ValidationError(
                    f"Invalid assignee id: {raw!r}", details={"field": "assignees"}, cause=exc,
                ) from exc
        options: List[ColumnElement[bool]] = []
        if ids:
            options.append(Order.assigned_to.in_(ids))
        if want_unassigned:
            options.append(Order.assigned_to.is_(None))
        clauses.append(or_(*options))

    if filters.created_from is not None:
        clauses.append(Order.created_at >= filters.created_from)
    if filters.created_to is not None:
        clauses.append(Order.created_at <= filters.created_to)
    if filters.price_min is not None:
        clauses.append(Order.price >= filters.price_min)
    if filters.price_max is not None:
        clauses.append(Order.price <= filters.price_max)

    return clauses


class OrderRepository(BaseRepository[Order]):
    model = Order

    async def list_filtered(self, filters: OrderFilters) -> List[Order]:
        stmt = (
            select(Order)
            .where(*build_filter_clauses(filters))
            .order_by(Order.created_at.desc())
            .offset(filters.skip)
            .limit(filters.limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def save(self, order: Order, data: Dict[str, Any]) -> Order:
        """Apply *data* to *order*; a concurrent version bump raises ConflictError."""
        try:
            return await self.apply(order, data)
        except StaleDataError as exc:
            raise ConflictError(
                "Order was modified concurrently",
                details={"order_id": str(order.id)},
                cause=exc,
            ) from exc

    async def set_flag(self, order: Order, status: OrderStatus, enabled: bool) -> Order:
        return await self.save(order, {status.column: enabled, "updated_at": func.now()})

    async def soft_delete(self, id: UUID) -> Optional[Order]:
        await self.session.execute(text("SELECT soft_delete_order(:id)"), {"id": id})
        return await self.reload(id)

    async def restore(self, id: UUID) -> Optional[Order]:
        await self.session.execute(text("SELECT restore_order(:id)"), {"id": id})
        return await self.reload(id)

    async def reload(self, id: UUID) -> Optional[Order]:
        """Re-read the row, overwriting any stale copy in the identity map."""
        return await self.session.get(Order, id, populate_existing=True)

    async def count_open_by_assignee(self, assignee_ids: Sequence[UUID]) -> Dict[UUID, int]:
        """Open (not resolved, cancelled or soft-deleted) order counts per assignee."""
        if not assignee_ids:
            return {}
        stmt = (
            select(Order.assigned_to, func.count())
            .where(
                Order.assigned_to.in_(list(assignee_ids)),
                Order.deleted_at.is_(None),
                _not_set(OrderStatus.RESOLVED),
                _not_set(OrderStatus.CANCELLED),
            )
            .group_by(Order.assigned_to)
        )
        result = await self.session.execute(stmt)
        return {row[0]: row[1] for row in result.all()}

    async def list_review_candidates(self, created_before: datetime) -> List[Order]:
        """Live orders still in progress since before *created_before* and not yet closed or in review."""
        stmt = (
            select(Order)
            .where(and_(
                Order.created_at < created_before,
                Order.deleted_at.is_(None),
                getattr(Order, OrderStatus.IN_PROGRESS.column).is_(True),
                _not_set(OrderStatus.RESOLVED),
                _not_set(OrderStatus.CANCELLED),
                _not_set(OrderStatus.REVIEW),
            ))
            .order_by(Order.created_at)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_for_company_sync(self) -> List[Order]:
        """All orders newest first, used to derive companies from order contact data."""
        stmt = select(Order).order_by(Order.created_at.desc())
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
