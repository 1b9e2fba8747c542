"""Proposal and proposal line item repositories."""
from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from sqlalchemy import delete, func, or_, select

from orderdesk.infra.database.models.proposal import Proposal, ProposalLineItem
from orderdesk.infra.database.repositories.base import (
    LIKE_ESCAPE,
    BaseRepository,
    contains_pattern,
    numbered_part,
)

FIRST_PROPOSAL_NUMBER = 9985


class ProposalRepository(BaseRepository[Proposal]):
    model = Proposal

    async def list_all(
        self,
        *,
        status: Optional[str] = None,
        search: Optional[str] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[Proposal]:
        stmt = select(Proposal).order_by(Proposal.created_at.desc())
        if status:
            stmt = stmt.where(Proposal.status == status)
        if search:
            q = contains_pattern(search)
            stmt = stmt.where(or_(
                Proposal.number.ilike(q, escape=LIKE_ESCAPE),
                Proposal.reference.ilike(q, escape=LIKE_ESCAPE),
                Proposal.customer.ilike(q, escape=LIKE_ESCAPE),
                Proposal.subject.ilike(q, escape=LIKE_ESCAPE),
            ))
        stmt = stmt.offset(skip).limit(limit)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def next_proposal_number(self) -> str:
        """AN-9985 for the first proposal, then one past the highest issued."""
        stmt = select(func.max(numbered_part(Proposal.number, 2))).where(Proposal.number.like("AN-%"))
        max_seq = (await self.session.execute(stmt)).scalar()
        seq = int(max_seq) + 1 if max_seq else FIRST_PROPOSAL_NUMBER
        return f"AN-{seq}"

    async def next_reference(self, year: int) -> str:
        """Next reference for *year*, e.g. REF-2026-001."""
        stmt = (
            select(func.max(numbered_part(Proposal.reference, 3)))
            .where(Proposal.reference.like(f"REF-{year}-%"))
        )
        max_seq = (await self.session.execute(stmt)).scalar()
        seq = int(max_seq) + 1 if max_seq else 1
        return f"REF-{year}-{seq:03d}"


class ProposalLineItemRepository(BaseRepository[ProposalLineItem]):
    model = ProposalLineItem

    async def list_for_proposal(self, proposal_id: UUID) -> List[ProposalLineItem]:
        stmt = (
            select(ProposalLineItem)
            .where(ProposalLineItem.proposal_id == proposal_id)
            .order_by(ProposalLineItem.created_at)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def delete_for_proposal(self, proposal_id: UUID) -> int:
        result = await self.session.execute(
            delete(ProposalLineItem).where(ProposalLineItem.proposal_id == proposal_id)
        )
        await self.session.flush()
        return result.rowcount or 0
