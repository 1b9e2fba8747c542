"""Company repository."""
from __future__ import annotations

from typing import List, Optional

from sqlalchemy import func, or_, select

from orderdesk.infra.database.models.company import Company
from orderdesk.infra.database.repositories.base import LIKE_ESCAPE, BaseRepository, contains_pattern


class CompanyRepository(BaseRepository[Company]):
    model = Company

    async def list_all(self, *, search: Optional[str] = None, skip: int = 0, limit: int = 100) -> List[Company]:
        stmt = select(Company).order_by(Company.name)
        if search:
            q = contains_pattern(search)
            stmt = stmt.where(or_(
                Company.name.ilike(q, escape=LIKE_ESCAPE),
                Company.email.ilike(q, escape=LIKE_ESCAPE),
                Company.contact_person.ilike(q, escape=LIKE_ESCAPE),
                Company.address.ilike(q, escape=LIKE_ESCAPE),
            ))
        stmt = stmt.offset(skip).limit(limit)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def existing_name_keys(self) -> set[str]:
        """Lower-cased, trimmed names of every company."""
        result = await self.session.execute(select(func.lower(func.trim(Company.name))))
        return {row[0] for row in result.all()}

    async def find_by_name(self, name: str) -> Optional[Company]:
        """Case-insensitive match on the trimmed company name."""
        key = name.strip().lower()
        stmt = (
            select(Company)
            .where(func.lower(func.trim(Company.name)) == key)
            .order_by(Company.created_at)
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()
