"""Profile repository."""
from __future__ import annotations

from typing import List, Sequence

from sqlalchemy import select

from orderdesk.infra.database.models.profile import Profile
from orderdesk.infra.database.repositories.base import BaseRepository


class ProfileRepository(BaseRepository[Profile]):
    model = Profile

    async def list_assignable(self, roles: Sequence[str]) -> List[Profile]:
        """Enabled profiles with one of *roles*, in a stable (name, id) order."""
        stmt = (
            select(Profile)
            .where(Profile.role.in_(list(roles)), Profile.disabled.is_(False))
            .order_by(Profile.last_name, Profile.first_name, Profile.id)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
