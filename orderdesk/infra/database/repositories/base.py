"""Generic async repository for SQLAlchemy 2.0."""
from __future__ import annotations

from typing import Any, ClassVar, Generic, Optional, TypeVar
from uuid import UUID

from sqlalchemy import Integer, cast, func
from sqlalchemy.ext.asyncio import AsyncSession

ModelT = TypeVar("ModelT")


LIKE_ESCAPE = "\\"


def contains_pattern(text: str) -> str:
    """``%text%`` for ILIKE with the wildcards in *text* escaped (pair with ``escape=LIKE_ESCAPE``)."""
    escaped = (
        text.strip()
        .replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )
    return f"%{escaped}%"


def numbered_part(column: Any, part: int) -> Any:
    """Integer value of the *part*-th dash-separated piece of a document number.

    Sequences are maxed on this instead of the string so INV-2026-10000 sorts
    after INV-2026-9999.
    """
    return cast(func.split_part(column, "-", part), Integer)


class BaseRepository(Generic[ModelT]):
    """Primary-key CRUD shared by the aggregate repositories.

    Writes only flush; the request-scoped session owns the commit.
    """

    model: ClassVar[type]

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_by_id(self, id: UUID) -> Optional[ModelT]:
        return await self.session.get(self.model, id)  # type: ignore[return-value]

    async def create(self, data: dict[str, Any]) -> ModelT:
        instance = self.model(**data)
        self.session.add(instance)
        await self.session.flush()
        await self.session.refresh(instance)
        return instance  # type: ignore[return-value]

    async def apply(self, instance: ModelT, data: dict[str, Any]) -> ModelT:
        """Set attributes on an already-loaded row, flush and reload server defaults."""
        for attr, value in data.items():
            setattr(instance, attr, value)
        await self.session.flush()
        await self.session.refresh(instance)
        return instance

    async def delete(self, id: UUID) -> bool:
        instance = await self.get_by_id(id)
        if instance is None:
            return False
        await self.session.delete(instance)
        await self.session.flush()
        return True
