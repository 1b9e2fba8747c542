"""CompanyService: client companies, managed directly or derived from orders."""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Dict, List, Optional
from uuid import UUID

from orderdesk.core.exceptions import ConflictError, NotFoundError, ValidationError
from orderdesk.infra.database.repositories.company import CompanyRepository
from orderdesk.infra.database.repositories.order import OrderRepository

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from orderdesk.infra.database.models.company import Company

logger = logging.getLogger(__name__)

_FIELDS = ("name", "contact_person", "email", "phone", "address", "map_link")


def company_key(name: str) -> str:
    """Identity used to match companies to orders: trimmed and lower-cased."""
    return name.strip().lower()


def _clean(data: Dict[str, Any], *, partial: bool) -> Dict[str, Any]:
    unknown = sorted(k for k in data if k not in _FIELDS)
    if unknown:
        raise ValidationError(f"Unknown company fields: {', '.join(unknown)}", details={"fields": unknown})
    clean = {k: (v.strip() if isinstance(v, str) else v) for k, v in data.items()}
    for key in ("name", "email"):
        if (key in clean or not partial) and not clean.get(key):
            raise ValidationError(f"{key} is required", details={"field": key})
    if "contact_person" in clean and clean["contact_person"] is None:
        clean["contact_person"] = ""
    return clean


class CompanyService:
    def __init__(self, session: "AsyncSession") -> None:
        self._session = session
        self._repo = CompanyRepository(session)
        self._orders = OrderRepository(session)

    async def list_companies(self, *, search: Optional[str] = None, skip: int = 0, limit: int = 100) -> List["Company"]:
        return await self._repo.list_all(search=search, skip=skip, limit=limit)

    async def get_company(self, company_id: UUID) -> "Company":
        company = await self._repo.get_by_id(company_id)
        if company is None:
            raise NotFoundError(f"Company {company_id} not found", details={"company_id": str(company_id)})
        return company

    async def create_company(self, data: Dict[str, Any]) -> "Company":
        clean = _clean(data, partial=False)
        if await self._repo.find_by_name(clean["name"]) is not None:
            raise ConflictError(f"Company {clean['name']!r} already exists", details={"name": clean["name"]})
        company = await self._repo.create(clean)
        logger.info("CompanyService: created company %s (%s)", company.name, company.id)
        return company

    async def update_company(self, company_id: UUID, data: Dict[str, Any]) -> "Company":
        company = await self.get_company(company_id)
        clean = _clean(data, partial=True)
        if "name" in clean and company_key(clean["name"]) != company_key(company.name):
            other = await self._repo.find_by_name(clean["name"])
            if other is not None and other.id != company.id:
                raise ConflictError(f"Company {clean['name']!r} already exists", details={"name": clean["name"]})
        return await self._repo.apply(company, clean)

    async def delete_company(self, company_id: UUID) -> None:
        if not await self._repo.delete(company_id):
            raise NotFoundError(f"Company {company_id} not found", details={"company_id": str(company_id)})
        logger.info("CompanyService: deleted company %s", company_id)

    async def sync_from_orders(self) -> int:
        """Create a company for every order company name that has none.

        Contact data comes from the newest order with that name. Failures are
        logged per company and do not stop the sync. Returns how many were created.
        """
        existing = await self._repo.existing_name_keys()
        newest: Dict[str, Any] = {}
        for order in await self._orders.list_for_company_sync():
            key = company_key(order.company_name or "")
            if key and key not in existing and key not in newest:
                newest[key] = order

        created = 0
        for key, order in newest.items():
            try:
                async with self._session.begin_nested():
                    await self._repo.create({
                        "name": order.company_name.strip(),
                        "contact_person": order.contact_name or "",
                        "email": order.contact_email,
                        "phone": order.contact_phone,
                        "address": order.company_address,
                        "map_link": order.company_link,
                    })
            except Exception as exc:
                logger.warning("CompanyService: sync skipped %r: %s", order.company_name, exc)
                continue
            created += 1
        logger.info("CompanyService: sync created %d companies from orders", created)
        return created
