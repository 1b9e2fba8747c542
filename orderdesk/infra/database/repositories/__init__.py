"""Repositories for the orderdesk database."""
from orderdesk.infra.database.repositories.base import BaseRepository
from orderdesk.infra.database.repositories.company import CompanyRepository
from orderdesk.infra.database.repositories.history import (
    OrderAuditLogRepository,
    OrderStatusHistoryRepository,
)
from orderdesk.infra.database.repositories.invoice import (
    InvoiceLineItemRepository,
    InvoiceRepository,
)
from orderdesk.infra.database.repositories.notification import NotificationRepository
from orderdesk.infra.database.repositories.order import OrderRepository
from orderdesk.infra.database.repositories.profile import ProfileRepository
from orderdesk.infra.database.repositories.proposal import (
    ProposalLineItemRepository,
    ProposalRepository,
)
from orderdesk.infra.database.repositories.side_effect import SideEffectRepository

__all__ = [
    "BaseRepository",
    "CompanyRepository",
    "InvoiceLineItemRepository",
    "InvoiceRepository",
    "NotificationRepository",
    "OrderAuditLogRepository",
    "OrderRepository",
    "OrderStatusHistoryRepository",
    "ProfileRepository",
    "ProposalLineItemRepository",
    "ProposalRepository",
    "SideEffectRepository",
]
