"""
orderdesk.infra.database.models – SQLAlchemy 2.0 ORM models.

Exports Base, mixins, and all model classes.
"""
from orderdesk.infra.database.models.base import Base, TimestampMixin, _uuid_pk
from orderdesk.infra.database.models.company import Company
from orderdesk.infra.database.models.history import OrderAuditLog, OrderStatusHistory
from orderdesk.infra.database.models.invoice import Invoice, InvoiceLineItem
from orderdesk.infra.database.models.notification import Notification
from orderdesk.infra.database.models.order import Order
from orderdesk.infra.database.models.profile import Profile
from orderdesk.infra.database.models.proposal import Proposal, ProposalLineItem
from orderdesk.infra.database.models.side_effect import OrderSideEffect

__all__ = [
    "Base",
    "TimestampMixin",
    "_uuid_pk",
    "Company",
    "Invoice",
    "InvoiceLineItem",
    "Notification",
    "Order",
    "OrderAuditLog",
    "OrderSideEffect",
    "OrderStatusHistory",
    "Profile",
    "Proposal",
    "ProposalLineItem",
]
