"""
orderdesk.infra.database – PostgreSQL async engine, session, models and repositories.

Public API
──────────
  build_engine, build_session_factory, init_db, close_engine
  Base and the ORM models (Order, OrderStatusHistory, OrderAuditLog, ...)
"""
from orderdesk.infra.database.engine import (
    build_engine,
    build_session_factory,
    close_engine,
    init_db,
)
from orderdesk.infra.database.models import (
    Base,
    Company,
    Invoice,
    InvoiceLineItem,
    Notification,
    Order,
    OrderAuditLog,
    OrderSideEffect,
    OrderStatusHistory,
    Profile,
)

__all__ = [
    "build_engine",
    "build_session_factory",
    "init_db",
    "close_engine",
    "Base",
    "Company",
    "Invoice",
    "InvoiceLineItem",
    "Notification",
    "Order",
    "OrderAuditLog",
    "OrderSideEffect",
    "OrderStatusHistory",
    "Profile",
]
