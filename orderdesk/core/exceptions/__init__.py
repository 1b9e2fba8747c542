"""
orderdesk exceptions. The API maps each one to its ``http_status`` and ``code``.

Usage:
    from orderdesk.core.exceptions import ConflictError, NotFoundError

    raise NotFoundError(f"Order {order_id} not found", details={"order_id": str(order_id)})
    raise ConflictError("Order was modified by someone else", details={"current_version": 4})
"""
from orderdesk.core.exceptions.base import ProjectError
from orderdesk.core.exceptions.errors import (
    ConfigurationError,
    ConflictError,
    ExternalServiceError,
    ForbiddenError,
    InvalidStatusError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)

__all__ = [
    "ProjectError",
    "ConfigurationError",
    "ValidationError",
    "InvalidStatusError",
    "NotFoundError",
    "UnauthorizedError",
    "ForbiddenError",
    "ConflictError",
    "ExternalServiceError",
]
