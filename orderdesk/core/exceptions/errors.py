"""
Concrete error types, one per HTTP answer the API gives.
"""
from __future__ import annotations

from orderdesk.core.exceptions.base import ProjectError


class ConfigurationError(ProjectError):
    """Invalid or missing configuration."""

    default_code = "CONFIGURATION_ERROR"
    default_http_status = 500


class ValidationError(ProjectError):
    """Request or input validation failed."""

    default_code = "VALIDATION_ERROR"
    default_http_status = 400


class InvalidStatusError(ValidationError):
    """Status name is not one of the known order statuses."""

    default_code = "INVALID_STATUS"
    default_http_status = 400


class NotFoundError(ProjectError):
    """Requested resource not found."""

    default_code = "NOT_FOUND"
    default_http_status = 404


class UnauthorizedError(ProjectError):
    """Acting user is missing or unknown."""

    default_code = "UNAUTHORIZED"
    default_http_status = 401


class ForbiddenError(ProjectError):
    """Acting user lacks the role required for the operation."""

    default_code = "FORBIDDEN"
    default_http_status = 403


class ConflictError(ProjectError):
    """Resource state conflict (stale version, duplicate)."""

    default_code = "CONFLICT"
    default_http_status = 409


class ExternalServiceError(ProjectError):
    """Database or outbound webhook failed."""

    default_code = "EXTERNAL_SERVICE_ERROR"
    default_http_status = 502
