"""
Base exception type for orderdesk.

Every error carries a machine-readable code and an HTTP status, so the API
exception handler can answer without knowing the concrete class.
"""
from __future__ import annotations

from typing import Any, Optional


class ProjectError(Exception):
    """
    Base exception for all orderdesk errors.

    Attributes:
        message: Human-readable description, returned as ``detail``.
        code: Slug such as ``INVALID_STATUS``; defaults to the class ``default_code``.
        http_status: Status the API answers with; defaults to ``default_http_status``.
        details: Extra context (field names, order ids, versions). Safe to expose.
        cause: Underlying exception, logged but never returned to clients.
    """

    default_code: str = "ERROR"
    default_http_status: int = 500

    def __init__(
        self,
        message: str,
        *,
        code: Optional[str] = None,
        http_status: Optional[int] = None,
        details: Optional[dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.http_status = http_status or self.default_http_status
        self.details: dict[str, Any] = details or {}
        self.cause = cause

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.code}, {self.http_status}, {self.message!r})"

    def __str__(self) -> str:
        return self.message

    def to_response(self) -> dict[str, Any]:
        """JSON body for the API: ``detail`` and ``code``, plus ``details`` when set."""
        body: dict[str, Any] = {"detail": self.message, "code": self.code}
        if self.details:
            body["details"] = self.details
        return body
