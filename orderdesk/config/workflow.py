"""
orderdesk.config.workflow – knobs for the status ledger and its automation.

Env vars: REVIEW_AFTER_DAYS, NOTIFICATION_DEDUPE_SECONDS, ASSIGNABLE_ROLES,
ORDER_WEBHOOK_URL, ORDER_WEBHOOK_SECRET.
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional, Tuple

from orderdesk.core.exceptions import ConfigurationError


@dataclass(frozen=True)
class WorkflowConfig:
    review_after_days: int = 30
    """Orders in progress longer than this are flagged for Review by the sweep."""

    notification_dedupe_seconds: int = 60
    """Repeat status notifications for the same (order, status) inside this window are dropped."""

    assignable_roles: Tuple[str, ...] = ("user", "agent")
    order_webhook_url: Optional[str] = None
    order_webhook_secret: Optional[str] = None

    def __post_init__(self) -> None:
        if self.review_after_days < 1:
            raise ConfigurationError("review_after_days must be >= 1")
        if self.notification_dedupe_seconds < 0:
            raise ConfigurationError("notification_dedupe_seconds must be >= 0")
        if not self.assignable_roles:
            raise ConfigurationError("assignable_roles must not be empty")

    @property
    def webhook_enabled(self) -> bool:
        return bool(self.order_webhook_url and self.order_webhook_secret)

    @classmethod
    def from_env(cls) -> WorkflowConfig:
        roles = tuple(
            r.strip()
            for r in os.environ.get("ASSIGNABLE_ROLES", "user,agent").split(",")
            if r.strip()
        )
        try:
            review_days = int(os.environ.get("REVIEW_AFTER_DAYS", "30"))
            dedupe = int(os.environ.get("NOTIFICATION_DEDUPE_SECONDS", "60"))
        except ValueError as exc:
            raise ConfigurationError("workflow settings must be integers", cause=exc) from exc
        return cls(
            review_after_days=review_days,
            notification_dedupe_seconds=dedupe,
            assignable_roles=roles,
            order_webhook_url=os.environ.get("ORDER_WEBHOOK_URL") or None,
            order_webhook_secret=os.environ.get("ORDER_WEBHOOK_SECRET") or None,
        )


def load_workflow_config() -> WorkflowConfig:
    return WorkflowConfig.from_env()
