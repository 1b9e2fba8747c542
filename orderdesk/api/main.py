"""orderdesk FastAPI application entry point.

Start with:
    uvicorn orderdesk.api.main:app --reload --host 0.0.0.0 --port 8000

Configuration comes from the environment (DATABASE_URL, LOG_LEVEL,
REVIEW_AFTER_DAYS, ORDER_WEBHOOK_URL, ...). The acting user is taken from
the ``X-User-Id`` header on every /api/v1 request.
"""
from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address

from orderdesk.config import load_postgres_config, load_workflow_config
from orderdesk.core.exceptions import ProjectError
from orderdesk.core.logger import configure as configure_logging
from orderdesk.domain.events import OrderEventBus
from orderdesk.infra.database.engine import (
    build_engine,
    build_session_factory,
    close_engine,
    init_db,
)
from orderdesk.services.order_webhook_service import make_webhook_handler

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # ── Startup ──────────────────────────────────────────────────
    configure_logging()

    pg_config = load_postgres_config()
    engine = build_engine(pg_config)
    session_factory = build_session_factory(engine)
    await init_db(pg_config)

    workflow_config = load_workflow_config()
    event_bus = OrderEventBus()
    if workflow_config.webhook_enabled:
        event_bus.subscribe(make_webhook_handler(
            workflow_config.order_webhook_url, workflow_config.order_webhook_secret,
        ))
        logger.info("API: order webhook enabled → %s", workflow_config.order_webhook_url)

    app.state.session_factory = session_factory
    app.state.workflow_config = workflow_config
    app.state.event_bus = event_bus
    logger.info(
        "API: ready (review after %d days, assignable roles %s)",
        workflow_config.review_after_days, ",".join(workflow_config.assignable_roles),
    )

    yield

    # ── Shutdown ─────────────────────────────────────────────────
    await close_engine()
    logger.info("API: engine disposed")


app = FastAPI(
    title="orderdesk API",
    version="1.0.0",
    description="Order operations backend: orders, status ledger, workflows, invoices, proposals and companies.",
    lifespan=lifespan,
)

# Rate limiter; limit is configurable via API_RATE_LIMIT env var (default 120/minute)
_api_rate_limit = os.environ.get("API_RATE_LIMIT", "120/minute")
limiter = Limiter(key_func=get_remote_address, default_limits=[_api_rate_limit])
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
# default_limits only apply through the middleware
app.add_middleware(SlowAPIMiddleware)


@app.exception_handler(ProjectError)
async def project_error_handler(request: Request, exc: ProjectError):
    if exc.http_status >= 500:
        logger.error("API: %s on %s %s: %s", exc.code, request.method, request.url.path, exc.message,
                     exc_info=exc.cause)
    else:
        logger.info("API: %s on %s %s: %s", exc.code, request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.http_status, content=exc.to_response())


# CORS: allow the dashboard dev server and any configured origin
_allowed_origins = os.environ.get(
    "CORS_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000"
).split(",")

app.add_middleware(
    CORSMiddleware,
    allow_origins=_allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ── Optional API key authentication ──────────────────────────────
# Set ADMIN_API_KEY env var to protect all /api/v1/* endpoints.
# Requests must then include the header:  X-Api-Key: <value>
# If ADMIN_API_KEY is not set the check is skipped (dev/open mode).
_ADMIN_API_KEY = os.environ.get("ADMIN_API_KEY", "").strip() or None


@app.middleware("http")
async def api_key_middleware(request: Request, call_next):
    if _ADMIN_API_KEY and request.url.path.startswith("/api/v1"):
        provided = request.headers.get("X-Api-Key")
        if provided != _ADMIN_API_KEY:
            return JSONResponse(
                status_code=401,
                content={"detail": "Unauthorized: set X-Api-Key header", "code": "UNAUTHORIZED"},
            )
    return await call_next(request)


# ── Routers ───────────────────────────────────────────────────────
from orderdesk.api.routers import companies, invoices, notifications, orders, proposals, workflows  # noqa: E402

app.include_router(orders.router, prefix="/api/v1")
app.include_router(workflows.router, prefix="/api/v1")
app.include_router(invoices.router, prefix="/api/v1")
app.include_router(proposals.router, prefix="/api/v1")
app.include_router(companies.router, prefix="/api/v1")
app.include_router(notifications.router, prefix="/api/v1")


@app.get("/health", tags=["health"])
async def health():
    return {"status": "ok"}
