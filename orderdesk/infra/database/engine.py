"""
orderdesk.infra.database.engine – async engine and session factory for the order database.

The engine is built once from PostgresConfig (or the environment).

init_db() creates the ORM tables and installs the ``soft_delete_order`` and
``restore_order`` SQL functions, which own the interaction between
``deleted_at`` and the "Deleted" status flag.
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncConnection,
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

# Register every model with Base.metadata before create_all()
import orderdesk.infra.database.models  # noqa: F401
from orderdesk.infra.database.models.base import Base

if TYPE_CHECKING:
    from orderdesk.config import PostgresConfig

logger = logging.getLogger(__name__)

_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker[AsyncSession]] = None

SOFT_DELETE_FUNCTION = """
CREATE OR REPLACE FUNCTION soft_delete_order(order_id_param uuid) RETURNS void AS $$
BEGIN
    UPDATE orders
       SET deleted_at = now(),
           status_deleted = true,
           updated_at = now(),
           version = version + 1
     WHERE id = order_id_param
       AND deleted_at IS NULL;
END;
$$ LANGUAGE plpgsql
"""

RESTORE_FUNCTION = """
CREATE OR REPLACE FUNCTION restore_order(order_id_param uuid) RETURNS void AS $$
BEGIN
    UPDATE orders
       SET deleted_at = NULL,
           status_deleted = false,
           updated_at = now(),
           version = version + 1
     WHERE id = order_id_param
       AND deleted_at IS NOT NULL;
END;
$$ LANGUAGE plpgsql
"""


def _asyncpg_url(url: str) -> str:
    """Point plain postgres DSNs at the asyncpg driver."""
    scheme, sep, rest = url.partition("://")
    if scheme in ("postgresql", "postgres"):
        return f"postgresql+asyncpg{sep}{rest}"
    return url


def build_engine(config: Optional["PostgresConfig"] = None) -> AsyncEngine:
    """Return the process-wide async engine, creating it from *config* (or env) once."""
    global _engine
    if _engine is not None:
        return _engine

    if config is None:
        from orderdesk.config import load_postgres_config
        config = load_postgres_config()

    _engine = create_async_engine(
        _asyncpg_url(config.url),
        echo=config.echo,
        pool_size=config.pool_size,
        max_overflow=config.max_overflow,
        pool_timeout=config.pool_timeout,
        pool_recycle=config.pool_recycle,
        pool_pre_ping=True,
        connect_args={"server_settings": {"application_name": config.application_name}},
    )
    logger.info("Order database engine ready (pool %d+%d, app %s)",
                config.pool_size, config.max_overflow, config.application_name)
    return _engine


def build_session_factory(engine: Optional[AsyncEngine] = None) -> async_sessionmaker[AsyncSession]:
    """Session factory for request-scoped sessions.

    ``expire_on_commit=False`` keeps returned orders readable by the response
    schemas after ``get_session`` has committed.
    """
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(
            engine or build_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
    return _session_factory


async def _migrate_db(conn: AsyncConnection) -> None:
    """Install SQL functions and columns added after the initial schema.

    Every statement is idempotent so repeated startups are safe.
    """
    migrations = [
        "ALTER TABLE orders ADD COLUMN IF NOT EXISTS version INTEGER NOT NULL DEFAULT 1",
        "ALTER TABLE orders ADD COLUMN IF NOT EXISTS is_yearly_package BOOLEAN NOT NULL DEFAULT false",
        "ALTER TABLE invoices ADD COLUMN IF NOT EXISTS order_id UUID REFERENCES orders(id) ON DELETE SET NULL",
        SOFT_DELETE_FUNCTION,
        RESTORE_FUNCTION,
    ]
    for stmt in migrations:
        try:
            async with conn.begin_nested():
                await conn.execute(text(stmt))
        except Exception as exc:
            logger.warning("Migration statement skipped (%s): %s", exc.__class__.__name__, stmt.strip().splitlines()[0])
    logger.info("Database migration complete")


async def init_db(config: Optional["PostgresConfig"] = None) -> None:
    """Create missing tables, then apply the idempotent upgrades and SQL functions."""
    engine = build_engine(config)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
        await _migrate_db(conn)
    logger.info("Order database schema is up to date")


async def close_engine() -> None:
    """Dispose the connection pool. Call on app shutdown."""
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
        logger.info("AsyncEngine disposed")
        _engine = None
        _session_factory = None
