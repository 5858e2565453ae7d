"""
booking_backend.infra.database.engine – Async SQLAlchemy 2.0 engine, session factory, init_db.

Pool tuned for load. Accepts PostgresConfig; if not provided, loads from env via load_postgres_config().
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
from sqlalchemy.pool import NullPool

# Ensure all ORM models are registered with Base.metadata before create_all()
import booking_backend.infra.database.models  # noqa: F401
from booking_backend.infra.database.models.base import Base
from booking_backend.infra.database.repositories.appointment import NO_OVERLAP_CONSTRAINT

if TYPE_CHECKING:
    from booking_backend.config import PostgresConfig

logger = logging.getLogger(__name__)

_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker[AsyncSession]] = None

# Database-level backstop for the no-double-booking invariant
_HARDENING_DDL = [
    "CREATE EXTENSION IF NOT EXISTS btree_gist",
    (
        f"ALTER TABLE appointments ADD CONSTRAINT {NO_OVERLAP_CONSTRAINT} "
        "EXCLUDE USING gist (staff_id WITH =, tstzrange(start_time, reserved_until) WITH &&) "
        "WHERE (status <> 'cancelled' AND staff_id IS NOT NULL AND deleted_at IS NULL)"
    ),
]


def _make_async_url(url: str) -> str:
    """Convert postgresql:// or postgres:// to postgresql+asyncpg://."""
    for prefix in ("postgresql://", "postgres://"):
        if url.startswith(prefix):
            return url.replace(prefix, "postgresql+asyncpg://", 1)
    return url


def build_engine(
    config: Optional["PostgresConfig"] = None,
    *,
    echo: Optional[bool] = None,
    use_null_pool: bool = False,
) -> AsyncEngine:
    """
    Create and cache the async SQLAlchemy engine.

    Args:
        config: PostgresConfig (url, pool_size, etc.). If None, loaded from env.
        echo: Override SQL echo (default: use config.echo).
        use_null_pool: Use NullPool (e.g. for scripts and tests).
    """
    global _engine
    if _engine is not None:
        return _engine

    if config is None:
        from booking_backend.config import load_postgres_config
        config = load_postgres_config()

    url = _make_async_url(config.url)
    connect_args: dict = {
        "server_settings": {
            "application_name": config.application_name,
            "jit": "off",
        }
    }
    do_echo = echo if echo is not None else config.echo

    if use_null_pool:
        _engine = create_async_engine(
            url,
            echo=do_echo,
            poolclass=NullPool,
            connect_args=connect_args,
        )
        logger.info("AsyncEngine created with NullPool")
    else:
        _engine = create_async_engine(
            url,
            echo=do_echo,
            pool_size=config.pool_size,
            max_overflow=config.max_overflow,
            pool_timeout=config.pool_timeout,
            pool_recycle=config.pool_recycle,
            pool_pre_ping=True,
            connect_args=connect_args,
        )
        logger.info(
            "AsyncEngine created: pool_size=%d max_overflow=%d",
            config.pool_size, config.max_overflow,
        )
    return _engine


def build_session_factory(
    engine: Optional[AsyncEngine] = None,
) -> async_sessionmaker[AsyncSession]:
    """Create async session factory bound to engine."""
    global _session_factory
    if _session_factory is not None:
        return _session_factory
    if engine is None:
        engine = build_engine()
    _session_factory = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    logger.debug("AsyncSessionFactory created")
    return _session_factory


async def _harden_schema(conn: AsyncConnection) -> None:
    """Install constraints that create_all() cannot express.

    Each statement runs in its own savepoint so an already-present constraint
    does not abort the surrounding transaction.
    """
    for stmt in _HARDENING_DDL:
        try:
            async with conn.begin_nested():
                await conn.execute(text(stmt))
        except Exception as exc:
            logger.warning("Schema statement skipped (%s): %s", exc.__class__.__name__, stmt)
    logger.info("Schema hardening complete")


async def init_db(
    config: Optional["PostgresConfig"] = None,
    *,
    drop_all: bool = False,
) -> None:
    """Create all ORM tables and install the overlap constraint.

    For dev/test only; use migrations in production.
    """
    engine = build_engine(config)
    async with engine.begin() as conn:
        if drop_all:
            logger.warning("Dropping all ORM tables (drop_all=True)")
            await conn.run_sync(Base.metadata.drop_all)
        logger.info("Creating ORM tables")
        await conn.run_sync(Base.metadata.create_all)
        await _harden_schema(conn)
    logger.info("Database initialised successfully")


async def close_engine() -> None:
    """Dispose the connection pool. Call on app shutdown."""
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
        logger.info("AsyncEngine disposed")
        _engine = None
        _session_factory = None
