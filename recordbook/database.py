"""
Recordbook Backend: Database Binding
=====================================

What:  Async SQLAlchemy engine factory, declarative base, and FastAPI dependency.
How:   `create_store_engine()` turns a URL into an AsyncEngine. The application
       factory calls it once and hands the engine to a RecordStore, which lives
       on `app.state`. Route handlers receive that RecordStore through the
       `get_record_store` dependency; no handler reaches for a module-level engine.
Who:   Used by the application factory, the RecordStore service, and routes.
When:  Engine is created at app construction; disposed at shutdown.

Connection Pooling Strategy:
    SQLite (aiosqlite):  SQLAlchemy chooses the pool class; no sizing arguments.
    Server databases:    pool_size / max_overflow / pre_ping from settings,
                         pool_recycle=3600 to drop long-lived stale connections.
"""

import logging
from typing import TYPE_CHECKING, Optional

from fastapi import Request
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from recordbook.config import Settings, settings

if TYPE_CHECKING:
    from recordbook.services.record_store import RecordStore

logger = logging.getLogger(__name__)


# ── Base Model ────────────────────────────────────────────────────────────
class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    The shared metadata is what `RecordStore.ensure_schema()` creates with
    `checkfirst=True`, which renders as create-table-if-absent.
    """
    pass


# ── Engine Factory ────────────────────────────────────────────────────────
def create_store_engine(
    database_url: Optional[str] = None,
    app_settings: Settings = settings,
) -> Optional[AsyncEngine]:
    """
    Build the async engine for the records store.

    Args:
        database_url: Explicit URL; falls back to `app_settings.database_url`.
        app_settings: Settings providing pool configuration.

    Returns:
        An AsyncEngine, or None when no URL is configured (store unbound).
    """
    url = app_settings.database_url if database_url is None else database_url
    if not url:
        logger.warning("No DATABASE_URL configured; records store is unbound")
        return None

    engine_kwargs = {
        # Echo SQL in DEBUG mode for development visibility
        "echo": app_settings.log_level == "DEBUG",
    }
    if make_url(url).get_backend_name() != "sqlite":
        engine_kwargs.update(
            pool_size=app_settings.db_pool_size,
            max_overflow=app_settings.db_max_overflow,
            pool_pre_ping=app_settings.db_pool_pre_ping,
            pool_recycle=3600,
        )

    engine = create_async_engine(url, **engine_kwargs)
    logger.info("Records store bound: %s", engine.url.render_as_string(hide_password=True))
    return engine


# ── Store Dependency ──────────────────────────────────────────────────────
def get_record_store(request: Request) -> "RecordStore":
    """
    FastAPI dependency returning the RecordStore built by the app factory.

    Example usage in a route:
        @router.get("/records")
        async def list_records(store: RecordStore = Depends(get_record_store)):
            return await store.list_records()
    """
    return request.app.state.record_store


# ── Lifecycle Helpers ─────────────────────────────────────────────────────
async def dispose_engine(engine: Optional[AsyncEngine]) -> None:
    """
    What:  Gracefully closes all connections in the pool.
    When:  Called during application shutdown (lifespan handler).
    """
    if engine is not None:
        await engine.dispose()
