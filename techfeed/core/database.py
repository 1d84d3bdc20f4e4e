"""Async SQLAlchemy engine and session factory construction."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from techfeed.core.config import Settings
from techfeed.core.errors import StoreUnavailable
from techfeed.core.logging import get_logger

logger = get_logger(__name__)


def build_engine(settings: Settings) -> AsyncEngine:
    """Create the async engine for ``settings.database_url``."""
    if settings.database_url.startswith("sqlite"):
        return create_async_engine(
            settings.database_url,
            echo=False,
            connect_args={"check_same_thread": False},
        )
    return create_async_engine(settings.database_url, echo=False, pool_pre_ping=True)


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False, autoflush=True)


async def create_schema(engine: AsyncEngine) -> None:
    """Create all tables (development / tests; production uses Alembic)."""
    from techfeed.models import Base

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


@contextmanager
def store_guard() -> Iterator[None]:
    """Translate driver-level connectivity failures into StoreUnavailable."""
    try:
        yield
    except (OperationalError, InterfaceError, ConnectionError) as exc:
        logger.error("Store unavailable", error=str(exc))
        raise StoreUnavailable() from exc
