import logging
from typing import AsyncGenerator, Type

from fastapi import Request
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import NullPool

from .config import Settings

logger = logging.getLogger(__name__)


def build_async_engine(settings: Settings) -> AsyncEngine:
    url = settings.ASYNC_DATABASE_URL
    if not url:
        raise RuntimeError("ASYNC_DATABASE_URL is not configured")
    kwargs = {"echo": settings.DB_ECHO}
    if make_url(url).get_backend_name() == "sqlite":
        # aiosqlite connections must not outlive the event loop that opened them
        kwargs["poolclass"] = NullPool
    return create_async_engine(url, **kwargs)


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False)


async def init_models(engine: AsyncEngine, base: Type[DeclarativeBase]) -> None:
    """Create any missing tables for *base* on *engine*."""
    async with engine.begin() as conn:
        await conn.run_sync(base.metadata.create_all)
    logger.info("database schema ready")


async def get_db_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    session_factory: async_sessionmaker[AsyncSession] = request.app.state.session_factory
    async with session_factory() as session:
        yield session
