"""
GroupBuy API Dependencies

Dependency injection for DB sessions, the chat client and runtime settings.
"""

from collections.abc import AsyncGenerator
from functools import lru_cache

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from chat.line_client import LineClient
from core.config import Settings, get_settings
from db.session import AsyncSessionLocal


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield an async database session."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Session factory for work that needs one session per concurrent task."""
    return AsyncSessionLocal


def get_app_settings() -> Settings:
    return get_settings()


@lru_cache
def _line_client() -> LineClient:
    return LineClient.from_settings(get_settings())


def get_line_client() -> LineClient:
    return _line_client()
