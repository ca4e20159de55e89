"""Database engine and session management.

The app runs on asyncpg (PostgreSQL) or aiosqlite (SQLite); Alembic runs the
same database through the matching sync driver.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import NullPool
from stockops.core.config import settings

logger = logging.getLogger(__name__)

_ASYNC_DRIVERS = {
    "postgresql": "postgresql+asyncpg",
    "postgresql+psycopg": "postgresql+asyncpg",
    "sqlite": "sqlite+aiosqlite",
}
_SYNC_DRIVERS = {
    "postgresql+asyncpg": "postgresql+psycopg",
    "sqlite+aiosqlite": "sqlite",
}


def _swap_scheme(url: str, drivers: dict[str, str]) -> str:
    scheme, sep, rest = url.partition("://")
    if not sep:
        raise ValueError(f"Unsupported database URL: {url}")
    return f"{drivers.get(scheme, scheme)}://{rest}"


def async_url(url: str) -> str:
    """URL with the async driver the app runs on."""
    url = _swap_scheme(url, _ASYNC_DRIVERS)
    if not url.startswith(("postgresql+asyncpg://", "sqlite+aiosqlite://")):
        raise ValueError(f"Unsupported database URL scheme: {url.split('://')[0]}")
    return url


def sync_url(url: str) -> str:
    """URL with the sync driver used for migrations."""
    return _swap_scheme(async_url(url), _SYNC_DRIVERS)


def build_engine(url: str) -> AsyncEngine:
    url = async_url(url)
    if url.startswith("sqlite"):
        logger.info(f"Using SQLite database: {url}")
        return create_async_engine(url, connect_args={"check_same_thread": False}, poolclass=NullPool)

    logger.info(f"Using PostgreSQL database: {url.split('@')[-1]}")
    return create_async_engine(
        url,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_pre_ping=True,
    )


engine = build_engine(settings.effective_database_url)
async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


class Base(DeclarativeBase):
    pass


async def get_db() -> AsyncSession:
    async with async_session() as session:
        yield session
