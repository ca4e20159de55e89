"""Startup bootstrap: tables for development databases and the first user."""

import asyncio
import logging
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from stockops.core.config import settings
from stockops.core.database import Base, async_session, engine
from stockops.core.security import hash_password
from stockops.models import User

logger = logging.getLogger(__name__)


async def create_tables() -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def ensure_admin(session: AsyncSession) -> bool:
    """Create the configured admin account when no user exists yet.

    Returns:
        True if the account was created
    """
    if (await session.execute(select(User.id).limit(1))).first() is not None:
        return False

    session.add(
        User(
            username=settings.DEFAULT_ADMIN_USERNAME,
            password_hash=hash_password(settings.DEFAULT_ADMIN_PASSWORD),
        )
    )
    await session.commit()
    if settings.DEFAULT_ADMIN_PASSWORD == "admin123":
        logger.warning(
            f"Created user {settings.DEFAULT_ADMIN_USERNAME} with the default password; change it"
        )
    else:
        logger.info(f"Created user {settings.DEFAULT_ADMIN_USERNAME}")
    return True


async def init_db() -> None:
    if settings.AUTO_CREATE_TABLES:
        await create_tables()
    async with async_session() as session:
        await ensure_admin(session)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(init_db())
