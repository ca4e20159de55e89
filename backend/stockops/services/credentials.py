"""Store credentials, encrypted at rest with the key derived from SECRET_KEY."""

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from stockops.core.exceptions import CredentialsNotConfiguredError
from stockops.core.security import decrypt_secret, encrypt_secret
from stockops.models.credentials import StoreCredentials

logger = logging.getLogger(__name__)


@dataclass
class StoreConnection:
    store_url: str
    consumer_key: str
    consumer_secret: str


class CredentialProvider:
    """Keeps at most one active StoreCredentials row."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _active(self) -> Optional[StoreCredentials]:
        result = await self.session.execute(
            select(StoreCredentials)
            .where(StoreCredentials.is_active == True)
            .order_by(StoreCredentials.id.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def has_credentials(self) -> bool:
        return await self._active() is not None

    async def get_credentials(self) -> Optional[StoreConnection]:
        """Decrypted active credentials, or None when unset or unreadable.

        Credentials saved under an earlier SECRET_KEY cannot be decrypted
        and count as not configured until they are saved again.
        """
        row = await self._active()
        if row is None:
            return None
        try:
            return StoreConnection(
                store_url=row.store_url,
                consumer_key=decrypt_secret(row.consumer_key_encrypted),
                consumer_secret=decrypt_secret(row.consumer_secret_encrypted),
            )
        except ValueError as e:
            logger.warning(f"Store credentials {row.id} unusable: {e}")
            return None

    async def require_credentials(self) -> StoreConnection:
        connection = await self.get_credentials()
        if connection is None:
            raise CredentialsNotConfiguredError()
        return connection

    async def save_credentials(self, store_url: str, consumer_key: str, consumer_secret: str) -> None:
        """Replace the active credentials."""
        await self.session.execute(
            update(StoreCredentials)
            .where(StoreCredentials.is_active == True)
            .values(is_active=False)
        )
        self.session.add(
            StoreCredentials(
                store_url=store_url.rstrip("/"),
                consumer_key_encrypted=encrypt_secret(consumer_key),
                consumer_secret_encrypted=encrypt_secret(consumer_secret),
                is_active=True,
            )
        )
        await self.session.commit()
        logger.info(f"Store credentials saved for {store_url}")

    async def delete_credentials(self) -> None:
        await self.session.execute(
            update(StoreCredentials)
            .where(StoreCredentials.is_active == True)
            .values(is_active=False)
        )
        await self.session.commit()
        logger.info("Store credentials removed")
