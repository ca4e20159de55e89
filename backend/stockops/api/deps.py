from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from stockops.core.database import get_db
from stockops.core.security import decode_access_token
from stockops.models.user import User
from stockops.services.credentials import CredentialProvider
from stockops.services.order_feed import CachedOrderFeed, OrderFeedClient

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Resolve the bearer token to an active user, or answer 401."""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        username = decode_access_token(token)
    except ValueError:
        raise credentials_exception

    result = await db.execute(select(User).where(User.username == username))
    user = result.scalar_one_or_none()
    if user is None or not user.is_active:
        raise credentials_exception
    return user


async def get_order_feed(db: AsyncSession = Depends(get_db)) -> CachedOrderFeed:
    """Cached feed client for the configured store.

    Raises:
        CredentialsNotConfiguredError: No store credentials saved yet
    """
    connection = await CredentialProvider(db).require_credentials()
    return CachedOrderFeed(OrderFeedClient(connection))
