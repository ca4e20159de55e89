from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from stockops.api.deps import get_current_user
from stockops.core.database import get_db
from stockops.models.user import User
from stockops.schemas.config import (
    CacheStatsResponse,
    CredentialsRequest,
    CredentialsStatusResponse,
    MessageResponse,
)
from stockops.services.cache import api_cache, invalidate_all_cache
from stockops.services.credentials import CredentialProvider

router = APIRouter(prefix="/api", tags=["config"])


@router.get("/credentials/status", response_model=CredentialsStatusResponse)
async def get_credentials_status(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    connection = await CredentialProvider(db).get_credentials()
    if connection is None:
        return CredentialsStatusResponse(has_credentials=False)
    return CredentialsStatusResponse(has_credentials=True, store_url=connection.store_url)


@router.post("/credentials", response_model=MessageResponse)
async def save_credentials(
    req: CredentialsRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await CredentialProvider(db).save_credentials(req.store_url, req.consumer_key, req.consumer_secret)
    # a different store invalidates everything fetched from the old one
    invalidate_all_cache()
    return MessageResponse(message="Credentials saved successfully")


@router.delete("/credentials", response_model=MessageResponse)
async def delete_credentials(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await CredentialProvider(db).delete_credentials()
    invalidate_all_cache()
    return MessageResponse(message="Credentials deleted successfully")


@router.post("/cache/refresh", response_model=MessageResponse)
async def refresh_cache(current_user: User = Depends(get_current_user)):
    invalidate_all_cache()
    return MessageResponse(message="Cache cleared")


@router.get("/cache/stats", response_model=CacheStatsResponse)
async def get_cache_stats(current_user: User = Depends(get_current_user)):
    return api_cache.stats()
