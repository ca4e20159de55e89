from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from stockops.api.deps import get_current_user
from stockops.core.config import settings
from stockops.core.database import get_db
from stockops.models.user import User
from stockops.repositories.ledger_repository import StockLedgerRepository
from stockops.schemas.orders import LedgerEntryResponse

router = APIRouter(prefix="/api/stock-ledger", tags=["stock-ledger"])


@router.get("", response_model=list[LedgerEntryResponse])
async def list_ledger_entries(
    material_id: int | None = None,
    limit: int | None = Query(default=None, ge=1),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    limit = min(limit or settings.LEDGER_DEFAULT_LIMIT, settings.LEDGER_MAX_LIMIT)
    return await StockLedgerRepository(db).query(material_product_id=material_id, limit=limit)
