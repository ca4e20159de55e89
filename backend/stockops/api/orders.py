"""Order-facing endpoints: fulfillment projection and stock processing."""

import logging
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from stockops.api.deps import get_current_user, get_order_feed
from stockops.core.config import settings
from stockops.core.database import get_db
from stockops.core.exceptions import NotFoundError
from stockops.models.user import User
from stockops.repositories.ledger_repository import ProcessedOrderRepository
from stockops.repositories.mapping_repository import MappingRepository
from stockops.repositories.material_repository import MaterialRepository
from stockops.schemas.orders import (
    FulfillmentStatusResponse,
    ProcessedOrderResponse,
    ProcessOrderRequest,
    ProcessOrderResponse,
    RequiredMaterialResponse,
    RequiredMaterialsResponse,
)
from stockops.services.cache import CACHE_TTL, api_cache, cache_keys
from stockops.services.fulfillment import FulfillmentCalculator, required_materials_for_order
from stockops.services.id_normalizer import MaterialIndex
from stockops.services.order_feed import CachedOrderFeed, date_range
from stockops.services.order_processor import OrderStockProcessor

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["orders"])


@router.get("/orders/fulfillment-status", response_model=dict[int, FulfillmentStatusResponse])
async def get_fulfillment_status(
    date_range_preset: str = Query(default="last30days", alias="dateRange"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    feed: CachedOrderFeed = Depends(get_order_feed),
):
    """Whether current stock covers each open order, allocated oldest first."""
    key = cache_keys.fulfillment_status(date_range_preset)
    cached = api_cache.get(key)
    if cached is not None:
        return cached

    orders = await feed.fetch_orders(after=date_range(date_range_preset)["after"])
    index = MaterialIndex.from_materials(await MaterialRepository(db).list_all())
    calculator = FulfillmentCalculator(
        index,
        await MappingRepository(db).list_all(),
        processed_order_ids=await ProcessedOrderRepository(db).ids(),
        statuses=settings.FULFILLMENT_STATUSES,
    )
    statuses = {
        order_id: FulfillmentStatusResponse.model_validate(status)
        for order_id, status in calculator.calculate(orders).items()
    }
    logger.info(f"Fulfillment status computed for {len(statuses)} order(s) ({date_range_preset})")
    api_cache.set(key, statuses, CACHE_TTL["orders"])
    return statuses


@router.get("/orders/{order_id}/required-materials", response_model=RequiredMaterialsResponse)
async def get_required_materials(
    order_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    feed: CachedOrderFeed = Depends(get_order_feed),
):
    order = await feed.fetch_order(order_id)
    if order is None:
        raise NotFoundError("Order", order_id)

    index = MaterialIndex.from_materials(await MaterialRepository(db).list_all())
    required = required_materials_for_order(order, index, await MappingRepository(db).list_all())
    marker = await ProcessedOrderRepository(db).get(order_id)
    return RequiredMaterialsResponse(
        order_id=order.id,
        order_number=order.number,
        is_processed=marker is not None,
        processed_at=marker.processed_at if marker else None,
        required_materials=[RequiredMaterialResponse.model_validate(r) for r in required],
        can_fulfill=all(r.has_sufficient_stock for r in required),
    )


@router.get("/processed-orders/{order_id}", response_model=ProcessedOrderResponse)
async def get_processed_order(
    order_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    marker = await ProcessedOrderRepository(db).get(order_id)
    if marker is None:
        return ProcessedOrderResponse(processed=False)
    return ProcessedOrderResponse(processed=True, processed_at=marker.processed_at)


@router.post("/process-order-stock", response_model=ProcessOrderResponse)
async def process_order_stock(
    req: ProcessOrderRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Deduct the mapped materials of a fulfilled order. Each order id is processed once."""
    outcome = await OrderStockProcessor(db).process(req.order_id, req.order_number, req.line_items)
    return ProcessOrderResponse.model_validate(outcome)
