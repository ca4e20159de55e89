"""Read-only passthroughs to the store: orders, status totals and products."""

from fastapi import APIRouter, Depends, Query

from stockops.api.deps import get_current_user, get_order_feed
from stockops.models.user import User
from stockops.schemas.catalog import (
    OrderStatusResponse,
    ProductVariationResponse,
    ProductWithVariationsResponse,
    VariableProductResponse,
)
from stockops.services.order_feed import CachedOrderFeed, FeedOrder, date_range

router = APIRouter(prefix="/api", tags=["catalog"])


@router.get("/orders", response_model=list[FeedOrder])
async def list_orders(
    date_range_preset: str = Query(default="last30days", alias="dateRange"),
    status: str | None = None,
    current_user: User = Depends(get_current_user),
    feed: CachedOrderFeed = Depends(get_order_feed),
):
    return await feed.fetch_orders(after=date_range(date_range_preset)["after"], status=status)


@router.get("/order-statuses", response_model=list[OrderStatusResponse])
async def list_order_statuses(
    current_user: User = Depends(get_current_user),
    feed: CachedOrderFeed = Depends(get_order_feed),
):
    return await feed.fetch_order_statuses()


@router.get("/variable-products", response_model=list[VariableProductResponse])
async def list_variable_products(
    current_user: User = Depends(get_current_user),
    feed: CachedOrderFeed = Depends(get_order_feed),
):
    return await feed.fetch_variable_products()


@router.get("/products/{product_id}/variations", response_model=list[ProductVariationResponse])
async def list_product_variations(
    product_id: int,
    current_user: User = Depends(get_current_user),
    feed: CachedOrderFeed = Depends(get_order_feed),
):
    return await feed.fetch_product_variations(product_id)


@router.get("/products-with-variations", response_model=list[ProductWithVariationsResponse])
async def list_products_with_variations(
    current_user: User = Depends(get_current_user),
    feed: CachedOrderFeed = Depends(get_order_feed),
):
    """Variable products with variations expanded, for picking mapping targets."""
    return await feed.fetch_products_with_variations()
