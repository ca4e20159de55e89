"""Read-only client for the upstream store (WooCommerce REST v3).

The stock engine only consumes what this module returns: orders with their
line items for fulfillment and processing, the raw-material catalog for the
one-time import, and the product catalog operators pick mapping targets from.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Optional

import httpx
from pydantic import BaseModel, Field, field_validator

from stockops.core.config import settings
from stockops.core.exceptions import OrderFeedError
from stockops.services.cache import CACHE_TTL, TTLCache, api_cache, cache_keys
from stockops.services.credentials import StoreConnection

logger = logging.getLogger(__name__)


class FeedLineItem(BaseModel):
    id: Optional[int] = None
    product_id: int
    variation_id: Optional[int] = None
    quantity: int
    name: str = ""
    meta_data: list[dict[str, Any]] = Field(default_factory=list)

    @field_validator("variation_id", mode="before")
    @classmethod
    def zero_means_no_variation(cls, v: Any) -> Any:
        return v or None

    @property
    def variation_label(self) -> Optional[str]:
        """Human label built from the visible variation attributes."""
        if self.variation_id is None:
            return None
        parts = [
            f"{meta['display_key']}: {meta['display_value']}"
            for meta in self.meta_data
            if meta.get("display_key")
            and meta.get("display_value")
            and not str(meta.get("key", "")).startswith("_")
            and not isinstance(meta.get("display_value"), (dict, list))
        ]
        return ", ".join(parts) or None


class FeedOrder(BaseModel):
    id: int
    number: str = ""
    status: str
    date_created: datetime
    total: Optional[str] = None
    line_items: list[FeedLineItem] = Field(default_factory=list)

    @field_validator("number", mode="before")
    @classmethod
    def number_as_text(cls, v: Any) -> str:
        return "" if v is None else str(v)


def date_range(preset: Optional[str], now: Optional[datetime] = None) -> dict[str, str]:
    """Lower bound for an order query, from a named preset.

    Args:
        preset: ``today``, ``last7days``, ``last30days`` or ``last90days``;
            anything else means 30 days
        now: Reference time (defaults to the current UTC time)

    Returns:
        Dict with an ISO 8601 ``after`` timestamp
    """
    now = now or datetime.utcnow()
    today = now.replace(hour=0, minute=0, second=0, microsecond=0)
    days = {"today": 0, "last7days": 7, "last30days": 30, "last90days": 90}.get(preset or "", 30)
    return {"after": (today - timedelta(days=days)).isoformat()}


class OrderFeedClient:
    """HTTP client for one store, authenticated with its consumer key/secret."""

    def __init__(self, connection: StoreConnection, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.connection = connection
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=f"{self.connection.store_url.rstrip('/')}/wp-json/wc/v3/",
            auth=(self.connection.consumer_key, self.connection.consumer_secret),
            timeout=settings.ORDER_FEED_TIMEOUT,
            transport=self._transport,
        )

    async def _get(self, path: str, params: Optional[dict[str, Any]] = None) -> Any:
        params = {k: v for k, v in (params or {}).items() if v is not None}
        try:
            async with self._client() as client:
                response = await client.get(path, params=params)
                response.raise_for_status()
                return response.json()
        except httpx.HTTPStatusError as e:
            message = _error_message(e.response) or f"Store API returned {e.response.status_code}"
            logger.error(f"Store API error on {path}: {message}")
            raise OrderFeedError(message, upstream_status=e.response.status_code) from e
        except httpx.HTTPError as e:
            logger.error(f"Store API request to {path} failed: {e}")
            raise OrderFeedError(f"Failed to reach the store API: {e}") from e

    async def fetch_orders(
        self,
        after: Optional[str] = None,
        before: Optional[str] = None,
        status: Optional[str] = None,
        per_page: Optional[int] = None,
        page: int = 1,
    ) -> list[FeedOrder]:
        """Fetch one page of orders, without checkout drafts.

        Returns:
            Parsed orders with ``variation_id == 0`` turned into None
        """
        data = await self._get(
            "orders",
            {
                "after": after,
                "before": before,
                "status": status or "any",
                "per_page": per_page or settings.ORDER_FEED_PAGE_SIZE,
                "page": page,
            },
        )
        return [
            FeedOrder.model_validate(order)
            for order in data
            if order.get("status") not in settings.EXCLUDED_ORDER_STATUSES
        ]

    async def fetch_order(self, order_id: int) -> Optional[FeedOrder]:
        try:
            data = await self._get(f"orders/{order_id}")
        except OrderFeedError as e:
            if e.extra.get("upstream_status") == 404:
                return None
            raise
        return FeedOrder.model_validate(data)

    async def fetch_product_variations(self, product_id: int) -> list[dict[str, Any]]:
        data = await self._get(
            f"products/{product_id}/variations", {"per_page": settings.ORDER_FEED_PAGE_SIZE}
        )
        return [
            {
                "id": variation["id"],
                "sku": variation.get("sku") or None,
                "stock_quantity": variation.get("stock_quantity"),
                "manage_stock": variation.get("manage_stock"),
                "attributes": variation.get("attributes") or [],
                "name": " - ".join(a.get("option", "") for a in variation.get("attributes") or [])
                or f"Variation {variation['id']}",
            }
            for variation in data
        ]

    async def fetch_order_statuses(self) -> list[dict[str, Any]]:
        """Order counts per status, without checkout drafts."""
        data = await self._get("reports/orders/totals")
        return [
            {"slug": status["slug"], "name": status.get("name", status["slug"]), "total": status.get("total", 0)}
            for status in data
            if status.get("slug") not in settings.EXCLUDED_ORDER_STATUSES
        ]

    async def _variable_products(self) -> list[dict[str, Any]]:
        # private products are raw materials hidden from the storefront
        products = []
        for status in ("publish", "private"):
            products += await self._get(
                "products", {"type": "variable", "status": status, "per_page": settings.ORDER_FEED_PAGE_SIZE}
            )
        return products

    async def fetch_variable_products(self) -> list[dict[str, Any]]:
        """Published and private variable products with their variation ids."""
        return [
            {
                "id": product["id"],
                "name": product.get("name", ""),
                "type": product.get("type", "variable"),
                "sku": product.get("sku") or None,
                "variations": product.get("variations") or [],
            }
            for product in await self._variable_products()
        ]

    async def fetch_products_with_variations(self) -> list[dict[str, Any]]:
        """Variable products with their variations expanded.

        A product whose variations cannot be read is returned with an empty
        list so the rest of the catalog still loads.
        """
        products = []
        for product in await self._variable_products():
            try:
                variations = await self.fetch_product_variations(product["id"])
            except OrderFeedError as e:
                logger.warning(f"Failed to fetch variations for product {product['id']}: {e}")
                variations = []
            products.append({
                "id": product["id"],
                "name": product.get("name", ""),
                "type": product.get("type", "variable"),
                "sku": product.get("sku") or None,
                "variations": variations,
            })
        return products

    async def fetch_raw_materials(self) -> list[dict[str, Any]]:
        """Products in the "raw materials" category tree, with variations.

        Both published and private products are included.
        """
        categories = await self._get("products/categories", {"per_page": settings.ORDER_FEED_PAGE_SIZE})
        root = next(
            (
                c for c in categories
                if c.get("slug") == "raw-materials" or str(c.get("name", "")).lower() == "raw materials"
            ),
            None,
        )
        if root is None:
            logger.info("No raw materials category in the store catalog")
            return []

        category_ids = [root["id"]] + [c["id"] for c in categories if c.get("parent") == root["id"]]
        products: dict[int, dict[str, Any]] = {}
        for category_id in category_ids:
            for status in ("publish", "private"):
                page = await self._get(
                    "products",
                    {"category": category_id, "status": status, "per_page": settings.ORDER_FEED_PAGE_SIZE},
                )
                for product in page:
                    products.setdefault(product["id"], product)

        materials = []
        for product in products.values():
            material = {
                "id": product["id"],
                "name": product.get("name", ""),
                "type": "variable" if product.get("type") == "variable" else "simple",
                "sku": product.get("sku") or None,
                "stock_quantity": product.get("stock_quantity"),
                "manage_stock": product.get("manage_stock"),
                "image_url": (product.get("images") or [{}])[0].get("src"),
                "variations": [],
            }
            if material["type"] == "variable":
                material["variations"] = await self.fetch_product_variations(product["id"])
            materials.append(material)
        return materials


def _error_message(response: httpx.Response) -> Optional[str]:
    try:
        body = response.json()
    except ValueError:
        return None
    return body.get("message") if isinstance(body, dict) else None


class CachedOrderFeed:
    """OrderFeedClient wrapper that memoizes reads in a TTLCache."""

    def __init__(self, client: OrderFeedClient, cache: TTLCache = api_cache):
        self.client = client
        self.cache = cache

    async def fetch_orders(
        self,
        after: Optional[str] = None,
        status: Optional[str] = None,
        per_page: Optional[int] = None,
    ) -> list[FeedOrder]:
        key = cache_keys.orders(after, status)
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug(f"[Cache HIT] {key}")
            return cached
        logger.debug(f"[Cache MISS] {key}")
        orders = await self.client.fetch_orders(after=after, status=status, per_page=per_page)
        self.cache.set(key, orders, CACHE_TTL["orders"])
        return orders

    async def fetch_order(self, order_id: int) -> Optional[FeedOrder]:
        key = cache_keys.order(order_id)
        cached = self.cache.get(key)
        if cached is not None:
            return cached
        order = await self.client.fetch_order(order_id)
        if order is not None:
            self.cache.set(key, order, CACHE_TTL["orders"])
        return order

    async def fetch_raw_materials(self) -> list[dict[str, Any]]:
        key = cache_keys.raw_materials()
        cached = self.cache.get(key)
        if cached is not None:
            return cached
        materials = await self.client.fetch_raw_materials()
        self.cache.set(key, materials, CACHE_TTL["raw_materials"])
        logger.info(f"[Cache SET] {key} - cached {len(materials)} materials")
        return materials

    async def fetch_product_variations(self, product_id: int) -> list[dict[str, Any]]:
        key = cache_keys.product_variations(product_id)
        cached = self.cache.get(key)
        if cached is not None:
            return cached
        variations = await self.client.fetch_product_variations(product_id)
        self.cache.set(key, variations, CACHE_TTL["products"])
        return variations

    async def _memoize(self, key: str, ttl: float, load) -> Any:
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug(f"[Cache HIT] {key}")
            return cached
        logger.debug(f"[Cache MISS] {key}")
        value = await load()
        self.cache.set(key, value, ttl)
        return value

    async def fetch_order_statuses(self) -> list[dict[str, Any]]:
        return await self._memoize(
            cache_keys.order_statuses(), CACHE_TTL["order_statuses"], self.client.fetch_order_statuses
        )

    async def fetch_variable_products(self) -> list[dict[str, Any]]:
        return await self._memoize(
            cache_keys.variable_products(), CACHE_TTL["products"], self.client.fetch_variable_products
        )

    async def fetch_products_with_variations(self) -> list[dict[str, Any]]:
        return await self._memoize(
            cache_keys.products_with_variations(), CACHE_TTL["products"], self.client.fetch_products_with_variations
        )
