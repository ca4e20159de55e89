"""In-memory TTL cache for upstream store responses.

Only data fetched from the upstream store goes through here. Local stock
reads always hit the database; stock mutations drop the derived entries
(raw materials, fulfillment status) so they are recomputed on next read.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Optional

from stockops.core.config import settings

logger = logging.getLogger(__name__)


@dataclass
class _Entry:
    value: Any
    expires_at: float


class TTLCache:
    """Key/value store where every entry carries its own time-to-live."""

    def __init__(self, clock=time.monotonic):
        self._entries: dict[str, _Entry] = {}
        self._clock = clock
        self.hits = 0
        self.misses = 0

    def get(self, key: str) -> Optional[Any]:
        """Return the cached value, or None when missing or expired."""
        entry = self._entries.get(key)
        if entry is None:
            self.misses += 1
            return None
        if self._clock() > entry.expires_at:
            del self._entries[key]
            self.misses += 1
            return None
        self.hits += 1
        return entry.value

    def set(self, key: str, value: Any, ttl: float) -> None:
        self._entries[key] = _Entry(value=value, expires_at=self._clock() + ttl)

    def delete(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    def invalidate_prefix(self, prefix: str) -> int:
        keys = [key for key in self._entries if key.startswith(prefix)]
        for key in keys:
            del self._entries[key]
        return len(keys)

    def clear(self) -> None:
        self._entries.clear()

    def stats(self) -> dict[str, Any]:
        return {
            "size": len(self._entries),
            "keys": sorted(self._entries),
            "hits": self.hits,
            "misses": self.misses,
        }


class cache_keys:
    """Key builders, one per cached data category."""

    @staticmethod
    def orders(after: Optional[str], status: Optional[str] = None) -> str:
        return f"orders:{after or 'all'}:{status or 'any'}"

    @staticmethod
    def order(order_id: int) -> str:
        return f"order:{order_id}"

    @staticmethod
    def order_statuses() -> str:
        return "order-statuses"

    @staticmethod
    def raw_materials() -> str:
        return "raw-materials"

    @staticmethod
    def variable_products() -> str:
        return "variable-products"

    @staticmethod
    def products_with_variations() -> str:
        return "products-with-variations"

    @staticmethod
    def product_variations(product_id: int) -> str:
        return f"product-variations:{product_id}"

    @staticmethod
    def fulfillment_status(date_range: str) -> str:
        return f"fulfillment-status:{date_range}"


CACHE_TTL = {
    "orders": settings.CACHE_TTL_ORDERS,
    "raw_materials": settings.CACHE_TTL_RAW_MATERIALS,
    "products": settings.CACHE_TTL_PRODUCTS,
    "order_statuses": settings.CACHE_TTL_ORDER_STATUSES,
}

# Process-wide instance
api_cache = TTLCache()


def invalidate_stock_cache(cache: TTLCache = api_cache) -> None:
    """Drop entries derived from local stock levels."""
    cache.delete(cache_keys.raw_materials())
    dropped = cache.invalidate_prefix("fulfillment-status:")
    logger.info(f"[Cache] Stock cache invalidated ({dropped} fulfillment entries)")


def invalidate_orders_cache(cache: TTLCache = api_cache) -> None:
    """Drop order lists and everything computed from them."""
    dropped = cache.invalidate_prefix("orders:")
    dropped += cache.invalidate_prefix("order:")
    dropped += cache.invalidate_prefix("fulfillment-status:")
    cache.delete(cache_keys.order_statuses())
    logger.info(f"[Cache] Orders cache invalidated ({dropped} entries)")


def invalidate_all_cache(cache: TTLCache = api_cache) -> None:
    cache.clear()
    logger.info("[Cache] All cache cleared")
