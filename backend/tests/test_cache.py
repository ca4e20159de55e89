"""Tests for the TTL cache and its invalidation helpers."""

from stockops.services.cache import (
    TTLCache,
    cache_keys,
    invalidate_orders_cache,
    invalidate_stock_cache,
)


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


class TestTTLCache:
    def test_entry_expires_after_ttl(self):
        clock = FakeClock()
        cache = TTLCache(clock=clock)
        cache.set("orders:all:any", [1, 2], ttl=60)

        clock.now += 59
        assert cache.get("orders:all:any") == [1, 2]
        clock.now += 2
        assert cache.get("orders:all:any") is None
        assert cache.stats()["size"] == 0

    def test_hits_and_misses_are_counted(self):
        cache = TTLCache()
        cache.get("missing")
        cache.set("k", "v", ttl=10)
        cache.get("k")
        cache.get("k")

        stats = cache.stats()
        assert stats["hits"] == 2
        assert stats["misses"] == 1
        assert stats["keys"] == ["k"]

    def test_invalidate_prefix(self):
        cache = TTLCache()
        cache.set("order:1", 1, ttl=10)
        cache.set("order:2", 2, ttl=10)
        cache.set("raw-materials", [], ttl=10)

        assert cache.invalidate_prefix("order:") == 2
        assert cache.get("raw-materials") == []
        assert cache.delete("raw-materials") is True
        assert cache.delete("raw-materials") is False


class TestCacheKeys:
    def test_key_formats(self):
        assert cache_keys.orders(None) == "orders:all:any"
        assert cache_keys.orders("2026-01-01T00:00:00", "pending") == "orders:2026-01-01T00:00:00:pending"
        assert cache_keys.order(5) == "order:5"
        assert cache_keys.order_statuses() == "order-statuses"
        assert cache_keys.product_variations(7) == "product-variations:7"
        assert cache_keys.fulfillment_status("today") == "fulfillment-status:today"


class TestInvalidation:
    def test_stock_invalidation_keeps_orders(self):
        cache = TTLCache()
        cache.set(cache_keys.orders(None), [], ttl=60)
        cache.set(cache_keys.raw_materials(), [], ttl=60)
        cache.set(cache_keys.fulfillment_status("today"), {}, ttl=60)

        invalidate_stock_cache(cache)

        assert cache.stats()["keys"] == [cache_keys.orders(None)]

    def test_orders_invalidation(self):
        cache = TTLCache()
        cache.set(cache_keys.orders(None), [], ttl=60)
        cache.set(cache_keys.order(3), {}, ttl=60)
        cache.set(cache_keys.fulfillment_status("today"), {}, ttl=60)
        cache.set(cache_keys.raw_materials(), [], ttl=60)
        cache.set(cache_keys.order_statuses(), [], ttl=60)
        cache.set(cache_keys.variable_products(), [], ttl=60)

        invalidate_orders_cache(cache)

        assert sorted(cache.stats()["keys"]) == [cache_keys.raw_materials(), cache_keys.variable_products()]
