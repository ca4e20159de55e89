"""Fulfillment projection: which open orders current stock can cover.

Pure computation over already-fetched data. Nothing here touches the
database or the order feed.

Stock is allocated oldest order first. An order either claims everything it
needs or nothing, so a later order never sees stock that an earlier order
could not use, and never sees stock an earlier order already claimed.
"""

from dataclasses import dataclass, field
from typing import Iterable, Optional, Sequence

from stockops.models.mapping import MaterialMapping
from stockops.services.id_normalizer import MaterialIndex, MaterialSnapshot, VariationSnapshot
from stockops.services.order_feed import FeedOrder

StockKey = tuple[int, Optional[int]]


@dataclass
class MissingMaterial:
    material_id: int
    variation_id: Optional[int]
    material_name: str
    needed: int
    available: int


@dataclass
class FulfillmentStatus:
    can_fulfill: bool
    is_processed: bool = False
    missing_materials: list[MissingMaterial] = field(default_factory=list)


@dataclass
class _Need:
    material_id: int
    variation_id: Optional[int]
    material_name: str
    needed: int = 0


class MappingLookup:
    """All mappings grouped by sellable (product_id, variation_id)."""

    def __init__(self, mappings: Iterable[MaterialMapping]):
        self._by_item: dict[tuple[int, Optional[int]], list[MaterialMapping]] = {}
        for mapping in mappings:
            self._by_item.setdefault((mapping.product_id, mapping.variation_id), []).append(mapping)

    def for_item(self, product_id: int, variation_id: Optional[int]) -> list[MaterialMapping]:
        return self._by_item.get((product_id, variation_id or None), [])


def build_stock_pool(index: MaterialIndex) -> tuple[dict[StockKey, int], set[StockKey]]:
    """Seed the pool from current stock, keyed by canonical ids.

    A variable material also gets a parent bucket holding the sum of its
    variations, for mappings that name the material without a variation.

    Returns:
        (pool, unmanaged keys); unmanaged keys never limit fulfillment
    """
    pool: dict[StockKey, int] = {}
    unmanaged: set[StockKey] = set()
    for material in index:
        if material.is_variable and material.variations:
            for variation in material.variations:
                pool[(material.id, variation.id)] = variation.stock_quantity
                if not variation.manage_stock:
                    unmanaged.add((material.id, variation.id))
            pool[(material.id, None)] = sum(v.stock_quantity for v in material.variations)
        else:
            pool[(material.id, None)] = material.stock_quantity
        if not material.manage_stock:
            unmanaged.add((material.id, None))
    return pool, unmanaged


class FulfillmentCalculator:
    """Greedy oldest-first allocation of stock across open orders."""

    def __init__(
        self,
        index: MaterialIndex,
        mappings: Iterable[MaterialMapping],
        processed_order_ids: Iterable[int] = (),
        statuses: Optional[Sequence[str]] = None,
    ):
        self.index = index
        self.mappings = MappingLookup(mappings)
        self.processed_order_ids = set(processed_order_ids)
        self.statuses = set(statuses) if statuses is not None else None

    def _needs(self, order: FeedOrder) -> dict[StockKey, _Need]:
        needs: dict[StockKey, _Need] = {}
        for item in order.line_items:
            for mapping in self.mappings.for_item(item.product_id, item.variation_id):
                material = self.index.find_material(mapping.material_product_id)
                if material is None:
                    # orphaned mapping
                    continue
                variation = self.index.find_variation(material, mapping.material_variation_id)
                variation_id = self.index.normalize_variation_id(material, mapping.material_variation_id)
                key = (material.id, variation_id)
                need = needs.get(key)
                if need is None:
                    need = needs[key] = _Need(
                        material_id=material.id,
                        variation_id=variation_id,
                        material_name=MaterialIndex.display_name(material, variation),
                    )
                need.needed += mapping.quantity_used * item.quantity
        return needs

    def calculate(self, orders: Iterable[FeedOrder]) -> dict[int, FulfillmentStatus]:
        """Fulfillment status per order id.

        Args:
            orders: Orders from the feed, in any order

        Returns:
            Dict of order id to FulfillmentStatus for the orders whose status
            awaits fulfillment
        """
        pool, unmanaged = build_stock_pool(self.index)
        claimed: dict[StockKey, int] = {}
        result: dict[int, FulfillmentStatus] = {}

        relevant = [o for o in orders if self.statuses is None or o.status in self.statuses]
        for order in sorted(relevant, key=lambda o: o.date_created):
            if order.id in self.processed_order_ids:
                result[order.id] = FulfillmentStatus(can_fulfill=True, is_processed=True)
                continue

            needs = self._needs(order)
            missing = []
            for key, need in needs.items():
                if key in unmanaged:
                    continue
                available = pool.get(key, 0) - claimed.get(key, 0)
                if available < need.needed:
                    missing.append(
                        MissingMaterial(
                            material_id=need.material_id,
                            variation_id=need.variation_id,
                            material_name=need.material_name,
                            needed=need.needed,
                            available=max(0, available),
                        )
                    )

            if not missing:
                for key, need in needs.items():
                    claimed[key] = claimed.get(key, 0) + need.needed

            result[order.id] = FulfillmentStatus(can_fulfill=not missing, missing_materials=missing)
        return result


@dataclass
class RequiredMaterial:
    material_id: int
    variation_id: Optional[int]
    material_name: str
    quantity_needed: int
    current_stock: int
    has_sufficient_stock: bool
    product_name: str
    variation_name: Optional[str]


def _current_stock(material: MaterialSnapshot, variation: Optional[VariationSnapshot]) -> int:
    if variation is not None:
        return variation.stock_quantity
    if material.is_variable and material.variations:
        return sum(v.stock_quantity for v in material.variations)
    return material.stock_quantity


def required_materials_for_order(
    order: FeedOrder, index: MaterialIndex, mappings: Iterable[MaterialMapping]
) -> list[RequiredMaterial]:
    """Per-mapping material requirements of one order against current stock.

    Unlike ``FulfillmentCalculator`` this ignores other open orders.
    """
    lookup = mappings if isinstance(mappings, MappingLookup) else MappingLookup(mappings)
    required = []
    for item in order.line_items:
        for mapping in lookup.for_item(item.product_id, item.variation_id):
            material = index.find_material(mapping.material_product_id)
            if material is None:
                continue
            variation = index.find_variation(material, mapping.material_variation_id)
            quantity_needed = mapping.quantity_used * item.quantity
            current_stock = _current_stock(material, variation)
            managed = variation.manage_stock if variation is not None else material.manage_stock
            required.append(
                RequiredMaterial(
                    material_id=material.id,
                    variation_id=index.normalize_variation_id(material, mapping.material_variation_id),
                    material_name=MaterialIndex.display_name(material, variation),
                    quantity_needed=quantity_needed,
                    current_stock=current_stock,
                    has_sufficient_stock=not managed or current_stock >= quantity_needed,
                    product_name=item.name,
                    variation_name=item.variation_label,
                )
            )
    return required