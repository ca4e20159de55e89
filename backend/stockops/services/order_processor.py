"""Stock deduction for a fulfilled order, exactly once per order id.

The processed-order marker is inserted and committed before any stock is
touched. Its unique constraint decides between concurrent callers: the loser
gets ``OrderAlreadyProcessedError`` and deducts nothing.

Each deduction (stock update plus ledger entry) then commits on its own. A
storage failure rolls back only that deduction, is recorded in
``failed_updates`` and processing moves on to the next mapping.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Sequence

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from stockops.core.exceptions import InvalidInputError, NotFoundError, OrderAlreadyProcessedError
from stockops.models.ledger import StockReason
from stockops.repositories.ledger_repository import ProcessedOrderRepository
from stockops.repositories.mapping_repository import MappingRepository
from stockops.repositories.material_repository import MaterialRepository
from stockops.services.cache import invalidate_stock_cache
from stockops.services.id_normalizer import MaterialIndex
from stockops.services.order_feed import FeedLineItem
from stockops.services.stock_service import StockService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _PlannedMapping:
    """Plain copy of a mapping; a rollback expires ORM instances mid-loop."""

    material_product_id: int
    material_variation_id: Optional[int]
    quantity_used: int


@dataclass
class DeductionResult:
    material_id: int
    material_variation_id: Optional[int]
    material_name: str
    previous_stock: int
    new_stock: int
    quantity_deducted: int
    ledger_entry_id: int
    line_item_name: str


@dataclass
class OrderProcessingResult:
    order_id: int
    order_number: str
    total_line_items: int
    results: list[DeductionResult] = field(default_factory=list)
    unmapped_items: list[dict[str, Any]] = field(default_factory=list)
    skipped_items: list[dict[str, Any]] = field(default_factory=list)
    failed_updates: list[dict[str, Any]] = field(default_factory=list)

    @property
    def total_items_processed(self) -> int:
        return len(self.results)

    @property
    def warning(self) -> Optional[str]:
        parts = []
        if self.unmapped_items:
            parts.append(f"{len(self.unmapped_items)} item(s) had no material mappings and were skipped.")
        if self.skipped_items:
            parts.append(
                f"{len(self.skipped_items)} mapping(s) were skipped due to missing or unmanaged materials."
            )
        if self.failed_updates:
            parts.append(f"{len(self.failed_updates)} stock update(s) failed.")
        return " ".join(parts) or None


class OrderStockProcessor:
    """Deducts the mapped materials of one order and marks it processed."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.materials = MaterialRepository(session)
        self.mappings = MappingRepository(session)
        self.processed = ProcessedOrderRepository(session)
        self.stock = StockService(session)

    async def _claim(self, order_id: int, order_number: str) -> None:
        try:
            await self.processed.insert(order_id, order_number)
            await self.session.commit()
        except IntegrityError as e:
            await self.session.rollback()
            existing = await self.processed.get(order_id)
            raise OrderAlreadyProcessedError(
                order_id, existing.processed_at if existing else None
            ) from e

    async def process(
        self, order_id: int, order_number: str, line_items: Sequence[FeedLineItem]
    ) -> OrderProcessingResult:
        """Deduct stock for every mapped material of the order.

        Args:
            order_id: Upstream order id
            order_number: Order number shown to operators
            line_items: Sold items with product/variation ids and quantities

        Returns:
            OrderProcessingResult listing deductions, unmapped items, skipped
            mappings and failed updates

        Raises:
            OrderAlreadyProcessedError: The order was processed before, or a
                concurrent call claimed it first
            InvalidInputError: A line item quantity is not a positive integer
        """
        tag = f"[Order {order_number}]"
        for item in line_items:
            if item.quantity < 1:
                raise InvalidInputError(
                    f"Line item quantity must be a positive integer (product {item.product_id})",
                    field="quantity",
                )

        existing = await self.processed.get(order_id)
        if existing is not None:
            raise OrderAlreadyProcessedError(order_id, existing.processed_at)

        # all reads happen before the marker is written
        index = MaterialIndex.from_materials(await self.materials.list_all())
        plan = []
        for item in line_items:
            mappings = await self.mappings.for_product(item.product_id, item.variation_id)
            plan.append((
                item,
                [
                    _PlannedMapping(m.material_product_id, m.material_variation_id, m.quantity_used)
                    for m in mappings
                ],
            ))

        await self._claim(order_id, order_number)
        logger.info(f"{tag} Processing {len(line_items)} line items")

        outcome = OrderProcessingResult(
            order_id=order_id, order_number=order_number, total_line_items=len(line_items)
        )
        for position, (item, mappings) in enumerate(plan, start=1):
            logger.info(
                f"{tag} Line item {position}/{len(plan)}: {item.name} "
                f"(product_id={item.product_id}, variation_id={item.variation_id}, qty={item.quantity}), "
                f"{len(mappings)} mapping(s)"
            )
            if not mappings:
                logger.info(f"{tag} NO MAPPING for {item.name}")
                outcome.unmapped_items.append({
                    "product_id": item.product_id,
                    "variation_id": item.variation_id,
                    "name": item.name,
                    "quantity": item.quantity,
                    "reason": "No material mapping found for this product/variation",
                })
                continue

            for mapping in mappings:
                await self._deduct(tag, order_id, order_number, item, mapping, index, outcome)

        invalidate_stock_cache()
        logger.info(
            f"{tag} Processing complete. Results: {len(outcome.results)}, "
            f"Unmapped: {len(outcome.unmapped_items)}, Skipped: {len(outcome.skipped_items)}, "
            f"Failed: {len(outcome.failed_updates)}"
        )
        return outcome

    async def _deduct(self, tag, order_id, order_number, item, mapping, index, outcome) -> None:
        skipped = {
            "product_id": item.product_id,
            "variation_id": item.variation_id,
            "name": item.name,
            "material_id": mapping.material_product_id,
        }

        material = index.find_material(mapping.material_product_id)
        if material is None:
            logger.info(f"{tag} SKIPPED: {item.name} -> material {mapping.material_product_id} no longer exists")
            outcome.skipped_items.append({**skipped, "reason": "Material product no longer exists in inventory"})
            return

        variation = None
        if mapping.material_variation_id is not None:
            variation = index.find_variation(material, mapping.material_variation_id)
            if variation is None:
                logger.info(
                    f"{tag} SKIPPED: {item.name} -> {material.name} variation "
                    f"{mapping.material_variation_id} no longer exists"
                )
                outcome.skipped_items.append({
                    **skipped,
                    "material_variation_id": mapping.material_variation_id,
                    "reason": "Material variation no longer exists in inventory",
                })
                return

        display_name = MaterialIndex.display_name(material, variation)
        target = variation if variation is not None else material
        if not target.manage_stock:
            logger.info(f"{tag} SKIPPED: {item.name} -> {display_name} (stock management disabled)")
            outcome.skipped_items.append({
                **skipped,
                "material_name": display_name,
                "reason": "Material does not have stock management enabled",
            })
            return

        quantity = mapping.quantity_used * item.quantity
        variation_id = variation.id if variation is not None else None
        logger.info(f"{tag} Deducting: {item.name} -> {display_name}: {target.stock_quantity} - {quantity}")
        try:
            entry = await self.stock.apply_delta(
                material.id,
                variation_id,
                -quantity,
                StockReason.ORDER.value,
                notes=f"Order #{order_number} - {item.name} x{item.quantity}",
                order_id=order_id,
                order_number=order_number,
            )
            await self.session.commit()
        except (SQLAlchemyError, NotFoundError) as e:
            await self.session.rollback()
            logger.error(f"{tag} FAILED to update stock for {display_name}: {e}")
            outcome.failed_updates.append({
                **skipped,
                "material_name": display_name,
                "reason": f"Local stock update failed: {e}",
            })
            return

        # later line items read the overlay, not the stale snapshot
        target.stock_quantity = entry.new_stock
        logger.info(f"{tag} SUCCESS: {item.name} -> {display_name} (ledger entry {entry.id})")
        outcome.results.append(
            DeductionResult(
                material_id=material.id,
                material_variation_id=variation_id,
                material_name=display_name,
                previous_stock=entry.previous_stock,
                new_stock=entry.new_stock,
                quantity_deducted=quantity,
                ledger_entry_id=entry.id,
                line_item_name=item.name,
            )
        )
