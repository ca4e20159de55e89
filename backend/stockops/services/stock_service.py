"""Operator stock adjustments: add stock and stock-take.

Every change writes exactly one ledger entry in the same transaction as the
stock update, so the stored stock of a material or variation always equals
``new_stock`` of its latest ledger entry.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from stockops.core.exceptions import InvalidInputError, NotFoundError
from stockops.models.ledger import StockLedgerEntry, StockReason
from stockops.models.material import Material, MaterialVariation
from stockops.repositories.ledger_repository import StockLedgerRepository
from stockops.repositories.material_repository import MaterialRepository
from stockops.services.cache import invalidate_stock_cache

logger = logging.getLogger(__name__)

ADD_STOCK_REASONS = (StockReason.MANUAL.value, StockReason.STOCK_IN.value)


@dataclass
class StockAdjustment:
    material_id: int
    variation_id: Optional[int]
    material_name: str
    variation_name: Optional[str]
    previous_stock: int
    new_stock: int
    quantity_change: int
    ledger_entry_id: int


class StockService:
    """Stock mutations paired with their ledger entries."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.materials = MaterialRepository(session)
        self.ledger = StockLedgerRepository(session)

    async def resolve_target(
        self, material_id: int, variation_id: Optional[int] = None
    ) -> tuple[Material, Optional[MaterialVariation]]:
        """Load the material (and variation) a stock command targets.

        Soft-deleted records resolve too.

        Raises:
            NotFoundError: Unknown material, or a variation that does not
                belong to the material
        """
        material = await self.materials.get_by_id(material_id)
        if material is None:
            raise NotFoundError("Material", material_id)
        if variation_id is None:
            return material, None
        variation = await self.materials.get_variation(variation_id)
        if variation is None or variation.material_id != material_id:
            raise NotFoundError("Variation", variation_id)
        return material, variation

    async def apply_delta(
        self,
        material_id: int,
        variation_id: Optional[int],
        delta: int,
        reason: str,
        notes: Optional[str] = None,
        order_id: Optional[int] = None,
        order_number: Optional[str] = None,
    ) -> StockLedgerEntry:
        """Change stock by ``delta`` and record it, without committing.

        Raises:
            NotFoundError: The stock row does not exist
        """
        change = await self.materials.adjust_stock(material_id, variation_id, delta)
        if change is None:
            raise NotFoundError("Variation" if variation_id is not None else "Material",
                                variation_id if variation_id is not None else material_id)
        previous_stock, new_stock = change
        return await self.ledger.append(
            material_product_id=material_id,
            material_variation_id=variation_id,
            quantity_change=delta,
            previous_stock=previous_stock,
            new_stock=new_stock,
            reason=reason,
            notes=notes,
            order_id=order_id,
            order_number=order_number,
        )

    async def add_stock(
        self,
        material_id: int,
        quantity: int,
        variation_id: Optional[int] = None,
        notes: Optional[str] = None,
        reason: str = StockReason.MANUAL.value,
    ) -> StockAdjustment:
        """Increase stock of a material or one of its variations.

        Args:
            material_id: Material id
            quantity: Units to add, must be positive
            variation_id: Variation id, or None for the parent stock
            notes: Ledger note
            reason: ``manual`` or ``stock_in``

        Returns:
            StockAdjustment describing the change
        """
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise InvalidInputError("Quantity must be a positive number")
        if reason not in ADD_STOCK_REASONS:
            raise InvalidInputError(f"Reason must be one of: {', '.join(ADD_STOCK_REASONS)}")

        material, variation = await self.resolve_target(material_id, variation_id)
        try:
            entry = await self.apply_delta(
                material_id, variation_id, quantity, reason, notes or "Stock added manually"
            )
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

        invalidate_stock_cache()
        logger.info(
            f"Added {quantity} to material {material_id}"
            f"{f' variation {variation_id}' if variation_id else ''}: "
            f"{entry.previous_stock} -> {entry.new_stock}"
        )
        return self._adjustment(material, variation, entry)

    async def set_stock(
        self,
        material_id: int,
        new_stock: int,
        variation_id: Optional[int] = None,
        notes: Optional[str] = None,
    ) -> StockAdjustment:
        """Stock-take: overwrite the stock level and record the difference.

        A stock-take that changes nothing still writes a zero-change entry.

        Args:
            material_id: Material id
            new_stock: Counted stock level, must not be negative
            variation_id: Variation id, or None for the parent stock
            notes: Ledger note

        Returns:
            StockAdjustment describing the change
        """
        if isinstance(new_stock, bool) or not isinstance(new_stock, int) or new_stock < 0:
            raise InvalidInputError("Stock level must be a non-negative number")

        material, variation = await self.resolve_target(material_id, variation_id)
        try:
            previous_stock = await self.materials.lock_stock(material_id, variation_id)
            if previous_stock is None:
                raise NotFoundError("Material", material_id)
            await self.materials.write_stock(material_id, variation_id, new_stock)
            entry = await self.ledger.append(
                material_product_id=material_id,
                material_variation_id=variation_id,
                quantity_change=new_stock - previous_stock,
                previous_stock=previous_stock,
                new_stock=new_stock,
                reason=StockReason.STOCK_TAKE.value,
                notes=notes or "Stock level set during stock take",
            )
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

        invalidate_stock_cache()
        logger.info(
            f"Stock take on material {material_id}"
            f"{f' variation {variation_id}' if variation_id else ''}: "
            f"{previous_stock} -> {new_stock}"
        )
        return self._adjustment(material, variation, entry)

    @staticmethod
    def _adjustment(
        material: Material, variation: Optional[MaterialVariation], entry: StockLedgerEntry
    ) -> StockAdjustment:
        return StockAdjustment(
            material_id=material.id,
            variation_id=variation.id if variation else None,
            material_name=material.name,
            variation_name=variation.name if variation else None,
            previous_stock=entry.previous_stock,
            new_stock=entry.new_stock,
            quantity_change=entry.quantity_change,
            ledger_entry_id=entry.id,
        )
