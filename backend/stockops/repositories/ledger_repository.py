"""Repositories for the stock ledger and the processed-order markers."""

from typing import List, Optional
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from stockops.models.ledger import ProcessedOrder, StockLedgerEntry


class StockLedgerRepository:
    """Append-only access to StockLedgerEntry.

    There is no update or delete. ``append`` only flushes: the caller commits
    the entry in the same transaction as the stock change it records.
    """

    def __init__(self, session: AsyncSession):
        """Initialize the repository with a database session.

        Args:
            session: SQLAlchemy async session
        """
        self.session = session

    async def append(
        self,
        material_product_id: int,
        material_variation_id: Optional[int],
        quantity_change: int,
        previous_stock: int,
        new_stock: int,
        reason: str,
        notes: Optional[str] = None,
        order_id: Optional[int] = None,
        order_number: Optional[str] = None,
    ) -> StockLedgerEntry:
        """Add one ledger entry to the current transaction.

        Args:
            material_product_id: Canonical material id
            material_variation_id: Canonical variation id, None for parent stock
            quantity_change: Signed change, negative for consumption
            previous_stock: Stock before the change
            new_stock: Stock after the change
            reason: One of the StockReason values
            notes: Free text
            order_id: Upstream order id, when caused by order processing
            order_number: Order number or PO number

        Returns:
            The flushed StockLedgerEntry (its id is assigned)
        """
        if new_stock != previous_stock + quantity_change:
            raise ValueError(
                f"Inconsistent ledger entry: {previous_stock} + {quantity_change} != {new_stock}"
            )
        entry = StockLedgerEntry(
            material_product_id=material_product_id,
            material_variation_id=material_variation_id,
            order_id=order_id,
            order_number=order_number,
            quantity_change=quantity_change,
            previous_stock=previous_stock,
            new_stock=new_stock,
            reason=reason,
            notes=notes,
        )
        self.session.add(entry)
        await self.session.flush()
        return entry

    async def query(self, material_product_id: Optional[int] = None, limit: int = 100) -> List[StockLedgerEntry]:
        """The most recent ledger entries, returned in creation order.

        Args:
            material_product_id: Restrict to one material (parent and variations)
            limit: Maximum number of entries; older ones are cut off

        Returns:
            List of StockLedgerEntry ordered by created_at, then id
        """
        stmt = select(StockLedgerEntry)
        if material_product_id is not None:
            stmt = stmt.where(StockLedgerEntry.material_product_id == material_product_id)
        stmt = stmt.order_by(StockLedgerEntry.created_at.desc(), StockLedgerEntry.id.desc()).limit(limit)
        result = await self.session.execute(stmt)
        return list(reversed(result.scalars().all()))

    async def latest_for(
        self, material_product_id: int, material_variation_id: Optional[int]
    ) -> Optional[StockLedgerEntry]:
        """Most recent entry for one stock key, or None if it has none."""
        stmt = select(StockLedgerEntry).where(
            StockLedgerEntry.material_product_id == material_product_id
        )
        if material_variation_id is None:
            stmt = stmt.where(StockLedgerEntry.material_variation_id.is_(None))
        else:
            stmt = stmt.where(StockLedgerEntry.material_variation_id == material_variation_id)
        stmt = stmt.order_by(StockLedgerEntry.created_at.desc(), StockLedgerEntry.id.desc()).limit(1)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()


class ProcessedOrderRepository:
    """Repository for ProcessedOrder markers."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, order_id: int) -> Optional[ProcessedOrder]:
        result = await self.session.execute(
            select(ProcessedOrder).where(ProcessedOrder.order_id == order_id)
        )
        return result.scalar_one_or_none()

    async def ids(self) -> set[int]:
        result = await self.session.execute(select(ProcessedOrder.order_id))
        return set(result.scalars().all())

    async def insert(self, order_id: int, order_number: Optional[str]) -> ProcessedOrder:
        """Add the marker and flush.

        The unique constraint on ``order_id`` makes the flush fail with
        IntegrityError when another caller already holds the marker.
        """
        marker = ProcessedOrder(order_id=order_id, order_number=order_number)
        self.session.add(marker)
        await self.session.flush()
        return marker
