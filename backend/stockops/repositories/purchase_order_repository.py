"""Repository classes for suppliers and purchase orders."""

from decimal import Decimal
from typing import List, Optional
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from stockops.models.purchasing import (
    PurchaseOrder,
    PurchaseOrderStatus,
    Supplier,
)


class SupplierRepository:
    """Repository for Supplier database operations."""

    def __init__(self, session: AsyncSession):
        """Initialize the repository with a database session.

        Args:
            session: SQLAlchemy async session
        """
        self.session = session

    async def list_all(self, active_only: bool = True) -> List[Supplier]:
        stmt = select(Supplier).order_by(Supplier.name, Supplier.id)
        if active_only:
            stmt = stmt.where(Supplier.is_active == True)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_by_id(self, supplier_id: int) -> Optional[Supplier]:
        result = await self.session.execute(
            select(Supplier).where(Supplier.id == supplier_id)
        )
        return result.scalar_one_or_none()

    async def create(self, **fields) -> Supplier:
        supplier = Supplier(**fields)
        self.session.add(supplier)
        await self.session.commit()
        await self.session.refresh(supplier)
        return supplier

    async def update(self, supplier_id: int, **fields) -> Optional[Supplier]:
        """Update a supplier.

        Args:
            supplier_id: Supplier ID
            **fields: Column values to change; None values are ignored

        Returns:
            Updated Supplier or None if not found
        """
        supplier = await self.get_by_id(supplier_id)
        if supplier is None:
            return None

        for key, value in fields.items():
            if value is not None:
                setattr(supplier, key, value)

        await self.session.commit()
        await self.session.refresh(supplier)
        return supplier

    async def soft_delete(self, supplier_id: int) -> bool:
        supplier = await self.get_by_id(supplier_id)
        if supplier is None:
            return False
        supplier.is_active = False
        await self.session.commit()
        return True

    async def statistics(self) -> List[dict]:
        """Purchase order count and spend per active supplier.

        Cancelled purchase orders are not counted.

        Returns:
            List of dicts with ``supplier_id``, ``po_count`` and ``total_spent``
        """
        result = await self.session.execute(
            select(
                Supplier.id,
                func.count(PurchaseOrder.id),
                func.coalesce(func.sum(PurchaseOrder.grand_total), 0),
            )
            .outerjoin(
                PurchaseOrder,
                (PurchaseOrder.supplier_id == Supplier.id)
                & (PurchaseOrder.status != PurchaseOrderStatus.CANCELLED.value),
            )
            .where(Supplier.is_active == True)
            .group_by(Supplier.id)
            .order_by(Supplier.id)
        )
        return [
            {
                "supplier_id": supplier_id,
                "po_count": po_count,
                "total_spent": Decimal(str(total)).quantize(Decimal("0.01")),
            }
            for supplier_id, po_count, total in result.all()
        ]


class PurchaseOrderRepository:
    """Repository for PurchaseOrder and PurchaseOrderItem database operations.

    Totals and status rules live in the purchase order service; this class
    only loads and persists.
    """

    def __init__(self, session: AsyncSession):
        """Initialize the repository with a database session.

        Args:
            session: SQLAlchemy async session
        """
        self.session = session

    async def list_all(
        self,
        status: Optional[str] = None,
        supplier_id: Optional[int] = None,
        search: Optional[str] = None,
    ) -> List[PurchaseOrder]:
        """List purchase orders, newest first.

        Args:
            status: Only this status
            supplier_id: Only this supplier
            search: Case-insensitive match on PO number or supplier name

        Returns:
            List of PurchaseOrder with supplier and items loaded
        """
        stmt = (
            select(PurchaseOrder)
            .outerjoin(Supplier, PurchaseOrder.supplier_id == Supplier.id)
            .order_by(PurchaseOrder.created_at.desc(), PurchaseOrder.id.desc())
        )
        if status:
            stmt = stmt.where(PurchaseOrder.status == status)
        if supplier_id is not None:
            stmt = stmt.where(PurchaseOrder.supplier_id == supplier_id)
        if search:
            pattern = f"%{search}%"
            stmt = stmt.where(
                or_(PurchaseOrder.po_number.ilike(pattern), Supplier.name.ilike(pattern))
            )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_by_id(self, po_id: int) -> Optional[PurchaseOrder]:
        result = await self.session.execute(
            select(PurchaseOrder).where(PurchaseOrder.id == po_id)
        )
        return result.scalar_one_or_none()

    async def max_id(self) -> int:
        result = await self.session.execute(
            select(func.coalesce(func.max(PurchaseOrder.id), 0))
        )
        return int(result.scalar_one())

    async def add(self, purchase_order: PurchaseOrder) -> PurchaseOrder:
        """Persist a new purchase order together with its items."""
        self.session.add(purchase_order)
        return await self.save(purchase_order)

    async def save(self, purchase_order: PurchaseOrder) -> PurchaseOrder:
        """Commit pending changes to a loaded purchase order."""
        await self.session.commit()
        await self.session.refresh(purchase_order)
        return purchase_order

    async def delete(self, purchase_order: PurchaseOrder) -> None:
        await self.session.delete(purchase_order)
        await self.session.commit()
