"""Repository classes for raw materials and their variations."""

from typing import List, Optional
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from stockops.models.material import Material, MaterialVariation


class MaterialRepository:
    """Repository for Material and MaterialVariation database operations.

    Catalog edits (create/update/soft delete) commit immediately. The stock
    primitives (``lock_stock``, ``adjust_stock``, ``write_stock``) only flush
    so the caller can commit them together with the matching ledger entry.
    """

    def __init__(self, session: AsyncSession):
        """Initialize the repository with a database session.

        Args:
            session: SQLAlchemy async session
        """
        self.session = session

    # ------------------------------------------------------------------
    # Materials
    # ------------------------------------------------------------------

    async def list_all(self, include_inactive: bool = False) -> List[Material]:
        """List materials ordered by name.

        Args:
            include_inactive: Also return soft-deleted materials

        Returns:
            List of Material instances with their variations loaded
        """
        stmt = select(Material).order_by(Material.name, Material.id)
        if not include_inactive:
            stmt = stmt.where(Material.is_active == True)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_by_id(self, material_id: int) -> Optional[Material]:
        """Get a material by local id, active or not.

        Args:
            material_id: Local material id

        Returns:
            Material instance or None
        """
        result = await self.session.execute(
            select(Material).where(Material.id == material_id)
        )
        return result.scalar_one_or_none()

    async def get_by_external_id(self, external_id: int) -> Optional[Material]:
        result = await self.session.execute(
            select(Material).where(Material.external_id == external_id).limit(1)
        )
        return result.scalar_one_or_none()

    async def create(self, **fields) -> Material:
        """Create a material.

        Args:
            **fields: Material column values

        Returns:
            Created Material instance
        """
        variations = fields.pop("variations", None) or []
        material = Material(**fields)
        for variation_fields in variations:
            material.variations.append(MaterialVariation(**variation_fields))
        self.session.add(material)
        await self.session.commit()
        await self.session.refresh(material)
        return material

    async def update(self, material_id: int, **fields) -> Optional[Material]:
        """Update descriptive fields of a material.

        Args:
            material_id: Local material id
            **fields: Column values to change; None values are ignored

        Returns:
            Updated Material or None if not found
        """
        material = await self.get_by_id(material_id)
        if material is None:
            return None

        for key, value in fields.items():
            if value is not None:
                setattr(material, key, value)

        await self.session.commit()
        await self.session.refresh(material)
        return material

    async def soft_delete(self, material_id: int) -> bool:
        """Mark a material inactive.

        Returns:
            True if the material existed, False otherwise
        """
        material = await self.get_by_id(material_id)
        if material is None:
            return False
        material.is_active = False
        await self.session.commit()
        return True

    async def list_low_stock(self) -> List[tuple[Material, Optional[MaterialVariation]]]:
        """Managed, active materials/variations at or below their threshold."""
        low: List[tuple[Material, Optional[MaterialVariation]]] = []
        for material in await self.list_all():
            variations = material.active_variations
            if material.is_variable and variations:
                for variation in variations:
                    if variation.manage_stock and variation.stock_quantity <= variation.low_stock_threshold:
                        low.append((material, variation))
            elif material.manage_stock and material.stock_quantity <= material.low_stock_threshold:
                low.append((material, None))
        return low

    # ------------------------------------------------------------------
    # Variations
    # ------------------------------------------------------------------

    async def get_variation(self, variation_id: int) -> Optional[MaterialVariation]:
        result = await self.session.execute(
            select(MaterialVariation).where(MaterialVariation.id == variation_id)
        )
        return result.scalar_one_or_none()

    async def get_variation_by_external_id(self, external_id: int) -> Optional[MaterialVariation]:
        result = await self.session.execute(
            select(MaterialVariation).where(MaterialVariation.external_id == external_id).limit(1)
        )
        return result.scalar_one_or_none()

    async def list_variations(
        self, material_id: int, include_inactive: bool = True
    ) -> List[MaterialVariation]:
        stmt = (
            select(MaterialVariation)
            .where(MaterialVariation.material_id == material_id)
            .order_by(MaterialVariation.name, MaterialVariation.id)
        )
        if not include_inactive:
            stmt = stmt.where(MaterialVariation.is_active == True)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def create_variation(self, material_id: int, **fields) -> Optional[MaterialVariation]:
        """Create a variation under an existing material.

        Returns:
            Created MaterialVariation, or None if the material does not exist
        """
        material = await self.get_by_id(material_id)
        if material is None:
            return None
        # append through the parent so its loaded collection stays current
        variation = MaterialVariation(**fields)
        material.variations.append(variation)
        await self.session.commit()
        await self.session.refresh(variation)
        return variation

    async def update_variation(self, variation_id: int, **fields) -> Optional[MaterialVariation]:
        variation = await self.get_variation(variation_id)
        if variation is None:
            return None

        for key, value in fields.items():
            if value is not None:
                setattr(variation, key, value)

        await self.session.commit()
        await self.session.refresh(variation)
        return variation

    async def soft_delete_variation(self, variation_id: int) -> bool:
        variation = await self.get_variation(variation_id)
        if variation is None:
            return False
        variation.is_active = False
        await self.session.commit()
        return True

    # ------------------------------------------------------------------
    # Stock primitives (flush only)
    # ------------------------------------------------------------------

    async def lock_stock(self, material_id: int, variation_id: Optional[int]) -> Optional[int]:
        """Read the current stock of a material or variation, locking the row.

        Args:
            material_id: Local material id
            variation_id: Local variation id, or None for the parent stock

        Returns:
            Current stock quantity, or None if the row does not exist
        """
        if variation_id is None:
            stmt = select(Material.stock_quantity).where(Material.id == material_id)
        else:
            stmt = select(MaterialVariation.stock_quantity).where(
                MaterialVariation.id == variation_id,
                MaterialVariation.material_id == material_id,
            )
        result = await self.session.execute(stmt.with_for_update())
        return result.scalar_one_or_none()

    async def adjust_stock(
        self, material_id: int, variation_id: Optional[int], delta: int
    ) -> Optional[tuple[int, int]]:
        """Add ``delta`` to the stored stock in a single UPDATE.

        The increment happens in the database, so concurrent adjustments of
        the same row cannot lose updates.

        Returns:
            (previous_stock, new_stock), or None if the row does not exist
        """
        if variation_id is None:
            stmt = (
                update(Material)
                .where(Material.id == material_id)
                .values(stock_quantity=Material.stock_quantity + delta)
                .returning(Material.stock_quantity)
            )
        else:
            stmt = (
                update(MaterialVariation)
                .where(
                    MaterialVariation.id == variation_id,
                    MaterialVariation.material_id == material_id,
                )
                .values(stock_quantity=MaterialVariation.stock_quantity + delta)
                .returning(MaterialVariation.stock_quantity)
            )
        result = await self.session.execute(stmt)
        new_stock = result.scalar_one_or_none()
        if new_stock is None:
            return None
        return new_stock - delta, new_stock

    async def write_stock(self, material_id: int, variation_id: Optional[int], new_stock: int) -> None:
        """Overwrite the stored stock. Call ``lock_stock`` first."""
        if variation_id is None:
            stmt = update(Material).where(Material.id == material_id)
        else:
            stmt = update(MaterialVariation).where(
                MaterialVariation.id == variation_id,
                MaterialVariation.material_id == material_id,
            )
        await self.session.execute(stmt.values(stock_quantity=new_stock))
