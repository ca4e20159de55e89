"""Repository for material ↔ product mappings."""

from typing import Iterable, List, Optional, Union
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from stockops.core.exceptions import DuplicateMappingError
from stockops.models.mapping import MaterialMapping


class _AnyVariation:
    """Sentinel: match mappings regardless of their material variation."""

    def __repr__(self) -> str:
        return "ANY_VARIATION"


ANY_VARIATION = _AnyVariation()


class MappingRepository:
    """Repository for MaterialMapping database operations.

    The (material_product_id, material_variation_id, product_id, variation_id)
    tuple is unique; ``create`` reports a duplicate as a conflict, while
    ``bulk_create`` skips it.
    """

    def __init__(self, session: AsyncSession):
        """Initialize the repository with a database session.

        Args:
            session: SQLAlchemy async session
        """
        self.session = session

    async def list_all(self) -> List[MaterialMapping]:
        result = await self.session.execute(
            select(MaterialMapping).order_by(MaterialMapping.product_id, MaterialMapping.id)
        )
        return list(result.scalars().all())

    async def get_by_id(self, mapping_id: int) -> Optional[MaterialMapping]:
        result = await self.session.execute(
            select(MaterialMapping).where(MaterialMapping.id == mapping_id)
        )
        return result.scalar_one_or_none()

    async def for_product(self, product_id: int, variation_id: Optional[int]) -> List[MaterialMapping]:
        """Mappings consumed by one sellable item.

        Args:
            product_id: Upstream product id
            variation_id: Upstream variation id; None matches only mappings
                made for the simple product

        Returns:
            Mappings in creation order
        """
        stmt = select(MaterialMapping).where(MaterialMapping.product_id == product_id)
        if variation_id is None:
            stmt = stmt.where(MaterialMapping.variation_id.is_(None))
        else:
            stmt = stmt.where(MaterialMapping.variation_id == variation_id)
        result = await self.session.execute(stmt.order_by(MaterialMapping.id))
        return list(result.scalars().all())

    async def for_material(
        self,
        material_product_id: int,
        material_variation_id: Union[int, None, _AnyVariation] = ANY_VARIATION,
    ) -> List[MaterialMapping]:
        """Mappings pointing at a material.

        Args:
            material_product_id: Material id
            material_variation_id: ``ANY_VARIATION`` (default) returns every
                mapping of the material; None returns only parent-level
                mappings; an id returns mappings of that variation

        Returns:
            Mappings in creation order
        """
        stmt = select(MaterialMapping).where(
            MaterialMapping.material_product_id == material_product_id
        )
        if material_variation_id is None:
            stmt = stmt.where(MaterialMapping.material_variation_id.is_(None))
        elif not isinstance(material_variation_id, _AnyVariation):
            stmt = stmt.where(MaterialMapping.material_variation_id == material_variation_id)
        result = await self.session.execute(stmt.order_by(MaterialMapping.id))
        return list(result.scalars().all())

    async def find_existing(
        self,
        material_product_id: int,
        material_variation_id: Optional[int],
        product_id: int,
        variation_id: Optional[int],
    ) -> Optional[MaterialMapping]:
        stmt = select(MaterialMapping).where(
            MaterialMapping.material_product_id == material_product_id,
            MaterialMapping.product_id == product_id,
        )
        if material_variation_id is None:
            stmt = stmt.where(MaterialMapping.material_variation_id.is_(None))
        else:
            stmt = stmt.where(MaterialMapping.material_variation_id == material_variation_id)
        if variation_id is None:
            stmt = stmt.where(MaterialMapping.variation_id.is_(None))
        else:
            stmt = stmt.where(MaterialMapping.variation_id == variation_id)
        result = await self.session.execute(stmt.limit(1))
        return result.scalar_one_or_none()

    async def create(
        self,
        material_product_id: int,
        product_id: int,
        material_variation_id: Optional[int] = None,
        variation_id: Optional[int] = None,
        quantity_used: int = 1,
    ) -> MaterialMapping:
        """Create one mapping.

        Raises:
            DuplicateMappingError: The same pairing already exists
        """
        material_variation_id = material_variation_id or None
        variation_id = variation_id or None
        existing = await self.find_existing(
            material_product_id, material_variation_id, product_id, variation_id
        )
        if existing is not None:
            raise DuplicateMappingError("This mapping already exists", mapping_id=existing.id)

        mapping = MaterialMapping(
            material_product_id=material_product_id,
            material_variation_id=material_variation_id,
            product_id=product_id,
            variation_id=variation_id,
            quantity_used=quantity_used,
        )
        self.session.add(mapping)
        try:
            await self.session.commit()
        except IntegrityError as e:
            await self.session.rollback()
            raise DuplicateMappingError("This mapping already exists") from e
        await self.session.refresh(mapping)
        return mapping

    async def bulk_create(
        self,
        material_product_id: int,
        material_variation_id: Optional[int],
        targets: Iterable[dict],
    ) -> List[MaterialMapping]:
        """Map one material to many sellable items in a single commit.

        Args:
            material_product_id: Material id
            material_variation_id: Material variation id or None
            targets: Dicts with ``product_id``, optional ``variation_id`` and
                optional ``quantity_used``

        Returns:
            The mappings actually created; existing pairings and repeats
            within ``targets`` are skipped
        """
        material_variation_id = material_variation_id or None
        created: List[MaterialMapping] = []
        seen: set[tuple[int, Optional[int]]] = set()

        for target in targets:
            product_id = target["product_id"]
            variation_id = target.get("variation_id") or None
            key = (product_id, variation_id)
            if key in seen:
                continue
            seen.add(key)

            existing = await self.find_existing(
                material_product_id, material_variation_id, product_id, variation_id
            )
            if existing is not None:
                continue

            mapping = MaterialMapping(
                material_product_id=material_product_id,
                material_variation_id=material_variation_id,
                product_id=product_id,
                variation_id=variation_id,
                quantity_used=target.get("quantity_used") or 1,
            )
            self.session.add(mapping)
            created.append(mapping)

        if created:
            await self.session.commit()
            for mapping in created:
                await self.session.refresh(mapping)
        return created

    async def update_quantity(self, mapping_id: int, quantity_used: int) -> Optional[MaterialMapping]:
        mapping = await self.get_by_id(mapping_id)
        if mapping is None:
            return None
        mapping.quantity_used = quantity_used
        await self.session.commit()
        await self.session.refresh(mapping)
        return mapping

    async def delete(self, mapping_id: int) -> bool:
        mapping = await self.get_by_id(mapping_id)
        if mapping is None:
            return False
        await self.session.delete(mapping)
        await self.session.commit()
        return True
