"""Resolution of material references given in either id space.

Materials imported from the upstream catalog keep the upstream id in
``external_id``. Mappings created before the import may still carry that
id, so every lookup accepts a local id or an external id and collapses both
onto the local (canonical) id before any aggregation key is built.

A ``MaterialIndex`` is built once per operation from the current catalog and
thrown away afterwards; it holds plain snapshots, not ORM instances.
"""

from dataclasses import dataclass, field
from typing import Iterable, Optional

from stockops.models.material import Material


@dataclass
class VariationSnapshot:
    id: int
    material_id: int
    external_id: Optional[int]
    name: str
    stock_quantity: int
    manage_stock: bool


@dataclass
class MaterialSnapshot:
    id: int
    external_id: Optional[int]
    name: str
    type: str
    stock_quantity: int
    manage_stock: bool
    variations: list[VariationSnapshot] = field(default_factory=list)

    @property
    def is_variable(self) -> bool:
        return self.type == "variable"


class MaterialIndex:
    """Lookup table over materials and variations by local or external id.

    Local ids win over external ids when a number exists in both spaces.
    """

    def __init__(self, materials: Iterable[MaterialSnapshot]):
        self._by_local: dict[int, MaterialSnapshot] = {}
        self._by_external: dict[int, MaterialSnapshot] = {}
        for material in materials:
            self._by_local[material.id] = material
            if material.external_id is not None:
                self._by_external.setdefault(material.external_id, material)

    @classmethod
    def from_materials(cls, materials: Iterable[Material], include_inactive: bool = False) -> "MaterialIndex":
        """Snapshot active materials and their active variations.

        Args:
            materials: Material instances with variations loaded
            include_inactive: Keep soft-deleted materials and variations too

        Returns:
            MaterialIndex over the active catalog
        """
        snapshots = []
        for material in materials:
            if not (material.is_active or include_inactive):
                continue
            snapshots.append(
                MaterialSnapshot(
                    id=material.id,
                    external_id=material.external_id,
                    name=material.name,
                    type=material.type,
                    stock_quantity=material.stock_quantity or 0,
                    manage_stock=material.manage_stock,
                    variations=[
                        VariationSnapshot(
                            id=variation.id,
                            material_id=material.id,
                            external_id=variation.external_id,
                            name=variation.name,
                            stock_quantity=variation.stock_quantity or 0,
                            manage_stock=variation.manage_stock,
                        )
                        for variation in (material.variations if include_inactive else material.active_variations)
                    ],
                )
            )
        return cls(snapshots)

    def __iter__(self):
        return iter(self._by_local.values())

    def __len__(self) -> int:
        return len(self._by_local)

    def find_material(self, material_id: Optional[int]) -> Optional[MaterialSnapshot]:
        if material_id is None:
            return None
        return self._by_local.get(material_id) or self._by_external.get(material_id)

    def normalize_id(self, material_id: int) -> int:
        """Canonical local id for ``material_id``, or the input if unknown."""
        material = self.find_material(material_id)
        return material.id if material else material_id

    def find_variation(
        self, material: MaterialSnapshot, variation_id: Optional[int]
    ) -> Optional[VariationSnapshot]:
        if variation_id is None:
            return None
        for variation in material.variations:
            if variation.id == variation_id:
                return variation
        for variation in material.variations:
            if variation.external_id == variation_id:
                return variation
        return None

    def normalize_variation_id(
        self, material: MaterialSnapshot, variation_id: Optional[int]
    ) -> Optional[int]:
        """Canonical local variation id, or the input if it matches nothing.

        None passes through as None.
        """
        variation = self.find_variation(material, variation_id)
        return variation.id if variation else variation_id

    @staticmethod
    def display_name(material: MaterialSnapshot, variation: Optional[VariationSnapshot] = None) -> str:
        if variation is None:
            return material.name
        return f"{material.name} - {variation.name}"
