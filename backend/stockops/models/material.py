"""Raw materials and their variations.

Materials are never hard-deleted: ledger entries, mappings and purchase
order lines keep pointing at them, so removal only clears ``is_active``.
"""

import json
from datetime import datetime
from enum import Enum
from sqlalchemy import Boolean, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship
from stockops.core.database import Base


class MaterialType(str, Enum):
    SIMPLE = "simple"
    VARIABLE = "variable"


class Material(Base):
    """A locally tracked raw material (parent record)."""
    __tablename__ = "raw_materials"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    external_id: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)  # id in the upstream catalog, set by import
    name: Mapped[str] = mapped_column(String(500), nullable=False)
    sku: Mapped[str | None] = mapped_column(String(100), nullable=True)
    type: Mapped[str] = mapped_column(String(20), default=MaterialType.SIMPLE.value, nullable=False)
    stock_quantity: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    manage_stock: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    low_stock_threshold: Mapped[int] = mapped_column(Integer, default=5, nullable=False)
    image_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(default=datetime.utcnow, onupdate=datetime.utcnow)

    variations: Mapped[list["MaterialVariation"]] = relationship(
        "MaterialVariation",
        back_populates="material",
        lazy="selectin",
        order_by="MaterialVariation.name",
    )

    def __init__(self, **kwargs):
        kwargs.setdefault("type", MaterialType.SIMPLE.value)
        kwargs.setdefault("stock_quantity", 0)
        kwargs.setdefault("manage_stock", True)
        kwargs.setdefault("low_stock_threshold", 5)
        kwargs.setdefault("is_active", True)
        super().__init__(**kwargs)

    @property
    def active_variations(self) -> list["MaterialVariation"]:
        return [v for v in self.variations if v.is_active]

    @property
    def is_variable(self) -> bool:
        return self.type == MaterialType.VARIABLE.value


class MaterialVariation(Base):
    """One attribute combination of a variable material, with its own stock."""
    __tablename__ = "raw_material_variations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    material_id: Mapped[int] = mapped_column(ForeignKey("raw_materials.id"), nullable=False, index=True)
    external_id: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)
    name: Mapped[str] = mapped_column(String(500), nullable=False)  # e.g. "Black", "White - Large"
    sku: Mapped[str | None] = mapped_column(String(100), nullable=True)
    stock_quantity: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    manage_stock: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    low_stock_threshold: Mapped[int] = mapped_column(Integer, default=5, nullable=False)
    attributes: Mapped[str | None] = mapped_column(Text, nullable=True)  # JSON: [{"name": "Color", "option": "Black"}]
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(default=datetime.utcnow, onupdate=datetime.utcnow)

    material: Mapped["Material"] = relationship("Material", back_populates="variations")

    def __init__(self, **kwargs):
        kwargs.setdefault("stock_quantity", 0)
        kwargs.setdefault("manage_stock", True)
        kwargs.setdefault("low_stock_threshold", 5)
        kwargs.setdefault("is_active", True)
        super().__init__(**kwargs)

    @property
    def attribute_list(self) -> list[dict]:
        if not self.attributes:
            return []
        try:
            return json.loads(self.attributes)
        except ValueError:
            return []
