from datetime import datetime
from sqlalchemy import Index, Integer, func
from sqlalchemy.orm import Mapped, mapped_column
from stockops.core.database import Base


class MaterialMapping(Base):
    """Links a sellable product/variation to a material/variation it consumes.

    ``product_id``/``variation_id`` live in the upstream store's id space;
    ``material_product_id``/``material_variation_id`` are local ids (or legacy
    external ids, resolved at read time). No foreign keys: a mapping may
    outlive the material it points at.
    """
    __tablename__ = "material_product_mappings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    product_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    variation_id: Mapped[int | None] = mapped_column(Integer, nullable=True)  # None = simple product
    material_product_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    material_variation_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    quantity_used: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    created_at: Mapped[datetime] = mapped_column(default=datetime.utcnow)

    def __init__(self, **kwargs):
        kwargs.setdefault("quantity_used", 1)
        super().__init__(**kwargs)


# NULLs compare distinct in a plain unique constraint, so coalesce them
Index(
    "uq_material_product_mapping",
    MaterialMapping.material_product_id,
    func.coalesce(MaterialMapping.material_variation_id, 0),
    MaterialMapping.product_id,
    func.coalesce(MaterialMapping.variation_id, 0),
    unique=True,
)
