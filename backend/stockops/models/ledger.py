from datetime import datetime
from enum import Enum
from sqlalchemy import Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from stockops.core.database import Base


class StockReason(str, Enum):
    MANUAL = "manual"
    STOCK_IN = "stock_in"
    STOCK_TAKE = "stock_take"
    ORDER = "order"
    PURCHASE_ORDER = "purchase_order"


class StockLedgerEntry(Base):
    """Append-only record of one stock mutation.

    ``new_stock == previous_stock + quantity_change`` for every row. Rows are
    never updated or deleted.
    """
    __tablename__ = "stock_ledger"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    material_product_id: Mapped[int] = mapped_column(Integer, nullable=False)
    material_variation_id: Mapped[int | None] = mapped_column(Integer, nullable=True)  # None = parent stock
    order_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    order_number: Mapped[str | None] = mapped_column(String(50), nullable=True)  # order number or PO number
    quantity_change: Mapped[int] = mapped_column(Integer, nullable=False)
    previous_stock: Mapped[int] = mapped_column(Integer, nullable=False)
    new_stock: Mapped[int] = mapped_column(Integer, nullable=False)
    reason: Mapped[str] = mapped_column(String(50), nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(default=datetime.utcnow, index=True)

    __table_args__ = (
        Index("idx_stock_ledger_target", "material_product_id", "material_variation_id"),
    )


class ProcessedOrder(Base):
    """Idempotency marker: stock has been deducted for this upstream order."""
    __tablename__ = "processed_orders"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    order_id: Mapped[int] = mapped_column(Integer, unique=True, nullable=False)
    order_number: Mapped[str | None] = mapped_column(String(50), nullable=True)
    processed_at: Mapped[datetime] = mapped_column(default=datetime.utcnow)
