"""Repository layer for database operations.

This module provides repository classes for the material catalog, the
mapping table, the stock ledger and purchasing.
"""

from stockops.repositories.ledger_repository import (
    ProcessedOrderRepository,
    StockLedgerRepository,
)
from stockops.repositories.mapping_repository import ANY_VARIATION, MappingRepository
from stockops.repositories.material_repository import MaterialRepository
from stockops.repositories.purchase_order_repository import (
    PurchaseOrderRepository,
    SupplierRepository,
)

__all__ = [
    "ANY_VARIATION",
    "MappingRepository",
    "MaterialRepository",
    "ProcessedOrderRepository",
    "PurchaseOrderRepository",
    "StockLedgerRepository",
    "SupplierRepository",
]
