# Database models
from stockops.models.user import User
from stockops.models.credentials import StoreCredentials
from stockops.models.material import Material, MaterialType, MaterialVariation
from stockops.models.mapping import MaterialMapping
from stockops.models.ledger import ProcessedOrder, StockLedgerEntry, StockReason
from stockops.models.purchasing import (
    PurchaseOrder,
    PurchaseOrderItem,
    PurchaseOrderStatus,
    Supplier,
)

__all__ = [
    "User",
    "StoreCredentials",
    "Material",
    "MaterialType",
    "MaterialVariation",
    "MaterialMapping",
    "ProcessedOrder",
    "StockLedgerEntry",
    "StockReason",
    "PurchaseOrder",
    "PurchaseOrderItem",
    "PurchaseOrderStatus",
    "Supplier",
]
