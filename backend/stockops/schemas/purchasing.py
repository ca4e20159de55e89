from datetime import datetime
from decimal import Decimal
from typing import Any, Literal
from pydantic import BaseModel, ConfigDict, Field


class SupplierCreate(BaseModel):
    name: str = Field(min_length=1)
    contact_name: str | None = None
    email: str | None = None
    phone: str | None = None
    address: str | None = None
    notes: str | None = None


class SupplierUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1)
    contact_name: str | None = None
    email: str | None = None
    phone: str | None = None
    address: str | None = None
    notes: str | None = None


class SupplierResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    contact_name: str | None
    email: str | None
    phone: str | None
    address: str | None
    notes: str | None
    is_active: bool
    created_at: datetime
    updated_at: datetime


class SupplierStatistics(BaseModel):
    supplier_id: int
    po_count: int
    total_spent: Decimal


class PurchaseOrderItemCreate(BaseModel):
    material_product_id: int
    material_variation_id: int | None = None
    material_name: str
    quantity_ordered: int = Field(ge=1)
    unit_price: Decimal = Field(ge=0)
    vat_rate: Decimal | None = Field(default=None, ge=0)


class PurchaseOrderItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    purchase_order_id: int
    material_product_id: int
    material_variation_id: int | None
    material_name: str
    quantity_ordered: int
    quantity_received: int
    unit_price: Decimal
    vat_rate: Decimal
    line_subtotal: Decimal
    line_vat: Decimal
    line_total: Decimal


class PurchaseOrderCreate(BaseModel):
    po_number: str | None = None
    supplier_id: int
    status: Literal["draft", "ordered"] = "draft"
    order_date: datetime | None = None
    expected_delivery_date: datetime | None = None
    shipping_cost: Decimal = Field(default=Decimal("0"), ge=0)
    shipping_vat_rate: Decimal = Field(default=Decimal("0"), ge=0)
    notes: str | None = None
    items: list[PurchaseOrderItemCreate] = Field(default_factory=list)


class PurchaseOrderUpdate(BaseModel):
    supplier_id: int | None = None
    order_date: datetime | None = None
    expected_delivery_date: datetime | None = None
    shipping_cost: Decimal | None = Field(default=None, ge=0)
    shipping_vat_rate: Decimal | None = Field(default=None, ge=0)
    notes: str | None = None
    items: list[PurchaseOrderItemCreate] | None = None


class PurchaseOrderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    po_number: str
    supplier_id: int
    supplier: SupplierResponse | None = None
    status: str
    order_date: datetime | None
    expected_delivery_date: datetime | None
    received_date: datetime | None
    subtotal: Decimal
    shipping_cost: Decimal
    shipping_vat_rate: Decimal
    shipping_vat: Decimal
    vat_total: Decimal
    grand_total: Decimal
    notes: str | None
    created_at: datetime
    updated_at: datetime
    items: list[PurchaseOrderItemResponse] = []


class ShippingUpdate(BaseModel):
    shipping_cost: Decimal = Field(default=Decimal("0"), ge=0)
    shipping_vat_rate: Decimal = Field(default=Decimal("0"), ge=0)


class StatusUpdate(BaseModel):
    status: str


class ItemReceipt(BaseModel):
    item_id: int
    quantity_received: int


class ReceiveRequest(BaseModel):
    items: list[ItemReceipt] = Field(min_length=1)


class ReceiptResultResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    item_id: int
    material_name: str
    quantity_received: int
    previous_stock: int
    new_stock: int
    ledger_entry_id: int


class ReceiveResponse(BaseModel):
    order: PurchaseOrderResponse
    results: list[ReceiptResultResponse]
    skipped: list[dict[str, Any]]


class AddItemResponse(BaseModel):
    item: PurchaseOrderItemResponse
    order: PurchaseOrderResponse
