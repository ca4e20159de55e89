from datetime import datetime
from typing import Literal, Optional
from pydantic import BaseModel, ConfigDict, Field


class VariationCreate(BaseModel):
    name: str
    sku: str | None = None
    stock_quantity: int = Field(default=0, ge=0)
    manage_stock: bool = True
    low_stock_threshold: int = Field(default=5, ge=0)
    attributes: str | None = None
    external_id: int | None = None


class VariationUpdate(BaseModel):
    # stock_quantity is not editable here; use add-stock / set-stock
    name: str | None = None
    sku: str | None = None
    manage_stock: bool | None = None
    low_stock_threshold: int | None = Field(default=None, ge=0)
    attributes: str | None = None


class VariationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    material_id: int
    external_id: int | None
    name: str
    sku: str | None
    stock_quantity: int
    manage_stock: bool
    low_stock_threshold: int
    attributes: str | None
    is_active: bool
    created_at: datetime
    updated_at: datetime


class MaterialCreate(BaseModel):
    name: str
    sku: str | None = None
    type: Literal["simple", "variable"] = "simple"
    stock_quantity: int = Field(default=0, ge=0)
    manage_stock: bool = True
    low_stock_threshold: int = Field(default=5, ge=0)
    image_url: str | None = None
    notes: str | None = None
    external_id: int | None = None
    variations: list[VariationCreate] = Field(default_factory=list)


class MaterialUpdate(BaseModel):
    name: str | None = None
    sku: str | None = None
    type: Optional[Literal["simple", "variable"]] = None
    manage_stock: bool | None = None
    low_stock_threshold: int | None = Field(default=None, ge=0)
    image_url: str | None = None
    notes: str | None = None


class MaterialResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    external_id: int | None
    name: str
    sku: str | None
    type: str
    stock_quantity: int
    manage_stock: bool
    low_stock_threshold: int
    image_url: str | None
    notes: str | None
    is_active: bool
    created_at: datetime
    updated_at: datetime
    variations: list[VariationResponse] = []


class LowStockItem(BaseModel):
    material_id: int
    variation_id: int | None
    name: str
    stock_quantity: int
    low_stock_threshold: int


class ImportResponse(BaseModel):
    imported: int
    skipped: int
    errors: list[str]
    message: str


class AddStockRequest(BaseModel):
    quantity: int
    notes: str | None = None
    reason: Literal["manual", "stock_in"] = "manual"


class SetStockRequest(BaseModel):
    new_stock_level: int
    notes: str | None = None


class StockAdjustmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    material_id: int
    variation_id: int | None
    material_name: str
    variation_name: str | None
    previous_stock: int
    new_stock: int
    quantity_change: int
    ledger_entry_id: int
