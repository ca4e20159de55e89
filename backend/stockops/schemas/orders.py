from datetime import datetime
from typing import Any
from pydantic import BaseModel, ConfigDict, Field

from stockops.services.order_feed import FeedLineItem


class LedgerEntryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    material_product_id: int
    material_variation_id: int | None
    order_id: int | None
    order_number: str | None
    quantity_change: int
    previous_stock: int
    new_stock: int
    reason: str
    notes: str | None
    created_at: datetime


class ProcessedOrderResponse(BaseModel):
    processed: bool
    processed_at: datetime | None = None


class MissingMaterialResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    material_id: int
    variation_id: int | None
    material_name: str
    needed: int
    available: int


class FulfillmentStatusResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    can_fulfill: bool
    is_processed: bool
    missing_materials: list[MissingMaterialResponse]


class RequiredMaterialResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    material_id: int
    variation_id: int | None
    material_name: str
    quantity_needed: int
    current_stock: int
    has_sufficient_stock: bool
    product_name: str
    variation_name: str | None


class RequiredMaterialsResponse(BaseModel):
    order_id: int
    order_number: str
    is_processed: bool
    processed_at: datetime | None
    required_materials: list[RequiredMaterialResponse]
    can_fulfill: bool


class ProcessLineItem(FeedLineItem):
    quantity: int = Field(ge=1)


class ProcessOrderRequest(BaseModel):
    order_id: int
    order_number: str
    line_items: list[ProcessLineItem] = Field(min_length=1)


class DeductionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    material_id: int
    material_variation_id: int | None
    material_name: str
    previous_stock: int
    new_stock: int
    quantity_deducted: int
    ledger_entry_id: int
    line_item_name: str


class ProcessOrderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    order_id: int
    order_number: str
    results: list[DeductionResponse]
    unmapped_items: list[dict[str, Any]]
    skipped_items: list[dict[str, Any]]
    failed_updates: list[dict[str, Any]]
    total_items_processed: int
    total_line_items: int
    warning: str | None
