from typing import Any
from pydantic import BaseModel


class OrderStatusResponse(BaseModel):
    slug: str
    name: str
    total: int


class ProductVariationResponse(BaseModel):
    id: int
    name: str
    sku: str | None
    stock_quantity: int | None = None
    manage_stock: bool | None = None
    attributes: list[dict[str, Any]] = []


class VariableProductResponse(BaseModel):
    id: int
    name: str
    type: str
    sku: str | None
    variations: list[int]


class ProductWithVariationsResponse(BaseModel):
    id: int
    name: str
    type: str
    sku: str | None
    variations: list[ProductVariationResponse]
