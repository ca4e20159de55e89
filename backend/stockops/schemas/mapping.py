from datetime import datetime
from typing import Any
from pydantic import BaseModel, ConfigDict, Field, field_validator


class MappingCreate(BaseModel):
    product_id: int
    variation_id: int | None = None
    material_product_id: int
    material_variation_id: int | None = None
    quantity_used: int = Field(default=1, ge=1)

    @field_validator("variation_id", "material_variation_id", mode="before")
    @classmethod
    def zero_means_no_variation(cls, v: Any) -> Any:
        # order lines carry variation id 0 for simple products
        return v or None


class MappingTarget(BaseModel):
    product_id: int
    variation_id: int | None = None
    quantity_used: int = Field(default=1, ge=1)

    @field_validator("variation_id", mode="before")
    @classmethod
    def zero_means_no_variation(cls, v: Any) -> Any:
        return v or None


class MappingBulkCreate(BaseModel):
    material_product_id: int
    material_variation_id: int | None = None
    targets: list[MappingTarget]

    @field_validator("material_variation_id", mode="before")
    @classmethod
    def zero_means_no_variation(cls, v: Any) -> Any:
        return v or None


class MappingUpdate(BaseModel):
    quantity_used: int = Field(ge=1)


class MappingResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    product_id: int
    variation_id: int | None
    material_product_id: int
    material_variation_id: int | None
    quantity_used: int
    created_at: datetime
