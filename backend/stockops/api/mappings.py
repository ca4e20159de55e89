"""REST API endpoints for product-to-material mappings."""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from stockops.api.deps import get_current_user
from stockops.core.database import get_db
from stockops.core.exceptions import InvalidInputError, NotFoundError
from stockops.models.user import User
from stockops.repositories.mapping_repository import ANY_VARIATION, MappingRepository
from stockops.repositories.material_repository import MaterialRepository
from stockops.schemas.mapping import (
    MappingBulkCreate,
    MappingCreate,
    MappingResponse,
    MappingUpdate,
)
from stockops.services.cache import invalidate_stock_cache

router = APIRouter(prefix="/api/material-mappings", tags=["mappings"])


async def _require_material(db: AsyncSession, material_id: int) -> None:
    if await MaterialRepository(db).get_by_id(material_id) is None:
        raise NotFoundError("Material", material_id)


def _variation_filter(raw: str | None):
    """Query value -> repository filter: omitted is any, "null" is parent-level only."""
    if raw is None:
        return ANY_VARIATION
    if raw.lower() == "null":
        return None
    try:
        return int(raw)
    except ValueError:
        raise InvalidInputError(f"Invalid material_variation_id: {raw!r}")


@router.get("", response_model=list[MappingResponse])
async def list_mappings(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await MappingRepository(db).list_all()


@router.get("/by-material/{material_product_id}", response_model=list[MappingResponse])
async def list_mappings_for_material(
    material_product_id: int,
    material_variation_id: str | None = Query(default=None),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await MappingRepository(db).for_material(
        material_product_id, _variation_filter(material_variation_id)
    )


@router.post("", response_model=MappingResponse, status_code=status.HTTP_201_CREATED)
async def create_mapping(
    req: MappingCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await _require_material(db, req.material_product_id)
    mapping = await MappingRepository(db).create(**req.model_dump())
    invalidate_stock_cache()
    return mapping


@router.post("/bulk", response_model=list[MappingResponse], status_code=status.HTTP_201_CREATED)
async def bulk_create_mappings(
    req: MappingBulkCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await _require_material(db, req.material_product_id)
    created = await MappingRepository(db).bulk_create(
        req.material_product_id,
        req.material_variation_id,
        [target.model_dump() for target in req.targets],
    )
    if created:
        invalidate_stock_cache()
    return created


@router.patch("/{mapping_id}", response_model=MappingResponse)
async def update_mapping(
    mapping_id: int,
    req: MappingUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    mapping = await MappingRepository(db).update_quantity(mapping_id, req.quantity_used)
    if mapping is None:
        raise NotFoundError("Mapping", mapping_id)
    invalidate_stock_cache()
    return mapping


@router.delete("/{mapping_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_mapping(
    mapping_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    if not await MappingRepository(db).delete(mapping_id):
        raise NotFoundError("Mapping", mapping_id)
    invalidate_stock_cache()
