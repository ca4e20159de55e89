"""REST API endpoints for the raw-material catalog and stock adjustments."""

import logging
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from stockops.api.deps import get_current_user, get_order_feed
from stockops.core.database import get_db
from stockops.core.exceptions import InvalidInputError, NotFoundError
from stockops.models.material import Material, MaterialType
from stockops.models.user import User
from stockops.repositories.material_repository import MaterialRepository
from stockops.schemas.material import (
    AddStockRequest,
    ImportResponse,
    LowStockItem,
    MaterialCreate,
    MaterialResponse,
    MaterialUpdate,
    SetStockRequest,
    StockAdjustmentResponse,
    VariationCreate,
    VariationResponse,
    VariationUpdate,
)
from stockops.services.cache import invalidate_stock_cache
from stockops.services.material_import import MaterialImporter
from stockops.services.order_feed import CachedOrderFeed
from stockops.services.stock_service import StockService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/materials", tags=["materials"])


def _material_response(material: Material, active_variations_only: bool) -> MaterialResponse:
    response = MaterialResponse.model_validate(material)
    if active_variations_only:
        response.variations = [v for v in response.variations if v.is_active]
    return response


async def _get_material(repo: MaterialRepository, material_id: int) -> Material:
    material = await repo.get_by_id(material_id)
    if material is None:
        raise NotFoundError("Material", material_id)
    return material


@router.get("", response_model=list[MaterialResponse])
async def list_materials(
    include_inactive: bool = False,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    materials = await MaterialRepository(db).list_all(include_inactive=include_inactive)
    return [_material_response(m, active_variations_only=not include_inactive) for m in materials]


@router.get("/low-stock", response_model=list[LowStockItem])
async def list_low_stock(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    low = await MaterialRepository(db).list_low_stock()
    return [
        LowStockItem(
            material_id=material.id,
            variation_id=variation.id if variation else None,
            name=f"{material.name} - {variation.name}" if variation else material.name,
            stock_quantity=(variation or material).stock_quantity,
            low_stock_threshold=(variation or material).low_stock_threshold,
        )
        for material, variation in low
    ]


@router.post("/import", response_model=ImportResponse)
async def import_materials(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    feed: CachedOrderFeed = Depends(get_order_feed),
):
    """Import raw materials from the store that are not in the catalog yet."""
    report = await MaterialImporter(db, feed).run()
    if report.imported:
        invalidate_stock_cache()
    return ImportResponse(
        imported=report.imported,
        skipped=report.skipped,
        errors=report.errors,
        message=report.message,
    )


@router.get("/{material_id}", response_model=MaterialResponse)
async def get_material(
    material_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    material = await _get_material(MaterialRepository(db), material_id)
    return _material_response(material, active_variations_only=False)


@router.post("", response_model=MaterialResponse, status_code=status.HTTP_201_CREATED)
async def create_material(
    req: MaterialCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    if req.variations and req.type != MaterialType.VARIABLE.value:
        raise InvalidInputError("Only variable materials can have variations")
    material = await MaterialRepository(db).create(**req.model_dump())
    invalidate_stock_cache()
    logger.info(f"Created material {material.id} ({material.name})")
    return _material_response(material, active_variations_only=False)


@router.put("/{material_id}", response_model=MaterialResponse)
async def update_material(
    material_id: int,
    req: MaterialUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    material = await MaterialRepository(db).update(material_id, **req.model_dump())
    if material is None:
        raise NotFoundError("Material", material_id)
    invalidate_stock_cache()
    return _material_response(material, active_variations_only=False)


@router.delete("/{material_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_material(
    material_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    if not await MaterialRepository(db).soft_delete(material_id):
        raise NotFoundError("Material", material_id)
    invalidate_stock_cache()


@router.get("/{material_id}/variations", response_model=list[VariationResponse])
async def list_variations(
    material_id: int,
    include_inactive: bool = Query(default=True),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    repo = MaterialRepository(db)
    await _get_material(repo, material_id)
    return await repo.list_variations(material_id, include_inactive=include_inactive)


@router.post(
    "/{material_id}/variations",
    response_model=VariationResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_variation(
    material_id: int,
    req: VariationCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    variation = await MaterialRepository(db).create_variation(material_id, **req.model_dump())
    if variation is None:
        raise NotFoundError("Material", material_id)
    invalidate_stock_cache()
    return variation


async def _check_variation(repo: MaterialRepository, material_id: int, variation_id: int) -> None:
    variation = await repo.get_variation(variation_id)
    if variation is None or variation.material_id != material_id:
        raise NotFoundError("Variation", variation_id)


@router.put("/{material_id}/variations/{variation_id}", response_model=VariationResponse)
async def update_variation(
    material_id: int,
    variation_id: int,
    req: VariationUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    repo = MaterialRepository(db)
    await _check_variation(repo, material_id, variation_id)
    variation = await repo.update_variation(variation_id, **req.model_dump())
    invalidate_stock_cache()
    return variation


@router.delete("/{material_id}/variations/{variation_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_variation(
    material_id: int,
    variation_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    repo = MaterialRepository(db)
    await _check_variation(repo, material_id, variation_id)
    await repo.soft_delete_variation(variation_id)
    invalidate_stock_cache()


# ---------------------------------------------------------------------------
# Stock adjustments (each writes one ledger entry)
# ---------------------------------------------------------------------------


@router.post("/{material_id}/add-stock", response_model=StockAdjustmentResponse)
async def add_stock(
    material_id: int,
    req: AddStockRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await StockService(db).add_stock(
        material_id, req.quantity, notes=req.notes, reason=req.reason
    )


@router.post("/{material_id}/set-stock", response_model=StockAdjustmentResponse)
async def set_stock(
    material_id: int,
    req: SetStockRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await StockService(db).set_stock(material_id, req.new_stock_level, notes=req.notes)


@router.post(
    "/{material_id}/variations/{variation_id}/add-stock",
    response_model=StockAdjustmentResponse,
)
async def add_variation_stock(
    material_id: int,
    variation_id: int,
    req: AddStockRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await StockService(db).add_stock(
        material_id, req.quantity, variation_id=variation_id, notes=req.notes, reason=req.reason
    )


@router.post(
    "/{material_id}/variations/{variation_id}/set-stock",
    response_model=StockAdjustmentResponse,
)
async def set_variation_stock(
    material_id: int,
    variation_id: int,
    req: SetStockRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await StockService(db).set_stock(
        material_id, req.new_stock_level, variation_id=variation_id, notes=req.notes
    )
