from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from stockops.api.deps import get_current_user
from stockops.core.database import get_db
from stockops.core.exceptions import NotFoundError
from stockops.models.user import User
from stockops.repositories.purchase_order_repository import (
    PurchaseOrderRepository,
    SupplierRepository,
)
from stockops.schemas.purchasing import (
    PurchaseOrderResponse,
    SupplierCreate,
    SupplierResponse,
    SupplierStatistics,
    SupplierUpdate,
)

router = APIRouter(prefix="/api/suppliers", tags=["suppliers"])


@router.get("", response_model=list[SupplierResponse])
async def list_suppliers(
    active_only: bool = True,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await SupplierRepository(db).list_all(active_only=active_only)


@router.get("/statistics", response_model=list[SupplierStatistics])
async def supplier_statistics(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await SupplierRepository(db).statistics()


@router.get("/{supplier_id}", response_model=SupplierResponse)
async def get_supplier(
    supplier_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    supplier = await SupplierRepository(db).get_by_id(supplier_id)
    if supplier is None:
        raise NotFoundError("Supplier", supplier_id)
    return supplier


@router.post("", response_model=SupplierResponse, status_code=status.HTTP_201_CREATED)
async def create_supplier(
    req: SupplierCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await SupplierRepository(db).create(**req.model_dump())


@router.put("/{supplier_id}", response_model=SupplierResponse)
async def update_supplier(
    supplier_id: int,
    req: SupplierUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    supplier = await SupplierRepository(db).update(supplier_id, **req.model_dump())
    if supplier is None:
        raise NotFoundError("Supplier", supplier_id)
    return supplier


@router.delete("/{supplier_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_supplier(
    supplier_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    if not await SupplierRepository(db).soft_delete(supplier_id):
        raise NotFoundError("Supplier", supplier_id)


@router.get("/{supplier_id}/purchase-orders", response_model=list[PurchaseOrderResponse])
async def list_supplier_purchase_orders(
    supplier_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    if await SupplierRepository(db).get_by_id(supplier_id) is None:
        raise NotFoundError("Supplier", supplier_id)
    return await PurchaseOrderRepository(db).list_all(supplier_id=supplier_id)
