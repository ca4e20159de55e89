"""REST API endpoints for purchase orders and goods receiving."""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from stockops.api.deps import get_current_user
from stockops.core.database import get_db
from stockops.models.user import User
from stockops.repositories.purchase_order_repository import PurchaseOrderRepository
from stockops.schemas.purchasing import (
    AddItemResponse,
    PurchaseOrderCreate,
    PurchaseOrderItemCreate,
    PurchaseOrderItemResponse,
    PurchaseOrderResponse,
    PurchaseOrderUpdate,
    ReceiptResultResponse,
    ReceiveRequest,
    ReceiveResponse,
    ShippingUpdate,
    StatusUpdate,
)
from stockops.services.purchase_order_service import PurchaseOrderService

router = APIRouter(prefix="/api/purchase-orders", tags=["purchase-orders"])


@router.get("", response_model=list[PurchaseOrderResponse])
async def list_purchase_orders(
    status: str | None = None,
    supplier_id: int | None = None,
    search: str | None = None,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await PurchaseOrderRepository(db).list_all(
        status=status, supplier_id=supplier_id, search=search
    )


@router.get("/next-number")
async def get_next_po_number(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return {"po_number": await PurchaseOrderService(db).next_po_number()}


@router.get("/{po_id}", response_model=PurchaseOrderResponse)
async def get_purchase_order(
    po_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await PurchaseOrderService(db).get(po_id)


@router.post("", response_model=PurchaseOrderResponse, status_code=status.HTTP_201_CREATED)
async def create_purchase_order(
    req: PurchaseOrderCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    data = req.model_dump()
    items = data.pop("items")
    return await PurchaseOrderService(db).create(items=items, **data)


@router.put("/{po_id}", response_model=PurchaseOrderResponse)
async def update_purchase_order(
    po_id: int,
    req: PurchaseOrderUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    data = req.model_dump()
    items = data.pop("items")
    return await PurchaseOrderService(db).update(po_id, items=items, **data)


@router.post("/{po_id}/items", response_model=AddItemResponse, status_code=status.HTTP_201_CREATED)
async def add_purchase_order_item(
    po_id: int,
    req: PurchaseOrderItemCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    item, po = await PurchaseOrderService(db).add_item(po_id, req.model_dump())
    return AddItemResponse(
        item=PurchaseOrderItemResponse.model_validate(item),
        order=PurchaseOrderResponse.model_validate(po),
    )


@router.delete("/{po_id}/items/{item_id}", response_model=PurchaseOrderResponse)
async def remove_purchase_order_item(
    po_id: int,
    item_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await PurchaseOrderService(db).remove_item(po_id, item_id)


@router.patch("/{po_id}/shipping", response_model=PurchaseOrderResponse)
async def update_purchase_order_shipping(
    po_id: int,
    req: ShippingUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await PurchaseOrderService(db).update_shipping(
        po_id, req.shipping_cost, req.shipping_vat_rate
    )


@router.patch("/{po_id}/status", response_model=PurchaseOrderResponse)
async def update_purchase_order_status(
    po_id: int,
    req: StatusUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await PurchaseOrderService(db).change_status(po_id, req.status)


@router.delete("/{po_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_purchase_order(
    po_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await PurchaseOrderService(db).delete(po_id)


@router.post("/{po_id}/receive", response_model=ReceiveResponse)
async def receive_purchase_order(
    po_id: int,
    req: ReceiveRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Book received quantities into stock, capped at what is still outstanding."""
    outcome = await PurchaseOrderService(db).receive(
        po_id, [receipt.model_dump() for receipt in req.items]
    )
    return ReceiveResponse(
        order=PurchaseOrderResponse.model_validate(outcome.order),
        results=[ReceiptResultResponse.model_validate(r) for r in outcome.results],
        skipped=outcome.skipped,
    )
