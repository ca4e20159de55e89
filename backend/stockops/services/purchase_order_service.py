"""Purchase orders: totals, status lifecycle and receiving.

Status lifecycle::

    draft -> ordered -> partially_received -> received
    draft | ordered | partially_received -> cancelled

Receiving moves status forward only and is refused once an order is
received or cancelled. Money is Decimal with two places, rounded at every
derived field.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Iterable, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from stockops.core.config import settings
from stockops.core.exceptions import (
    ConflictError,
    InvalidInputError,
    NotFoundError,
    PurchaseOrderStateError,
)
from stockops.models.ledger import StockReason
from stockops.models.purchasing import PurchaseOrder, PurchaseOrderItem, PurchaseOrderStatus
from stockops.repositories.material_repository import MaterialRepository
from stockops.repositories.purchase_order_repository import (
    PurchaseOrderRepository,
    SupplierRepository,
)
from stockops.services.cache import invalidate_stock_cache
from stockops.services.id_normalizer import MaterialIndex
from stockops.services.stock_service import StockService

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
HUNDRED = Decimal("100")

DRAFT = PurchaseOrderStatus.DRAFT.value
ORDERED = PurchaseOrderStatus.ORDERED.value
PARTIALLY_RECEIVED = PurchaseOrderStatus.PARTIALLY_RECEIVED.value
RECEIVED = PurchaseOrderStatus.RECEIVED.value
CANCELLED = PurchaseOrderStatus.CANCELLED.value

# manual transitions; receiving drives the rest
ALLOWED_TRANSITIONS = {
    DRAFT: {ORDERED, CANCELLED},
    ORDERED: {CANCELLED},
    PARTIALLY_RECEIVED: {CANCELLED},
    RECEIVED: set(),
    CANCELLED: set(),
}

HEADER_FIELDS = ("supplier_id", "order_date", "expected_delivery_date", "notes")


def money(value: Any) -> Decimal:
    """Parse a money or rate value and round it to cents."""
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise InvalidInputError(f"Invalid amount: {value!r}") from e
    if not amount.is_finite():
        raise InvalidInputError(f"Invalid amount: {value!r}")
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def line_amounts(quantity: int, unit_price: Decimal, vat_rate: Decimal) -> tuple[Decimal, Decimal, Decimal]:
    """(line_subtotal, line_vat, line_total) for one item."""
    subtotal = (unit_price * quantity).quantize(CENT, rounding=ROUND_HALF_UP)
    vat = (subtotal * vat_rate / HUNDRED).quantize(CENT, rounding=ROUND_HALF_UP)
    return subtotal, vat, (subtotal + vat).quantize(CENT, rounding=ROUND_HALF_UP)


def recalculate_totals(po: PurchaseOrder) -> None:
    """Recompute line amounts and the order rollups in place."""
    subtotal = Decimal("0.00")
    items_vat = Decimal("0.00")
    for item in po.items:
        item.line_subtotal, item.line_vat, item.line_total = line_amounts(
            item.quantity_ordered, money(item.unit_price), money(item.vat_rate)
        )
        subtotal += item.line_subtotal
        items_vat += item.line_vat

    shipping_cost = money(po.shipping_cost)
    shipping_vat = (shipping_cost * money(po.shipping_vat_rate) / HUNDRED).quantize(CENT, rounding=ROUND_HALF_UP)
    po.subtotal = subtotal.quantize(CENT)
    po.shipping_cost = shipping_cost
    po.shipping_vat = shipping_vat
    po.vat_total = (items_vat + shipping_vat).quantize(CENT)
    po.grand_total = (po.subtotal + po.vat_total + shipping_cost).quantize(CENT)


@dataclass
class ReceiptResult:
    item_id: int
    material_name: str
    quantity_received: int
    previous_stock: int
    new_stock: int
    ledger_entry_id: int


@dataclass
class ReceiveOutcome:
    order: PurchaseOrder
    results: list[ReceiptResult] = field(default_factory=list)
    skipped: list[dict[str, Any]] = field(default_factory=list)


class PurchaseOrderService:
    """Purchase order commands on top of the repositories."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.orders = PurchaseOrderRepository(session)
        self.suppliers = SupplierRepository(session)
        self.materials = MaterialRepository(session)
        self.stock = StockService(session)

    async def get(self, po_id: int) -> PurchaseOrder:
        po = await self.orders.get_by_id(po_id)
        if po is None:
            raise NotFoundError("Purchase order", po_id)
        return po

    async def next_po_number(self, now: Optional[datetime] = None) -> str:
        year = (now or datetime.utcnow()).year
        return f"PO-{year}-{await self.orders.max_id() + 1:04d}"

    def _build_item(self, data: dict[str, Any]) -> PurchaseOrderItem:
        quantity = data.get("quantity_ordered")
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
            raise InvalidInputError("Quantity ordered must be a positive integer")
        unit_price = money(data.get("unit_price", "0"))
        vat_rate = money(data.get("vat_rate") if data.get("vat_rate") is not None else settings.DEFAULT_VAT_RATE)
        if unit_price < 0 or vat_rate < 0:
            raise InvalidInputError("Prices and VAT rates cannot be negative")
        return PurchaseOrderItem(
            material_product_id=data["material_product_id"],
            material_variation_id=data.get("material_variation_id") or None,
            material_name=data["material_name"],
            quantity_ordered=quantity,
            unit_price=unit_price,
            vat_rate=vat_rate,
        )

    async def _require_supplier(self, supplier_id: int) -> None:
        if await self.suppliers.get_by_id(supplier_id) is None:
            raise NotFoundError("Supplier", supplier_id)

    @staticmethod
    def _require_draft(po: PurchaseOrder, action: str) -> None:
        if po.status != DRAFT:
            raise PurchaseOrderStateError(f"Can only {action} draft purchase orders", po.status)

    async def _save(self, po: PurchaseOrder, new: bool = False) -> PurchaseOrder:
        try:
            if new:
                return await self.orders.add(po)
            return await self.orders.save(po)
        except IntegrityError as e:
            await self.session.rollback()
            raise ConflictError(f"Purchase order number {po.po_number} already exists") from e

    async def create(
        self,
        supplier_id: int,
        items: Iterable[dict[str, Any]],
        po_number: Optional[str] = None,
        status: str = DRAFT,
        order_date: Optional[datetime] = None,
        expected_delivery_date: Optional[datetime] = None,
        shipping_cost: Any = "0",
        shipping_vat_rate: Any = "0",
        notes: Optional[str] = None,
    ) -> PurchaseOrder:
        """Create a purchase order with its items and computed totals.

        Raises:
            NotFoundError: Unknown supplier
            InvalidInputError: Bad item data, or an initial status other than
                draft or ordered
            ConflictError: The PO number is taken
        """
        if status not in (DRAFT, ORDERED):
            raise InvalidInputError("A new purchase order must be draft or ordered")
        await self._require_supplier(supplier_id)

        po = PurchaseOrder(
            po_number=po_number or await self.next_po_number(),
            supplier_id=supplier_id,
            status=status,
            order_date=order_date,
            expected_delivery_date=expected_delivery_date,
            shipping_cost=money(shipping_cost),
            shipping_vat_rate=money(shipping_vat_rate),
            notes=notes,
        )
        po.items = [self._build_item(item) for item in items]
        recalculate_totals(po)
        po = await self._save(po, new=True)
        logger.info(f"Created purchase order {po.po_number} with {len(po.items)} item(s)")
        return po

    async def update(self, po_id: int, items: Optional[Iterable[dict[str, Any]]] = None, **fields) -> PurchaseOrder:
        """Update header fields and, for drafts, shipping and items.

        Args:
            po_id: Purchase order id
            items: Replacement item list (draft only)
            **fields: Header fields; ``shipping_cost``/``shipping_vat_rate``
                are draft only. None values are ignored.
        """
        po = await self.get(po_id)
        if po.status == CANCELLED:
            raise PurchaseOrderStateError("Cancelled purchase orders cannot be edited", po.status)

        if fields.get("supplier_id") is not None:
            await self._require_supplier(fields["supplier_id"])
        for key in HEADER_FIELDS:
            if fields.get(key) is not None:
                setattr(po, key, fields[key])

        shipping = {k: fields.get(k) for k in ("shipping_cost", "shipping_vat_rate") if fields.get(k) is not None}
        if items is not None or shipping:
            self._require_draft(po, "change items or shipping on")
            for key, value in shipping.items():
                setattr(po, key, money(value))
            if items is not None:
                po.items = [self._build_item(item) for item in items]
            recalculate_totals(po)

        po.updated_at = datetime.utcnow()
        return await self._save(po)

    async def add_item(self, po_id: int, item: dict[str, Any]) -> tuple[PurchaseOrderItem, PurchaseOrder]:
        po = await self.get(po_id)
        self._require_draft(po, "add items to")
        new_item = self._build_item(item)
        po.items.append(new_item)
        recalculate_totals(po)
        po = await self._save(po)
        return new_item, po

    async def remove_item(self, po_id: int, item_id: int) -> PurchaseOrder:
        po = await self.get(po_id)
        self._require_draft(po, "remove items from")
        item = next((i for i in po.items if i.id == item_id), None)
        if item is None:
            raise NotFoundError("Purchase order item", item_id)
        po.items.remove(item)
        recalculate_totals(po)
        return await self._save(po)

    async def update_shipping(self, po_id: int, shipping_cost: Any, shipping_vat_rate: Any) -> PurchaseOrder:
        po = await self.get(po_id)
        self._require_draft(po, "update shipping on")
        cost, rate = money(shipping_cost or "0"), money(shipping_vat_rate or "0")
        if cost < 0 or rate < 0:
            raise InvalidInputError("Shipping cost and VAT rate cannot be negative")
        po.shipping_cost = cost
        po.shipping_vat_rate = rate
        recalculate_totals(po)
        return await self._save(po)

    async def change_status(self, po_id: int, status: str) -> PurchaseOrder:
        """Manual status change: place a draft, or cancel an open order."""
        if status not in ALLOWED_TRANSITIONS:
            raise InvalidInputError("Invalid status")
        po = await self.get(po_id)
        if status not in ALLOWED_TRANSITIONS[po.status]:
            raise PurchaseOrderStateError(
                f"Cannot change purchase order status from {po.status} to {status}", po.status
            )
        po.status = status
        if status == ORDERED and po.order_date is None:
            po.order_date = datetime.utcnow()
        logger.info(f"Purchase order {po.po_number} -> {status}")
        return await self._save(po)

    async def delete(self, po_id: int) -> None:
        po = await self.get(po_id)
        if po.status not in (DRAFT, CANCELLED):
            raise PurchaseOrderStateError("Only draft or cancelled purchase orders can be deleted", po.status)
        await self.orders.delete(po)
        logger.info(f"Deleted purchase order {po.po_number}")

    async def receive(self, po_id: int, receipts: Iterable[dict[str, Any]]) -> ReceiveOutcome:
        """Book received goods into stock.

        Items may reference materials by local or store id.
        Requested quantities are capped at what is still outstanding for the
        line. Stock updates, ledger entries, received quantities and the new
        status commit together.

        Args:
            po_id: Purchase order id
            receipts: Dicts with ``item_id`` and ``quantity_received``

        Returns:
            ReceiveOutcome with the refreshed order, accepted receipts and
            skipped receipts with reasons

        Raises:
            NotFoundError: Unknown purchase order
            PurchaseOrderStateError: The order is received or cancelled
        """
        po = await self.get(po_id)
        if po.status == CANCELLED:
            raise PurchaseOrderStateError("Cannot receive items for a cancelled order", po.status)
        if po.status == RECEIVED:
            raise PurchaseOrderStateError("This order has already been fully received", po.status)

        # soft-deleted materials still resolve by id
        index = MaterialIndex.from_materials(
            await self.materials.list_all(include_inactive=True), include_inactive=True
        )
        items = {item.id: item for item in po.items}
        results: list[ReceiptResult] = []
        skipped: list[dict[str, Any]] = []
        try:
            for receipt in receipts:
                item_id = receipt["item_id"]
                requested = receipt["quantity_received"]
                item = items.get(item_id)
                if item is None:
                    skipped.append({"item_id": item_id, "reason": "Item not found on this purchase order"})
                    continue
                if requested <= 0:
                    skipped.append({"item_id": item_id, "reason": "Quantity must be positive"})
                    continue
                quantity = min(requested, item.quantity_ordered - item.quantity_received)
                if quantity <= 0:
                    skipped.append({"item_id": item_id, "reason": "Item already fully received"})
                    continue

                material = index.find_material(item.material_product_id)
                if material is None:
                    skipped.append({"item_id": item_id, "reason": "Material no longer exists in inventory"})
                    continue
                variation_id = item.material_variation_id
                if variation_id is not None:
                    variation = index.find_variation(material, variation_id)
                    if variation is None:
                        skipped.append(
                            {"item_id": item_id, "reason": "Material variation no longer exists in inventory"}
                        )
                        continue
                    variation_id = variation.id

                try:
                    entry = await self.stock.apply_delta(
                        material.id,
                        variation_id,
                        quantity,
                        StockReason.PURCHASE_ORDER.value,
                        notes=f"PO {po.po_number} - {item.material_name} received",
                        order_number=po.po_number,
                    )
                except NotFoundError:
                    skipped.append({"item_id": item_id, "reason": "Material no longer exists in inventory"})
                    continue

                item.quantity_received += quantity
                logger.info(
                    f"PO {po.po_number}: received {quantity} x {item.material_name} "
                    f"({entry.previous_stock} -> {entry.new_stock})"
                )
                results.append(
                    ReceiptResult(
                        item_id=item.id,
                        material_name=item.material_name,
                        quantity_received=quantity,
                        previous_stock=entry.previous_stock,
                        new_stock=entry.new_stock,
                        ledger_entry_id=entry.id,
                    )
                )

            if po.items and all(i.quantity_received >= i.quantity_ordered for i in po.items):
                po.status = RECEIVED
                po.received_date = datetime.utcnow()
            elif any(i.quantity_received > 0 for i in po.items):
                po.status = PARTIALLY_RECEIVED
            po.updated_at = datetime.utcnow()
            po = await self.orders.save(po)
        except Exception:
            await self.session.rollback()
            raise

        if results:
            invalidate_stock_cache()
        return ReceiveOutcome(order=po, results=results, skipped=skipped)
