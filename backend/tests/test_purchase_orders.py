"""Tests for purchase order totals, lifecycle and receiving."""

from datetime import datetime
from decimal import Decimal

import pytest
from sqlalchemy import select

from stockops.core.exceptions import (
    ConflictError,
    InvalidInputError,
    NotFoundError,
    PurchaseOrderStateError,
)
from stockops.models.material import Material
from stockops.repositories.ledger_repository import StockLedgerRepository
from stockops.repositories.purchase_order_repository import PurchaseOrderRepository, SupplierRepository
from stockops.services.purchase_order_service import PurchaseOrderService, line_amounts, money


@pytest.fixture
async def supplier(test_session):
    return await SupplierRepository(test_session).create(name="Acme Supplies")


def _item(material, quantity=20, unit_price="2.50", vat_rate="23.00"):
    return {
        "material_product_id": material.id,
        "material_name": material.name,
        "quantity_ordered": quantity,
        "unit_price": unit_price,
        "vat_rate": vat_rate,
    }


async def _stock(session, material_id):
    result = await session.execute(select(Material.stock_quantity).where(Material.id == material_id))
    return result.scalar_one()


class TestTotals:
    def test_line_amounts_round_to_cents(self):
        assert line_amounts(3, Decimal("1.99"), Decimal("23.00")) == (
            Decimal("5.97"), Decimal("1.37"), Decimal("7.34")
        )

    def test_money_rejects_garbage(self):
        with pytest.raises(InvalidInputError):
            money("abc")
        with pytest.raises(InvalidInputError):
            money("NaN")

    @pytest.mark.asyncio
    async def test_order_totals(self, test_session, make_material, supplier):
        material = await make_material("Fabric", stock=0)
        po = await PurchaseOrderService(test_session).create(
            supplier.id,
            [_item(material, quantity=3, unit_price="10.00")],
            shipping_cost="5.00",
            shipping_vat_rate="23.00",
        )

        assert po.items[0].line_subtotal == Decimal("30.00")
        assert po.items[0].line_vat == Decimal("6.90")
        assert po.subtotal == Decimal("30.00")
        assert po.shipping_vat == Decimal("1.15")
        assert po.vat_total == Decimal("8.05")
        assert po.grand_total == Decimal("43.05")

    @pytest.mark.asyncio
    async def test_default_vat_rate(self, test_session, make_material, supplier):
        material = await make_material("Fabric", stock=0)
        item = _item(material, quantity=1, unit_price="100.00")
        item["vat_rate"] = None
        po = await PurchaseOrderService(test_session).create(supplier.id, [item])
        assert po.items[0].vat_rate == Decimal("23.00")

    @pytest.mark.asyncio
    async def test_item_changes_recompute_totals(self, test_session, make_material, supplier):
        material = await make_material("Fabric", stock=0)
        service = PurchaseOrderService(test_session)
        po = await service.create(supplier.id, [_item(material, quantity=2, unit_price="1.00", vat_rate="0")])

        item, po = await service.add_item(po.id, _item(material, quantity=1, unit_price="3.00", vat_rate="0"))
        assert po.subtotal == Decimal("5.00")

        po = await service.remove_item(po.id, item.id)
        assert po.subtotal == Decimal("2.00")
        assert len(po.items) == 1

        po = await service.update_shipping(po.id, "4.00", "0")
        assert po.grand_total == Decimal("6.00")


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_next_po_number(self, test_session, make_material, supplier):
        service = PurchaseOrderService(test_session)
        now = datetime(2026, 5, 1)
        assert await service.next_po_number(now) == "PO-2026-0001"

        material = await make_material("Fabric", stock=0)
        po = await service.create(supplier.id, [_item(material)])
        assert po.po_number.endswith("-0001")
        assert await service.next_po_number(now) == "PO-2026-0002"

    @pytest.mark.asyncio
    async def test_duplicate_po_number(self, test_session, supplier):
        service = PurchaseOrderService(test_session)
        await service.create(supplier.id, [], po_number="PO-X")
        with pytest.raises(ConflictError):
            await service.create(supplier.id, [], po_number="PO-X")

    @pytest.mark.asyncio
    async def test_unknown_supplier(self, test_session):
        with pytest.raises(NotFoundError):
            await PurchaseOrderService(test_session).create(404, [])

    @pytest.mark.asyncio
    async def test_initial_status_must_be_draft_or_ordered(self, test_session, supplier):
        with pytest.raises(InvalidInputError):
            await PurchaseOrderService(test_session).create(supplier.id, [], status="received")

    @pytest.mark.asyncio
    async def test_status_transitions(self, test_session, supplier):
        service = PurchaseOrderService(test_session)
        po = await service.create(supplier.id, [])

        with pytest.raises(PurchaseOrderStateError):
            await service.change_status(po.id, "received")
        with pytest.raises(InvalidInputError):
            await service.change_status(po.id, "shipped")

        po = await service.change_status(po.id, "ordered")
        assert po.status == "ordered"
        assert po.order_date is not None

        with pytest.raises(PurchaseOrderStateError):
            await service.change_status(po.id, "draft")

        po = await service.change_status(po.id, "cancelled")
        assert po.status == "cancelled"

    @pytest.mark.asyncio
    async def test_items_are_frozen_after_ordering(self, test_session, make_material, supplier):
        material = await make_material("Fabric", stock=0)
        service = PurchaseOrderService(test_session)
        po = await service.create(supplier.id, [_item(material)], status="ordered")

        with pytest.raises(PurchaseOrderStateError):
            await service.add_item(po.id, _item(material))
        with pytest.raises(PurchaseOrderStateError):
            await service.update(po.id, items=[_item(material, quantity=1)])

        po = await service.update(po.id, notes="call before delivery")
        assert po.notes == "call before delivery"

    @pytest.mark.asyncio
    async def test_delete_only_draft_or_cancelled(self, test_session, supplier):
        service = PurchaseOrderService(test_session)
        ordered = await service.create(supplier.id, [], status="ordered")
        with pytest.raises(PurchaseOrderStateError):
            await service.delete(ordered.id)

        draft = await service.create(supplier.id, [])
        await service.delete(draft.id)
        assert await PurchaseOrderRepository(test_session).get_by_id(draft.id) is None

    @pytest.mark.asyncio
    async def test_supplier_statistics_skip_cancelled(self, test_session, make_material, supplier):
        material = await make_material("Fabric", stock=0)
        service = PurchaseOrderService(test_session)
        await service.create(supplier.id, [_item(material, quantity=2, unit_price="10.00", vat_rate="0")])
        cancelled = await service.create(supplier.id, [_item(material, quantity=9, unit_price="10.00", vat_rate="0")])
        await service.change_status(cancelled.id, "cancelled")

        stats = await SupplierRepository(test_session).statistics()

        assert stats == [{"supplier_id": supplier.id, "po_count": 1, "total_spent": Decimal("20.00")}]


class TestReceiving:
    @pytest.mark.asyncio
    async def test_partial_then_full_receipt(self, test_session, make_material, supplier):
        material = await make_material("Fabric", stock=0)
        service = PurchaseOrderService(test_session)
        po = await service.create(supplier.id, [_item(material, quantity=20)], status="ordered")
        item_id = po.items[0].id

        outcome = await service.receive(po.id, [{"item_id": item_id, "quantity_received": 12}])
        assert outcome.order.status == "partially_received"
        assert outcome.order.items[0].quantity_received == 12
        assert outcome.results[0].quantity_received == 12
        assert outcome.order.received_date is None

        outcome = await service.receive(po.id, [{"item_id": item_id, "quantity_received": 15}])
        assert outcome.order.status == "received"
        assert outcome.order.items[0].quantity_received == 20
        assert outcome.results[0].quantity_received == 8
        assert outcome.order.received_date is not None

        assert await _stock(test_session, material.id) == 20
        entries = await StockLedgerRepository(test_session).query(material_product_id=material.id)
        assert [e.quantity_change for e in entries] == [12, 8]
        assert all(e.reason == "purchase_order" for e in entries)
        assert entries[0].order_number == po.po_number

    @pytest.mark.asyncio
    async def test_bad_receipts_are_skipped(self, test_session, make_material, supplier):
        material = await make_material("Fabric", stock=0)
        service = PurchaseOrderService(test_session)
        po = await service.create(
            supplier.id,
            [_item(material, quantity=5), {**_item(material, quantity=5), "material_product_id": 999}],
            status="ordered",
        )
        good, orphan = po.items

        outcome = await service.receive(po.id, [
            {"item_id": good.id, "quantity_received": 0},
            {"item_id": 12345, "quantity_received": 1},
            {"item_id": orphan.id, "quantity_received": 2},
        ])

        reasons = [s["reason"] for s in outcome.skipped]
        assert reasons == [
            "Quantity must be positive",
            "Item not found on this purchase order",
            "Material no longer exists in inventory",
        ]
        assert outcome.results == []
        assert outcome.order.status == "ordered"

    @pytest.mark.asyncio
    async def test_store_ids_resolve_to_local_material(self, test_session, make_material, supplier):
        material = await make_material(
            "Thread", stock=0, external_id=300,
            variations=[{"name": "Black", "stock_quantity": 4, "external_id": 301}],
        )
        variation_id = material.variations[0].id
        service = PurchaseOrderService(test_session)
        po = await service.create(
            supplier.id,
            [{**_item(material, quantity=6), "material_product_id": 300, "material_variation_id": 301}],
            status="ordered",
        )

        outcome = await service.receive(po.id, [{"item_id": po.items[0].id, "quantity_received": 6}])

        assert outcome.skipped == []
        assert (outcome.results[0].previous_stock, outcome.results[0].new_stock) == (4, 10)
        entries = await StockLedgerRepository(test_session).query(material_product_id=material.id)
        assert [(e.material_variation_id, e.quantity_change) for e in entries] == [(variation_id, 6)]

    @pytest.mark.asyncio
    async def test_soft_deleted_material_still_receives(self, test_session, make_material, supplier):
        material = await make_material("Old fabric", stock=1, is_active=False)
        service = PurchaseOrderService(test_session)
        po = await service.create(supplier.id, [_item(material, quantity=2)], status="ordered")

        outcome = await service.receive(po.id, [{"item_id": po.items[0].id, "quantity_received": 2}])

        assert outcome.results[0].new_stock == 3
        assert await _stock(test_session, material.id) == 3

    @pytest.mark.asyncio
    async def test_cannot_receive_cancelled_or_received(self, test_session, make_material, supplier):
        material = await make_material("Fabric", stock=0)
        service = PurchaseOrderService(test_session)
        po = await service.create(supplier.id, [_item(material, quantity=1)], status="ordered")
        item_id = po.items[0].id

        await service.receive(po.id, [{"item_id": item_id, "quantity_received": 1}])
        with pytest.raises(PurchaseOrderStateError):
            await service.receive(po.id, [{"item_id": item_id, "quantity_received": 1}])

        other = await service.create(supplier.id, [_item(material, quantity=1)])
        await service.change_status(other.id, "cancelled")
        with pytest.raises(PurchaseOrderStateError):
            await service.receive(other.id, [{"item_id": other.items[0].id, "quantity_received": 1}])
        assert await _stock(test_session, material.id) == 1
