"""Tests for exactly-once order stock processing."""

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from stockops.core.exceptions import InvalidInputError, OrderAlreadyProcessedError
from stockops.models.ledger import ProcessedOrder, StockLedgerEntry
from stockops.models.material import Material, MaterialVariation
from stockops.repositories.mapping_repository import MappingRepository
from stockops.services.order_feed import FeedLineItem
from stockops.services.order_processor import OrderStockProcessor


async def _stock(session, material_id):
    result = await session.execute(select(Material.stock_quantity).where(Material.id == material_id))
    return result.scalar_one()


async def _ledger(session):
    result = await session.execute(select(StockLedgerEntry).order_by(StockLedgerEntry.id))
    return list(result.scalars().all())


def _item(product_id, quantity, name=None, variation_id=None):
    return FeedLineItem(
        product_id=product_id, variation_id=variation_id, quantity=quantity, name=name or f"Product {product_id}"
    )


class TestOrderStockProcessor:
    @pytest.mark.asyncio
    async def test_mapped_and_unmapped_items(self, test_session, make_material):
        """Order #500: one mapped line deducts 2 x 3, one unmapped line is reported."""
        material = await make_material("Material X", stock=20)
        await MappingRepository(test_session).create(material_product_id=material.id, product_id=500, quantity_used=2)

        outcome = await OrderStockProcessor(test_session).process(
            500, "500", [_item(500, 3, name="Mug"), _item(501, 1, name="Poster")]
        )

        assert len(outcome.results) == 1
        assert len(outcome.unmapped_items) == 1
        assert outcome.unmapped_items[0]["name"] == "Poster"
        assert outcome.results[0].quantity_deducted == 6
        assert await _stock(test_session, material.id) == 14
        assert "1 item(s) had no material mappings" in outcome.warning

        entries = await _ledger(test_session)
        assert len(entries) == 1
        assert entries[0].reason == "order"
        assert entries[0].order_id == 500
        assert entries[0].quantity_change == -6
        assert (entries[0].previous_stock, entries[0].new_stock) == (20, 14)
        assert entries[0].notes == "Order #500 - Mug x3"

    @pytest.mark.asyncio
    async def test_second_run_is_rejected(self, test_session, make_material):
        material = await make_material("Fabric", stock=10)
        await MappingRepository(test_session).create(material_product_id=material.id, product_id=1)
        processor = OrderStockProcessor(test_session)

        await processor.process(7, "7", [_item(1, 2)])
        with pytest.raises(OrderAlreadyProcessedError) as exc_info:
            await processor.process(7, "7", [_item(1, 2)])

        assert exc_info.value.processed_at is not None
        assert await _stock(test_session, material.id) == 8
        assert len(await _ledger(test_session)) == 1

    @pytest.mark.asyncio
    async def test_concurrent_claim_loses_on_unique_marker(self, session_factory):
        async with session_factory() as first, session_factory() as second:
            await OrderStockProcessor(first).process(8, "8", [_item(1, 1)])

            with pytest.raises(OrderAlreadyProcessedError):
                await OrderStockProcessor(second)._claim(8, "8")

            result = await second.execute(select(ProcessedOrder).where(ProcessedOrder.order_id == 8))
            assert len(result.scalars().all()) == 1

    @pytest.mark.asyncio
    async def test_deductions_accumulate_across_line_items(self, test_session, make_material):
        material = await make_material("Ink", stock=10)
        repo = MappingRepository(test_session)
        await repo.create(material_product_id=material.id, product_id=1, quantity_used=3)
        await repo.create(material_product_id=material.id, product_id=2, quantity_used=2)

        outcome = await OrderStockProcessor(test_session).process(9, "9", [_item(1, 1), _item(2, 2)])

        first, second = outcome.results
        assert (first.previous_stock, first.new_stock) == (10, 7)
        assert (second.previous_stock, second.new_stock) == (7, 3)
        assert await _stock(test_session, material.id) == 3

    @pytest.mark.asyncio
    async def test_stock_may_go_negative(self, test_session, make_material):
        material = await make_material("Glue", stock=1)
        await MappingRepository(test_session).create(material_product_id=material.id, product_id=1, quantity_used=3)

        await OrderStockProcessor(test_session).process(10, "10", [_item(1, 1)])

        assert await _stock(test_session, material.id) == -2

    @pytest.mark.asyncio
    @pytest.mark.parametrize("quantity", [0, -3])
    async def test_non_positive_quantity_rejected_before_claim(self, test_session, make_material, quantity):
        material = await make_material("Clay", stock=10)
        await MappingRepository(test_session).create(material_product_id=material.id, product_id=1, quantity_used=2)

        with pytest.raises(InvalidInputError):
            await OrderStockProcessor(test_session).process(11, "11", [_item(2, 1), _item(1, quantity)])

        assert await _stock(test_session, material.id) == 10
        assert await _ledger(test_session) == []
        result = await test_session.execute(select(ProcessedOrder))
        assert result.scalars().all() == []

    @pytest.mark.asyncio
    async def test_orphaned_and_unmanaged_mappings_are_skipped(self, test_session, make_material):
        unmanaged = await make_material("Tape", stock=5, manage_stock=False)
        repo = MappingRepository(test_session)
        await repo.create(material_product_id=999, product_id=1)
        await repo.create(material_product_id=unmanaged.id, product_id=1)

        outcome = await OrderStockProcessor(test_session).process(11, "11", [_item(1, 1)])

        reasons = sorted(s["reason"] for s in outcome.skipped_items)
        assert reasons == [
            "Material does not have stock management enabled",
            "Material product no longer exists in inventory",
        ]
        assert outcome.results == []
        assert await _stock(test_session, unmanaged.id) == 5
        assert await _ledger(test_session) == []

    @pytest.mark.asyncio
    async def test_missing_variation_is_skipped(self, test_session, make_material):
        material = await make_material("Thread", stock=0, variations=[{"name": "Black", "stock_quantity": 4}])
        await MappingRepository(test_session).create(
            material_product_id=material.id, material_variation_id=4242, product_id=1
        )

        outcome = await OrderStockProcessor(test_session).process(12, "12", [_item(1, 1)])

        assert outcome.skipped_items[0]["reason"] == "Material variation no longer exists in inventory"

    @pytest.mark.asyncio
    async def test_variation_deduction_and_legacy_ids(self, test_session, make_material):
        material = await make_material(
            "Thread", stock=0, external_id=300,
            variations=[{"name": "Black", "stock_quantity": 4, "external_id": 301}],
        )
        variation_id = material.variations[0].id
        # mapping still carries the upstream ids from before the import
        await MappingRepository(test_session).create(
            material_product_id=300, material_variation_id=301, product_id=1, variation_id=55
        )

        outcome = await OrderStockProcessor(test_session).process(13, "13", [_item(1, 3, variation_id=55)])

        assert outcome.results[0].material_id == material.id
        assert outcome.results[0].material_variation_id == variation_id
        assert outcome.results[0].material_name == "Thread - Black"
        result = await test_session.execute(
            select(MaterialVariation.stock_quantity).where(MaterialVariation.id == variation_id)
        )
        assert result.scalar_one() == 1

    @pytest.mark.asyncio
    async def test_failed_deduction_does_not_stop_the_order(self, test_session, make_material, monkeypatch):
        # the processor rolls back, which expires ORM instances; keep plain ids
        first_id = (await make_material("Alpha", stock=10)).id
        second_id = (await make_material("Beta", stock=10)).id
        repo = MappingRepository(test_session)
        await repo.create(material_product_id=first_id, product_id=1)
        await repo.create(material_product_id=second_id, product_id=1)

        processor = OrderStockProcessor(test_session)
        original = processor.stock.apply_delta

        async def flaky_apply_delta(material_id, *args, **kwargs):
            if material_id == first_id:
                raise OperationalError("UPDATE raw_materials", {}, Exception("database is locked"))
            return await original(material_id, *args, **kwargs)

        monkeypatch.setattr(processor.stock, "apply_delta", flaky_apply_delta)

        outcome = await processor.process(14, "14", [_item(1, 1)])

        assert len(outcome.failed_updates) == 1
        assert outcome.failed_updates[0]["material_name"] == "Alpha"
        assert outcome.failed_updates[0]["reason"].startswith("Local stock update failed:")
        assert len(outcome.results) == 1
        assert await _stock(test_session, first_id) == 10
        assert await _stock(test_session, second_id) == 9
        assert "1 stock update(s) failed." in outcome.warning
        # the order stays claimed
        marker = await test_session.execute(select(ProcessedOrder).where(ProcessedOrder.order_id == 14))
        assert marker.scalar_one_or_none() is not None
