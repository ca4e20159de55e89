"""Tests for order, purchase order and settings API endpoints."""

from datetime import datetime

import pytest

from stockops.services.order_feed import FeedOrder


def _feed_order(order_id, quantity, status="pending"):
    return FeedOrder(
        id=order_id,
        number=str(order_id),
        status=status,
        date_created=datetime(2026, 3, 1, 10, order_id % 60),
        line_items=[{"product_id": 100, "quantity": quantity, "name": "Mug"}],
    )


@pytest.fixture
async def mapped_material(client, auth_headers):
    response = await client.post(
        "/api/materials", json={"name": "Clay", "stock_quantity": 10}, headers=auth_headers
    )
    material = response.json()
    await client.post(
        "/api/material-mappings",
        json={"product_id": 100, "material_product_id": material["id"], "quantity_used": 2},
        headers=auth_headers,
    )
    return material


class TestOrdersAPI:
    @pytest.mark.asyncio
    async def test_fulfillment_status(self, client, auth_headers, mapped_material, stub_feed):
        stub_feed.orders = [_feed_order(1, 3), _feed_order(2, 3)]

        response = await client.get("/api/orders/fulfillment-status", headers=auth_headers)

        assert response.status_code == 200
        statuses = response.json()
        assert statuses["1"]["can_fulfill"] is True
        assert statuses["2"]["can_fulfill"] is False
        missing = statuses["2"]["missing_materials"][0]
        assert (missing["material_id"], missing["needed"], missing["available"]) == (
            mapped_material["id"], 6, 4
        )

    @pytest.mark.asyncio
    async def test_process_order_once(self, client, auth_headers, mapped_material):
        body = {
            "order_id": 500,
            "order_number": "500",
            "line_items": [{"product_id": 100, "quantity": 3, "name": "Mug"}],
        }

        first = await client.post("/api/process-order-stock", json=body, headers=auth_headers)
        assert first.status_code == 200
        result = first.json()
        assert result["total_items_processed"] == 1
        assert result["results"][0]["new_stock"] == 4
        assert result["warning"] is None

        again = await client.post("/api/process-order-stock", json=body, headers=auth_headers)
        assert again.status_code == 409
        assert again.json()["code"] == "ORDER_ALREADY_PROCESSED"

        marker = await client.get("/api/processed-orders/500", headers=auth_headers)
        assert marker.json()["processed"] is True
        unknown = await client.get("/api/processed-orders/501", headers=auth_headers)
        assert unknown.json() == {"processed": False, "processed_at": None}

    @pytest.mark.asyncio
    async def test_negative_quantity_leaves_order_unprocessed(self, client, auth_headers, mapped_material):
        body = {
            "order_id": 501,
            "order_number": "501",
            "line_items": [{"product_id": 100, "quantity": -3, "name": "Mug"}],
        }

        response = await client.post("/api/process-order-stock", json=body, headers=auth_headers)

        assert response.status_code == 422
        marker = await client.get("/api/processed-orders/501", headers=auth_headers)
        assert marker.json()["processed"] is False
        material = await client.get(f"/api/materials/{mapped_material['id']}", headers=auth_headers)
        assert material.json()["stock_quantity"] == 10
        ledger = await client.get(
            "/api/stock-ledger", params={"material_id": mapped_material["id"]}, headers=auth_headers
        )
        assert ledger.json() == []

    @pytest.mark.asyncio
    async def test_zero_variation_mapping_matches_order_line(self, client, auth_headers):
        material = (await client.post(
            "/api/materials", json={"name": "Glaze", "stock_quantity": 10}, headers=auth_headers
        )).json()
        mapping = await client.post(
            "/api/material-mappings",
            json={"product_id": 200, "variation_id": 0, "material_product_id": material["id"], "quantity_used": 1},
            headers=auth_headers,
        )
        assert mapping.json()["variation_id"] is None

        response = await client.post(
            "/api/process-order-stock",
            json={
                "order_id": 502,
                "order_number": "502",
                "line_items": [{"product_id": 200, "variation_id": 0, "quantity": 4, "name": "Vase"}],
            },
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert response.json()["unmapped_items"] == []
        assert response.json()["results"][0]["new_stock"] == 6

    @pytest.mark.asyncio
    async def test_required_materials(self, client, auth_headers, mapped_material, stub_feed):
        stub_feed.orders = [_feed_order(7, 2)]

        response = await client.get("/api/orders/7/required-materials", headers=auth_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["can_fulfill"] is True
        assert body["required_materials"][0]["quantity_needed"] == 4
        missing = await client.get("/api/orders/8/required-materials", headers=auth_headers)
        assert missing.status_code == 404


class TestPurchaseOrdersAPI:
    @pytest.mark.asyncio
    async def test_create_and_receive(self, client, auth_headers, mapped_material):
        supplier = (await client.post(
            "/api/suppliers", json={"name": "Clay Co"}, headers=auth_headers
        )).json()
        response = await client.post(
            "/api/purchase-orders",
            json={
                "supplier_id": supplier["id"],
                "status": "ordered",
                "items": [{
                    "material_product_id": mapped_material["id"],
                    "material_name": "Clay",
                    "quantity_ordered": 5,
                    "unit_price": "2.50",
                }],
            },
            headers=auth_headers,
        )
        assert response.status_code == 201
        po = response.json()
        assert po["po_number"].startswith("PO-")
        item_id = po["items"][0]["id"]

        received = await client.post(
            f"/api/purchase-orders/{po['id']}/receive",
            json={"items": [{"item_id": item_id, "quantity_received": 8}]},
            headers=auth_headers,
        )

        assert received.status_code == 200
        body = received.json()
        assert body["order"]["status"] == "received"
        assert body["results"][0]["quantity_received"] == 5
        assert body["results"][0]["new_stock"] == 15

        again = await client.post(
            f"/api/purchase-orders/{po['id']}/receive",
            json={"items": [{"item_id": item_id, "quantity_received": 1}]},
            headers=auth_headers,
        )
        assert again.status_code == 409

    @pytest.mark.asyncio
    async def test_unknown_supplier(self, client, auth_headers):
        response = await client.post(
            "/api/purchase-orders", json={"supplier_id": 99}, headers=auth_headers
        )
        assert response.status_code == 404


class TestSettingsAPI:
    @pytest.mark.asyncio
    async def test_credentials_status_never_exposes_keys(self, client, auth_headers):
        status = await client.get("/api/credentials/status", headers=auth_headers)
        assert status.json() == {"has_credentials": False, "store_url": None}

        saved = await client.post(
            "/api/credentials",
            json={"store_url": "https://shop.example/", "consumer_key": "ck_1", "consumer_secret": "cs_1"},
            headers=auth_headers,
        )
        assert saved.status_code == 200

        status = await client.get("/api/credentials/status", headers=auth_headers)
        assert status.json() == {"has_credentials": True, "store_url": "https://shop.example"}

    @pytest.mark.asyncio
    async def test_cache_refresh(self, client, auth_headers):
        response = await client.post("/api/cache/refresh", headers=auth_headers)
        assert response.json() == {"message": "Cache cleared"}
        stats = await client.get("/api/cache/stats", headers=auth_headers)
        assert stats.json()["size"] == 0
