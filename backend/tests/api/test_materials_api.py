"""Tests for material, mapping and ledger API endpoints."""

import pytest


async def _create_material(client, headers, **body):
    payload = {"name": "Cotton thread", "stock_quantity": 10, **body}
    response = await client.post("/api/materials", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


class TestAuth:
    @pytest.mark.asyncio
    async def test_requires_token(self, client):
        response = await client.get("/api/materials")
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_login_after_register(self, client, auth_headers):
        response = await client.post(
            "/auth/login", json={"username": "testuser", "password": "testpass123"}
        )
        assert response.status_code == 200
        assert response.json()["token_type"] == "bearer"

        bad = await client.post("/auth/login", json={"username": "testuser", "password": "nope"})
        assert bad.status_code == 401

    @pytest.mark.asyncio
    async def test_duplicate_registration(self, client, auth_headers):
        response = await client.post(
            "/auth/register", json={"username": "testuser", "password": "another123"}
        )
        assert response.status_code == 409
        assert response.json()["code"] == "CONFLICT"

    @pytest.mark.asyncio
    async def test_me(self, client, auth_headers):
        response = await client.get("/auth/me", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["username"] == "testuser"


class TestMaterialsAPI:
    @pytest.mark.asyncio
    async def test_crud(self, client, auth_headers):
        material = await _create_material(client, auth_headers, sku="CT-1")
        assert material["type"] == "simple"
        assert material["is_active"] is True

        response = await client.put(
            f"/api/materials/{material['id']}",
            json={"name": "Cotton thread (white)", "low_stock_threshold": 2},
            headers=auth_headers,
        )
        assert response.status_code == 200
        assert response.json()["name"] == "Cotton thread (white)"
        assert response.json()["sku"] == "CT-1"

        response = await client.delete(f"/api/materials/{material['id']}", headers=auth_headers)
        assert response.status_code == 204

        listed = await client.get("/api/materials", headers=auth_headers)
        assert listed.json() == []
        listed = await client.get("/api/materials?include_inactive=true", headers=auth_headers)
        assert [m["id"] for m in listed.json()] == [material["id"]]

    @pytest.mark.asyncio
    async def test_not_found_carries_code(self, client, auth_headers):
        response = await client.get("/api/materials/999", headers=auth_headers)

        assert response.status_code == 404
        body = response.json()
        assert body["code"] == "NOT_FOUND"
        assert body["entity"] == "Material"
        assert body["entity_id"] == 999

    @pytest.mark.asyncio
    async def test_variations_only_on_variable_materials(self, client, auth_headers):
        response = await client.post(
            "/api/materials",
            json={"name": "Thread", "variations": [{"name": "Black"}]},
            headers=auth_headers,
        )
        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_INPUT"

    @pytest.mark.asyncio
    async def test_negative_opening_stock_rejected(self, client, auth_headers):
        response = await client.post(
            "/api/materials", json={"name": "Thread", "stock_quantity": -5}, headers=auth_headers
        )
        assert response.status_code == 422

        response = await client.post(
            "/api/materials",
            json={"name": "Thread", "type": "variable", "variations": [{"name": "Black", "stock_quantity": -1}]},
            headers=auth_headers,
        )
        assert response.status_code == 422

        listed = await client.get("/api/materials", headers=auth_headers)
        assert listed.json() == []

    @pytest.mark.asyncio
    async def test_low_stock(self, client, auth_headers):
        await _create_material(client, auth_headers, name="Plenty", stock_quantity=50)
        low = await _create_material(client, auth_headers, name="Scarce", stock_quantity=3)

        response = await client.get("/api/materials/low-stock", headers=auth_headers)

        assert response.status_code == 200
        assert [(i["material_id"], i["name"]) for i in response.json()] == [(low["id"], "Scarce")]


class TestStockAPI:
    @pytest.mark.asyncio
    async def test_add_and_set_stock_write_ledger(self, client, auth_headers):
        material = await _create_material(client, auth_headers)
        base = f"/api/materials/{material['id']}"

        added = await client.post(f"{base}/add-stock", json={"quantity": 5, "reason": "stock_in"}, headers=auth_headers)
        assert added.status_code == 200
        assert (added.json()["previous_stock"], added.json()["new_stock"]) == (10, 15)

        counted = await client.post(f"{base}/set-stock", json={"new_stock_level": 12, "notes": "count"}, headers=auth_headers)
        assert counted.json()["quantity_change"] == -3

        ledger = await client.get(f"/api/stock-ledger?material_id={material['id']}", headers=auth_headers)
        entries = ledger.json()
        assert [(e["reason"], e["quantity_change"]) for e in entries] == [
            ("stock_in", 5),
            ("stock_take", -3),
        ]
        assert entries[1]["notes"] == "count"

    @pytest.mark.asyncio
    async def test_invalid_quantity(self, client, auth_headers):
        material = await _create_material(client, auth_headers)

        response = await client.post(
            f"/api/materials/{material['id']}/add-stock", json={"quantity": 0}, headers=auth_headers
        )

        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_INPUT"

    @pytest.mark.asyncio
    async def test_variation_stock(self, client, auth_headers):
        material = await _create_material(
            client,
            auth_headers,
            name="Thread",
            type="variable",
            variations=[{"name": "Black", "stock_quantity": 4}],
        )
        variation_id = material["variations"][0]["id"]

        response = await client.post(
            f"/api/materials/{material['id']}/variations/{variation_id}/add-stock",
            json={"quantity": 6},
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert response.json()["variation_name"] == "Black"
        assert response.json()["new_stock"] == 10

        other = await client.post(
            f"/api/materials/{material['id'] + 1}/variations/{variation_id}/set-stock",
            json={"new_stock_level": 1},
            headers=auth_headers,
        )
        assert other.status_code == 404


class TestMappingsAPI:
    @pytest.mark.asyncio
    async def test_create_duplicate_and_filter(self, client, auth_headers):
        material = await _create_material(client, auth_headers)
        body = {"product_id": 100, "material_product_id": material["id"], "quantity_used": 2}

        first = await client.post("/api/material-mappings", json=body, headers=auth_headers)
        assert first.status_code == 201
        duplicate = await client.post("/api/material-mappings", json=body, headers=auth_headers)
        assert duplicate.status_code == 409
        assert duplicate.json()["code"] == "DUPLICATE_MAPPING"
        assert duplicate.json()["mapping_id"] == first.json()["id"]

        await client.post(
            "/api/material-mappings", json={**body, "variation_id": 7}, headers=auth_headers
        )
        url = f"/api/material-mappings/by-material/{material['id']}"
        assert len((await client.get(url, headers=auth_headers)).json()) == 2
        parent_level = await client.get(f"{url}?material_variation_id=null", headers=auth_headers)
        assert len(parent_level.json()) == 2
        bad = await client.get(f"{url}?material_variation_id=abc", headers=auth_headers)
        assert bad.status_code == 400

    @pytest.mark.asyncio
    async def test_mapping_needs_existing_material(self, client, auth_headers):
        response = await client.post(
            "/api/material-mappings",
            json={"product_id": 100, "material_product_id": 42},
            headers=auth_headers,
        )
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_quantity_must_be_positive(self, client, auth_headers):
        material = await _create_material(client, auth_headers)
        response = await client.post(
            "/api/material-mappings",
            json={"product_id": 100, "material_product_id": material["id"], "quantity_used": 0},
            headers=auth_headers,
        )
        assert response.status_code == 422
