"""Integration tests for the inventory API via TestClient."""

from datetime import UTC, datetime, timedelta

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from protean.exceptions import ExpectedVersionError

from medstock.api import inventory_router, maintenance_router, register_error_handlers, routes

TODAY = datetime.now(UTC).date()
OWNER = {"X-User-Id": "owner-001", "X-User-Role": "shop_owner"}
OTHER_OWNER = {"X-User-Id": "owner-002", "X-User-Role": "shop_owner"}
ADMIN = {"X-User-Id": "admin-001", "X-User-Role": "admin"}
SYSTEM = {"X-User-Id": "ordering-service", "X-User-Role": "system"}


@pytest.fixture()
def client():
    app = FastAPI()
    app.include_router(maintenance_router)
    app.include_router(inventory_router)
    register_error_handlers(app)
    return TestClient(app)


def _lot_body(**overrides):
    body = {
        "shop_id": "shop-001",
        "medicine_id": "med-001",
        "batch_number": "API-001",
        "quantity": 100,
        "pricing": {"cost_price": 10.0, "selling_price": 15.0, "mrp": 20.0, "discount_percentage": 10.0},
        "manufacturing_date": (TODAY - timedelta(days=60)).isoformat(),
        "expiry_date": (TODAY + timedelta(days=365)).isoformat(),
        "unit": "strips",
        "supplier": {"name": "Acme Pharma", "invoice_number": "INV-77"},
        "location": {"rack": "R1", "shelf": "S1"},
        "alerts": {"low_stock_threshold": 10, "expiry_alert_days": 30},
    }
    body.update(overrides)
    return body


def _add_lot(client, headers=OWNER, **overrides):
    response = client.post("/inventory", json=_lot_body(**overrides), headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


class TestAddLotAPI:
    def test_add_returns_201_with_lot(self, client):
        response = client.post("/inventory", json=_lot_body(), headers=OWNER)
        assert response.status_code == 201

        data = response.json()
        assert data["quantity"] == 100
        assert data["available_quantity"] == 100
        assert data["status"] == "active"
        assert data["unit"] == "strips"
        assert data["revision"] == 1
        assert data["pricing"]["discounted_price"] == 13.5
        assert data["supplier"]["invoice_number"] == "INV-77"
        assert data["created_by"] == "owner-001"
        assert data["movements"][0]["reason"] == "initial-stock"

    def test_duplicate_batch_returns_409(self, client):
        _add_lot(client)
        response = client.post("/inventory", json=_lot_body(quantity=5), headers=OWNER)
        assert response.status_code == 409
        assert "batch_number" in response.json()["error"]

    def test_unknown_medicine_returns_404(self, client):
        response = client.post("/inventory", json=_lot_body(medicine_id="med-unknown"), headers=OWNER)
        assert response.status_code == 404

    def test_selling_price_above_mrp_returns_400(self, client):
        body = _lot_body(pricing={"cost_price": 10.0, "selling_price": 25.0, "mrp": 20.0})
        response = client.post("/inventory", json=body, headers=OWNER)
        assert response.status_code == 400

    def test_expiry_before_manufacturing_returns_400(self, client):
        body = _lot_body(expiry_date=(TODAY - timedelta(days=90)).isoformat())
        response = client.post("/inventory", json=body, headers=OWNER)
        assert response.status_code == 400
        assert "expiry_date" in response.json()["error"]

    def test_schema_violation_returns_400(self, client):
        response = client.post("/inventory", json=_lot_body(quantity=-5), headers=OWNER)
        assert response.status_code == 400
        assert "quantity" in response.json()["error"]

    def test_missing_user_returns_401(self, client):
        response = client.post("/inventory", json=_lot_body())
        assert response.status_code == 401

    def test_other_owner_returns_403(self, client):
        response = client.post("/inventory", json=_lot_body(), headers=OTHER_OWNER)
        assert response.status_code == 403

    def test_unknown_shop_returns_404(self, client):
        response = client.post("/inventory", json=_lot_body(shop_id="shop-404"), headers=OWNER)
        assert response.status_code == 404

    def test_admin_can_stock_any_shop(self, client):
        response = client.post("/inventory", json=_lot_body(shop_id="shop-002"), headers=ADMIN)
        assert response.status_code == 201


class TestLotDetailAPI:
    def test_get_lot(self, client):
        lot = _add_lot(client)
        response = client.get(f"/inventory/{lot['lot_id']}", headers=OWNER)
        assert response.status_code == 200
        assert response.json()["batch_number"] == "API-001"

    def test_get_missing_lot_returns_404(self, client):
        response = client.get("/inventory/missing", headers=OWNER)
        assert response.status_code == 404

    def test_other_owner_cannot_read(self, client):
        lot = _add_lot(client)
        response = client.get(f"/inventory/{lot['lot_id']}", headers=OTHER_OWNER)
        assert response.status_code == 403


class TestMovementAPI:
    def test_out_movement(self, client):
        lot = _add_lot(client)
        response = client.post(
            f"/inventory/{lot['lot_id']}/movements",
            json={"movement_type": "out", "quantity": 30, "reason": "sale", "reference": "INV-1"},
            headers=OWNER,
        )
        assert response.status_code == 200
        data = response.json()
        assert data["quantity"] == 70
        assert data["revision"] == 2
        assert data["movements"][-1]["reference"] == "INV-1"
        assert data["movements"][-1]["performed_by"] == "owner-001"

    def test_insufficient_stock_returns_400(self, client):
        lot = _add_lot(client, quantity=5)
        response = client.post(
            f"/inventory/{lot['lot_id']}/movements",
            json={"movement_type": "out", "quantity": 6, "reason": "sale"},
            headers=OWNER,
        )
        assert response.status_code == 400

    def test_stale_revision_returns_409(self, client):
        lot = _add_lot(client)
        movement = {"movement_type": "in", "quantity": 1, "reason": "purchase", "expected_revision": 1}
        assert client.post(f"/inventory/{lot['lot_id']}/movements", json=movement, headers=OWNER).status_code == 200

        response = client.post(f"/inventory/{lot['lot_id']}/movements", json=movement, headers=OWNER)
        assert response.status_code == 409

    def test_concurrent_version_conflict_returns_409(self, client, monkeypatch):
        lot = _add_lot(client)

        def _conflict(lot_key, command):
            raise ExpectedVersionError("Wrong expected version: 2 (Aggregate: InventoryLot)")

        monkeypatch.setattr(routes, "process_locked", _conflict)
        response = client.post(
            f"/inventory/{lot['lot_id']}/movements",
            json={"movement_type": "in", "quantity": 1, "reason": "purchase"},
            headers=OWNER,
        )

        assert response.status_code == 409
        assert "concurrently" in response.json()["error"]

    def test_unknown_movement_type_returns_400(self, client):
        lot = _add_lot(client)
        response = client.post(
            f"/inventory/{lot['lot_id']}/movements",
            json={"movement_type": "teleport", "quantity": 1, "reason": "sale"},
            headers=OWNER,
        )
        assert response.status_code == 400


class TestLotMaintenanceAPI:
    def test_update_prices(self, client):
        lot = _add_lot(client)
        response = client.put(f"/inventory/{lot['lot_id']}", json={"selling_price": 18.0}, headers=OWNER)
        assert response.status_code == 200
        assert response.json()["pricing"]["selling_price"] == 18.0
        assert response.json()["pricing"]["mrp"] == 20.0

    def test_update_alert_settings(self, client):
        lot = _add_lot(client, quantity=40)
        response = client.put(
            f"/inventory/{lot['lot_id']}/alerts",
            json={"low_stock_threshold": 50},
            headers=OWNER,
        )
        assert response.status_code == 200
        assert response.json()["status"] == "low-stock"

    def test_empty_alert_settings_returns_400(self, client):
        lot = _add_lot(client)
        response = client.put(f"/inventory/{lot['lot_id']}/alerts", json={}, headers=OWNER)
        assert response.status_code == 400

    def test_mark_damaged_then_admin_restores(self, client):
        lot = _add_lot(client)
        response = client.put(
            f"/inventory/{lot['lot_id']}/condition",
            json={"condition": "damaged", "reason": "Water damage"},
            headers=OWNER,
        )
        assert response.json()["status"] == "damaged"

        assert client.put(f"/inventory/{lot['lot_id']}/restore", headers=OWNER).status_code == 403

        response = client.put(f"/inventory/{lot['lot_id']}/restore", headers=ADMIN)
        assert response.status_code == 200
        assert response.json()["status"] == "active"


class TestBulkUpdateAPI:
    def test_bulk_update(self, client):
        lot = _add_lot(client)
        response = client.post(
            "/inventory/bulk-update",
            json={
                "shop_id": "shop-001",
                "items": [
                    {"medicine_id": "med-001", "batch_number": "API-001", "quantity": 42},
                    {"medicine_id": "med-001", "batch_number": "MISSING", "quantity": 1},
                ],
            },
            headers=OWNER,
        )
        assert response.status_code == 200
        data = response.json()
        assert data["successful"][0]["lot_id"] == lot["lot_id"]
        assert data["failed"][0]["batch_number"] == "MISSING"

    def test_more_than_fifty_items_returns_400(self, client):
        items = [{"medicine_id": "med-001", "batch_number": f"B-{i}", "quantity": 1} for i in range(51)]
        response = client.post("/inventory/bulk-update", json={"shop_id": "shop-001", "items": items}, headers=OWNER)
        assert response.status_code == 400


class TestShopReportsAPI:
    def test_list_lots(self, client):
        _add_lot(client)
        _add_lot(client, batch_number="API-002", quantity=3)

        response = client.get("/inventory/shops/shop-001?sort_by=quantity&sort_order=asc", headers=OWNER)
        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 2
        assert [item["quantity"] for item in data["items"]] == [3, 100]

    def test_list_low_stock_only(self, client):
        _add_lot(client)
        _add_lot(client, batch_number="API-002", quantity=3)
        response = client.get("/inventory/shops/shop-001?low_stock_only=true", headers=OWNER)
        assert [item["batch_number"] for item in response.json()["items"]] == ["API-002"]

    def test_invalid_sort_returns_400(self, client):
        response = client.get("/inventory/shops/shop-001?sort_by=secret", headers=OWNER)
        assert response.status_code == 400

    def test_limit_above_max_returns_400(self, client):
        response = client.get("/inventory/shops/shop-001?limit=500", headers=OWNER)
        assert response.status_code == 400

    def test_alerts(self, client):
        _add_lot(client, batch_number="API-002", quantity=3)
        _add_lot(client, batch_number="API-003", expiry_date=(TODAY + timedelta(days=10)).isoformat())

        response = client.get("/inventory/shops/shop-001/alerts?days=30", headers=OWNER)
        assert response.status_code == 200
        counts = response.json()["counts"]
        assert counts == {"low_stock": 1, "expiring": 1, "expired": 0}

    def test_summary(self, client):
        _add_lot(client)
        _add_lot(client, batch_number="API-002", quantity=3)

        response = client.get("/inventory/shops/shop-001/summary", headers=OWNER)
        assert response.status_code == 200
        assert response.json() == {
            "total_items": 2,
            "total_quantity": 103,
            "total_value": 1030.0,
            "low_stock_count": 1,
            "expired_count": 0,
        }

    def test_other_owner_cannot_see_reports(self, client):
        response = client.get("/inventory/shops/shop-001/summary", headers=OTHER_OWNER)
        assert response.status_code == 403


class TestOrderEventsAPI:
    def test_placed_and_confirmed(self, client):
        lot = _add_lot(client)
        order = {
            "orderId": "order-api-1",
            "shopId": "shop-001",
            "userId": "cust-1",
            "items": [{"medicineId": "med-001", "batchNumber": "API-001", "quantity": 95}],
        }

        response = client.post("/inventory/orders/placed", json=order, headers=SYSTEM)
        assert response.status_code == 200
        assert response.json()["lines"][0]["outcome"] == "applied"

        detail = client.get(f"/inventory/{lot['lot_id']}", headers=ADMIN).json()
        assert detail["reserved_quantity"] == 95
        assert detail["status"] == "low-stock"

        response = client.post("/inventory/orders/confirmed", json=order, headers=SYSTEM)
        assert response.json()["lines"][0]["outcome"] == "applied"

        detail = client.get(f"/inventory/{lot['lot_id']}", headers=ADMIN).json()
        assert detail["quantity"] == 5
        assert detail["reserved_quantity"] == 0

    def test_insufficient_stock_line_reported(self, client):
        _add_lot(client)
        order = {
            "order_id": "order-api-2",
            "shop_id": "shop-001",
            "items": [{"medicine_id": "med-001", "batch_number": "API-001", "quantity": 150}],
        }
        response = client.post("/inventory/orders/placed", json=order, headers=SYSTEM)
        assert response.status_code == 200
        line = response.json()["lines"][0]
        assert line["outcome"] == "failed"
        assert "quantity" in line["error"]

    def test_unknown_event_kind_returns_400(self, client):
        response = client.post(
            "/inventory/orders/shipped",
            json={"order_id": "o", "shop_id": "shop-001", "items": []},
            headers=SYSTEM,
        )
        assert response.status_code == 400

    def test_shop_owner_cannot_apply_order_events(self, client):
        response = client.post("/inventory/orders/placed", json={}, headers=OWNER)
        assert response.status_code == 403


class TestMaintenanceAPI:
    def test_sweep(self, client):
        _add_lot(client)
        response = client.post("/inventory/maintenance/sweep", json={}, headers=SYSTEM)
        assert response.status_code == 200
        assert response.json() == {"checked": 1, "changed": 0, "failed": 0}

    def test_sweep_requires_platform_role(self, client):
        response = client.post("/inventory/maintenance/sweep", json={}, headers=OWNER)
        assert response.status_code == 403
