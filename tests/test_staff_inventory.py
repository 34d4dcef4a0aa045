"""Staff records, leave tracking and inventory stock movements."""

from datetime import date, timedelta

import pytest

from models.inventory import InventoryItem
from models.user import User

from conftest import reload


@pytest.fixture
def staff_id(client, admin_headers):
    resp = client.post("/api/staff", json={
        "name": "Bongani Zulu",
        "email": "bongani@aquashine.example",
        "phone": "0821234567",
        "position": "Senior Washer",
    }, headers=admin_headers)
    assert resp.status_code == 201
    return resp.get_json()["id"]


class TestStaff:

    def test_create_staff_makes_staff_user(self, client, admin_headers, staff_id):
        listed = client.get("/api/staff", headers=admin_headers).get_json()
        assert len(listed) == 1
        row = listed[0]
        assert row["name"] == "Bongani Zulu"
        assert row["department"] == "Operations"
        assert row["status"] == "active"
        assert row["employeeId"] == f"EMP{row['userId']:05d}"
        assert reload(User, row["userId"]).role_names == ["STAFF"]

    def test_duplicate_email(self, client, admin_headers, staff_id):
        resp = client.post("/api/staff", json={
            "name": "Someone Else",
            "email": "bongani@aquashine.example",
            "phone": "0820000000",
            "position": "Washer",
        }, headers=admin_headers)
        assert resp.status_code == 409

    def test_missing_fields(self, client, admin_headers):
        resp = client.post("/api/staff", json={"name": "No Contact"}, headers=admin_headers)
        assert resp.status_code == 400
        assert {"email", "phone", "position"} <= set(resp.get_json()["errors"])

    def test_update_and_deactivate(self, client, admin_headers, staff_id):
        resp = client.put(f"/api/staff/{staff_id}", json={"position": "Team Lead", "name": "Bongani M Zulu"},
                          headers=admin_headers)
        assert resp.status_code == 200
        assert resp.get_json()["position"] == "Team Lead"

        assert client.delete(f"/api/staff/{staff_id}", headers=admin_headers).status_code == 200
        assert client.get("/api/staff/public").get_json() == []

    def test_leave_and_return(self, client, admin_headers, staff_id):
        today = date.today()
        leave = {
            "leaveType": "Annual Leave",
            "startDate": today.isoformat(),
            "endDate": (today + timedelta(days=5)).isoformat(),
        }
        resp = client.post(f"/api/staff/{staff_id}/leave", json=leave, headers=admin_headers)
        assert resp.status_code == 201
        leave_id = resp.get_json()["id"]

        # hidden from customers while away
        assert client.get("/api/staff/public").get_json() == []
        assert client.post(f"/api/staff/{staff_id}/leave", json=leave, headers=admin_headers).status_code == 409

        resp = client.put(f"/api/staff/{staff_id}/leave/{leave_id}/return", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.get_json()["status"] == "completed"

        public = client.get("/api/staff/public").get_json()
        assert [s["id"] for s in public] == [staff_id]
        assert public[0]["rating"] == 5.0

        history = client.get(f"/api/staff/{staff_id}/leave-history", headers=admin_headers).get_json()
        assert len(history) == 1

    def test_leave_end_before_start(self, client, admin_headers, staff_id):
        resp = client.post(f"/api/staff/{staff_id}/leave", json={
            "leaveType": "Sick Leave", "startDate": "2026-05-10", "endDate": "2026-05-09",
        }, headers=admin_headers)
        assert resp.status_code == 400

    def test_staff_routes_need_admin(self, client, customer_headers):
        assert client.get("/api/staff", headers=customer_headers).status_code == 403


@pytest.fixture
def item_id(client, admin_headers):
    category = client.post("/api/inventory/categories", json={"name": "Chemicals"}, headers=admin_headers)
    assert category.status_code == 201
    resp = client.post("/api/inventory/items", json={
        "categoryId": category.get_json()["id"],
        "name": "Snow Foam 5L",
        "sku": "CHEM-001",
        "unitPrice": "249.99",
        "currentStock": 12,
        "minimumStock": 5,
    }, headers=admin_headers)
    assert resp.status_code == 201
    return resp.get_json()["id"]


def move(client, headers, item_id, kind, quantity):
    return client.post("/api/inventory/transactions", json={"itemId": item_id, "type": kind, "quantity": quantity},
                       headers=headers)


class TestInventory:

    def test_item_fields(self, client, admin_headers, item_id):
        items = client.get("/api/inventory/items", headers=admin_headers).get_json()
        assert items[0]["unitPrice"] == "249.99"
        assert items[0]["isLowStock"] is False

    def test_duplicate_sku(self, client, admin_headers, item_id):
        category_id = client.get("/api/inventory/categories", headers=admin_headers).get_json()[0]["id"]
        resp = client.post("/api/inventory/items", json={
            "categoryId": category_id, "name": "Other", "sku": "CHEM-001", "unitPrice": "10",
        }, headers=admin_headers)
        assert resp.status_code == 409

    def test_stock_in_and_out(self, client, admin_headers, item_id):
        resp = move(client, admin_headers, item_id, "in", 8)
        assert resp.status_code == 201
        assert resp.get_json()["item"]["currentStock"] == 20
        assert resp.get_json()["item"]["lastRestocked"] is not None

        resp = move(client, admin_headers, item_id, "out", 15)
        assert resp.get_json()["item"]["currentStock"] == 5
        assert resp.get_json()["item"]["isLowStock"] is True

        low = client.get("/api/admin/inventory/low-stock", headers=admin_headers).get_json()
        assert [i["id"] for i in low] == [item_id]

        history = client.get(f"/api/inventory/transactions?itemId={item_id}", headers=admin_headers).get_json()
        assert [t["type"] for t in history] == ["out", "in"]

    def test_cannot_go_negative(self, client, admin_headers, item_id):
        resp = move(client, admin_headers, item_id, "out", 13)
        assert resp.status_code == 409
        assert resp.get_json()["error"] == "Insufficient stock"
        assert reload(InventoryItem, item_id).current_stock == 12

    def test_adjustment_sets_level(self, client, admin_headers, item_id):
        resp = move(client, admin_headers, item_id, "adjustment", 0)
        assert resp.status_code == 201
        assert resp.get_json()["item"]["currentStock"] == 0

    def test_bad_type(self, client, admin_headers, item_id):
        assert move(client, admin_headers, item_id, "lost", 1).status_code == 400
