from decimal import Decimal

from models import db
from models.service import Service
from models.slot import Slot

from conftest import booking_payload, reload


class TestServices:

    def test_public_listing_hides_inactive(self, client, service):
        client_view = client.get("/api/services").get_json()
        assert [s["name"] for s in client_view] == ["Full Valet"]
        assert client_view[0]["price"] == "150.00"

        service.is_active = False
        db.session.commit()
        assert client.get("/api/services").get_json() == []
        assert client.get(f"/api/services/{service.id}").status_code == 200

    def test_create_with_slots(self, client, admin_headers, slot_day):
        resp = client.post("/api/services", json={
            "name": "Engine Bay Clean",
            "price": "220",
            "duration": 45,
            "category": "deluxe",
            "features": ["Degrease", "Dress plastics"],
            "slots": [
                {"date": slot_day.isoformat(), "startTime": "08:00", "endTime": "08:45"},
                {"date": slot_day.isoformat(), "startTime": "08:30", "endTime": "09:15"},
                {"date": "tomorrow", "startTime": "10:00", "endTime": "10:45"},
            ],
        }, headers=admin_headers)
        assert resp.status_code == 201
        body = resp.get_json()
        assert body["price"] == "220.00"
        assert len(body["slots"]) == 1
        assert [s["index"] for s in body["skippedSlots"]] == [1, 2]

    def test_create_validation(self, client, admin_headers):
        resp = client.post("/api/services", json={"name": "", "price": "-5", "duration": 0}, headers=admin_headers)
        assert resp.status_code == 400
        assert set(resp.get_json()["errors"]) == {"name", "price", "duration"}
        assert Service.query.count() == 0

    def test_update(self, client, admin_headers, service):
        resp = client.put(f"/api/services/{service.id}", json={"price": "175.5"}, headers=admin_headers)
        assert resp.status_code == 200
        assert reload(Service, service.id).price == Decimal("175.50")

    def test_delete_removes_slots(self, client, admin_headers, service, slots):
        resp = client.delete(f"/api/services/{service.id}", headers=admin_headers)
        assert resp.status_code == 200
        assert Slot.query.count() == 0

    def test_delete_with_bookings_conflicts(self, client, admin_headers, customer_headers, service, slots):
        client.post("/api/bookings", json=booking_payload(service, slots[0]), headers=customer_headers)
        resp = client.delete(f"/api/services/{service.id}", headers=admin_headers)
        assert resp.status_code == 409

    def test_inactive_service_cannot_be_booked(self, client, customer_headers, service, slots):
        service.is_active = False
        db.session.commit()
        resp = client.post("/api/bookings", json=booking_payload(service, slots[0]), headers=customer_headers)
        assert resp.status_code == 409
