"""Slot availability: create, list, delete and bulk generation."""

from datetime import time, timedelta

import pytest

from domain import slots as slot_service
from domain.errors import Conflict, NotFound, ValidationFailed
from models import db
from models.slot import Slot

from conftest import booking_payload


class TestSlotDomain:

    def test_create_slot_starts_unbooked(self, service, slot_day):
        slot = slot_service.create_slot(service.id, slot_day, time(14, 0), time(14, 30))
        assert slot.id is not None
        assert slot.is_booked is False

    def test_end_must_follow_start(self, service, slot_day):
        with pytest.raises(ValidationFailed) as exc:
            slot_service.create_slot(service.id, slot_day, time(14, 0), time(14, 0))
        assert "endTime" in exc.value.errors

    def test_unknown_service(self, app, slot_day):
        with pytest.raises(NotFound):
            slot_service.create_slot(999, slot_day, time(14, 0), time(14, 30))

    def test_overlap_rejected(self, service, slots, slot_day):
        """09:15-09:45 overlaps both 09:00-09:30 and 09:30-10:00."""
        with pytest.raises(Conflict):
            slot_service.create_slot(service.id, slot_day, time(9, 15), time(9, 45))

    def test_adjacent_slot_allowed(self, service, slots, slot_day):
        slot = slot_service.create_slot(service.id, slot_day, time(10, 30), time(11, 0))
        assert slot.start_time == time(10, 30)

    def test_available_listing_is_ordered_and_filtered(self, service, slots, slot_day):
        later = slot_service.create_slot(service.id, slot_day + timedelta(days=1), time(8, 0), time(8, 30))
        slots[1].is_booked = True
        db.session.commit()

        listed = slot_service.list_available_slots(service_id=service.id)
        assert [s.id for s in listed] == [slots[0].id, slots[2].id, later.id]

        same_day = slot_service.list_available_slots(day=slot_day)
        assert later.id not in [s.id for s in same_day]

    def test_generate_slots_fills_business_hours(self, service, slot_day):
        created = slot_service.generate_slots(service, slot_day, 2, time(8, 0), time(10, 0))
        # 30 minute service, 2 hours a day, 2 days
        assert len(created) == 8
        assert created[0].start_time == time(8, 0)
        assert created[3].end_time == time(10, 0)

    def test_generate_slots_skips_existing(self, service, slots, slot_day):
        created = slot_service.generate_slots(service, slot_day, 1, time(8, 0), time(11, 0))
        starts = sorted(s.start_time for s in created)
        assert starts == [time(8, 0), time(8, 30), time(10, 30)]


class TestSlotApi:

    def test_public_listing(self, client, service, slots, slot_day):
        resp = client.get(f"/api/slots?serviceId={service.id}&date={slot_day.isoformat()}")
        assert resp.status_code == 200
        body = resp.get_json()
        assert len(body) == 3
        assert body[0]["startTime"] == "09:00"
        assert body[0]["isBooked"] is False

    def test_bad_date_filter(self, client, slots):
        resp = client.get("/api/slots?date=04-05-2026")
        assert resp.status_code == 400
        assert "date" in resp.get_json()["errors"]

    def test_create_requires_admin(self, client, customer_headers, service, slot_day):
        payload = {"serviceId": service.id, "date": slot_day.isoformat(), "startTime": "15:00", "endTime": "15:30"}
        assert client.post("/api/slots", json=payload).status_code == 401
        assert client.post("/api/slots", json=payload, headers=customer_headers).status_code == 403

    def test_admin_creates_slot(self, client, admin_headers, service, slot_day):
        payload = {"serviceId": service.id, "date": slot_day.isoformat(), "startTime": "15:00", "endTime": "15:30"}
        resp = client.post("/api/slots", json=payload, headers=admin_headers)
        assert resp.status_code == 201
        assert resp.get_json()["endTime"] == "15:30"

    def test_delete_unbooked_slot_removes_it(self, client, admin_headers, service, slots):
        resp = client.delete(f"/api/slots/{slots[0].id}", headers=admin_headers)
        assert resp.status_code == 200

        listed = client.get(f"/api/slots?serviceId={service.id}").get_json()
        assert slots[0].id not in [s["id"] for s in listed]

    def test_delete_booked_slot_conflicts(self, client, admin_headers, customer_headers, service, slots):
        resp = client.post("/api/bookings", json=booking_payload(service, slots[0]), headers=customer_headers)
        assert resp.status_code == 201

        resp = client.delete(f"/api/slots/{slots[0].id}", headers=admin_headers)
        assert resp.status_code == 409
        assert db.session.get(Slot, slots[0].id) is not None

    def test_delete_slot_with_cancelled_booking(self, client, admin_headers, customer_headers, service, slots):
        slot_id, day, start = slots[0].id, slots[0].date, slots[0].start_time
        booked = client.post("/api/bookings", json=booking_payload(service, slots[0]), headers=customer_headers)
        booking_id = booked.get_json()["id"]
        assert client.put(f"/api/bookings/{booking_id}/cancel", headers=customer_headers).status_code == 200

        resp = client.delete(f"/api/slots/{slot_id}", headers=admin_headers)
        assert resp.status_code == 200
        listed = client.get(f"/api/slots?serviceId={service.id}").get_json()
        assert slot_id not in [s["id"] for s in listed]

        # the cancelled booking survives with its own copy of the schedule
        history = client.get(f"/api/bookings/{booking_id}", headers=customer_headers).get_json()
        assert history["slotId"] is None
        assert history["slot"] is None
        assert history["scheduledDate"] == day.isoformat()
        assert history["scheduledTime"] == start.strftime("%H:%M")

    def test_bulk_generation(self, client, admin_headers, service, slot_day):
        resp = client.post("/api/slots/bulk", json={
            "serviceId": service.id,
            "startDate": slot_day.isoformat(),
            "days": 1,
            "openingTime": "08:00",
            "closingTime": "09:00",
        }, headers=admin_headers)
        assert resp.status_code == 201
        assert resp.get_json()["created"] == 2

    def test_availability_unknown_service(self, client, app):
        assert client.get("/api/slots/availability/404").status_code == 404
