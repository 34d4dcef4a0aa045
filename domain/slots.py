"""Slot availability: creating, listing, deleting and bulk-generating slots."""
from datetime import date, datetime, time, timedelta

from sqlalchemy.exc import IntegrityError

from domain.errors import Conflict, NotFound, ValidationFailed
from models import db
from models.booking import Booking
from models.service import Service
from models.slot import Slot


def find_overlap(service_id: int, day: date, start: time, end: time):
    return (
        Slot.query
        .filter(
            Slot.service_id == service_id,
            Slot.date == day,
            Slot.start_time < end,
            Slot.end_time > start,
        )
        .first()
    )


def create_slot(service_id: int, day: date, start: time, end: time) -> Slot:
    if end <= start:
        raise ValidationFailed({"endTime": "Must be after startTime"})

    service = db.session.get(Service, service_id)
    if not service:
        raise NotFound("Service not found")

    if find_overlap(service_id, day, start, end):
        raise Conflict("Slot overlaps an existing slot for this service")

    slot = Slot(service_id=service_id, date=day, start_time=start, end_time=end, is_booked=False)
    db.session.add(slot)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise Conflict("Slot already exists for that service and time")
    return slot


def list_available_slots(service_id: int | None = None, day: date | None = None) -> list[Slot]:
    q = Slot.query.filter(Slot.is_booked.is_(False))
    if service_id:
        q = q.filter(Slot.service_id == service_id)
    if day:
        q = q.filter(Slot.date == day)
    return q.order_by(Slot.date.asc(), Slot.start_time.asc()).all()


def list_all_slots(service_id: int | None = None, day: date | None = None) -> list[Slot]:
    q = Slot.query
    if service_id:
        q = q.filter(Slot.service_id == service_id)
    if day:
        q = q.filter(Slot.date == day)
    return q.order_by(Slot.date.asc(), Slot.start_time.asc()).all()


def delete_slot(slot_id: int) -> None:
    slot = db.session.get(Slot, slot_id)
    if not slot:
        raise NotFound("Slot not found")
    if slot.is_booked:
        raise Conflict("Cannot delete a booked slot")
    # past bookings keep their own scheduled_date/scheduled_start copy
    Booking.query.filter_by(slot_id=slot.id).update({"slot_id": None}, synchronize_session=False)
    db.session.delete(slot)
    db.session.commit()


def generate_slots(service: Service, start_date: date, days: int, opening: time, closing: time) -> list[Slot]:
    """
    Fill each of `days` dates from `start_date` with back-to-back slots of the
    service's duration between opening and closing. Existing overlapping slots
    are left alone and the clashing candidate is skipped.
    """
    if days < 1:
        raise ValidationFailed({"days": "Must be at least 1"})
    if closing <= opening:
        raise ValidationFailed({"closingTime": "Must be after openingTime"})
    if not service.duration or service.duration <= 0:
        raise ValidationFailed({"duration": "Service has no duration"})

    length = timedelta(minutes=service.duration)
    created = []
    for offset in range(days):
        day = start_date + timedelta(days=offset)
        cursor = datetime.combine(day, opening)
        day_end = datetime.combine(day, closing)
        while cursor + length <= day_end:
            start, end = cursor.time(), (cursor + length).time()
            if not find_overlap(service.id, day, start, end):
                slot = Slot(service_id=service.id, date=day, start_time=start, end_time=end, is_booked=False)
                db.session.add(slot)
                # make the new slot visible to the next overlap check
                db.session.flush()
                created.append(slot)
            cursor += length

    db.session.commit()
    return created
