"""Booking lifecycle.

    pending -> confirmed -> in-progress -> completed
    pending | confirmed -> cancelled

A slot's ``is_booked`` flag is true exactly while one non-cancelled booking
references it. Reservation flips the flag with a conditional update in the
same transaction as the booking insert, and every path into ``cancelled``
clears it in the same transaction as the status change.
"""
from datetime import date, datetime

from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from domain import loyalty
from domain.errors import Conflict, NotFound, ValidationFailed
from domain.timing import is_overdue
from models import db
from models.booking import (
    ACTIVE_STATUSES,
    BOOKING_STATUSES,
    CANCELLED,
    COMPLETED,
    CONFIRMED,
    IN_PROGRESS,
    PAYMENT_COMPLETED,
    PAYMENT_FAILED,
    PAYMENT_METHODS,
    PAYMENT_PENDING,
    PAYMENT_STATUSES,
    PENDING,
    Booking,
)
from models.service import Service
from models.slot import Slot
from utils.validation import parse_int, raise_if, required_text

STATUS_TRANSITIONS = {
    PENDING: {CONFIRMED, CANCELLED},
    CONFIRMED: {IN_PROGRESS, CANCELLED},
    IN_PROGRESS: {COMPLETED},
    COMPLETED: set(),
    CANCELLED: set(),
}

PAYMENT_TRANSITIONS = {
    PAYMENT_PENDING: {PAYMENT_COMPLETED, PAYMENT_FAILED},
    PAYMENT_FAILED: {PAYMENT_PENDING, PAYMENT_COMPLETED},
    PAYMENT_COMPLETED: set(),
}

AUTO_CANCEL_REASON = "No-show (auto-cancelled)"


def validate_booking_payload(data: dict) -> dict:
    errors = {}
    service_id = parse_int(data.get("serviceId"), "serviceId", errors, minimum=1)
    slot_id = parse_int(data.get("slotId"), "slotId", errors, minimum=1)
    vehicle_type = required_text(data, "vehicleType", errors, 50)
    vehicle_brand = required_text(data, "vehicleBrand", errors, 50)
    vehicle_model = required_text(data, "vehicleModel", errors, 50)
    year = parse_int(
        data.get("manufacturingYear"), "manufacturingYear", errors,
        minimum=1900, maximum=date.today().year + 1,
    )
    plate = required_text(data, "registrationPlate", errors, 20)

    method = data.get("paymentMethod")
    if method is not None and method not in PAYMENT_METHODS:
        errors["paymentMethod"] = "Must be cash or card"

    raise_if(errors)
    return {
        "service_id": service_id,
        "slot_id": slot_id,
        "vehicle_type": vehicle_type,
        "vehicle_brand": vehicle_brand,
        "vehicle_model": vehicle_model,
        "manufacturing_year": year,
        "registration_plate": plate.upper(),
        "payment_method": method,
    }


def create_booking(user_id: int, data: dict, now: datetime | None = None) -> Booking:
    fields = validate_booking_payload(data)
    now = now or datetime.now()

    service = db.session.get(Service, fields["service_id"])
    if not service:
        raise NotFound("Service not found")
    if not service.is_active:
        raise Conflict("Service is not currently offered")

    slot = db.session.get(Slot, fields["slot_id"])
    if not slot:
        raise NotFound("Slot not found")
    if slot.service_id != service.id:
        raise ValidationFailed({"slotId": "Slot does not belong to this service"})
    if slot.starts_at <= now:
        raise ValidationFailed({"slotId": "Cannot book past/started slots"})

    # Compare-and-swap on the slot row: only one request can flip it.
    result = db.session.execute(
        update(Slot)
        .where(Slot.id == slot.id, Slot.is_booked.is_(False))
        .values(is_booked=True)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        db.session.rollback()
        raise Conflict("Slot already booked")

    booking = Booking(
        user_id=user_id,
        total_amount=service.price,
        status=PENDING,
        payment_status=PAYMENT_PENDING,
        scheduled_date=slot.date,
        scheduled_start=slot.start_time,
        **fields,
    )
    db.session.add(booking)
    try:
        db.session.commit()
    except IntegrityError:
        # uq_booking_active_slot: another live booking got there first
        db.session.rollback()
        raise Conflict("Slot already booked")
    return booking


def get_booking(booking_id: int) -> Booking:
    booking = db.session.get(Booking, booking_id)
    if not booking:
        raise NotFound("Booking not found")
    return booking


def get_visible_booking(booking_id, user) -> Booking:
    """Customers only see their own bookings; someone else's looks like a missing one."""
    errors = {}
    booking_id = parse_int(booking_id, "bookingId", errors, minimum=1)
    raise_if(errors)
    booking = get_booking(booking_id)
    if booking.user_id != user.id and not user.has_role("ADMIN"):
        raise NotFound("Booking not found")
    return booking


def list_bookings(user) -> list[Booking]:
    q = Booking.query
    if not user.has_role("ADMIN"):
        q = q.filter(Booking.user_id == user.id)
    return q.order_by(Booking.created_at.desc(), Booking.id.desc()).all()


def _release_slot(slot_id: int | None) -> None:
    if slot_id is None:
        return
    db.session.execute(
        update(Slot)
        .where(Slot.id == slot_id)
        .values(is_booked=False)
        .execution_options(synchronize_session=False)
    )


def _mark_cancelled(booking: Booking, reason: str | None, now: datetime) -> None:
    booking.status = CANCELLED
    booking.cancelled_at = now
    booking.cancel_reason = (reason or "")[:120] or None
    _release_slot(booking.slot_id)


def cancel_booking(booking: Booking, reason: str | None = None) -> Booking:
    if booking.status not in ACTIVE_STATUSES:
        raise Conflict("Cannot cancel this booking")

    _mark_cancelled(booking, reason, datetime.utcnow())
    db.session.commit()
    # the bulk update bypassed the identity map
    db.session.expire(booking, ["slot"])
    return booking


def advance_status(booking: Booking, new_status: str, reason: str | None = None) -> Booking:
    if new_status not in BOOKING_STATUSES:
        raise ValidationFailed({"status": f"Must be one of: {', '.join(BOOKING_STATUSES)}"})

    if new_status not in STATUS_TRANSITIONS[booking.status]:
        raise Conflict(f"Cannot move booking from {booking.status} to {new_status}")

    if new_status == CANCELLED:
        return cancel_booking(booking, reason or "Admin cancellation")

    booking.status = new_status
    loyalty.process_completion(booking)
    db.session.commit()
    return booking


def update_payment_status(booking: Booking, new_status: str) -> Booking:
    if new_status not in PAYMENT_STATUSES:
        raise ValidationFailed({"paymentStatus": f"Must be one of: {', '.join(PAYMENT_STATUSES)}"})

    if new_status == booking.payment_status:
        return booking
    if new_status not in PAYMENT_TRANSITIONS[booking.payment_status]:
        raise Conflict(f"Cannot move payment from {booking.payment_status} to {new_status}")

    booking.payment_status = new_status
    loyalty.process_completion(booking)
    db.session.commit()
    return booking


def choose_cash(booking: Booking) -> Booking:
    """Cash needs no provider round-trip: the booking is confirmed now and paid on site."""
    if booking.status not in ACTIVE_STATUSES:
        raise Conflict("Booking can no longer be paid for")
    if booking.payment_status == PAYMENT_COMPLETED:
        raise Conflict("Booking is already paid")

    booking.payment_method = "cash"
    booking.payment_status = PAYMENT_PENDING
    booking.status = CONFIRMED
    db.session.commit()
    return booking


def choose_card(booking: Booking) -> Booking:
    if booking.status not in ACTIVE_STATUSES:
        raise Conflict("Booking can no longer be paid for")
    if booking.payment_status == PAYMENT_COMPLETED:
        raise Conflict("Booking is already paid")

    booking.payment_method = "card"
    db.session.commit()
    return booking


def sweep_overdue_bookings(now: datetime | None = None) -> list[int]:
    """
    Cancel every pending/confirmed booking whose slot started more than the
    late grace period ago and free its slot. Returns the cancelled booking ids.
    """
    now = now or datetime.now()
    grace = current_app.config.get("LATE_GRACE_MINUTES", 15)

    candidates = (
        Booking.query
        .join(Slot, Booking.slot_id == Slot.id)
        .filter(Booking.status.in_(ACTIVE_STATUSES), Slot.date <= now.date())
        .all()
    )

    cancelled = []
    stamp = datetime.utcnow()
    for booking in candidates:
        slot = booking.slot
        if is_overdue(slot.date, slot.start_time, now, late_grace_minutes=grace):
            _mark_cancelled(booking, AUTO_CANCEL_REASON, stamp)
            cancelled.append(booking.id)

    if cancelled:
        db.session.commit()
        db.session.expire_all()
        current_app.logger.info("Auto-cancelled %d overdue bookings: %s", len(cancelled), cancelled)
    return cancelled
