from datetime import datetime

from flask import Blueprint, request, jsonify, current_app, g

from domain import bookings
from security.rbac import require_roles, ADMIN
from utils.audit import log_event
from utils.auth_context import login_required
from utils.serializers import booking_json
from utils.validation import json_body, optional_text, raise_if

booking_bp = Blueprint("booking", __name__, url_prefix="/api/bookings")


def _sweep_if_enabled():
    if current_app.config.get("AUTO_CANCEL_ON_READ", True):
        cancelled = bookings.sweep_overdue_bookings()
        for booking_id in cancelled:
            log_event("BOOKING_AUTO_CANCEL", entity="booking", entity_id=booking_id,
                      metadata={"reason": bookings.AUTO_CANCEL_REASON})


# ---------- list: admins see everything, customers their own ----------
@booking_bp.get("")
@login_required
def list_bookings():
    _sweep_if_enabled()

    rows = bookings.list_bookings(g.user)
    status = request.args.get("status")
    if status:
        rows = [b for b in rows if b.status == status]

    now = datetime.now()
    return jsonify([booking_json(b, now) for b in rows]), 200


@booking_bp.get("/<int:booking_id>")
@login_required
def get_booking(booking_id: int):
    booking = bookings.get_visible_booking(booking_id, g.user)
    return jsonify(booking_json(booking)), 200


# ---------- customers: book a slot (double-booking safe) ----------
@booking_bp.post("")
@login_required
def create_booking():
    data = json_body()
    booking = bookings.create_booking(g.user.id, data)

    log_event("BOOKING_CREATE", user_id=g.user.id, entity="booking", entity_id=booking.id,
              metadata={"slot_id": booking.slot_id, "service_id": booking.service_id})
    return jsonify(booking_json(booking)), 201


@booking_bp.route("/<int:booking_id>/cancel", methods=["PUT", "POST"])
@login_required
def cancel_booking(booking_id: int):
    errors = {}
    reason = optional_text(json_body(), "reason", errors, 500)
    raise_if(errors)

    booking = bookings.get_visible_booking(booking_id, g.user)
    bookings.cancel_booking(booking, reason)

    log_event("BOOKING_CANCEL", user_id=g.user.id, entity="booking", entity_id=booking.id,
              metadata={"reason": reason, "slot_id": booking.slot_id})
    return jsonify(booking_json(booking)), 200


# ---------- ADMIN: lifecycle ----------
@booking_bp.put("/<int:booking_id>/status")
@require_roles(ADMIN)
def update_status(booking_id: int):
    data = json_body()
    new_status = data.get("status")
    errors = {}
    reason = optional_text(data, "reason", errors, 500)
    raise_if(errors)

    booking = bookings.get_booking(booking_id)
    previous = booking.status
    bookings.advance_status(booking, new_status, reason=reason)

    log_event("BOOKING_STATUS", user_id=g.user.id, entity="booking", entity_id=booking.id,
              metadata={"from": previous, "to": booking.status})
    return jsonify(booking_json(booking)), 200


@booking_bp.put("/<int:booking_id>/payment-status")
@require_roles(ADMIN)
def update_payment_status(booking_id: int):
    data = json_body()
    new_status = data.get("paymentStatus")

    booking = bookings.get_booking(booking_id)
    previous = booking.payment_status
    bookings.update_payment_status(booking, new_status)

    log_event("BOOKING_PAYMENT_STATUS", user_id=g.user.id, entity="booking", entity_id=booking.id,
              metadata={"from": previous, "to": booking.payment_status})
    return jsonify(booking_json(booking)), 200


@booking_bp.post("/auto-cancel-late")
@require_roles(ADMIN)
def auto_cancel_late():
    cancelled = bookings.sweep_overdue_bookings()
    for booking_id in cancelled:
        log_event("BOOKING_AUTO_CANCEL", user_id=g.user.id, entity="booking", entity_id=booking_id,
                  metadata={"reason": bookings.AUTO_CANCEL_REASON})
    return jsonify(cancelled=len(cancelled), bookingIds=cancelled), 200
