from flask import Blueprint, jsonify, g

from domain import bookings, payments
from domain.errors import ValidationFailed
from utils.auth_context import login_required
from utils.audit import log_event
from utils.serializers import booking_json
from utils.validation import json_body

payments_bp = Blueprint("payments", __name__, url_prefix="/api")


@payments_bp.post("/create-payment-intent")
@login_required
def create_payment_intent():
    data = json_body()
    booking = bookings.get_visible_booking(data.get("bookingId"), g.user)
    method = data.get("paymentMethod", "card")

    if method == "cash":
        bookings.choose_cash(booking)
        log_event("PAYMENT_CASH_SELECTED", user_id=g.user.id, entity="booking", entity_id=booking.id)
        return jsonify(paymentMethod="cash", booking=booking_json(booking)), 200

    if method != "card":
        raise ValidationFailed({"paymentMethod": "Must be cash or card"})

    result = payments.create_payment_intent(booking, g.user.id)
    log_event("PAYMENT_INTENT_CREATED", user_id=g.user.id, entity="payment", entity_id=result["payment"].id,
              metadata={"booking_id": booking.id, "payment_intent_id": result["paymentIntentId"]})
    return jsonify(
        paymentMethod="card",
        clientSecret=result["clientSecret"],
        paymentIntentId=result["paymentIntentId"],
    ), 200


@payments_bp.post("/confirm-payment")
@login_required
def confirm_payment():
    data = json_body()
    booking = bookings.get_visible_booking(data.get("bookingId"), g.user)
    intent_id = data.get("paymentIntentId")

    payments.confirm_payment(booking, intent_id)

    log_event("PAYMENT_CONFIRM", user_id=g.user.id, entity="booking", entity_id=booking.id,
              metadata={"payment_intent_id": intent_id, "payment_status": booking.payment_status})
    return jsonify(booking_json(booking)), 200
