from flask import Blueprint, request, jsonify

from domain import payments
from utils.audit import log_event

webhook_bp = Blueprint("webhook", __name__, url_prefix="/api/webhooks")


@webhook_bp.post("/stripe")
def stripe_webhook():
    sig_header = request.headers.get("Stripe-Signature")
    payload = request.get_data()

    event = payments.construct_webhook_event(payload, sig_header)
    booking = payments.handle_webhook_event(event)

    if booking is not None:
        log_event("PAYMENT_WEBHOOK", entity="booking", entity_id=booking.id,
                  metadata={"event_type": event.get("type"), "payment_status": booking.payment_status})
    return jsonify(received=True), 200
