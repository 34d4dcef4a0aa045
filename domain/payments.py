"""Stripe card payments for bookings.

The amount charged always comes from the booking's stored total, never from
the client. Each PaymentIntent gets a local Payment row so webhook events can
be matched back to a booking.
"""
from datetime import datetime
from decimal import Decimal

import stripe
from flask import current_app

from domain import bookings
from domain.errors import Conflict, PaymentProviderError, ValidationFailed
from models import db
from models.booking import PAYMENT_COMPLETED, PAYMENT_FAILED, Booking
from models.payment import Payment
from utils.validation import parse_int


def _configure():
    key = current_app.config.get("STRIPE_SECRET_KEY")
    if not key:
        raise PaymentProviderError("Stripe secret key not configured")
    stripe.api_key = key


def to_minor_units(amount) -> int:
    return int((Decimal(amount) * 100).quantize(Decimal("1")))


def create_payment_intent(booking: Booking, user_id: int) -> dict:
    bookings.choose_card(booking)
    _configure()

    currency = current_app.config.get("PAYMENT_CURRENCY", "zar")
    try:
        intent = stripe.PaymentIntent.create(
            amount=to_minor_units(booking.total_amount),
            currency=currency,
            metadata={
                "booking_id": str(booking.id),
                "user_id": str(user_id),
            },
        )
    except stripe.StripeError as e:
        current_app.logger.warning("Stripe PaymentIntent.create failed for booking %s: %s", booking.id, e)
        raise PaymentProviderError("Failed to create payment intent")

    payment = Payment(
        booking_id=booking.id,
        provider="STRIPE",
        amount=booking.total_amount,
        currency=currency,
        status="INIT",
        payment_intent_id=intent["id"],
    )
    db.session.add(payment)
    db.session.commit()

    return {"clientSecret": intent["client_secret"], "paymentIntentId": intent["id"], "payment": payment}


def retrieve_payment_intent(payment_intent_id: str):
    _configure()
    try:
        return stripe.PaymentIntent.retrieve(payment_intent_id)
    except stripe.StripeError as e:
        current_app.logger.warning("Stripe PaymentIntent.retrieve failed for %s: %s", payment_intent_id, e)
        raise PaymentProviderError("Failed to retrieve payment intent")


def _record_outcome(booking: Booking, payment_intent_id: str, paid: bool) -> Booking:
    payment = Payment.query.filter_by(payment_intent_id=payment_intent_id).first()
    if payment and payment.status != "PAID":
        payment.status = "PAID" if paid else "FAILED"
        if paid:
            payment.paid_at = datetime.utcnow()

    target = PAYMENT_COMPLETED if paid else PAYMENT_FAILED
    if booking.payment_status == target:
        db.session.commit()
        return booking
    return bookings.update_payment_status(booking, target)


def confirm_payment(booking: Booking, payment_intent_id: str) -> Booking:
    if not isinstance(payment_intent_id, str) or not payment_intent_id.strip():
        raise ValidationFailed({"paymentIntentId": "Required"})

    intent = retrieve_payment_intent(payment_intent_id)
    metadata = intent.get("metadata") or {}
    if metadata.get("booking_id") and metadata.get("booking_id") != str(booking.id):
        raise Conflict("Payment intent does not belong to this booking")

    status = intent.get("status")
    if status == "succeeded":
        return _record_outcome(booking, payment_intent_id, paid=True)
    if status == "canceled":
        return _record_outcome(booking, payment_intent_id, paid=False)
    raise ValidationFailed({"paymentIntentId": f"Intent status is {status}"}, message="Payment not completed")


def construct_webhook_event(payload: bytes, signature: str | None):
    secret = current_app.config.get("STRIPE_WEBHOOK_SECRET")
    if not secret:
        raise PaymentProviderError("Webhook secret not configured")
    try:
        return stripe.Webhook.construct_event(payload, signature, secret)
    except (ValueError, stripe.SignatureVerificationError):
        raise ValidationFailed({"signature": "Invalid"}, message="Invalid webhook signature")


def handle_webhook_event(event) -> Booking | None:
    """Apply a verified event. Unknown event types and unknown intents are ignored."""
    event_type = event.get("type")
    if event_type not in ("payment_intent.succeeded", "payment_intent.payment_failed"):
        return None

    intent = event["data"]["object"]
    intent_id = intent.get("id")
    metadata = intent.get("metadata") or {}

    booking = None
    payment = Payment.query.filter_by(payment_intent_id=intent_id).first() if intent_id else None
    if payment:
        booking = payment.booking
    elif metadata.get("booking_id"):
        booking_id = parse_int(metadata["booking_id"], "booking_id", {}, minimum=1)
        booking = db.session.get(Booking, booking_id) if booking_id else None
    if not booking:
        current_app.logger.warning("Stripe event %s for unknown intent %s", event_type, intent_id)
        return None

    paid = event_type == "payment_intent.succeeded"
    if not paid and booking.payment_status == PAYMENT_COMPLETED:
        return booking
    try:
        return _record_outcome(booking, intent_id, paid=paid)
    except Conflict:
        db.session.rollback()
        return booking
