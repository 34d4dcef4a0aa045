"""Cash and card payments. Stripe calls are replaced with monkeypatch."""

import pytest
import stripe

from models.booking import Booking
from models.payment import Payment

from conftest import auth_headers, booking_payload, reload


@pytest.fixture
def booking_id(client, customer_headers, service, slots):
    resp = client.post("/api/bookings", json=booking_payload(service, slots[0]), headers=customer_headers)
    return resp.get_json()["id"]


@pytest.fixture
def fake_intents(monkeypatch):
    """Records created intents and serves them back from retrieve()."""
    store = {}

    def create(**kwargs):
        intent = {
            "id": f"pi_test_{len(store) + 1}",
            "client_secret": f"pi_test_{len(store) + 1}_secret",
            "status": "requires_payment_method",
            **kwargs,
        }
        store[intent["id"]] = intent
        return intent

    def retrieve(intent_id, **kwargs):
        return store[intent_id]

    monkeypatch.setattr(stripe.PaymentIntent, "create", create)
    monkeypatch.setattr(stripe.PaymentIntent, "retrieve", retrieve)
    return store


class TestCashPayment:

    def test_cash_confirms_booking_without_provider(self, client, customer_headers, booking_id):
        resp = client.post("/api/create-payment-intent", json={"bookingId": booking_id, "paymentMethod": "cash"},
                           headers=customer_headers)
        assert resp.status_code == 200
        booking = resp.get_json()["booking"]
        assert booking["paymentMethod"] == "cash"
        assert booking["status"] == "confirmed"
        assert booking["paymentStatus"] == "pending"

    def test_other_customers_booking_is_hidden(self, client, other_customer, booking_id):
        resp = client.post("/api/create-payment-intent", json={"bookingId": booking_id, "paymentMethod": "cash"},
                           headers=auth_headers(other_customer))
        assert resp.status_code == 404

    def test_missing_booking_id(self, client, customer_headers, booking_id):
        resp = client.post("/api/create-payment-intent", json={"paymentMethod": "cash"}, headers=customer_headers)
        assert resp.status_code == 400


class TestCardPayment:

    def test_intent_uses_stored_total(self, client, customer_headers, booking_id, fake_intents):
        resp = client.post("/api/create-payment-intent",
                           json={"bookingId": booking_id, "paymentMethod": "card", "amount": 1},
                           headers=customer_headers)
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["clientSecret"] == "pi_test_1_secret"

        intent = fake_intents["pi_test_1"]
        assert intent["amount"] == 15000
        assert intent["currency"] == "zar"
        assert intent["metadata"]["booking_id"] == str(booking_id)

        payment = Payment.query.filter_by(payment_intent_id="pi_test_1").one()
        assert payment.status == "INIT"
        assert reload(Booking, booking_id).payment_method == "card"

    def test_confirm_succeeded(self, client, customer_headers, booking_id, fake_intents):
        client.post("/api/create-payment-intent", json={"bookingId": booking_id, "paymentMethod": "card"},
                    headers=customer_headers)
        fake_intents["pi_test_1"]["status"] = "succeeded"

        resp = client.post("/api/confirm-payment", json={"bookingId": booking_id, "paymentIntentId": "pi_test_1"},
                           headers=customer_headers)
        assert resp.status_code == 200
        assert resp.get_json()["paymentStatus"] == "completed"
        assert Payment.query.filter_by(payment_intent_id="pi_test_1").one().status == "PAID"

    def test_confirm_canceled_marks_failed(self, client, customer_headers, booking_id, fake_intents):
        client.post("/api/create-payment-intent", json={"bookingId": booking_id, "paymentMethod": "card"},
                    headers=customer_headers)
        fake_intents["pi_test_1"]["status"] = "canceled"

        resp = client.post("/api/confirm-payment", json={"bookingId": booking_id, "paymentIntentId": "pi_test_1"},
                           headers=customer_headers)
        assert resp.status_code == 200
        assert resp.get_json()["paymentStatus"] == "failed"

    def test_confirm_unfinished_intent(self, client, customer_headers, booking_id, fake_intents):
        client.post("/api/create-payment-intent", json={"bookingId": booking_id, "paymentMethod": "card"},
                    headers=customer_headers)
        fake_intents["pi_test_1"]["status"] = "processing"

        resp = client.post("/api/confirm-payment", json={"bookingId": booking_id, "paymentIntentId": "pi_test_1"},
                           headers=customer_headers)
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Payment not completed"
        assert reload(Booking, booking_id).payment_status == "pending"

    def test_provider_failure_is_bad_gateway(self, client, customer_headers, booking_id, monkeypatch):
        def explode(**kwargs):
            raise stripe.StripeError("card network down")

        monkeypatch.setattr(stripe.PaymentIntent, "create", explode)
        resp = client.post("/api/create-payment-intent", json={"bookingId": booking_id, "paymentMethod": "card"},
                           headers=customer_headers)
        assert resp.status_code == 502
        assert Payment.query.count() == 0

    def test_confirm_needs_text_intent_id(self, client, customer_headers, booking_id):
        resp = client.post("/api/confirm-payment", json={"bookingId": booking_id, "paymentIntentId": 42},
                           headers=customer_headers)
        assert resp.status_code == 400
        assert "paymentIntentId" in resp.get_json()["errors"]


class TestStripeWebhook:

    def _event(self, event_type, intent_id, booking_id):
        return {
            "type": event_type,
            "data": {"object": {"id": intent_id, "metadata": {"booking_id": str(booking_id)}}},
        }

    def test_succeeded_event_completes_payment(self, client, customer_headers, booking_id, fake_intents, monkeypatch):
        client.post("/api/create-payment-intent", json={"bookingId": booking_id, "paymentMethod": "card"},
                    headers=customer_headers)
        event = self._event("payment_intent.succeeded", "pi_test_1", booking_id)
        monkeypatch.setattr(stripe.Webhook, "construct_event", lambda payload, sig, secret: event)

        resp = client.post("/api/webhooks/stripe", data=b"{}", headers={"Stripe-Signature": "t=1,v1=abc"})
        assert resp.status_code == 200
        assert reload(Booking, booking_id).payment_status == "completed"

    def test_failed_event_after_success_is_ignored(self, client, admin_headers, booking_id, monkeypatch):
        client.put(f"/api/bookings/{booking_id}/payment-status", json={"paymentStatus": "completed"},
                   headers=admin_headers)
        event = self._event("payment_intent.payment_failed", "pi_unknown", booking_id)
        monkeypatch.setattr(stripe.Webhook, "construct_event", lambda payload, sig, secret: event)

        resp = client.post("/api/webhooks/stripe", data=b"{}", headers={"Stripe-Signature": "t=1,v1=abc"})
        assert resp.status_code == 200
        assert reload(Booking, booking_id).payment_status == "completed"

    def test_bad_signature(self, client, monkeypatch, app):
        def reject(payload, sig, secret):
            raise stripe.SignatureVerificationError("No signatures found", sig)

        monkeypatch.setattr(stripe.Webhook, "construct_event", reject)
        resp = client.post("/api/webhooks/stripe", data=b"{}", headers={"Stripe-Signature": "bogus"})
        assert resp.status_code == 400

    def test_non_numeric_booking_id_is_ignored(self, client, booking_id, monkeypatch):
        event = self._event("payment_intent.succeeded", "pi_unknown", "not-a-number")
        monkeypatch.setattr(stripe.Webhook, "construct_event", lambda payload, sig, secret: event)

        resp = client.post("/api/webhooks/stripe", data=b"{}", headers={"Stripe-Signature": "t=1,v1=abc"})
        assert resp.status_code == 200
        assert resp.get_json() == {"received": True}
        assert reload(Booking, booking_id).payment_status == "pending"

