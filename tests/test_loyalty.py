"""Loyalty points, tier upgrades and reward redemption."""

from decimal import Decimal

import pytest

from domain import bookings, loyalty
from domain.errors import Conflict, NotFound
from models import db
from models.loyalty import LoyaltyReward, LoyaltyTransaction
from models.user import User

from conftest import booking_payload, reload


@pytest.fixture
def reward(app):
    row = LoyaltyReward(name="Free Express Wash", description="One free express wash",
                        points_cost=250, discount_percentage=100, tier="silver")
    db.session.add(row)
    db.session.commit()
    return row


def complete_and_pay(booking):
    for status in ("confirmed", "in-progress", "completed"):
        bookings.advance_status(booking, status)
    bookings.update_payment_status(booking, "completed")


class TestTiers:

    @pytest.mark.parametrize("points,tier", [
        (0, "bronze"),
        (499, "bronze"),
        (500, "silver"),
        (999, "silver"),
        (1000, "gold"),
        (2000, "platinum"),
    ])
    def test_tier_for(self, points, tier):
        assert loyalty.tier_for(points) == tier

    def test_points_round_down(self):
        assert loyalty.points_for(Decimal("150.00")) == 15
        assert loyalty.points_for(Decimal("89.99")) == 8
        assert loyalty.points_for(Decimal("9.99")) == 0


class TestCompletion:

    def test_points_awarded_once(self, customer, service, slots):
        booking = bookings.create_booking(customer.id, booking_payload(service, slots[0]))
        complete_and_pay(booking)
        assert loyalty.process_completion(booking) == 0

        user = reload(User, customer.id)
        assert user.loyalty_points == 15
        assert user.total_visits == 1
        earned = LoyaltyTransaction.query.filter_by(user_id=customer.id, type="earned").all()
        assert len(earned) == 1
        assert earned[0].booking_id == booking.id

    def test_tier_upgrade_adds_bonus(self, customer, service, slots):
        customer.loyalty_points = 495
        db.session.commit()

        booking = bookings.create_booking(customer.id, booking_payload(service, slots[0]))
        complete_and_pay(booking)

        user = reload(User, customer.id)
        assert user.loyalty_tier == "silver"
        # 495 + 15 earned + 50 silver bonus
        assert user.loyalty_points == 560
        assert LoyaltyTransaction.query.filter_by(user_id=customer.id, type="bonus").count() == 1

    def test_unpaid_completion_earns_nothing(self, customer, service, slots):
        booking = bookings.create_booking(customer.id, booking_payload(service, slots[0]))
        for status in ("confirmed", "in-progress", "completed"):
            bookings.advance_status(booking, status)
        assert reload(User, customer.id).loyalty_points == 0


class TestRedeem:

    def test_redeem_deducts_points(self, customer, reward):
        customer.loyalty_points = 300
        db.session.commit()

        _, txn = loyalty.redeem_reward(customer, reward.id)
        assert txn.points_change == -250
        assert reload(User, customer.id).loyalty_points == 50

    def test_insufficient_points(self, customer, reward):
        with pytest.raises(Conflict):
            loyalty.redeem_reward(customer, reward.id)

    def test_unknown_reward(self, customer):
        with pytest.raises(NotFound):
            loyalty.redeem_reward(customer, 12345)

    def test_tier_is_kept_after_spending(self, customer, reward):
        customer.loyalty_points = 600
        customer.loyalty_tier = "silver"
        db.session.commit()
        loyalty.redeem_reward(customer, reward.id)
        assert reload(User, customer.id).loyalty_tier == "silver"


class TestLoyaltyApi:

    def test_summary_and_redeem(self, client, customer, customer_headers, reward):
        customer.loyalty_points = 260
        db.session.commit()

        summary = client.get("/api/user/loyalty", headers=customer_headers).get_json()
        assert summary["loyaltyPoints"] == 260
        assert summary["nextTier"] == {"tier": "silver", "pointsRequired": 500, "pointsToGo": 240}

        rewards = client.get("/api/loyalty/rewards").get_json()
        assert [r["name"] for r in rewards] == ["Free Express Wash"]

        resp = client.post("/api/loyalty/redeem", json={"rewardId": reward.id}, headers=customer_headers)
        assert resp.status_code == 200
        assert resp.get_json()["remainingPoints"] == 10

        history = client.get("/api/loyalty/transactions", headers=customer_headers).get_json()
        assert history[0]["type"] == "redeemed"

    def test_redeem_without_points(self, client, customer_headers, reward):
        resp = client.post("/api/loyalty/redeem", json={"rewardId": reward.id}, headers=customer_headers)
        assert resp.status_code == 409
