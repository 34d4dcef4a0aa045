"""Loyalty points, tiers and reward redemption.

Points are earned once per booking, when the booking is both completed and
paid: one point per R10 of the service price. Crossing a tier threshold
credits a one-off bonus. Tiers only ever move up; spending points on a
reward does not demote a customer.
"""
from decimal import Decimal

from domain.errors import Conflict, NotFound
from models import db
from models.booking import COMPLETED, PAYMENT_COMPLETED
from models.loyalty import LoyaltyReward, LoyaltyTransaction
from models.user import User

TIER_ORDER = ["bronze", "silver", "gold", "platinum"]

# (minimum points, tier), highest first
TIER_THRESHOLDS = [
    (2000, "platinum"),
    (1000, "gold"),
    (500, "silver"),
]

TIER_BONUS = {"silver": 50, "gold": 100, "platinum": 200}

POINTS_PER_RAND = Decimal("10")


def tier_for(points: int) -> str:
    for minimum, tier in TIER_THRESHOLDS:
        if points >= minimum:
            return tier
    return "bronze"


def points_for(amount) -> int:
    return int(Decimal(amount) // POINTS_PER_RAND)


def award_points(user: User, points: int, description: str, booking_id=None) -> LoyaltyTransaction:
    """Credit points without committing; the caller owns the transaction."""
    user.loyalty_points = (user.loyalty_points or 0) + points
    if booking_id is not None:
        user.total_visits = (user.total_visits or 0) + 1

    txn = LoyaltyTransaction(
        user_id=user.id,
        booking_id=booking_id,
        type="earned",
        points_change=points,
        description=description,
    )
    db.session.add(txn)
    refresh_tier(user)
    return txn


def refresh_tier(user: User) -> str | None:
    """Upgrade the user's tier if their points allow it. Returns the new tier or None."""
    current = user.loyalty_tier or "bronze"
    earned = tier_for(user.loyalty_points or 0)
    if TIER_ORDER.index(earned) <= TIER_ORDER.index(current):
        return None

    user.loyalty_tier = earned
    bonus = TIER_BONUS.get(earned, 0)
    if bonus:
        user.loyalty_points += bonus
        db.session.add(LoyaltyTransaction(
            user_id=user.id,
            type="bonus",
            points_change=bonus,
            description=f"Tier upgrade bonus: Welcome to {earned.capitalize()}!",
        ))
    return earned


def already_rewarded(booking_id: int) -> bool:
    return (
        LoyaltyTransaction.query
        .filter_by(booking_id=booking_id, type="earned")
        .first()
        is not None
    )


def process_completion(booking) -> int:
    """
    Award points for a completed and paid booking. Safe to call more than
    once; returns the points credited by this call (0 if nothing happened).
    Does not commit.
    """
    if booking.status != COMPLETED or booking.payment_status != PAYMENT_COMPLETED:
        return 0
    if already_rewarded(booking.id):
        return 0

    user = db.session.get(User, booking.user_id)
    service = booking.service
    points = points_for(service.price)
    if not user or points <= 0:
        return 0

    award_points(user, points, f"Points earned from {service.name} service", booking_id=booking.id)
    return points


def redeem_reward(user: User, reward_id: int) -> tuple[LoyaltyReward, LoyaltyTransaction]:
    reward = db.session.get(LoyaltyReward, reward_id)
    if not reward:
        raise NotFound("Reward not found")
    if not reward.is_active:
        raise Conflict("Reward is not active")
    if (user.loyalty_points or 0) < reward.points_cost:
        raise Conflict("Insufficient points")

    user.loyalty_points -= reward.points_cost
    txn = LoyaltyTransaction(
        user_id=user.id,
        reward_id=reward.id,
        type="redeemed",
        points_change=-reward.points_cost,
        description=f"Redeemed: {reward.name}",
    )
    db.session.add(txn)
    db.session.commit()
    return reward, txn
