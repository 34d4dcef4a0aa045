from flask import Blueprint, jsonify, g

from domain import loyalty
from models.loyalty import LoyaltyReward, LoyaltyTransaction
from utils.audit import log_event
from utils.auth_context import login_required
from utils.serializers import loyalty_txn_json, reward_json
from utils.validation import json_body, parse_int, raise_if

loyalty_bp = Blueprint("loyalty", __name__, url_prefix="/api")


@loyalty_bp.get("/user/loyalty")
@login_required
def my_loyalty():
    user = g.user
    points = user.loyalty_points or 0
    tier = user.loyalty_tier or "bronze"

    next_tier = None
    for minimum, name in reversed(loyalty.TIER_THRESHOLDS):
        if loyalty.TIER_ORDER.index(name) > loyalty.TIER_ORDER.index(tier):
            next_tier = {"tier": name, "pointsRequired": minimum, "pointsToGo": max(minimum - points, 0)}
            break

    return jsonify(
        loyaltyPoints=points,
        totalVisits=user.total_visits or 0,
        loyaltyTier=tier,
        nextTier=next_tier,
    ), 200


@loyalty_bp.get("/loyalty/rewards")
def list_rewards():
    rows = LoyaltyReward.query.filter_by(is_active=True).order_by(LoyaltyReward.points_cost.asc()).all()
    return jsonify([reward_json(r) for r in rows]), 200


@loyalty_bp.get("/loyalty/transactions")
@login_required
def list_transactions():
    rows = (
        LoyaltyTransaction.query
        .filter_by(user_id=g.user.id)
        .order_by(LoyaltyTransaction.created_at.desc(), LoyaltyTransaction.id.desc())
        .limit(50)
        .all()
    )
    return jsonify([loyalty_txn_json(t) for t in rows]), 200


@loyalty_bp.post("/loyalty/redeem")
@login_required
def redeem():
    data = json_body()
    errors = {}
    reward_id = parse_int(data.get("rewardId"), "rewardId", errors, minimum=1)
    raise_if(errors)

    reward, txn = loyalty.redeem_reward(g.user, reward_id)

    log_event("LOYALTY_REDEEM", user_id=g.user.id, entity="loyalty_reward", entity_id=reward.id,
              metadata={"points": reward.points_cost})
    return jsonify(
        message=f"Redeemed {reward.name}",
        remainingPoints=g.user.loyalty_points,
        transaction=loyalty_txn_json(txn),
    ), 200
