from datetime import datetime
from models.db import db

class LoyaltyReward(db.Model):
    __tablename__ = "loyalty_rewards"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    description = db.Column(db.Text, nullable=False, default="")
    points_cost = db.Column(db.Integer, nullable=False)
    discount_percentage = db.Column(db.Integer, nullable=True)
    discount_amount = db.Column(db.Numeric(10, 2), nullable=True)
    tier = db.Column(db.String(20), nullable=False, default="bronze")
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

class LoyaltyTransaction(db.Model):
    __tablename__ = "loyalty_transactions"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    booking_id = db.Column(db.Integer, db.ForeignKey("bookings.id"), nullable=True, index=True)
    reward_id = db.Column(db.Integer, db.ForeignKey("loyalty_rewards.id"), nullable=True)

    type = db.Column(db.String(20), nullable=False)  # earned, redeemed, bonus
    points_change = db.Column(db.Integer, nullable=False)  # negative when spending
    description = db.Column(db.Text, nullable=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
