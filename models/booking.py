from datetime import datetime
from models.db import db

PENDING = "pending"
CONFIRMED = "confirmed"
IN_PROGRESS = "in-progress"
COMPLETED = "completed"
CANCELLED = "cancelled"

BOOKING_STATUSES = (PENDING, CONFIRMED, IN_PROGRESS, COMPLETED, CANCELLED)
ACTIVE_STATUSES = (PENDING, CONFIRMED)

PAYMENT_PENDING = "pending"
PAYMENT_COMPLETED = "completed"
PAYMENT_FAILED = "failed"

PAYMENT_STATUSES = (PAYMENT_PENDING, PAYMENT_COMPLETED, PAYMENT_FAILED)
PAYMENT_METHODS = ("cash", "card")

class Booking(db.Model):
    __tablename__ = "bookings"

    id = db.Column(db.Integer, primary_key=True)

    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    service_id = db.Column(db.Integer, db.ForeignKey("services.id"), nullable=False, index=True)
    # detached (NULL) once an admin deletes the slot; the schedule copy below survives
    slot_id = db.Column(db.Integer, db.ForeignKey("slots.id", ondelete="SET NULL"), nullable=True, index=True)
    scheduled_date = db.Column(db.Date, nullable=True)
    scheduled_start = db.Column(db.Time, nullable=True)

    vehicle_type = db.Column(db.String(50), nullable=False)
    vehicle_brand = db.Column(db.String(50), nullable=False)
    vehicle_model = db.Column(db.String(50), nullable=False)
    manufacturing_year = db.Column(db.Integer, nullable=False)
    registration_plate = db.Column(db.String(20), nullable=False)

    # copied from the service price when booked
    total_amount = db.Column(db.Numeric(10, 2), nullable=False)
    payment_method = db.Column(db.String(10), nullable=True)

    status = db.Column(db.String(20), nullable=False, default=PENDING)
    payment_status = db.Column(db.String(20), nullable=False, default=PAYMENT_PENDING)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
    cancelled_at = db.Column(db.DateTime, nullable=True)
    cancel_reason = db.Column(db.String(120), nullable=True)

    user = db.relationship("User")
    service = db.relationship("Service")
    slot = db.relationship("Slot")

    __table_args__ = (
        # Only one live booking per slot; cancelled rows don't count
        db.Index(
            "uq_booking_active_slot",
            "slot_id",
            unique=True,
            sqlite_where=db.text("status != 'cancelled'"),
            postgresql_where=db.text("status != 'cancelled'"),
        ),
    )
