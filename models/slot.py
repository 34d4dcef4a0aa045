from datetime import datetime
from models.db import db

class Slot(db.Model):
    __tablename__ = "slots"

    id = db.Column(db.Integer, primary_key=True)

    service_id = db.Column(db.Integer, db.ForeignKey("services.id"), nullable=False, index=True)
    # local business date/time, no timezone
    date = db.Column(db.Date, nullable=False, index=True)
    start_time = db.Column(db.Time, nullable=False)
    end_time = db.Column(db.Time, nullable=False)

    is_booked = db.Column(db.Boolean, default=False, nullable=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    service = db.relationship("Service", back_populates="slots")

    __table_args__ = (
        # Prevent duplicate slot times for same service
        db.UniqueConstraint("service_id", "date", "start_time", "end_time", name="uq_service_timeslot"),
    )

    @property
    def starts_at(self) -> datetime:
        return datetime.combine(self.date, self.start_time)
