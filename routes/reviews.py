from flask import Blueprint, request, jsonify, g
from sqlalchemy.exc import IntegrityError

from models import db
from models.booking import Booking, COMPLETED
from models.review import Review
from models.staff import Staff
from utils.audit import log_event
from utils.auth_context import login_required
from utils.serializers import review_json
from utils.validation import json_body, optional_text, parse_int, raise_if

reviews_bp = Blueprint("reviews", __name__, url_prefix="/api/reviews")


@reviews_bp.get("")
def list_reviews():
    service_id = request.args.get("serviceId", type=int)
    q = Review.query
    if service_id:
        q = q.filter_by(service_id=service_id)
    rows = q.order_by(Review.created_at.desc(), Review.id.desc()).all()
    return jsonify([review_json(r) for r in rows]), 200


@reviews_bp.post("")
@login_required
def create_review():
    data = json_body()
    errors = {}
    booking_id = parse_int(data.get("bookingId"), "bookingId", errors, minimum=1)
    rating = parse_int(data.get("rating"), "rating", errors, minimum=1, maximum=5)
    comment = optional_text(data, "comment", errors, 2000)
    staff_id = None
    if data.get("staffId") is not None:
        staff_id = parse_int(data.get("staffId"), "staffId", errors, minimum=1)
    photos = data.get("photos") or []
    if not isinstance(photos, list) or not all(isinstance(p, str) for p in photos):
        errors["photos"] = "Must be a list of URLs"
    raise_if(errors)

    booking = db.session.get(Booking, booking_id)
    if not booking or booking.user_id != g.user.id:
        return jsonify(error="Booking not found"), 404
    if booking.status != COMPLETED:
        return jsonify(error="Only completed bookings can be reviewed"), 409
    if staff_id is not None and not db.session.get(Staff, staff_id):
        return jsonify(error="Invalid data", errors={"staffId": "Unknown staff member"}), 400

    if Review.query.filter_by(booking_id=booking.id).first():
        return jsonify(error="Booking already reviewed"), 409

    review = Review(
        user_id=g.user.id,
        service_id=booking.service_id,
        booking_id=booking.id,
        staff_id=staff_id,
        rating=rating,
        comment=comment,
        photos=photos,
    )
    db.session.add(review)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return jsonify(error="Booking already reviewed"), 409

    log_event("REVIEW_CREATE", user_id=g.user.id, entity="review", entity_id=review.id, metadata={"booking_id": booking.id})
    return jsonify(review_json(review)), 201
