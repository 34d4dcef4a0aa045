"""JSON shapes returned by the API (camelCase keys, money as two-decimal strings)."""
from datetime import datetime

from flask import current_app

from domain.reporting import money
from domain.timing import time_status


def _iso(value):
    return value.isoformat() if value else None


def _hhmm(value):
    return value.strftime("%H:%M") if value else None


def user_json(u) -> dict:
    return {
        "id": u.id,
        "email": u.email,
        "firstName": u.first_name,
        "lastName": u.last_name,
        "phone": u.phone,
        "address": u.address,
        "roles": u.role_names,
        "isAdmin": u.has_role("ADMIN"),
        "loyaltyPoints": u.loyalty_points,
        "totalVisits": u.total_visits,
        "loyaltyTier": u.loyalty_tier,
        "createdAt": _iso(u.created_at),
    }


def service_json(s) -> dict:
    return {
        "id": s.id,
        "name": s.name,
        "description": s.description,
        "price": money(s.price),
        "duration": s.duration,
        "category": s.category,
        "features": s.features or [],
        "isActive": s.is_active,
    }


def slot_json(s) -> dict:
    return {
        "id": s.id,
        "serviceId": s.service_id,
        "date": s.date.isoformat(),
        "startTime": _hhmm(s.start_time),
        "endTime": _hhmm(s.end_time),
        "isBooked": s.is_booked,
    }


def booking_json(b, now: datetime | None = None) -> dict:
    slot = b.slot
    out = {
        "id": b.id,
        "userId": b.user_id,
        "serviceId": b.service_id,
        "slotId": b.slot_id,
        "scheduledDate": _iso(b.scheduled_date),
        "scheduledTime": _hhmm(b.scheduled_start),
        "vehicleType": b.vehicle_type,
        "vehicleBrand": b.vehicle_brand,
        "vehicleModel": b.vehicle_model,
        "manufacturingYear": b.manufacturing_year,
        "registrationPlate": b.registration_plate,
        "totalAmount": money(b.total_amount),
        "paymentMethod": b.payment_method,
        "status": b.status,
        "paymentStatus": b.payment_status,
        "createdAt": _iso(b.created_at),
        "cancelledAt": _iso(b.cancelled_at),
        "cancelReason": b.cancel_reason,
        "service": {"id": b.service.id, "name": b.service.name} if b.service else None,
        "slot": slot_json(slot) if slot else None,
        "timeStatus": None,
    }
    # only live bookings get a countdown / late hint
    if slot and b.status in ("pending", "confirmed"):
        cfg = current_app.config
        out["timeStatus"] = time_status(
            slot.date,
            slot.start_time,
            now or datetime.now(),
            countdown_minutes=cfg.get("COUNTDOWN_MINUTES", 30),
            late_grace_minutes=cfg.get("LATE_GRACE_MINUTES", 15),
        ).to_dict()
    return out


def review_json(r) -> dict:
    return {
        "id": r.id,
        "userId": r.user_id,
        "serviceId": r.service_id,
        "bookingId": r.booking_id,
        "staffId": r.staff_id,
        "rating": r.rating,
        "comment": r.comment,
        "photos": r.photos or [],
        "customerName": r.user.full_name if r.user else None,
        "createdAt": _iso(r.created_at),
    }


def reward_json(r) -> dict:
    return {
        "id": r.id,
        "name": r.name,
        "description": r.description,
        "pointsCost": r.points_cost,
        "discountPercentage": r.discount_percentage,
        "discountAmount": money(r.discount_amount) if r.discount_amount is not None else None,
        "tier": r.tier,
        "isActive": r.is_active,
    }


def loyalty_txn_json(t) -> dict:
    return {
        "id": t.id,
        "type": t.type,
        "pointsChange": t.points_change,
        "description": t.description,
        "bookingId": t.booking_id,
        "rewardId": t.reward_id,
        "createdAt": _iso(t.created_at),
    }


def leave_json(l) -> dict:
    return {
        "id": l.id,
        "staffId": l.staff_id,
        "leaveType": l.leave_type,
        "startDate": l.start_date.isoformat(),
        "endDate": l.end_date.isoformat(),
        "startTime": l.start_time,
        "endTime": l.end_time,
        "reason": l.reason,
        "status": l.status,
        "createdAt": _iso(l.created_at),
    }


def inventory_item_json(i) -> dict:
    return {
        "id": i.id,
        "categoryId": i.category_id,
        "name": i.name,
        "description": i.description,
        "sku": i.sku,
        "currentStock": i.current_stock,
        "minimumStock": i.minimum_stock,
        "maximumStock": i.maximum_stock,
        "unitPrice": money(i.unit_price),
        "supplier": i.supplier,
        "lastRestocked": _iso(i.last_restocked),
        "isActive": i.is_active,
        "isLowStock": i.current_stock <= i.minimum_stock,
    }


def inventory_txn_json(t) -> dict:
    return {
        "id": t.id,
        "itemId": t.item_id,
        "type": t.type,
        "quantity": t.quantity,
        "reason": t.reason,
        "notes": t.notes,
        "staffId": t.staff_id,
        "relatedBookingId": t.related_booking_id,
        "createdAt": _iso(t.created_at),
    }
