from flask import Blueprint, jsonify, g

from domain.errors import DomainError
from domain import slots as slot_service
from models import db
from models.booking import Booking
from models.service import Service
from models.slot import Slot
from security.rbac import require_roles, ADMIN
from utils.audit import log_event
from utils.serializers import service_json, slot_json
from utils.validation import json_body, parse_date, parse_int, parse_money, parse_time, optional_text, required_text, raise_if

services_bp = Blueprint("services", __name__, url_prefix="/api/services")

CATEGORIES = ("basic", "premium", "deluxe")


def _apply_fields(service: Service, data: dict, partial: bool):
    errors = {}

    if not partial or "name" in data:
        service.name = required_text(data, "name", errors, 100)
    if not partial or "price" in data:
        service.price = parse_money(data.get("price"), "price", errors)
    if not partial or "duration" in data:
        service.duration = parse_int(data.get("duration"), "duration", errors, minimum=1, maximum=24 * 60)
    if "description" in data:
        service.description = optional_text(data, "description", errors, 2000) or ""
    if "category" in data:
        if data.get("category") not in CATEGORIES:
            errors["category"] = f"Must be one of: {', '.join(CATEGORIES)}"
        else:
            service.category = data["category"]
    if "features" in data:
        features = data.get("features")
        if not isinstance(features, list) or not all(isinstance(f, str) for f in features):
            errors["features"] = "Must be a list of strings"
        else:
            service.features = features
    if "isActive" in data:
        service.is_active = bool(data.get("isActive"))

    raise_if(errors)


@services_bp.get("")
def list_services():
    rows = Service.query.filter_by(is_active=True).order_by(Service.price.asc()).all()
    return jsonify([service_json(s) for s in rows]), 200


@services_bp.get("/<int:service_id>")
def get_service(service_id: int):
    service = db.session.get(Service, service_id)
    if not service:
        return jsonify(error="Service not found"), 404
    return jsonify(service_json(service)), 200


@services_bp.post("")
@require_roles(ADMIN)
def create_service():
    data = json_body()
    service = Service()
    _apply_fields(service, data, partial=False)
    db.session.add(service)
    db.session.commit()

    created, skipped = [], []
    for idx, raw in enumerate(data.get("slots") or []):
        errors = {}
        raw = raw if isinstance(raw, dict) else {}
        day = parse_date(raw.get("date"), "date", errors)
        start = parse_time(raw.get("startTime"), "startTime", errors)
        end = parse_time(raw.get("endTime"), "endTime", errors)
        if errors:
            skipped.append({"index": idx, "errors": errors})
            continue
        try:
            created.append(slot_service.create_slot(service.id, day, start, end))
        except DomainError as e:
            skipped.append({"index": idx, "error": e.message, "errors": e.errors})

    log_event("SERVICE_CREATE", user_id=g.user.id, entity="service", entity_id=service.id,
              metadata={"slots_created": len(created), "slots_skipped": len(skipped)})

    body = service_json(service)
    body["slots"] = [slot_json(s) for s in created]
    body["skippedSlots"] = skipped
    return jsonify(body), 201


@services_bp.put("/<int:service_id>")
@require_roles(ADMIN)
def update_service(service_id: int):
    service = db.session.get(Service, service_id)
    if not service:
        return jsonify(error="Service not found"), 404

    data = json_body()
    _apply_fields(service, data, partial=True)
    db.session.commit()

    log_event("SERVICE_UPDATE", user_id=g.user.id, entity="service", entity_id=service.id, metadata={"fields": sorted(data)})
    return jsonify(service_json(service)), 200


@services_bp.delete("/<int:service_id>")
@require_roles(ADMIN)
def delete_service(service_id: int):
    service = db.session.get(Service, service_id)
    if not service:
        return jsonify(error="Service not found"), 404

    if Booking.query.filter_by(service_id=service.id).first():
        return jsonify(error="Service has bookings; deactivate it instead"), 409

    Slot.query.filter_by(service_id=service.id).delete(synchronize_session=False)
    db.session.delete(service)
    db.session.commit()

    log_event("SERVICE_DELETE", user_id=g.user.id, entity="service", entity_id=service_id)
    return jsonify(message="Service deleted"), 200
