from datetime import date

from flask import Blueprint, request, jsonify, current_app, g

from domain import slots as slot_service
from domain.errors import NotFound
from models import db
from models.service import Service
from security.rbac import require_roles, ADMIN
from utils.audit import log_event
from utils.serializers import slot_json
from utils.validation import json_body, parse_date, parse_int, parse_time, raise_if

slots_bp = Blueprint("slots", __name__, url_prefix="/api/slots")


def _filters():
    errors = {}
    service_id = None
    day = None
    if request.args.get("serviceId"):
        service_id = parse_int(request.args.get("serviceId"), "serviceId", errors, minimum=1)
    if request.args.get("date"):
        day = parse_date(request.args.get("date"), "date", errors)
    raise_if(errors)
    return service_id, day


@slots_bp.get("")
def list_slots():
    service_id, day = _filters()
    rows = slot_service.list_available_slots(service_id=service_id, day=day)
    return jsonify([slot_json(s) for s in rows]), 200


@slots_bp.get("/availability/<int:service_id>")
def availability(service_id: int):
    if not db.session.get(Service, service_id):
        raise NotFound("Service not found")
    errors = {}
    day = parse_date(request.args.get("date"), "date", errors) if request.args.get("date") else None
    raise_if(errors)
    rows = slot_service.list_available_slots(service_id=service_id, day=day)
    return jsonify([slot_json(s) for s in rows]), 200


@slots_bp.get("/all")
@require_roles(ADMIN)
def list_all():
    service_id, day = _filters()
    rows = slot_service.list_all_slots(service_id=service_id, day=day)
    return jsonify([slot_json(s) for s in rows]), 200


@slots_bp.post("")
@require_roles(ADMIN)
def create_slot():
    data = json_body()
    errors = {}
    service_id = parse_int(data.get("serviceId"), "serviceId", errors, minimum=1)
    day = parse_date(data.get("date"), "date", errors)
    start = parse_time(data.get("startTime"), "startTime", errors)
    end = parse_time(data.get("endTime"), "endTime", errors)
    raise_if(errors)

    slot = slot_service.create_slot(service_id, day, start, end)
    log_event("SLOT_CREATE", user_id=g.user.id, entity="slot", entity_id=slot.id)
    return jsonify(slot_json(slot)), 201


@slots_bp.post("/bulk")
@require_roles(ADMIN)
def generate_slots():
    data = json_body()
    cfg = current_app.config
    errors = {}
    service_id = parse_int(data.get("serviceId"), "serviceId", errors, minimum=1)
    start_date = parse_date(data["startDate"], "startDate", errors) if data.get("startDate") else date.today()
    days = parse_int(data.get("days", cfg.get("SLOT_DAYS_AHEAD", 30)), "days", errors, minimum=1, maximum=366)
    opening = parse_time(data.get("openingTime", cfg.get("OPENING_TIME", "08:00")), "openingTime", errors)
    closing = parse_time(data.get("closingTime", cfg.get("CLOSING_TIME", "17:00")), "closingTime", errors)
    raise_if(errors)

    service = db.session.get(Service, service_id)
    if not service:
        raise NotFound("Service not found")

    created = slot_service.generate_slots(service, start_date, days, opening, closing)
    log_event("SLOT_BULK_CREATE", user_id=g.user.id, entity="service", entity_id=service.id,
              metadata={"created": len(created), "start_date": start_date, "days": days})
    return jsonify(created=len(created), slots=[slot_json(s) for s in created]), 201


@slots_bp.delete("/<int:slot_id>")
@require_roles(ADMIN)
def delete_slot(slot_id: int):
    slot_service.delete_slot(slot_id)
    log_event("SLOT_DELETE", user_id=g.user.id, entity="slot", entity_id=slot_id)
    return jsonify(message="Slot deleted"), 200
