from datetime import date, datetime

from flask import Blueprint, jsonify, g
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from models import db
from models.review import Review
from models.staff import Staff, StaffLeave
from models.user import User, Role
from security.password import hash_password, temporary_password
from security.rbac import require_roles, ADMIN, STAFF
from utils.audit import log_event
from utils.serializers import leave_json
from utils.validation import json_body, optional_text, parse_date, parse_money, raise_if, required_text

staff_bp = Blueprint("staff", __name__, url_prefix="/api/staff")

DEFAULT_RATING = 5.0


def _ratings() -> dict:
    rows = (
        db.session.query(Review.staff_id, func.avg(Review.rating))
        .filter(Review.staff_id.isnot(None))
        .group_by(Review.staff_id)
        .all()
    )
    return {staff_id: round(float(avg), 1) for staff_id, avg in rows}


def _active_leave(staff_id: int):
    return StaffLeave.query.filter_by(staff_id=staff_id, status="active").first()


def _status(staff: Staff) -> str:
    if not staff.is_active:
        return "inactive"
    if _active_leave(staff.id):
        return "on leave"
    return "active"


def _staff_json(staff: Staff, ratings: dict) -> dict:
    user = staff.user
    return {
        "id": staff.id,
        "userId": staff.user_id,
        "name": user.full_name if user else None,
        "email": user.email if user else None,
        "phone": user.phone if user else None,
        "employeeId": staff.employee_id,
        "position": staff.position,
        "department": staff.department,
        "hireDate": staff.hire_date.isoformat(),
        "isActive": staff.is_active,
        "status": _status(staff),
        "rating": ratings.get(staff.id, DEFAULT_RATING),
        "servicesCompleted": staff.total_services_completed,
    }


def _split_name(name: str):
    first, _, last = name.strip().partition(" ")
    return first, last.strip() or None


def _get_staff(staff_id: int):
    staff = db.session.get(Staff, staff_id)
    if not staff:
        return None, (jsonify(error="Staff member not found"), 404)
    return staff, None


@staff_bp.get("")
@require_roles(ADMIN)
def list_staff():
    ratings = _ratings()
    rows = Staff.query.order_by(Staff.created_at.desc()).all()
    return jsonify([_staff_json(s, ratings) for s in rows]), 200


@staff_bp.get("/public")
def public_staff():
    ratings = _ratings()
    rows = Staff.query.filter_by(is_active=True).order_by(Staff.id.asc()).all()
    return jsonify([
        {
            "id": s.id,
            "name": s.user.full_name if s.user else None,
            "position": s.position,
            "rating": ratings.get(s.id, DEFAULT_RATING),
        }
        for s in rows
        if not _active_leave(s.id)
    ]), 200


@staff_bp.post("")
@require_roles(ADMIN)
def create_staff():
    data = json_body()
    errors = {}
    name = required_text(data, "name", errors, 200)
    position = required_text(data, "position", errors, 100)
    email = (required_text(data, "email", errors, 255) or "").lower()
    phone = required_text(data, "phone", errors, 20)
    department = optional_text(data, "department", errors, 50) or "Operations"
    employee_id = optional_text(data, "employeeId", errors, 50)
    salary = parse_money(data["salary"], "salary", errors) if data.get("salary") is not None else None
    if email and "@" not in email:
        errors["email"] = "Invalid email"
    raise_if(errors)

    if User.query.filter_by(email=email).first():
        return jsonify(error="Email already registered"), 409

    first, last = _split_name(name)
    user = User(email=email, password_hash=hash_password(temporary_password()),
                first_name=first, last_name=last, phone=phone)
    user.roles = Role.query.filter_by(name=STAFF).all()
    db.session.add(user)
    db.session.flush()

    staff = Staff(
        user_id=user.id,
        employee_id=employee_id or f"EMP{user.id:05d}",
        position=position,
        department=department,
        salary=salary,
        hire_date=date.today(),
        is_active=True,
    )
    db.session.add(staff)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return jsonify(error="Employee ID already exists"), 409

    log_event("STAFF_CREATE", user_id=g.user.id, entity="staff", entity_id=staff.id)
    return jsonify(_staff_json(staff, {})), 201


@staff_bp.put("/<int:staff_id>")
@require_roles(ADMIN)
def update_staff(staff_id: int):
    staff, failure = _get_staff(staff_id)
    if failure:
        return failure

    data = json_body()
    errors = {}
    user = staff.user

    if "position" in data:
        staff.position = required_text(data, "position", errors, 100)
    if "department" in data:
        staff.department = required_text(data, "department", errors, 50)
    if "salary" in data:
        staff.salary = parse_money(data.get("salary"), "salary", errors)
    if "isActive" in data:
        staff.is_active = bool(data.get("isActive"))
    if "name" in data:
        name = required_text(data, "name", errors, 200)
        if name:
            user.first_name, user.last_name = _split_name(name)
    if "phone" in data:
        user.phone = optional_text(data, "phone", errors, 20)
    if "email" in data:
        email = (required_text(data, "email", errors, 255) or "").lower()
        if email and email != user.email:
            if User.query.filter_by(email=email).first():
                errors["email"] = "Email already registered"
            else:
                user.email = email
    raise_if(errors)

    db.session.commit()
    log_event("STAFF_UPDATE", user_id=g.user.id, entity="staff", entity_id=staff.id, metadata={"fields": sorted(data)})
    return jsonify(_staff_json(staff, _ratings())), 200


@staff_bp.delete("/<int:staff_id>")
@require_roles(ADMIN)
def deactivate_staff(staff_id: int):
    staff, failure = _get_staff(staff_id)
    if failure:
        return failure

    # reviews and inventory history keep pointing at the row
    staff.is_active = False
    db.session.commit()

    log_event("STAFF_DEACTIVATE", user_id=g.user.id, entity="staff", entity_id=staff.id)
    return jsonify(message="Staff member deactivated"), 200


@staff_bp.post("/<int:staff_id>/leave")
@require_roles(ADMIN)
def schedule_leave(staff_id: int):
    staff, failure = _get_staff(staff_id)
    if failure:
        return failure

    data = json_body()
    errors = {}
    leave_type = required_text(data, "leaveType", errors, 50)
    start = parse_date(data.get("startDate"), "startDate", errors)
    end = parse_date(data.get("endDate"), "endDate", errors)
    reason = optional_text(data, "reason", errors, 1000)
    start_time = optional_text(data, "startTime", errors, 10)
    end_time = optional_text(data, "endTime", errors, 10)
    if start and end and end < start:
        errors["endDate"] = "Must not be before startDate"
    raise_if(errors)

    if _active_leave(staff.id):
        return jsonify(error="Staff member is already on leave"), 409

    leave = StaffLeave(
        staff_id=staff.id,
        leave_type=leave_type,
        start_date=start,
        end_date=end,
        start_time=start_time,
        end_time=end_time,
        reason=reason,
        status="active",
    )
    db.session.add(leave)
    db.session.commit()

    log_event("STAFF_LEAVE", user_id=g.user.id, entity="staff", entity_id=staff.id, metadata={"leave_id": leave.id})
    return jsonify(leave_json(leave)), 201


@staff_bp.put("/<int:staff_id>/leave/<int:leave_id>/return")
@require_roles(ADMIN)
def mark_return(staff_id: int, leave_id: int):
    leave = db.session.get(StaffLeave, leave_id)
    if not leave or leave.staff_id != staff_id:
        return jsonify(error="Leave record not found"), 404
    if leave.status != "active":
        return jsonify(error="Leave already completed"), 409

    leave.status = "completed"
    leave.updated_at = datetime.utcnow()
    db.session.commit()

    log_event("STAFF_RETURN", user_id=g.user.id, entity="staff", entity_id=staff_id, metadata={"leave_id": leave.id})
    return jsonify(leave_json(leave)), 200


@staff_bp.get("/<int:staff_id>/leave-history")
@require_roles(ADMIN)
def leave_history(staff_id: int):
    staff, failure = _get_staff(staff_id)
    if failure:
        return failure
    rows = (
        StaffLeave.query
        .filter_by(staff_id=staff.id)
        .order_by(StaffLeave.start_date.desc(), StaffLeave.id.desc())
        .all()
    )
    return jsonify([leave_json(l) for l in rows]), 200
