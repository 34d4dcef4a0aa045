import io
from datetime import datetime

from flask import Blueprint, jsonify, g, request, current_app, send_file

from domain import reporting
from domain.errors import Forbidden
from models import db
from models.booking import Booking
from models.inventory import InventoryItem
from models.user import User, Role
from security.password import hash_password
from security.rbac import require_roles, ADMIN, CUSTOMER
from security.tokens import issue_token
from utils.audit import log_event
from utils.serializers import inventory_item_json, user_json
from utils.validation import email_value, json_body, parse_date, raise_if, text_value

admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")


def _admin_count() -> int:
    return User.query.join(User.roles).filter(Role.name == ADMIN).count()


def _role_names(raw) -> list[str] | None:
    if isinstance(raw, str):
        raw = [raw]
    if not isinstance(raw, list):
        return None
    names = [r.strip().upper() for r in raw if isinstance(r, str) and r.strip()]
    return names or None


def _attachment(payload: bytes, mimetype: str, filename: str):
    return send_file(io.BytesIO(payload), mimetype=mimetype, as_attachment=True, download_name=filename)


# ---------- first-run setup ----------
@admin_bp.get("/setup/status")
def setup_status():
    return jsonify(isInitialized=_admin_count() > 0), 200


@admin_bp.post("/setup")
def setup():
    if _admin_count() > 0:
        return jsonify(error="Admin already initialized"), 409

    data = json_body()
    email = email_value(data)
    password = text_value(data, "password")
    min_len = current_app.config.get("PASSWORD_MIN_LEN", 6)

    errors = {}
    if "@" not in email or len(email) > 255:
        errors["email"] = "Invalid email"
    if len(password) < min_len:
        errors["password"] = f"Password must be at least {min_len} characters"
    if errors:
        return jsonify(error="Invalid data", errors=errors), 400
    if User.query.filter_by(email=email).first():
        return jsonify(error="Email already registered"), 409

    user = User(
        email=email,
        password_hash=hash_password(password),
        first_name=text_value(data, "firstName").strip()[:100] or "Admin",
        last_name=text_value(data, "lastName").strip()[:100] or "User",
    )
    user.roles = Role.query.filter(Role.name.in_([ADMIN, CUSTOMER])).all()
    db.session.add(user)
    db.session.commit()

    log_event("ADMIN_SETUP", user_id=user.id, entity="user", entity_id=user.id)
    return jsonify(user=user_json(user), token=issue_token(user)), 201


# ---------- users ----------
@admin_bp.get("/users")
@require_roles(ADMIN)
def list_users():
    role_filter = (request.args.get("role") or "").strip().upper()
    q = User.query
    if role_filter:
        q = q.join(User.roles).filter(Role.name == role_filter)

    users = q.order_by(User.created_at.desc()).limit(200).all()
    return jsonify([user_json(u) for u in users]), 200


@admin_bp.post("/users")
@require_roles(ADMIN)
def create_user():
    data = json_body()
    email = email_value(data)
    password = text_value(data, "password")
    role_names = _role_names(data.get("roles") or data.get("role") or CUSTOMER)
    min_len = current_app.config.get("PASSWORD_MIN_LEN", 6)

    errors = {}
    if "@" not in email or len(email) > 255:
        errors["email"] = "Invalid email"
    if len(password) < min_len:
        errors["password"] = f"Password must be at least {min_len} characters"
    if not role_names:
        errors["roles"] = "Must name at least one role"
    if errors:
        return jsonify(error="Invalid data", errors=errors), 400

    roles = Role.query.filter(Role.name.in_(set(role_names))).all()
    missing = set(role_names) - {r.name for r in roles}
    if missing:
        return jsonify(error="Unknown role(s)", missing=sorted(missing)), 400
    if User.query.filter_by(email=email).first():
        return jsonify(error="Email already registered"), 409

    user = User(
        email=email,
        password_hash=hash_password(password),
        first_name=text_value(data, "firstName").strip()[:100] or None,
        last_name=text_value(data, "lastName").strip()[:100] or None,
        phone=text_value(data, "phone").strip()[:20] or None,
    )
    user.roles = roles
    db.session.add(user)
    db.session.commit()

    log_event("ADMIN_CREATE_USER", user_id=g.user.id, entity="user", entity_id=user.id, metadata={"roles": role_names})
    return jsonify(user_json(user)), 201


@admin_bp.put("/users/<int:user_id>/role")
@require_roles(ADMIN)
def update_user_roles(user_id: int):
    data = json_body()
    role_names = _role_names(data.get("roles") or data.get("role"))
    if not role_names:
        return jsonify(error="roles must be a non-empty list"), 400

    user = db.session.get(User, user_id)
    if not user:
        return jsonify(error="User not found"), 404

    available_roles = Role.query.filter(Role.name.in_(set(role_names))).all()
    missing = set(role_names) - {r.name for r in available_roles}
    if missing:
        return jsonify(error="Unknown role(s)", missing=sorted(missing)), 400

    if user.id == g.user.id and ADMIN not in role_names:
        raise Forbidden("Cannot remove your own ADMIN role")

    if ADMIN not in role_names and user.has_role(ADMIN) and _admin_count() <= 1:
        raise Forbidden("Cannot remove the last ADMIN")

    user.roles = available_roles
    db.session.commit()

    log_event("ADMIN_UPDATE_ROLES", user_id=g.user.id, entity="user", entity_id=user.id, metadata={"roles": role_names})
    return jsonify(user_json(user)), 200


@admin_bp.delete("/users/<int:user_id>")
@require_roles(ADMIN)
def delete_user(user_id: int):
    user = db.session.get(User, user_id)
    if not user:
        return jsonify(error="User not found"), 404
    if user.id == g.user.id:
        raise Forbidden("Cannot delete your own account")
    if Booking.query.filter_by(user_id=user.id).first():
        return jsonify(error="User has bookings and cannot be deleted"), 409

    user.roles = []
    db.session.delete(user)
    db.session.commit()

    log_event("ADMIN_DELETE_USER", user_id=g.user.id, entity="user", entity_id=user_id)
    return jsonify(message="User deleted"), 200


# ---------- reporting ----------
@admin_bp.get("/analytics")
@require_roles(ADMIN)
def analytics():
    return jsonify(reporting.analytics()), 200


@admin_bp.get("/customer-segmentation")
@require_roles(ADMIN)
def customer_segmentation():
    return jsonify(reporting.customer_segmentation()), 200


@admin_bp.get("/customers")
@require_roles(ADMIN)
def customer_summaries():
    return jsonify(reporting.customer_summaries()), 200


@admin_bp.get("/sales-export")
@require_roles(ADMIN)
def sales_export():
    errors = {}
    start = parse_date(request.args["startDate"], "startDate", errors) if request.args.get("startDate") else None
    end = parse_date(request.args["endDate"], "endDate", errors) if request.args.get("endDate") else None
    raise_if(errors)

    data = reporting.sales_data(start, end)
    fmt = (request.args.get("format") or "json").lower()
    stamp = datetime.utcnow().date().isoformat()

    log_event("SALES_EXPORT", user_id=g.user.id, metadata={"format": fmt, "rows": len(data["salesData"])})

    if fmt == "excel":
        return _attachment(reporting.render_sales_xlsx(data), reporting.XLSX_MIMETYPE, f"sales-report-{stamp}.xlsx")
    if fmt == "pdf":
        pdf = reporting.render_sales_pdf(
            data,
            business_name=current_app.config.get("BUSINESS_NAME", "AquaShine"),
            row_limit=current_app.config.get("EXPORT_PDF_ROW_LIMIT", 20),
        )
        return _attachment(pdf, reporting.PDF_MIMETYPE, f"sales-report-{stamp}.pdf")
    return jsonify(data), 200


@admin_bp.post("/export-report")
@require_roles(ADMIN)
def export_report():
    data = json_body()
    report_type = data.get("type")
    if report_type not in ("pdf", "excel"):
        return jsonify(error="Invalid export type"), 400

    stats = reporting.analytics()
    log_event("ANALYTICS_EXPORT", user_id=g.user.id, metadata={"type": report_type})

    if report_type == "pdf":
        pdf = reporting.render_analytics_pdf(stats, business_name=current_app.config.get("BUSINESS_NAME", "AquaShine"))
        return _attachment(pdf, reporting.PDF_MIMETYPE, "analytics-report.pdf")
    return _attachment(reporting.render_analytics_xlsx(stats), reporting.XLSX_MIMETYPE, "analytics-report.xlsx")


@admin_bp.get("/inventory/low-stock")
@require_roles(ADMIN)
def low_stock():
    rows = (
        InventoryItem.query
        .filter(InventoryItem.is_active.is_(True), InventoryItem.current_stock <= InventoryItem.minimum_stock)
        .order_by(InventoryItem.current_stock.asc())
        .all()
    )
    return jsonify([inventory_item_json(i) for i in rows]), 200
