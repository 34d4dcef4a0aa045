from datetime import datetime, timedelta

from flask import Blueprint, jsonify, current_app, g

from models import db
from models.user import User, Role
from models.password_reset import PasswordResetToken
from security.password import hash_password, verify_password, new_reset_token, hash_reset_token
from security.rbac import CUSTOMER
from security.tokens import issue_token
from utils.audit import log_event
from utils.auth_context import login_required
from utils.emailer import send_password_reset
from utils.serializers import user_json
from utils.validation import email_value, json_body, text_value


auth_bp = Blueprint("auth", __name__, url_prefix="/api")

RESET_MESSAGE = "If an account exists for that email, a reset link has been sent."


def _is_valid_email(email: str) -> bool:
    return isinstance(email, str) and "@" in email and len(email) <= 255


def _password_error(password) -> str | None:
    min_len = current_app.config.get("PASSWORD_MIN_LEN", 6)
    if not isinstance(password, str) or len(password) < min_len:
        return f"Password must be at least {min_len} characters"
    return None


def _clean(value, max_len):
    if not isinstance(value, str):
        return None
    return value.strip()[:max_len] or None


@auth_bp.post("/auth/register")
def register():
    data = json_body()
    email = email_value(data)
    password = text_value(data, "password")

    errors = {}
    if not _is_valid_email(email):
        errors["email"] = "Invalid email"
    pw_error = _password_error(password)
    if pw_error:
        errors["password"] = pw_error
    if errors:
        return jsonify(error="Invalid data", errors=errors), 400

    if User.query.filter_by(email=email).first():
        log_event("REGISTER_FAIL_EMAIL_EXISTS", metadata={"email": email})
        return jsonify(error="Email already registered"), 409

    user = User(
        email=email,
        password_hash=hash_password(password),
        first_name=_clean(data.get("firstName"), 100),
        last_name=_clean(data.get("lastName"), 100),
        phone=_clean(data.get("phone"), 20),
        address=_clean(data.get("address"), 500),
    )
    db.session.add(user)
    db.session.flush()

    customer_role = Role.query.filter_by(name=CUSTOMER).first()
    if customer_role:
        user.roles.append(customer_role)

    db.session.commit()
    log_event("REGISTER_SUCCESS", user_id=user.id)

    return jsonify(user=user_json(user), token=issue_token(user)), 201


@auth_bp.post("/auth/login")
def login():
    data = json_body()
    email = email_value(data)
    password = text_value(data, "password")

    user = User.query.filter_by(email=email).first()
    if not user or not verify_password(password, user.password_hash):
        log_event("LOGIN_FAIL", user_id=user.id if user else None, metadata={"email": email})
        return jsonify(error="Invalid credentials"), 401

    log_event("LOGIN_SUCCESS", user_id=user.id)
    return jsonify(user=user_json(user), token=issue_token(user)), 200


@auth_bp.get("/auth/user")
@login_required
def me():
    return jsonify(user_json(g.user)), 200


@auth_bp.post("/auth/logout")
@login_required
def logout():
    # tokens are stateless; the client drops its copy
    log_event("LOGOUT", user_id=g.user.id)
    return jsonify(message="Logged out"), 200


@auth_bp.post("/auth/forgot-password")
def forgot_password():
    data = json_body()
    email = email_value(data)
    if not _is_valid_email(email):
        return jsonify(error="Invalid data", errors={"email": "Invalid email"}), 400

    user = User.query.filter_by(email=email).first()
    if user:
        raw, token_hash = new_reset_token()
        ttl = current_app.config.get("RESET_TOKEN_TTL_MINUTES", 60)
        db.session.add(PasswordResetToken(
            user_id=user.id,
            token_hash=token_hash,
            expires_at=datetime.utcnow() + timedelta(minutes=ttl),
        ))
        db.session.commit()

        sent, err = send_password_reset(user, raw)
        log_event("PASSWORD_RESET_REQUEST", user_id=user.id, metadata={"email_sent": sent, "error": err})

    # same answer whether or not the account exists
    return jsonify(message=RESET_MESSAGE), 200


@auth_bp.post("/auth/reset-password")
def reset_password():
    data = json_body()
    raw = text_value(data, "token")
    password = text_value(data, "password")

    pw_error = _password_error(password)
    if not raw or pw_error:
        errors = {}
        if not raw:
            errors["token"] = "Required"
        if pw_error:
            errors["password"] = pw_error
        return jsonify(error="Invalid data", errors=errors), 400

    row = PasswordResetToken.query.filter_by(token_hash=hash_reset_token(raw)).first()
    if not row or row.used or row.expires_at < datetime.utcnow():
        return jsonify(error="Invalid or expired reset token"), 400

    user = db.session.get(User, row.user_id)
    if not user:
        return jsonify(error="Invalid or expired reset token"), 400

    user.password_hash = hash_password(password)
    row.used = True
    db.session.commit()

    log_event("PASSWORD_RESET", user_id=user.id)
    return jsonify(message="Password has been reset"), 200
