from functools import wraps
from flask import g, jsonify, request

from models import db
from models.user import User
from security.tokens import InvalidToken, bearer_token, decode_token

def load_current_user():
    g.user = None
    g.auth_error = None

    token = bearer_token(request.headers.get("Authorization"))
    if not token:
        return

    try:
        payload = decode_token(token)
        user = db.session.get(User, int(payload["sub"]))
    except (InvalidToken, ValueError):
        g.auth_error = "invalid"
        return

    if user is None:
        g.auth_error = "invalid"
        return
    g.user = user

def login_required(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        if getattr(g, "user", None) is None:
            if getattr(g, "auth_error", None):
                return jsonify(error="Invalid token"), 403
            return jsonify(error="Access token required"), 401
        return fn(*args, **kwargs)
    return wrapper
