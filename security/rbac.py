from functools import wraps
from flask import g, jsonify

ADMIN = "ADMIN"
STAFF = "STAFF"
CUSTOMER = "CUSTOMER"

def require_roles(*role_names: str):
    """
    Usage: @require_roles("ADMIN")
    Missing token -> 401, bad token or missing role -> 403.
    """
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            user = getattr(g, "user", None)
            if user is None:
                if getattr(g, "auth_error", None):
                    return jsonify(error="Invalid token"), 403
                return jsonify(error="Access token required"), 401

            user_roles = set(user.role_names)
            if not user_roles.intersection(set(role_names)):
                return jsonify(error="Forbidden"), 403

            return fn(*args, **kwargs)
        return wrapper
    return decorator
