from .health import health_bp
from .auth import auth_bp
from .services import services_bp
from .slots import slots_bp
from .booking import booking_bp
from .payments import payments_bp
from .stripe_webhook import webhook_bp
from .reviews import reviews_bp
from .loyalty import loyalty_bp
from .admin import admin_bp
from .staff import staff_bp
from .inventory import inventory_bp
from .audit_logs import audit_bp

ALL_BLUEPRINTS = [
    health_bp,
    auth_bp,
    services_bp,
    slots_bp,
    booking_bp,
    payments_bp,
    webhook_bp,
    reviews_bp,
    loyalty_bp,
    admin_bp,
    staff_bp,
    inventory_bp,
    audit_bp,
]
