from datetime import date

import click
from flask import Flask, jsonify
from flask_migrate import Migrate
from werkzeug.exceptions import HTTPException

from config import Config
from domain.errors import DomainError
from models import db
from routes import ALL_BLUEPRINTS
from utils.seed import seed_roles
from utils.auth_context import load_current_user


def create_app(config_object=Config):
    app = Flask(__name__)
    app.config.from_object(config_object)

    # Register routes
    for bp in ALL_BLUEPRINTS:
        app.register_blueprint(bp)

    # Database init
    db.init_app(app)

    # Migrations
    Migrate(app, db)

    with app.app_context():
        if app.config.get("CREATE_TABLES_ON_STARTUP"):
            db.create_all()
        # Seed default roles at startup (safe & idempotent)
        seed_roles()

    @app.before_request
    def _load_user():
        load_current_user()

    @app.after_request
    def add_security_headers(resp):
        resp.headers["X-Content-Type-Options"] = "nosniff"
        resp.headers["X-Frame-Options"] = "DENY"
        resp.headers["Referrer-Policy"] = "no-referrer"
        resp.headers["Permissions-Policy"] = "geolocation=(), microphone=(), camera=()"
        resp.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none';"
        return resp

    register_error_handlers(app)
    register_cli(app)

    return app

#-------------------------

def register_error_handlers(app):
    @app.errorhandler(DomainError)
    def _domain_error(e):
        db.session.rollback()
        if e.status_code >= 500:
            app.logger.error("%s: %s", type(e).__name__, e.message)
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(HTTPException)
    def _http_error(e):
        return jsonify(error=e.description), e.code

    @app.errorhandler(Exception)
    def _unhandled(e):
        db.session.rollback()
        app.logger.exception("Unhandled error")
        return jsonify(error="Internal server error"), 500

#-------------------------
from domain import bookings, slots as slot_service
from models.user import User, Role
from models.service import Service
from utils.audit import log_event
from utils.seed import seed_catalogue
from utils.validation import parse_time, raise_if


def _business_hours(app, opening, closing):
    errors = {}
    opening = parse_time(opening or app.config.get("OPENING_TIME", "08:00"), "opening", errors)
    closing = parse_time(closing or app.config.get("CLOSING_TIME", "17:00"), "closing", errors)
    raise_if(errors)
    return opening, closing


def register_cli(app):
    @app.cli.command("make-admin")
    @click.argument("email")
    def make_admin(email):
        """Promote a user to ADMIN by email (bootstrap)."""
        user = User.query.filter_by(email=email.strip().lower()).first()
        if not user:
            print("User not found")
            return

        admin_role = Role.query.filter_by(name="ADMIN").first()
        if not admin_role:
            admin_role = Role(name="ADMIN")
            db.session.add(admin_role)
            db.session.commit()

        if admin_role not in user.roles:
            user.roles.append(admin_role)
            db.session.commit()

        log_event("CLI_MAKE_ADMIN", entity="user", entity_id=user.id)
        print(f"{user.email} promoted to ADMIN")

    @app.cli.command("seed-demo")
    @click.option("--days", type=int, default=None, help="Days of slots to generate (default SLOT_DAYS_AHEAD).")
    def seed_demo(days):
        """Insert demo services and rewards, then generate slots for each service."""
        seed_roles()
        created = seed_catalogue()
        opening, closing = _business_hours(app, None, None)
        days = days or app.config.get("SLOT_DAYS_AHEAD", 30)

        total = 0
        for service in Service.query.filter_by(is_active=True).all():
            total += len(slot_service.generate_slots(service, date.today(), days, opening, closing))

        print(f"Created {len(created)} services and {total} slots")

    @app.cli.command("generate-slots")
    @click.argument("service_id", type=int)
    @click.option("--start", "start", default=None, help="First date (YYYY-MM-DD), default today.")
    @click.option("--days", type=int, default=None)
    @click.option("--opening", default=None, help="HH:MM")
    @click.option("--closing", default=None, help="HH:MM")
    def generate_slots(service_id, start, days, opening, closing):
        """Generate back-to-back slots for one service."""
        service = db.session.get(Service, service_id)
        if not service:
            print("Service not found")
            return

        start_date = date.fromisoformat(start) if start else date.today()
        opening, closing = _business_hours(app, opening, closing)
        created = slot_service.generate_slots(
            service, start_date, days or app.config.get("SLOT_DAYS_AHEAD", 30), opening, closing
        )
        log_event("SLOT_BULK_CREATE", entity="service", entity_id=service.id, metadata={"created": len(created)})
        print(f"Created {len(created)} slots for {service.name}")

    @app.cli.command("sweep-late-bookings")
    def sweep_late_bookings():
        """Cancel no-show bookings and free their slots (run from cron)."""
        cancelled = bookings.sweep_overdue_bookings()
        for booking_id in cancelled:
            log_event("BOOKING_AUTO_CANCEL", entity="booking", entity_id=booking_id,
                      metadata={"reason": bookings.AUTO_CANCEL_REASON})
        print(f"Cancelled {len(cancelled)} overdue bookings")

#-------------------------


if __name__ == "__main__":
    app = create_app()
    # Run locally
    app.run(host="127.0.0.1", port=5002)
