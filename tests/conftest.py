"""Shared fixtures: an in-memory app, users with tokens, and a service with bookable slots."""

from datetime import date, time, timedelta
from decimal import Decimal

import pytest

from app import create_app
from config import TestConfig
from models import db
from models.service import Service
from models.slot import Slot
from models.user import User, Role
from security.password import hash_password
from security.tokens import issue_token


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


def make_user(email, *role_names, password="secret123", first_name="Test", last_name="User"):
    user = User(
        email=email,
        password_hash=hash_password(password),
        first_name=first_name,
        last_name=last_name,
    )
    user.roles = Role.query.filter(Role.name.in_(role_names)).all()
    db.session.add(user)
    db.session.commit()
    return user


def auth_headers(user):
    return {"Authorization": f"Bearer {issue_token(user)}"}


@pytest.fixture
def customer(app):
    return make_user("thandi@example.com", "CUSTOMER", first_name="Thandi", last_name="Mokoena")


@pytest.fixture
def other_customer(app):
    return make_user("sipho@example.com", "CUSTOMER", first_name="Sipho", last_name="Dlamini")


@pytest.fixture
def admin(app):
    return make_user("admin@example.com", "ADMIN", "CUSTOMER", first_name="Ada", last_name="Admin")


@pytest.fixture
def customer_headers(customer):
    return auth_headers(customer)


@pytest.fixture
def admin_headers(admin):
    return auth_headers(admin)


@pytest.fixture
def slot_day():
    return date.today() + timedelta(days=3)


@pytest.fixture
def service(app):
    svc = Service(
        name="Full Valet",
        description="Exterior wash plus interior vacuum.",
        price=Decimal("150.00"),
        duration=30,
        category="premium",
        features=["Exterior wash", "Interior vacuum"],
    )
    db.session.add(svc)
    db.session.commit()
    return svc


@pytest.fixture
def slots(service, slot_day):
    rows = [
        Slot(service_id=service.id, date=slot_day, start_time=time(9, 0), end_time=time(9, 30)),
        Slot(service_id=service.id, date=slot_day, start_time=time(9, 30), end_time=time(10, 0)),
        Slot(service_id=service.id, date=slot_day, start_time=time(10, 0), end_time=time(10, 30)),
    ]
    db.session.add_all(rows)
    db.session.commit()
    return rows


def booking_payload(service, slot, **overrides):
    payload = {
        "serviceId": service.id,
        "slotId": slot.id,
        "vehicleType": "sedan",
        "vehicleBrand": "Toyota",
        "vehicleModel": "Corolla",
        "manufacturingYear": 2019,
        "registrationPlate": "ca 123-456",
    }
    payload.update(overrides)
    return payload


def reload(model, pk):
    """Drop cached state so assertions see what the database holds."""
    db.session.expire_all()
    return db.session.get(model, pk)
