from decimal import Decimal

from sqlalchemy import inspect

from models import db
from models.user import Role
from models.service import Service
from models.loyalty import LoyaltyReward

DEFAULT_ROLES = ["CUSTOMER", "STAFF", "ADMIN"]

DEMO_SERVICES = [
    {
        "name": "Express Wash",
        "description": "Exterior rinse, foam wash and hand dry.",
        "price": Decimal("80.00"),
        "duration": 15,
        "category": "basic",
        "features": ["Exterior wash", "Hand dry"],
    },
    {
        "name": "Full Valet",
        "description": "Exterior wash plus interior vacuum, dash and windows.",
        "price": Decimal("150.00"),
        "duration": 30,
        "category": "premium",
        "features": ["Exterior wash", "Interior vacuum", "Dashboard polish", "Windows"],
    },
    {
        "name": "Deluxe Detail",
        "description": "Full valet, machine polish, wax and tyre shine.",
        "price": Decimal("450.00"),
        "duration": 90,
        "category": "deluxe",
        "features": ["Full valet", "Machine polish", "Wax", "Tyre shine"],
    },
]

DEMO_REWARDS = [
    {"name": "R20 off any wash", "points_cost": 100, "discount_amount": Decimal("20.00"), "tier": "bronze"},
    {"name": "Free Express Wash", "points_cost": 250, "discount_percentage": 100, "tier": "silver"},
    {"name": "20% off Deluxe Detail", "points_cost": 500, "discount_percentage": 20, "tier": "gold"},
]

def seed_roles():
    # `flask db upgrade` boots the app before the tables exist
    if not inspect(db.engine).has_table(Role.__tablename__):
        return
    existing = {r.name for r in Role.query.all()}
    for name in DEFAULT_ROLES:
        if name not in existing:
            db.session.add(Role(name=name))
    db.session.commit()

def seed_catalogue():
    """Insert demo services and rewards once. Returns the services that were created."""
    created = []
    for data in DEMO_SERVICES:
        if Service.query.filter_by(name=data["name"]).first():
            continue
        service = Service(**data)
        db.session.add(service)
        created.append(service)

    for data in DEMO_REWARDS:
        if LoyaltyReward.query.filter_by(name=data["name"]).first():
            continue
        db.session.add(LoyaltyReward(description=data["name"], **data))

    db.session.commit()
    return created

