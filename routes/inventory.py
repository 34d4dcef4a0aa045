from datetime import datetime

from flask import Blueprint, request, jsonify, g
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from models import db
from models.inventory import InventoryCategory, InventoryItem, InventoryTransaction
from models.staff import Staff
from security.rbac import require_roles, ADMIN
from utils.audit import log_event
from utils.serializers import inventory_item_json, inventory_txn_json
from utils.validation import json_body, optional_text, parse_int, parse_money, raise_if, required_text

inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")

TXN_TYPES = ("in", "out", "adjustment")


@inventory_bp.get("/categories")
@require_roles(ADMIN)
def list_categories():
    rows = InventoryCategory.query.order_by(InventoryCategory.name.asc()).all()
    return jsonify([{"id": c.id, "name": c.name, "description": c.description} for c in rows]), 200


@inventory_bp.post("/categories")
@require_roles(ADMIN)
def create_category():
    data = json_body()
    errors = {}
    name = required_text(data, "name", errors, 100)
    description = optional_text(data, "description", errors, 1000)
    raise_if(errors)

    category = InventoryCategory(name=name, description=description)
    db.session.add(category)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return jsonify(error="Category already exists"), 409

    log_event("INVENTORY_CATEGORY_CREATE", user_id=g.user.id, entity="inventory_category", entity_id=category.id)
    return jsonify(id=category.id, name=category.name, description=category.description), 201


@inventory_bp.get("/items")
@require_roles(ADMIN)
def list_items():
    q = InventoryItem.query
    category_id = request.args.get("categoryId", type=int)
    if category_id:
        q = q.filter_by(category_id=category_id)
    rows = q.order_by(InventoryItem.name.asc()).all()
    return jsonify([inventory_item_json(i) for i in rows]), 200


def _apply_item_fields(item: InventoryItem, data: dict, partial: bool):
    errors = {}
    if not partial or "categoryId" in data:
        category_id = parse_int(data.get("categoryId"), "categoryId", errors, minimum=1)
        if category_id and not db.session.get(InventoryCategory, category_id):
            errors["categoryId"] = "Unknown category"
        item.category_id = category_id
    if not partial or "name" in data:
        item.name = required_text(data, "name", errors, 100)
    if not partial or "sku" in data:
        item.sku = required_text(data, "sku", errors, 50)
    if not partial or "unitPrice" in data:
        item.unit_price = parse_money(data.get("unitPrice"), "unitPrice", errors)
    for field, attr in (("currentStock", "current_stock"), ("minimumStock", "minimum_stock"), ("maximumStock", "maximum_stock")):
        if field in data:
            setattr(item, attr, parse_int(data.get(field), field, errors, minimum=0))
    if "description" in data:
        item.description = optional_text(data, "description", errors, 2000)
    if "supplier" in data:
        item.supplier = optional_text(data, "supplier", errors, 100)
    if "isActive" in data:
        item.is_active = bool(data.get("isActive"))
    raise_if(errors)


@inventory_bp.post("/items")
@require_roles(ADMIN)
def create_item():
    data = json_body()
    item = InventoryItem(current_stock=0, minimum_stock=10, maximum_stock=100)
    _apply_item_fields(item, data, partial=False)
    db.session.add(item)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return jsonify(error="SKU already exists"), 409

    log_event("INVENTORY_ITEM_CREATE", user_id=g.user.id, entity="inventory_item", entity_id=item.id)
    return jsonify(inventory_item_json(item)), 201


@inventory_bp.put("/items/<int:item_id>")
@require_roles(ADMIN)
def update_item(item_id: int):
    item = db.session.get(InventoryItem, item_id)
    if not item:
        return jsonify(error="Item not found"), 404

    data = json_body()
    _apply_item_fields(item, data, partial=True)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return jsonify(error="SKU already exists"), 409

    log_event("INVENTORY_ITEM_UPDATE", user_id=g.user.id, entity="inventory_item", entity_id=item.id, metadata={"fields": sorted(data)})
    return jsonify(inventory_item_json(item)), 200


@inventory_bp.get("/transactions")
@require_roles(ADMIN)
def list_transactions():
    q = InventoryTransaction.query
    item_id = request.args.get("itemId", type=int)
    if item_id:
        q = q.filter_by(item_id=item_id)
    rows = q.order_by(InventoryTransaction.created_at.desc(), InventoryTransaction.id.desc()).limit(200).all()
    return jsonify([inventory_txn_json(t) for t in rows]), 200


@inventory_bp.post("/transactions")
@require_roles(ADMIN)
def create_transaction():
    data = json_body()
    errors = {}
    item_id = parse_int(data.get("itemId"), "itemId", errors, minimum=1)
    txn_type = data.get("type")
    if txn_type not in TXN_TYPES:
        errors["type"] = f"Must be one of: {', '.join(TXN_TYPES)}"
    # adjustment sets the absolute level, so zero is allowed there
    quantity = parse_int(data.get("quantity"), "quantity", errors, minimum=0 if txn_type == "adjustment" else 1)
    reason = optional_text(data, "reason", errors, 100)
    notes = optional_text(data, "notes", errors, 2000)
    staff_id = parse_int(data["staffId"], "staffId", errors, minimum=1) if data.get("staffId") is not None else None
    booking_id = parse_int(data["bookingId"], "bookingId", errors, minimum=1) if data.get("bookingId") is not None else None
    raise_if(errors)

    item = db.session.get(InventoryItem, item_id)
    if not item:
        return jsonify(error="Item not found"), 404
    if staff_id is not None and not db.session.get(Staff, staff_id):
        return jsonify(error="Invalid data", errors={"staffId": "Unknown staff member"}), 400

    if txn_type == "in":
        stmt = update(InventoryItem).where(InventoryItem.id == item.id).values(
            current_stock=InventoryItem.current_stock + quantity, last_restocked=datetime.utcnow())
    elif txn_type == "out":
        # never let stock go negative, even under concurrent withdrawals
        stmt = update(InventoryItem).where(
            InventoryItem.id == item.id, InventoryItem.current_stock >= quantity
        ).values(current_stock=InventoryItem.current_stock - quantity)
    else:
        stmt = update(InventoryItem).where(InventoryItem.id == item.id).values(current_stock=quantity)

    result = db.session.execute(stmt.execution_options(synchronize_session=False))
    if result.rowcount != 1:
        db.session.rollback()
        return jsonify(error="Insufficient stock"), 409

    txn = InventoryTransaction(
        item_id=item.id,
        type=txn_type,
        quantity=quantity,
        reason=reason,
        notes=notes,
        staff_id=staff_id,
        related_booking_id=booking_id,
    )
    db.session.add(txn)
    db.session.commit()
    db.session.refresh(item)

    log_event("INVENTORY_TXN", user_id=g.user.id, entity="inventory_item", entity_id=item.id,
              metadata={"type": txn_type, "quantity": quantity})
    return jsonify(transaction=inventory_txn_json(txn), item=inventory_item_json(item)), 201
