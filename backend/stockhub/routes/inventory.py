# backend/stockhub/routes/inventory.py
"""
Inventory engine routes.

Every mutation answers {"success": true, "message": ...} plus the new
total and the ledger record it wrote. Failures answer
{"success": false, "error": ..., "error_kind": ...} with the status code
of the error kind (400 invalid input, 404 unknown product/location,
409 not enough stock).

Dates (production_date, expiration_date) are ISO-8601 "YYYY-MM-DD".
"""
from flask import Blueprint, current_app, request

from ..extensions import db
from stockhub.errors import InventoryError, error_response
from ..validation import PayloadPolicy, validate_payload


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")

ADJUST_POLICY = PayloadPolicy(
    fields={
        "product_id": "int",
        "location_id": "int",
        "new_quantity": "int",
        "user_id": "str",
        "notes": "str",
    },
    required=frozenset({"product_id", "location_id", "new_quantity"}),
)

TRANSFER_POLICY = PayloadPolicy(
    fields={
        "product_id": "int",
        "from_location_id": "int",
        "to_location_id": "int",
        "quantity": "int",
        "user_id": "str",
        "notes": "str",
    },
    required=frozenset({"product_id", "from_location_id", "to_location_id", "quantity"}),
)

PRODUCTION_POLICY = PayloadPolicy(
    fields={
        "product_id": "int",
        "to_location_id": "int",
        "quantity": "int",
        "batch_number": "str",
        "production_date": "date",
        "expiration_date": "date",
        "user_id": "str",
        "notes": "str",
    },
    required=frozenset({"product_id", "to_location_id", "quantity"}),
)

SALE_POLICY = PayloadPolicy(
    fields={
        "product_id": "int",
        "location_id": "int",
        "quantity": "int",
        "source": "str",
        "order_id": "str",
    },
    required=frozenset({"product_id", "location_id", "quantity", "source"}),
)

MIN_STOCK_POLICY = PayloadPolicy(
    fields={
        "product_id": "int",
        "location_id": "int",
        "min_stock_level": "int",
    },
    required=frozenset({"product_id", "location_id"}),
)


@inventory_bp.post("/adjust")
def adjust_inventory_route():
    """Set one location's quantity to an absolute value (stock count, correction)."""
    payload = request.get_json(silent=True) or {}

    from ..services.inventory_service import adjust_inventory

    try:
        patch = validate_payload(payload=payload, policy=ADJUST_POLICY)
        result = adjust_inventory(
            product_id=patch["product_id"],
            location_id=patch["location_id"],
            new_quantity=patch["new_quantity"],
            user_id=patch.get("user_id"),
            notes=patch.get("notes"),
        )
    except InventoryError as e:
        db.session.rollback()
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to adjust inventory")
        return {"success": False, "error": "Internal server error", "error_kind": "InternalError"}, 500

    return result, 200


@inventory_bp.post("/transfer")
def transfer_inventory_route():
    payload = request.get_json(silent=True) or {}

    from ..services.inventory_service import transfer_inventory

    try:
        patch = validate_payload(payload=payload, policy=TRANSFER_POLICY)
        result = transfer_inventory(
            product_id=patch["product_id"],
            from_location_id=patch["from_location_id"],
            to_location_id=patch["to_location_id"],
            quantity=patch["quantity"],
            user_id=patch.get("user_id"),
            notes=patch.get("notes"),
        )
    except InventoryError as e:
        db.session.rollback()
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to transfer inventory")
        return {"success": False, "error": "Internal server error", "error_kind": "InternalError"}, 500

    return result, 200


@inventory_bp.post("/production")
def add_production_route():
    """Receive newly produced units into a location, with optional batch metadata."""
    payload = request.get_json(silent=True) or {}

    from ..services.inventory_service import add_production

    try:
        patch = validate_payload(payload=payload, policy=PRODUCTION_POLICY)
        result = add_production(
            product_id=patch["product_id"],
            to_location_id=patch["to_location_id"],
            quantity=patch["quantity"],
            batch_number=patch.get("batch_number"),
            production_date=patch.get("production_date"),
            expiration_date=patch.get("expiration_date"),
            user_id=patch.get("user_id"),
            notes=patch.get("notes"),
        )
    except InventoryError as e:
        db.session.rollback()
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to add production")
        return {"success": False, "error": "Internal server error", "error_kind": "InternalError"}, 500

    return result, 201


@inventory_bp.post("/sale")
def record_sale_route():
    payload = request.get_json(silent=True) or {}

    from ..services.inventory_service import record_sale

    try:
        patch = validate_payload(payload=payload, policy=SALE_POLICY)
        result = record_sale(
            product_id=patch["product_id"],
            location_id=patch["location_id"],
            quantity=patch["quantity"],
            source=patch["source"],
            order_id=patch.get("order_id"),
        )
    except InventoryError as e:
        db.session.rollback()
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to record sale")
        return {"success": False, "error": "Internal server error", "error_kind": "InternalError"}, 500

    return result, 201


@inventory_bp.get("/status/<int:product_id>")
def inventory_status_route(product_id: int):
    from ..services.inventory_service import get_product_inventory_status

    try:
        status = get_product_inventory_status(product_id)
    except InventoryError as e:
        return error_response(e)

    return {"success": True, **status}, 200


@inventory_bp.put("/min-stock")
def set_min_stock_route():
    payload = request.get_json(silent=True) or {}

    from ..services.inventory_service import set_min_stock_level

    try:
        patch = validate_payload(payload=payload, policy=MIN_STOCK_POLICY)
        result = set_min_stock_level(
            product_id=patch["product_id"],
            location_id=patch["location_id"],
            min_stock_level=patch.get("min_stock_level"),
        )
    except InventoryError as e:
        db.session.rollback()
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to set minimum stock level")
        return {"success": False, "error": "Internal server error", "error_kind": "InternalError"}, 500

    return result, 200
