# backend/stockhub/routes/bundles.py
"""
Bundle routes: definitions, capacity status and bundle sales.

A bundle sale that stops part-way answers 409 with "partial": true and the
component deductions that were already committed, so the caller can
reconcile them. A sale that fails on its first component answers with that
component's own error.
"""
from flask import Blueprint, current_app, jsonify, request

from ..extensions import db
from stockhub.errors import InventoryError, error_response
from ..validation import PayloadPolicy, ValidationError, query_int, validate_payload


bundles_bp = Blueprint("bundles", __name__, url_prefix="/api/bundles")

BUNDLE_CREATE_POLICY = PayloadPolicy(
    fields={"bundle_product_id": "int", "component_products": "list", "is_active": "bool"},
    required=frozenset({"bundle_product_id", "component_products"}),
)

BUNDLE_UPDATE_POLICY = PayloadPolicy(
    fields={"component_products": "list", "is_active": "bool"},
)

BUNDLE_SALE_POLICY = PayloadPolicy(
    fields={
        "bundle_product_id": "int",
        "quantity": "int",
        "location_id": "int",
        "source": "str",
        "order_id": "str",
    },
    required=frozenset({"bundle_product_id", "quantity", "location_id", "source"}),
)


@bundles_bp.get("")
def list_bundles_route():
    from ..services.bundle_service import list_bundles

    active_only = request.args.get("active", "").lower() in ("1", "true")
    bundles = list_bundles(active_only=active_only)
    return jsonify({"items": [b.to_dict() for b in bundles], "count": len(bundles)}), 200


@bundles_bp.post("")
def create_bundle_route():
    payload = request.get_json(silent=True) or {}

    from ..services.bundle_service import create_bundle

    try:
        patch = validate_payload(payload=payload, policy=BUNDLE_CREATE_POLICY)
        bundle = create_bundle(
            bundle_product_id=patch["bundle_product_id"],
            components=patch["component_products"],
            is_active=patch.get("is_active", True) is not False,
        )
    except InventoryError as e:
        db.session.rollback()
        return error_response(e)

    return jsonify({"success": True, "bundle": bundle.to_dict()}), 201


@bundles_bp.put("/<int:bundle_id>")
def update_bundle_route(bundle_id: int):
    payload = request.get_json(silent=True) or {}

    from ..services.bundle_service import update_bundle

    try:
        patch = validate_payload(payload=payload, policy=BUNDLE_UPDATE_POLICY)
        bundle = update_bundle(
            bundle_id=bundle_id,
            components=patch.get("component_products"),
            is_active=patch.get("is_active"),
        )
    except InventoryError as e:
        db.session.rollback()
        return error_response(e)

    return jsonify({"success": True, "bundle": bundle.to_dict()}), 200


@bundles_bp.delete("/<int:bundle_id>")
def delete_bundle_route(bundle_id: int):
    from ..services.bundle_service import delete_bundle

    try:
        delete_bundle(bundle_id)
    except InventoryError as e:
        db.session.rollback()
        return error_response(e)

    return jsonify({"success": True, "message": "Bundle deleted"}), 200


@bundles_bp.post("/process-sale")
def process_bundle_sale_route():
    payload = request.get_json(silent=True) or {}

    from ..services.bundle_service import process_bundle_sale

    try:
        patch = validate_payload(payload=payload, policy=BUNDLE_SALE_POLICY)
        result = process_bundle_sale(
            bundle_product_id=patch["bundle_product_id"],
            quantity=patch["quantity"],
            location_id=patch["location_id"],
            source=patch["source"],
            order_id=patch.get("order_id"),
        )
    except InventoryError as e:
        db.session.rollback()
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to process bundle sale")
        return jsonify({"success": False, "error": "Internal server error", "error_kind": "InternalError"}), 500

    return jsonify(result), 201


@bundles_bp.get("/status")
def bundle_status_route():
    from ..services.bundle_service import get_bundle_inventory_status

    try:
        bundle_product_id = query_int(request.args, "bundle_product_id")
        location_id = query_int(request.args, "location_id")
        quantity = query_int(request.args, "quantity", default=1)
    except InventoryError as e:
        return error_response(e)
    if bundle_product_id is None or location_id is None:
        return error_response(ValidationError("bundle_product_id and location_id are required"))

    try:
        status = get_bundle_inventory_status(
            bundle_product_id=bundle_product_id,
            location_id=location_id,
            quantity=quantity,
        )
    except InventoryError as e:
        return error_response(e)

    return jsonify({"success": True, **status}), 200
