# Overview: Flask API routes for the location registry; parses input and returns JSON responses.

from flask import Blueprint, jsonify, request

from stockhub.errors import InventoryError, error_response
from stockhub.extensions import db
from stockhub.services import location_service
from stockhub.validation import PayloadPolicy, validate_payload


locations_bp = Blueprint("locations", __name__, url_prefix="/api/locations")

LOCATION_CREATE_POLICY = PayloadPolicy(
    fields={"name": "str", "type": "str", "is_active": "bool", "is_primary": "bool"},
    required=frozenset({"name", "type"}),
)

LOCATION_UPDATE_POLICY = PayloadPolicy(
    fields={"name": "str", "type": "str", "is_active": "bool", "is_primary": "bool"},
)


@locations_bp.get("")
def list_locations():
    active_only = request.args.get("active", "").lower() in ("1", "true")
    locations = location_service.list_locations(active_only=active_only)
    return jsonify([location.to_dict() for location in locations]), 200


@locations_bp.post("")
def create_location():
    data = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(payload=data, policy=LOCATION_CREATE_POLICY)
        location = location_service.create_location(
            name=patch["name"],
            type=patch["type"],
            is_active=patch.get("is_active", True) is not False,
            is_primary=bool(patch.get("is_primary")),
        )
        return jsonify(location.to_dict()), 201
    except InventoryError as exc:
        db.session.rollback()
        return error_response(exc)


@locations_bp.get("/primary")
def get_primary_location():
    location = location_service.get_primary_location()
    if not location:
        return jsonify({"success": False, "error": "No primary location", "error_kind": "NoPrimaryLocation"}), 404
    return jsonify(location.to_dict()), 200


@locations_bp.post("/init")
def init_locations():
    created = location_service.initialize_default_locations()
    return jsonify({
        "success": True,
        "created": [location.to_dict() for location in created],
        "message": (
            f"Created {len(created)} default locations" if created else "Locations already initialized"
        ),
    }), 201 if created else 200


@locations_bp.get("/<int:location_id>")
def get_location(location_id: int):
    location = location_service.get_location(location_id)
    if not location:
        return jsonify({"success": False, "error": "Location not found", "error_kind": "LocationNotFound"}), 404
    return jsonify(location.to_dict()), 200


@locations_bp.put("/<int:location_id>")
def update_location(location_id: int):
    data = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(payload=data, policy=LOCATION_UPDATE_POLICY)
        location = location_service.update_location(location_id, **patch)
        return jsonify(location.to_dict()), 200
    except InventoryError as exc:
        db.session.rollback()
        return error_response(exc)


@locations_bp.delete("/<int:location_id>")
def delete_location(location_id: int):
    try:
        location_service.delete_location(location_id)
        return jsonify({"success": True, "message": "Location deleted"}), 200
    except InventoryError as exc:
        db.session.rollback()
        return error_response(exc)
