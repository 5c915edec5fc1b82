# backend/stockhub/routes/channels.py
"""
Channel mapping and intake routes.

Webhook receivers post already-verified, already-parsed channel events here:

- POST /api/channels/<platform>/orders
    {"order_id": "...", "line_items": [{"external_id": "...", "quantity": 2}, ...]}
- POST /api/channels/<platform>/inventory
    {"external_id": "...", "available": 12}

Reconciliation takes a batch of the channel's stock counts:

- POST /api/channels/<platform>/discrepancies  (read-only comparison)
- POST /api/channels/<platform>/sync           (applies every level, writes a SyncLog)
    {"levels": [{"external_id": "...", "available": 12}, ...]}
- GET  /api/channels/sync-logs?platform=&limit=

Order intake answers 200 with per-line outcomes even when some lines
failed; only a missing primary location or a malformed body fails the
whole request.
"""
from flask import Blueprint, current_app, jsonify, request

from ..extensions import db
from stockhub.errors import InventoryError, error_response
from ..validation import PayloadPolicy, query_int, validate_payload


channels_bp = Blueprint("channels", __name__, url_prefix="/api/channels")

MAPPING_POLICY = PayloadPolicy(
    fields={
        "local_product_id": "int",
        "shopify_product_id": "str",
        "shopify_variant_id": "str",
        "square_item_variation_id": "str",
        "square_catalog_object_id": "str",
        "amazon_asin": "str",
        "amazon_sku": "str",
        "matched_by": "str",
        "confidence": "float",
    },
    required=frozenset({"local_product_id"}),
)

ORDER_POLICY = PayloadPolicy(
    fields={"order_id": "str", "line_items": "list"},
    required=frozenset({"line_items"}),
)

INVENTORY_LEVEL_POLICY = PayloadPolicy(
    fields={"external_id": "str", "available": "int"},
    required=frozenset({"external_id", "available"}),
)

LEVELS_POLICY = PayloadPolicy(
    fields={"levels": "list"},
    required=frozenset({"levels"}),
)


@channels_bp.get("/mappings")
def list_mappings_route():
    from ..services.channel_service import list_mappings

    try:
        mappings = list_mappings(platform=request.args.get("platform") or None)
    except InventoryError as e:
        return error_response(e)

    return jsonify({"items": [m.to_dict() for m in mappings], "count": len(mappings)}), 200


@channels_bp.post("/mappings")
def upsert_mapping_route():
    payload = request.get_json(silent=True) or {}

    from ..services.channel_service import upsert_mapping

    try:
        patch = validate_payload(payload=payload, policy=MAPPING_POLICY)
        local_product_id = patch.pop("local_product_id")
        mapping = upsert_mapping(local_product_id=local_product_id, patch=patch)
    except InventoryError as e:
        db.session.rollback()
        return error_response(e)

    return jsonify({"success": True, "mapping": mapping.to_dict()}), 200


@channels_bp.delete("/mappings/<int:mapping_id>")
def delete_mapping_route(mapping_id: int):
    from ..services.channel_service import delete_mapping

    if not delete_mapping(mapping_id):
        return jsonify({"success": False, "error": "Mapping not found", "error_kind": "NotFound"}), 404
    return jsonify({"success": True, "message": "Mapping deleted"}), 200


@channels_bp.post("/<string:platform>/orders")
def ingest_order_route(platform: str):
    payload = request.get_json(silent=True) or {}

    from ..services.channel_service import ingest_channel_order

    try:
        patch = validate_payload(payload=payload, policy=ORDER_POLICY)
        result = ingest_channel_order(
            platform=platform,
            order_id=patch.get("order_id"),
            line_items=patch["line_items"],
        )
    except InventoryError as e:
        db.session.rollback()
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to ingest %s order", platform)
        return jsonify({"success": False, "error": "Internal server error", "error_kind": "InternalError"}), 500

    return jsonify(result), 200


@channels_bp.post("/<string:platform>/inventory")
def inventory_level_route(platform: str):
    payload = request.get_json(silent=True) or {}

    from ..services.channel_service import apply_channel_inventory_level

    try:
        patch = validate_payload(payload=payload, policy=INVENTORY_LEVEL_POLICY)
        result = apply_channel_inventory_level(
            platform=platform,
            external_id=patch["external_id"],
            available=patch["available"],
        )
    except InventoryError as e:
        db.session.rollback()
        return error_response(e)

    return jsonify(result), 200


@channels_bp.post("/<string:platform>/discrepancies")
def discrepancies_route(platform: str):
    payload = request.get_json(silent=True) or {}

    from ..services.channel_service import detect_discrepancies

    try:
        patch = validate_payload(payload=payload, policy=LEVELS_POLICY)
        items = detect_discrepancies(platform=platform, reported_levels=patch["levels"])
    except InventoryError as e:
        return error_response(e)

    return jsonify({"success": True, "platform": platform, "items": items, "count": len(items)}), 200


@channels_bp.post("/<string:platform>/sync")
def sync_inventory_route(platform: str):
    payload = request.get_json(silent=True) or {}

    from ..services.channel_service import sync_channel_inventory

    try:
        patch = validate_payload(payload=payload, policy=LEVELS_POLICY)
        result = sync_channel_inventory(platform=platform, reported_levels=patch["levels"])
    except InventoryError as e:
        db.session.rollback()
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to sync %s inventory", platform)
        return jsonify({"success": False, "error": "Internal server error", "error_kind": "InternalError"}), 500

    return jsonify(result), 200


@channels_bp.get("/sync-logs")
def list_sync_logs_route():
    from ..services.channel_service import list_sync_logs

    try:
        limit = query_int(request.args, "limit", default=20)
        logs = list_sync_logs(platform=request.args.get("platform") or None, limit=limit)
    except InventoryError as e:
        return error_response(e)

    return jsonify({"items": [log.to_dict() for log in logs], "count": len(logs)}), 200
