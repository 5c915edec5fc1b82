# Overview: Flask API routes for the inventory transaction ledger (read-only).

from flask import Blueprint, request, jsonify

from stockhub.errors import InventoryError, error_response
from stockhub.time_utils import parse_iso_datetime
from ..services.ledger_service import get_transaction, get_transaction_stats, query_transactions
from ..validation import ValidationError, query_int

"""
Time semantics:
- API accepts ISO-8601 datetimes with Z/offsets; backend normalizes to UTC-naive internally.
- start_date/end_date filtering is inclusive on created_at.
"""

transactions_bp = Blueprint("transactions", __name__, url_prefix="/api/transactions")


@transactions_bp.get("")
def list_transactions_route():
    tx_type = request.args.get("type") or None
    try:
        product_id = query_int(request.args, "product_id")
        location_id = query_int(request.args, "location_id")
        limit = query_int(request.args, "limit")
    except InventoryError as e:
        return error_response(e)

    try:
        start_dt = parse_iso_datetime(request.args.get("start_date"))
        end_dt = parse_iso_datetime(request.args.get("end_date"))
    except ValueError:
        return error_response(ValidationError("start_date and end_date must be ISO-8601 datetimes"))

    try:
        rows = query_transactions(
            product_id=product_id,
            type=tx_type,
            location_id=location_id,
            start=start_dt,
            end=end_dt,
            limit=limit,
        )
    except InventoryError as e:
        return error_response(e)

    return jsonify({
        "items": [r.to_dict() for r in rows],
        "count": len(rows),
    }), 200


@transactions_bp.get("/stats")
def transaction_stats_route():
    try:
        product_id = query_int(request.args, "product_id")
    except InventoryError as e:
        return error_response(e)
    return jsonify({"success": True, **get_transaction_stats(product_id)}), 200


@transactions_bp.get("/<int:transaction_id>")
def get_transaction_route(transaction_id: int):
    tx = get_transaction(transaction_id)
    if tx is None:
        return jsonify({"success": False, "error": "Transaction not found", "error_kind": "NotFound"}), 404
    return jsonify(tx.to_dict()), 200
