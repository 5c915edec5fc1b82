# backend/stockhub/routes/products.py
"""
Product catalog routes.

Stock is read-only here: quantities change through /api/inventory. The one
exception is the optional initial stock on create (quantity + location_id),
which is booked as a production receipt.
"""
from flask import Blueprint, request

from ..extensions import db
from stockhub.errors import InventoryError, error_response
from ..validation import PayloadPolicy, ValidationError, validate_payload


products_bp = Blueprint("products", __name__, url_prefix="/api/products")

_PRODUCT_FIELDS = {
    "sku": "str",
    "name": "str",
    "description": "str",
    "price_cents": "int",
    "image_url": "str",
    "square_variation_id": "str",
    "shopify_variant_id": "str",
    "amazon_sku": "str",
    "amazon_asin": "str",
}

PRODUCT_CREATE_POLICY = PayloadPolicy(
    fields={**_PRODUCT_FIELDS, "quantity": "int", "location_id": "int", "notes": "str", "user_id": "str"},
    required=frozenset({"sku", "name"}),
)

PRODUCT_UPDATE_POLICY = PayloadPolicy(fields=_PRODUCT_FIELDS)


@products_bp.get("")
def list_products_route():
    from ..services.products_service import list_products

    bundles_arg = request.args.get("bundles")
    bundles = None
    if bundles_arg is not None:
        if bundles_arg.lower() not in ("true", "false"):
            return error_response(ValidationError("bundles must be true or false"))
        bundles = bundles_arg.lower() == "true"

    products = list_products(bundles=bundles)
    return {"items": [p.to_dict() for p in products], "count": len(products)}, 200


@products_bp.post("")
def create_product_route():
    payload = request.get_json(silent=True) or {}

    from ..services.products_service import create_product

    try:
        patch = validate_payload(payload=payload, policy=PRODUCT_CREATE_POLICY)
        quantity = patch.pop("quantity", None)
        location_id = patch.pop("location_id", None)
        notes = patch.pop("notes", None)
        user_id = patch.pop("user_id", None)
        product = create_product(
            patch=patch,
            quantity=quantity,
            location_id=location_id,
            notes=notes,
            user_id=user_id,
        )
    except InventoryError as e:
        db.session.rollback()
        return error_response(e)

    return {"success": True, "product": product}, 201


@products_bp.get("/<int:product_id>")
def get_product_route(product_id: int):
    from ..services.products_service import get_product

    product = get_product(product_id)
    if product is None:
        return {"success": False, "error": f"Product {product_id} not found", "error_kind": "ProductNotFound"}, 404
    return {"success": True, "product": product.to_dict()}, 200


@products_bp.get("/by-sku/<string:sku>")
def get_product_by_sku_route(sku: str):
    from ..services.products_service import get_product_by_sku

    product = get_product_by_sku(sku)
    if product is None:
        return {"success": False, "error": f"Product with SKU {sku} not found", "error_kind": "ProductNotFound"}, 404
    return {"success": True, "product": product.to_dict()}, 200


@products_bp.put("/<int:product_id>")
def update_product_route(product_id: int):
    payload = request.get_json(silent=True) or {}

    from ..services.products_service import update_product

    try:
        patch = validate_payload(payload=payload, policy=PRODUCT_UPDATE_POLICY)
        product = update_product(product_id=product_id, patch=patch)
    except InventoryError as e:
        db.session.rollback()
        return error_response(e)

    return {"success": True, "product": product}, 200
