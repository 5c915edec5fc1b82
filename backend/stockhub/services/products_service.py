# backend/stockhub/services/products_service.py
"""
Product catalog service.

Products carry identity and channel ids; their stock is owned by the
inventory engine. Creating a product with an initial quantity routes the
stock through the engine's production path so the first units are on the
ledger like any other receipt.
"""
from __future__ import annotations

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Product, ProductLocation
from stockhub.errors import InvalidQuantity, ProductNotFound
from stockhub.ledger_entries import ProductionEntry
from stockhub.validation import DuplicateSku, ValidationError, enforce_price_cents
from .concurrency import lock_for_update, run_with_retry
from .inventory_service import _add_production_inner
from .location_service import require_location

PRODUCT_MUTABLE_FIELDS = {
    "sku",
    "name",
    "description",
    "price_cents",
    "image_url",
    "square_variation_id",
    "shopify_variant_id",
    "amazon_sku",
    "amazon_asin",
}

# Owned by the inventory engine / bundle engine, never patched directly
PRODUCT_PROTECTED_FIELDS = {"total_quantity", "locations", "is_bundle", "bundle_components", "version_id"}

INITIAL_STOCK_NOTE = "Initial inventory from catalog import"


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def _check_patch(patch: dict) -> None:
    protected = set(patch) & PRODUCT_PROTECTED_FIELDS
    if protected:
        raise ValidationError(f"Field not patchable: {', '.join(sorted(protected))}")
    unknown = set(patch) - PRODUCT_MUTABLE_FIELDS
    if unknown:
        raise ValidationError(f"Field not allowed: {', '.join(sorted(unknown))}")
    if "price_cents" in patch:
        enforce_price_cents(patch["price_cents"])


def _raise_if_sku_conflict(exc: IntegrityError, sku) -> None:
    # Two writers can both pass _sku_taken; the unique constraint decides
    message = str(exc.orig)
    if "uq_products_sku" in message or "products.sku" in message:
        raise DuplicateSku(f"SKU {sku} already exists") from exc


def _sku_taken(sku: str, *, exclude_id: int | None = None) -> bool:
    q = db.session.query(Product.id).filter(Product.sku == sku)
    if exclude_id is not None:
        q = q.filter(Product.id != exclude_id)
    return q.first() is not None


def list_products(*, bundles: bool | None = None) -> list[Product]:
    q = db.session.query(Product)
    if bundles is not None:
        q = q.filter(Product.is_bundle.is_(bundles))
    return q.order_by(Product.name.asc(), Product.id.asc()).all()


def get_product(product_id: int) -> Product | None:
    return db.session.get(Product, product_id)


def require_product(product_id: int) -> Product:
    product = get_product(product_id)
    if product is None:
        raise ProductNotFound(product_id)
    return product


def get_product_by_sku(sku: str) -> Product | None:
    return db.session.query(Product).filter(Product.sku == sku).first()


def create_product(
    *,
    patch: dict,
    quantity: int | None = None,
    location_id: int | None = None,
    notes: str | None = None,
    user_id: str | None = None,
) -> dict:
    """
    Create a product from a validated patch dict.

    Initial stock (quantity > 0 with a location) is written through the
    production path in the same DB transaction as the insert: stock row,
    recomputed total and one production ledger record.

    Raises:
        ValidationError: name/sku missing, bad price, protected field
        DuplicateSku: SKU already used by another product
        InvalidQuantity: negative initial quantity
        LocationNotFound: initial stock aimed at an unknown location
    """
    _check_patch(patch)

    sku = patch.get("sku")
    name = patch.get("name")
    if not sku:
        raise ValidationError("sku is required")
    if not name:
        raise ValidationError("name is required")

    if quantity is not None and quantity < 0:
        raise InvalidQuantity("Initial quantity cannot be negative")
    if quantity and location_id is None:
        raise ValidationError("location_id is required when quantity is given")

    def _op():
        if _sku_taken(sku):
            raise DuplicateSku(f"SKU {sku} already exists")

        p = Product(total_quantity=0, is_bundle=False)
        apply_product_patch(p, patch)
        db.session.add(p)
        try:
            db.session.flush()  # ensure p.id exists before the ledger append
        except IntegrityError as exc:
            db.session.rollback()
            _raise_if_sku_conflict(exc, sku)
            raise

        if location_id is not None:
            require_location(location_id)
            if quantity:
                _add_production_inner(
                    product=p,
                    entry=ProductionEntry(
                        product_id=p.id,
                        to_location_id=location_id,
                        units=quantity,
                        user_id=user_id,
                        notes=notes or INITIAL_STOCK_NOTE,
                    ),
                )
            else:
                # Listed at the location with no stock yet
                p.stock_rows.append(ProductLocation(location_id=location_id, quantity=0))

        db.session.commit()
        return p.to_dict()

    return run_with_retry(_op)


def update_product(*, product_id: int, patch: dict) -> dict:
    _check_patch(patch)
    if "sku" in patch and not patch["sku"]:
        raise ValidationError("sku cannot be empty")
    if "name" in patch and not patch["name"]:
        raise ValidationError("name cannot be empty")

    def _op():
        p = lock_for_update(db.session.query(Product).filter_by(id=product_id)).first()
        if p is None:
            raise ProductNotFound(product_id)

        new_sku = patch.get("sku")
        if new_sku and new_sku != p.sku and _sku_taken(new_sku, exclude_id=p.id):
            raise DuplicateSku(f"SKU {new_sku} already exists")

        apply_product_patch(p, patch)
        try:
            db.session.flush()
        except IntegrityError as exc:
            db.session.rollback()
            _raise_if_sku_conflict(exc, new_sku)
            raise
        db.session.commit()
        return p.to_dict()

    return run_with_retry(_op)
