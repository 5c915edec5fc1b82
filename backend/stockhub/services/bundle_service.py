# Overview: Bundle definitions and the bundle-sale cascade into component sales.

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import Bundle, BundleComponent, Product
from stockhub.errors import (
    BundleNotFound,
    BundleSalePartialFailure,
    InsufficientStock,
    InvalidQuantity,
    InventoryError,
    ProductNotFound,
)
from stockhub.validation import ConflictError, ValidationError, coerce_int
from .concurrency import lock_for_update, run_with_retry
from .inventory_service import _record_sale_inner, build_sale_entry, record_sale
from .location_service import require_location
"""
Bundle Invariants (authoritative)

- One Bundle per bundle product. The product's is_bundle/bundle_components
  mirror the Bundle's component list and are written together with it.
- A component is a different, non-bundle product listed once with a
  per-bundle quantity >= 1. Nesting is refused from both sides: a product
  that is a component of an active bundle cannot be an active bundle.
- Selling a bundle never touches the bundle product's own stock: it records
  one sale per component (per-bundle quantity * bundles sold) at the sale
  location, in component order.

Cascade modes (config):
- default: each component sale commits on its own. A failure after at
  least one component committed raises BundleSalePartialFailure listing the
  committed deductions; they are not reversed.
- BUNDLE_SALE_PREFLIGHT: capacity is checked for every component first and
  the sale fails with InsufficientStock before anything is deducted.
- BUNDLE_SALE_ATOMIC: all component sales share one DB transaction; any
  failure rolls back every deduction.
"""


def _normalize_components(bundle_product_id: int, components) -> list[tuple[Product, int]]:
    if not isinstance(components, list) or not components:
        raise ValidationError("A bundle needs at least one component product")

    seen: set[int] = set()
    resolved: list[tuple[Product, int]] = []
    for raw in components:
        if not isinstance(raw, dict):
            raise ValidationError("Each component must be an object with product_id and quantity")
        if raw.get("product_id") is None or raw.get("quantity") is None:
            raise ValidationError("Each component needs product_id and quantity")

        product_id = coerce_int("product_id", raw["product_id"])
        quantity = coerce_int("quantity", raw["quantity"])
        if quantity < 1:
            raise InvalidQuantity("Component quantity must be at least 1")
        if product_id == bundle_product_id:
            raise ValidationError("A bundle cannot contain itself")
        if product_id in seen:
            raise ValidationError(f"Component product {product_id} is listed more than once")
        seen.add(product_id)

        product = db.session.get(Product, product_id)
        if product is None:
            raise ProductNotFound(product_id, f"Component product {product_id} not found")
        if product.is_bundle:
            raise ValidationError(f"Component product {product_id} is itself a bundle")
        resolved.append((product, quantity))

    return resolved


def _write_components(bundle: Bundle, product: Product, resolved: list[tuple[Product, int]]) -> None:
    if bundle.components:
        bundle.components.clear()
        # Old rows must be gone before re-inserting the same product ids
        db.session.flush()

    for position, (component, quantity) in enumerate(resolved):
        bundle.components.append(
            BundleComponent(
                position=position,
                product_id=component.id,
                product_name=component.name,
                product_sku=component.sku,
                quantity=quantity,
            )
        )

    product.is_bundle = True
    product.bundle_components = [{"product_id": c.id, "quantity": q} for c, q in resolved]


def _reject_if_active_component(product_id: int) -> None:
    """A product listed in an active bundle cannot itself become a bundle."""
    q = (
        db.session.query(Bundle.bundle_product_id)
        .join(BundleComponent, BundleComponent.bundle_id == Bundle.id)
        .filter(BundleComponent.product_id == product_id, Bundle.is_active.is_(True))
    )
    row = q.first()
    if row is not None:
        raise ValidationError(
            f"Product {product_id} is a component of bundle product {row[0]} and cannot be a bundle"
        )


def _lock_product(product_id: int) -> Product:
    product = lock_for_update(db.session.query(Product).filter_by(id=product_id)).first()
    if product is None:
        raise ProductNotFound(product_id, f"Bundle product {product_id} not found")
    return product


def create_bundle(*, bundle_product_id: int, components: list, is_active: bool = True) -> Bundle:
    def _op():
        product = _lock_product(bundle_product_id)
        resolved = _normalize_components(bundle_product_id, components)
        if is_active:
            _reject_if_active_component(product.id)

        existing = db.session.query(Bundle.id).filter(Bundle.bundle_product_id == bundle_product_id).first()
        if existing is not None:
            raise ConflictError(f"Product {bundle_product_id} already has a bundle definition")

        bundle = Bundle(
            bundle_product_id=product.id,
            bundle_product_name=product.name,
            bundle_sku=product.sku,
            is_active=bool(is_active),
        )
        db.session.add(bundle)
        _write_components(bundle, product, resolved)

        db.session.commit()
        return bundle

    return run_with_retry(_op)


def update_bundle(*, bundle_id: int, components: list | None = None, is_active: bool | None = None) -> Bundle:
    def _op():
        bundle = db.session.get(Bundle, bundle_id)
        if bundle is None:
            raise BundleNotFound(f"Bundle {bundle_id} not found")

        product = _lock_product(bundle.bundle_product_id)
        resolved = _normalize_components(product.id, components) if components is not None else None

        will_be_active = bundle.is_active if is_active is None else bool(is_active)
        if will_be_active:
            _reject_if_active_component(product.id)
            if resolved is None:
                # Components may have become bundles while this one was inactive
                for component in bundle.components:
                    member = db.session.get(Product, component.product_id)
                    if member is not None and member.is_bundle:
                        raise ValidationError(f"Component product {member.id} is itself a bundle")

        if resolved is not None:
            _write_components(bundle, product, resolved)

        if is_active is not None:
            bundle.is_active = bool(is_active)

        # Refresh snapshots
        bundle.bundle_product_name = product.name
        bundle.bundle_sku = product.sku

        db.session.commit()
        return bundle

    return run_with_retry(_op)


def delete_bundle(bundle_id: int) -> None:
    def _op():
        bundle = db.session.get(Bundle, bundle_id)
        if bundle is None:
            raise BundleNotFound(f"Bundle {bundle_id} not found")

        product = db.session.query(Product).filter_by(id=bundle.bundle_product_id)
        product = lock_for_update(product).first()
        if product is not None:
            product.is_bundle = False
            product.bundle_components = None

        db.session.delete(bundle)
        db.session.commit()

    run_with_retry(_op)


def get_bundle(bundle_id: int) -> Bundle | None:
    return db.session.get(Bundle, bundle_id)


def list_bundles(*, active_only: bool = False) -> list[Bundle]:
    q = db.session.query(Bundle)
    if active_only:
        q = q.filter(Bundle.is_active.is_(True))
    return q.order_by(Bundle.bundle_product_name.asc(), Bundle.id.asc()).all()


def get_bundle_by_product_id(bundle_product_id: int) -> Bundle | None:
    """Active bundle for a product, or None."""
    return (
        db.session.query(Bundle)
        .filter(Bundle.bundle_product_id == bundle_product_id, Bundle.is_active.is_(True))
        .first()
    )


def get_bundle_by_sku(sku: str) -> Bundle | None:
    return (
        db.session.query(Bundle)
        .filter(Bundle.bundle_sku == sku, Bundle.is_active.is_(True))
        .first()
    )


def is_bundle(product_id: int) -> bool:
    return get_bundle_by_product_id(product_id) is not None


def _require_active_bundle(bundle_product_id: int) -> Bundle:
    bundle = get_bundle_by_product_id(bundle_product_id)
    if bundle is None:
        raise BundleNotFound(f"Bundle not found or inactive for product {bundle_product_id}")
    return bundle


def get_bundle_inventory_status(*, bundle_product_id: int, location_id: int, quantity: int = 1) -> dict:
    """
    Whether `quantity` bundles can be sold from one location.

    max_bundles is limited by the scarcest component; components are read,
    not locked, so the answer can be stale by the time a sale runs.
    """
    bundle = _require_active_bundle(bundle_product_id)
    if quantity is None or quantity <= 0:
        raise InvalidQuantity("Bundle quantity must be positive")
    require_location(location_id)

    component_status = []
    for component in bundle.components:
        product = db.session.get(Product, component.product_id)
        available = product.quantity_at(location_id) if product is not None else 0
        required = component.quantity * quantity
        component_status.append({
            "product_id": component.product_id,
            "product_name": component.product_name,
            "per_bundle": component.quantity,
            "required": required,
            "available": available,
            "can_fulfill": available >= required,
            "max_bundles": available // component.quantity,
        })

    return {
        "bundle_product_id": bundle.bundle_product_id,
        "location_id": location_id,
        "quantity": quantity,
        "can_fulfill": all(c["can_fulfill"] for c in component_status),
        "max_bundles": min((c["max_bundles"] for c in component_status), default=0),
        "component_status": component_status,
    }


def _preflight(bundle_product_id: int, location_id: int, quantity: int) -> None:
    status = get_bundle_inventory_status(
        bundle_product_id=bundle_product_id, location_id=location_id, quantity=quantity
    )
    for c in status["component_status"]:
        if not c["can_fulfill"]:
            raise InsufficientStock(c["product_id"], location_id, c["available"], c["required"])


def process_bundle_sale(
    *,
    bundle_product_id: int,
    quantity: int,
    location_id: int,
    source: str,
    order_id: str | None = None,
) -> dict:
    bundle = _require_active_bundle(bundle_product_id)
    if quantity is None or quantity <= 0:
        raise InvalidQuantity("Bundle quantity must be positive")

    # Entries validate source and units before the first deduction
    entries = [
        build_sale_entry(
            product_id=c.product_id,
            location_id=location_id,
            quantity=c.quantity * quantity,
            source=source,
            order_id=order_id,
        )
        for c in bundle.components
    ]

    if current_app.config.get("BUNDLE_SALE_PREFLIGHT"):
        _preflight(bundle_product_id, location_id, quantity)

    if current_app.config.get("BUNDLE_SALE_ATOMIC"):
        deductions = _cascade_atomic(entries)
    else:
        deductions = _cascade(bundle_product_id, entries)

    return {
        "success": True,
        "message": f"Successfully processed bundle sale of {quantity} units",
        "bundle_product_id": bundle_product_id,
        "deductions": deductions,
    }


def _cascade(bundle_product_id: int, entries) -> list[dict]:
    completed: list[dict] = []
    for entry in entries:
        try:
            result = record_sale(
                product_id=entry.product_id,
                location_id=entry.from_location_id,
                quantity=entry.units,
                source=entry.source,
                order_id=entry.order_id,
            )
        except InventoryError as exc:
            if not completed:
                raise
            current_app.logger.warning(
                "Bundle sale for product %s stopped at component %s after %d deduction(s): %s",
                bundle_product_id,
                entry.product_id,
                len(completed),
                exc,
            )
            raise BundleSalePartialFailure(bundle_product_id, completed, entry.product_id, exc) from exc

        completed.append({
            "product_id": entry.product_id,
            "quantity": entry.units,
            "transaction_id": result["transaction"]["id"],
        })
    return completed


def _cascade_atomic(entries) -> list[dict]:
    def _op():
        completed = []
        for entry in entries:
            _, tx = _record_sale_inner(entry=entry)
            completed.append({
                "product_id": entry.product_id,
                "quantity": entry.units,
                "transaction_id": tx.id,
            })
        db.session.commit()
        return completed

    return run_with_retry(_op)
