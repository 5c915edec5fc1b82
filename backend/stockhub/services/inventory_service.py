# Overview: Inventory ledger engine; the only code path that changes stock quantities.

# backend/stockhub/services/inventory_service.py

from __future__ import annotations

from datetime import date

from ..extensions import db
from ..models import Product, ProductLocation, compute_total_quantity
from stockhub.errors import InsufficientStock, InvalidQuantity, ProductNotFound, StorageFault
from stockhub.ledger_entries import (
    SALE_SOURCES,
    AdjustmentEntry,
    ProductionEntry,
    SaleEntry,
    TransferEntry,
)
from stockhub.time_utils import utcnow
from stockhub.validation import ValidationError
from .concurrency import lock_for_update, run_with_retry
from .ledger_service import append_transaction
from .location_service import require_location
"""
Inventory Invariants (authoritative)

Stock model:
- Per-location stock lives in ProductLocation rows; Product.total_quantity
  is a projection of them.
- total_quantity == SUM(stock_rows.quantity) after every write. It is
  recomputed from the rows on each write, never incremented.
- quantity at a location is never negative. Sales and transfers that would
  overdraw a location are rejected (no backorders).

Atomicity:
- Each public operation is one read-modify-write scoped to one product:
  lock the product row, validate, mutate rows + total, append the ledger
  record, commit. All in one DB transaction.
- Product.version_id catches writers that raced past the row lock (SQLite);
  run_with_retry re-runs the whole operation on conflict.
- Validation failures raise before anything is written.

Ledger:
- Every mutation with a non-zero quantity change appends exactly one
  InventoryTransaction. Re-setting a location to its current quantity
  writes the catalog but no ledger record.
"""


def _load_product(product_id: int, *, lock: bool = True) -> Product:
    query = db.session.query(Product).filter_by(id=product_id)
    if lock:
        query = lock_for_update(query)
    product = query.first()
    if product is None:
        raise ProductNotFound(product_id)
    return product


def _ensure_stock_row(product: Product, location_id: int) -> ProductLocation:
    row = product.stock_row(location_id)
    if row is None:
        row = ProductLocation(location_id=location_id, quantity=0)
        product.stock_rows.append(row)
    return row


def _recompute(product: Product) -> int:
    """Refresh the aggregate and bump the row so the version check always fires."""
    product.total_quantity = compute_total_quantity(product.stock_rows)
    product.updated_at = utcnow()
    return product.total_quantity


def _require_positive(quantity: int, what: str) -> None:
    if quantity is None or quantity <= 0:
        raise InvalidQuantity(f"{what} quantity must be positive")


# ---------------------------------------------------------------------------
# Adjust
# ---------------------------------------------------------------------------

def _adjust_inventory_inner(
    *,
    product_id: int,
    location_id: int,
    new_quantity: int,
    user_id: str | None = None,
    notes: str | None = None,
    source: str = "manual",
):
    """Core ADJUST logic without retry or commit. Returns (product, tx or None)."""
    product = _load_product(product_id)
    require_location(location_id)

    row = _ensure_stock_row(product, location_id)
    old_quantity = row.quantity or 0
    delta = new_quantity - old_quantity

    row.quantity = new_quantity
    _recompute(product)

    tx = None
    if delta != 0:
        tx = append_transaction(
            AdjustmentEntry(
                product_id=product.id,
                location_id=location_id,
                delta=delta,
                user_id=user_id,
                notes=notes or f"Adjusted from {old_quantity} to {new_quantity}",
                source=source,
            ),
            product=product,
        )
    else:
        db.session.flush()
    return product, tx


def adjust_inventory(
    *,
    product_id: int,
    location_id: int,
    new_quantity: int,
    user_id: str | None = None,
    notes: str | None = None,
    source: str = "manual",
) -> dict:
    """
    Set the quantity at one location to an absolute value.

    The stock row is created when missing (prior quantity 0). A zero delta
    still writes the catalog but appends no ledger record.
    """
    if new_quantity is None or new_quantity < 0:
        raise InvalidQuantity("Quantity cannot be negative")
    if source not in SALE_SOURCES:
        raise ValidationError(f"Unknown adjustment source: {source}")

    def _op():
        product, tx = _adjust_inventory_inner(
            product_id=product_id,
            location_id=location_id,
            new_quantity=new_quantity,
            user_id=user_id,
            notes=notes,
            source=source,
        )
        db.session.commit()
        return {
            "success": True,
            "message": f"Successfully adjusted inventory to {new_quantity} units",
            "product_id": product.id,
            "total_quantity": product.total_quantity,
            "transaction": tx.to_dict() if tx is not None else None,
        }

    return run_with_retry(_op)


# ---------------------------------------------------------------------------
# Transfer
# ---------------------------------------------------------------------------

def transfer_inventory(
    *,
    product_id: int,
    from_location_id: int,
    to_location_id: int,
    quantity: int,
    user_id: str | None = None,
    notes: str | None = None,
) -> dict:
    """
    Move stock between two locations of the same product.

    The total is unchanged by construction; the recomputed value is checked
    against the pre-transfer total before committing.
    """
    _require_positive(quantity, "Transfer")
    # Validates the same-location rule before any read
    entry = TransferEntry(
        product_id=product_id,
        from_location_id=from_location_id,
        to_location_id=to_location_id,
        units=quantity,
        user_id=user_id,
        notes=notes,
    )

    def _op():
        product = _load_product(product_id)
        require_location(from_location_id)
        require_location(to_location_id)

        available = product.quantity_at(from_location_id)
        if available < quantity:
            raise InsufficientStock(product_id, from_location_id, available, quantity)

        total_before = compute_total_quantity(product.stock_rows)

        source_row = _ensure_stock_row(product, from_location_id)
        dest_row = _ensure_stock_row(product, to_location_id)
        source_row.quantity = available - quantity
        dest_row.quantity = (dest_row.quantity or 0) + quantity

        if _recompute(product) != total_before:
            # run_with_retry rolls the pending row changes back
            raise StorageFault(f"Transfer would change total quantity of product {product_id}")

        tx = append_transaction(entry, product=product)
        db.session.commit()
        return {
            "success": True,
            "message": f"Successfully transferred {quantity} units",
            "product_id": product.id,
            "total_quantity": product.total_quantity,
            "transaction": tx.to_dict(),
        }

    return run_with_retry(_op)


# ---------------------------------------------------------------------------
# Production
# ---------------------------------------------------------------------------

def _add_production_inner(*, product: Product, entry: ProductionEntry):
    """Core PRODUCTION logic on an already-loaded product, without retry or commit."""
    require_location(entry.to_location_id)

    row = _ensure_stock_row(product, entry.to_location_id)
    row.quantity = (row.quantity or 0) + entry.units
    _recompute(product)

    return append_transaction(entry, product=product)


def add_production(
    *,
    product_id: int,
    to_location_id: int,
    quantity: int,
    batch_number: str | None = None,
    production_date: date | None = None,
    expiration_date: date | None = None,
    user_id: str | None = None,
    notes: str | None = None,
) -> dict:
    _require_positive(quantity, "Production")
    entry = ProductionEntry(
        product_id=product_id,
        to_location_id=to_location_id,
        units=quantity,
        batch_number=batch_number,
        production_date=production_date,
        expiration_date=expiration_date,
        user_id=user_id,
        notes=notes,
    )

    def _op():
        product = _load_product(product_id)
        tx = _add_production_inner(product=product, entry=entry)
        db.session.commit()
        return {
            "success": True,
            "message": f"Successfully added {quantity} units to inventory",
            "product_id": product.id,
            "total_quantity": product.total_quantity,
            "transaction": tx.to_dict(),
        }

    return run_with_retry(_op)


# ---------------------------------------------------------------------------
# Sale
# ---------------------------------------------------------------------------

def _record_sale_inner(*, entry: SaleEntry):
    """Core SALE logic without retry or commit. Returns (product, tx)."""
    product = _load_product(entry.product_id)
    require_location(entry.from_location_id)

    available = product.quantity_at(entry.from_location_id)
    if available < entry.units:
        raise InsufficientStock(entry.product_id, entry.from_location_id, available, entry.units)

    row = _ensure_stock_row(product, entry.from_location_id)
    row.quantity = available - entry.units
    _recompute(product)

    return product, append_transaction(entry, product=product)


def build_sale_entry(
    *,
    product_id: int,
    location_id: int,
    quantity: int,
    source: str,
    order_id: str | None = None,
) -> SaleEntry:
    _require_positive(quantity, "Sale")
    return SaleEntry(
        product_id=product_id,
        from_location_id=location_id,
        units=quantity,
        source=source,
        order_id=order_id,
    )


def record_sale(
    *,
    product_id: int,
    location_id: int,
    quantity: int,
    source: str,
    order_id: str | None = None,
    commit: bool = True,
) -> dict:
    """
    Deduct sold units from one location.

    Overdrawing is a hard stop (InsufficientStock), never a negative balance.

    commit=False leaves the change flushed in the current transaction for a
    caller that commits several sales together; that caller then owns retry
    and rollback.
    """
    entry = build_sale_entry(
        product_id=product_id,
        location_id=location_id,
        quantity=quantity,
        source=source,
        order_id=order_id,
    )

    def _op():
        product, tx = _record_sale_inner(entry=entry)
        if commit:
            db.session.commit()
        return {
            "success": True,
            "message": f"Successfully recorded sale of {quantity} units",
            "product_id": product.id,
            "total_quantity": product.total_quantity,
            "transaction": tx.to_dict(),
        }

    if not commit:
        return _op()
    return run_with_retry(_op)


# ---------------------------------------------------------------------------
# Thresholds and reads
# ---------------------------------------------------------------------------

def set_min_stock_level(*, product_id: int, location_id: int, min_stock_level: int | None) -> dict:
    """Low-stock threshold for one location. Not a quantity change, so no ledger record."""
    if min_stock_level is not None and min_stock_level < 0:
        raise InvalidQuantity("Minimum stock level cannot be negative")

    def _op():
        product = _load_product(product_id)
        require_location(location_id)
        row = _ensure_stock_row(product, location_id)
        row.min_stock_level = min_stock_level
        _recompute(product)
        db.session.commit()
        return {
            "success": True,
            "message": f"Minimum stock level set to {min_stock_level}",
            "product_id": product.id,
        }

    return run_with_retry(_op)


def get_product_inventory_status(product_id: int) -> dict:
    product = _load_product(product_id, lock=False)

    locations = []
    for row in product.stock_rows:
        locations.append({
            "location_id": row.location_id,
            "location_name": row.location.name if row.location is not None else str(row.location_id),
            "quantity": row.quantity,
            "min_stock_level": row.min_stock_level,
            "is_low_stock": row.is_low_stock,
        })

    return {
        "product_id": product.id,
        "product_name": product.name,
        "total_quantity": product.total_quantity,
        "locations": locations,
    }
