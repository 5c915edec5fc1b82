# Overview: Append-only inventory transaction ledger: writes, filtered reads and statistics.

from __future__ import annotations

from datetime import datetime

from flask import current_app
from sqlalchemy import func, or_

from ..extensions import db
from ..models import InventoryTransaction, Location, Product, TRANSACTION_TYPES
from stockhub.ledger_entries import LedgerEntry
from stockhub.validation import ValidationError
"""
Ledger Invariants (authoritative)

- Append-only: this module exposes no update or delete, and the model's
  mapper listeners refuse both.
- No quantity logic here: the inventory engine decides what happened and
  hands over a typed entry; this module only records it.
- Records are written inside the caller's DB transaction (flush, no commit),
  so a stock change and its record commit or roll back together.
- product name/sku and location names are snapshots taken at write time.
- Reads are newest first: created_at desc, id desc.
"""


def _location_name(location_id: int | None) -> str | None:
    if location_id is None:
        return None
    location = db.session.get(Location, location_id)
    return location.name if location else None


def append_transaction(entry: LedgerEntry, *, product: Product) -> InventoryTransaction:
    cols = entry.columns()
    if cols["product_id"] != product.id:
        raise ValueError("ledger entry does not belong to the given product")

    tx = InventoryTransaction(
        product_name=product.name,
        product_sku=product.sku,
        from_location_name=_location_name(cols.get("from_location_id")),
        to_location_name=_location_name(cols.get("to_location_id")),
        **cols,
    )
    db.session.add(tx)
    db.session.flush()  # assigns tx.id inside the caller's transaction
    return tx


def query_transactions(
    *,
    product_id: int | None = None,
    type: str | None = None,
    location_id: int | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
    limit: int | None = None,
) -> list[InventoryTransaction]:
    """
    Filtered ledger read.

    - location_id matches either side of a record (from or to)
    - start/end are inclusive bounds on created_at
    - limit defaults to, and is capped at, LEDGER_QUERY_MAX_LIMIT
    """
    max_limit = current_app.config.get("LEDGER_QUERY_MAX_LIMIT", 500)
    if limit is None:
        limit = max_limit
    if limit < 1:
        raise ValidationError("limit must be at least 1")
    limit = min(limit, max_limit)

    if type is not None and type not in TRANSACTION_TYPES:
        raise ValidationError(f"type must be one of: {', '.join(TRANSACTION_TYPES)}")
    if start is not None and end is not None and start > end:
        raise ValidationError("start_date must not be after end_date")

    q = db.session.query(InventoryTransaction)
    if product_id is not None:
        q = q.filter(InventoryTransaction.product_id == product_id)
    if type is not None:
        q = q.filter(InventoryTransaction.type == type)
    if location_id is not None:
        q = q.filter(
            or_(
                InventoryTransaction.from_location_id == location_id,
                InventoryTransaction.to_location_id == location_id,
            )
        )
    if start is not None:
        q = q.filter(InventoryTransaction.created_at >= start)
    if end is not None:
        q = q.filter(InventoryTransaction.created_at <= end)

    return (
        q.order_by(InventoryTransaction.created_at.desc(), InventoryTransaction.id.desc())
        .limit(limit)
        .all()
    )


def get_transaction(transaction_id: int) -> InventoryTransaction | None:
    return db.session.get(InventoryTransaction, transaction_id)


def get_transaction_stats(product_id: int | None = None) -> dict:
    """
    Units moved per transaction type (sum of absolute quantities).

    Computed from the ledger rows on every call; there is no stored
    aggregate to keep in sync.
    """
    q = db.session.query(
        InventoryTransaction.type,
        func.coalesce(func.sum(func.abs(InventoryTransaction.quantity)), 0),
    )
    if product_id is not None:
        q = q.filter(InventoryTransaction.product_id == product_id)

    totals = {tx_type: int(units or 0) for tx_type, units in q.group_by(InventoryTransaction.type).all()}

    return {
        "total_sales": totals.get("sale", 0),
        "total_production": totals.get("production", 0),
        "total_transfers": totals.get("transfer", 0),
        "total_adjustments": totals.get("adjustment", 0),
    }
