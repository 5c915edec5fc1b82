from __future__ import annotations

from sqlalchemy import event

from ..extensions import db
from stockhub.errors import LedgerImmutable
from stockhub.time_utils import to_iso_date, to_utc_z, utcnow


TRANSACTION_TYPES = ("sale", "production", "transfer", "adjustment")
TRANSACTION_SOURCES = ("square", "shopify", "amazon", "manual", "webhook")


class InventoryTransaction(db.Model):
    """
    Append-only ledger record of one inventory-quantity change.

    QUANTITY SIGN:
    - sale: negative (units leaving from_location)
    - production: positive (units arriving at to_location)
    - transfer: positive magnitude; direction is from_location -> to_location
    - adjustment: signed delta

    LOCATION SHAPE (ck_invtx_location_shape):
    - sale: from only
    - production: to only
    - transfer: both
    - adjustment: to when delta > 0, from when delta < 0

    Location ids are not foreign keys and names are snapshots: history must
    survive renames and deletions in the registry. Same for product name/sku.

    Rows are never updated or deleted; the mapper listeners below refuse it.
    """
    __tablename__ = "inventory_transactions"
    __table_args__ = (
        db.CheckConstraint(
            "type IN ('sale', 'production', 'transfer', 'adjustment')",
            name="ck_invtx_type",
        ),
        db.CheckConstraint(
            "source IN ('square', 'shopify', 'amazon', 'manual', 'webhook')",
            name="ck_invtx_source",
        ),
        db.CheckConstraint(
            "(type = 'sale' AND quantity < 0 AND from_location_id IS NOT NULL AND to_location_id IS NULL)"
            " OR (type = 'production' AND quantity > 0 AND to_location_id IS NOT NULL AND from_location_id IS NULL)"
            " OR (type = 'transfer' AND quantity > 0 AND from_location_id IS NOT NULL AND to_location_id IS NOT NULL)"
            " OR (type = 'adjustment' AND quantity > 0 AND to_location_id IS NOT NULL AND from_location_id IS NULL)"
            " OR (type = 'adjustment' AND quantity < 0 AND from_location_id IS NOT NULL AND to_location_id IS NULL)",
            name="ck_invtx_location_shape",
        ),
        db.Index("ix_invtx_product_created", "product_id", "created_at"),
        db.Index("ix_invtx_type_created", "type", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    type = db.Column(db.String(16), nullable=False, index=True)

    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    product_name = db.Column(db.String(255), nullable=False)
    product_sku = db.Column(db.String(64), nullable=False)

    quantity = db.Column(db.Integer, nullable=False)

    from_location_id = db.Column(db.Integer, nullable=True, index=True)
    from_location_name = db.Column(db.String(120), nullable=True)
    to_location_id = db.Column(db.Integer, nullable=True, index=True)
    to_location_name = db.Column(db.String(120), nullable=True)

    source = db.Column(db.String(16), nullable=False, default="manual")

    batch_number = db.Column(db.String(64), nullable=True)
    production_date = db.Column(db.Date, nullable=True)
    expiration_date = db.Column(db.Date, nullable=True)
    order_id = db.Column(db.String(64), nullable=True, index=True)
    user_id = db.Column(db.String(128), nullable=True)
    notes = db.Column(db.String(255), nullable=True)

    # Python-side default keeps sub-second ordering on SQLite
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    def __repr__(self) -> str:
        return f"<InventoryTransaction id={self.id} type={self.type} product_id={self.product_id} qty={self.quantity}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "product_sku": self.product_sku,
            "quantity": self.quantity,
            "from_location_id": self.from_location_id,
            "from_location_name": self.from_location_name,
            "to_location_id": self.to_location_id,
            "to_location_name": self.to_location_name,
            "source": self.source,
            "batch_number": self.batch_number,
            "production_date": to_iso_date(self.production_date),
            "expiration_date": to_iso_date(self.expiration_date),
            "order_id": self.order_id,
            "user_id": self.user_id,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
        }


@event.listens_for(InventoryTransaction, "before_update")
def _refuse_ledger_update(mapper, connection, target):
    raise LedgerImmutable(f"Inventory transaction {target.id} is immutable")


@event.listens_for(InventoryTransaction, "before_delete")
def _refuse_ledger_delete(mapper, connection, target):
    raise LedgerImmutable(f"Inventory transaction {target.id} cannot be deleted")
