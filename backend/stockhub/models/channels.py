from __future__ import annotations

from ..extensions import db
from stockhub.time_utils import to_utc_z


CHANNEL_PLATFORMS = ("shopify", "square", "amazon")
SYNC_ACTIONS = ("fetch", "update", "sync", "error")
SYNC_STATUSES = ("success", "failed", "partial")


class ProductMapping(db.Model):
    """
    Link between a local product and its identities on the sales channels.

    One mapping per local product. Webhook intake resolves a channel's
    product/variant id to local_product_id through this table.

    matched_by records whether a human linked the ids or an accepted
    candidate from the matcher did (confidence is the matcher's score).
    """
    __tablename__ = "product_mappings"
    __table_args__ = (
        db.UniqueConstraint("local_product_id", name="uq_product_mappings_local_product"),
        db.CheckConstraint("matched_by IN ('ai', 'manual')", name="ck_product_mappings_matched_by"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    local_product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)
    local_sku = db.Column(db.String(64), nullable=False)

    shopify_product_id = db.Column(db.String(64), nullable=True, index=True)
    shopify_variant_id = db.Column(db.String(64), nullable=True, index=True)
    square_item_variation_id = db.Column(db.String(64), nullable=True, index=True)
    square_catalog_object_id = db.Column(db.String(64), nullable=True, index=True)
    amazon_asin = db.Column(db.String(32), nullable=True, index=True)
    amazon_sku = db.Column(db.String(64), nullable=True, index=True)

    matched_by = db.Column(db.String(8), nullable=False, default="manual")
    confidence = db.Column(db.Float, nullable=True)
    matched_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "local_product_id": self.local_product_id,
            "local_sku": self.local_sku,
            "shopify_product_id": self.shopify_product_id,
            "shopify_variant_id": self.shopify_variant_id,
            "square_item_variation_id": self.square_item_variation_id,
            "square_catalog_object_id": self.square_catalog_object_id,
            "amazon_asin": self.amazon_asin,
            "amazon_sku": self.amazon_sku,
            "matched_by": self.matched_by,
            "confidence": self.confidence,
            "matched_at": to_utc_z(self.matched_at),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class SyncLog(db.Model):
    """
    One row per bulk inventory sync against a channel.

    Rows are append-only. status is "partial" when some items failed and
    "failed" when none were applied or the run could not start.
    """
    __tablename__ = "sync_logs"
    __table_args__ = (
        db.CheckConstraint(
            "platform IN ('shopify', 'square', 'amazon')",
            name="ck_sync_logs_platform",
        ),
        db.CheckConstraint(
            "action IN ('fetch', 'update', 'sync', 'error')",
            name="ck_sync_logs_action",
        ),
        db.CheckConstraint(
            "status IN ('success', 'failed', 'partial')",
            name="ck_sync_logs_status",
        ),
        db.CheckConstraint("items_processed >= 0", name="ck_sync_logs_processed_nonnegative"),
        db.CheckConstraint("items_failed >= 0", name="ck_sync_logs_failed_nonnegative"),
        db.Index("ix_sync_logs_platform_created", "platform", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    platform = db.Column(db.String(16), nullable=False)
    action = db.Column(db.String(16), nullable=False)
    status = db.Column(db.String(16), nullable=False)
    items_processed = db.Column(db.Integer, nullable=False, default=0)
    items_failed = db.Column(db.Integer, nullable=False, default=0)
    message = db.Column(db.Text, nullable=True)
    details = db.Column(db.JSON, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "platform": self.platform,
            "action": self.action,
            "status": self.status,
            "items_processed": self.items_processed,
            "items_failed": self.items_failed,
            "message": self.message,
            "details": self.details,
            "created_at": to_utc_z(self.created_at),
        }
