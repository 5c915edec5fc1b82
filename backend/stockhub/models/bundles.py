from __future__ import annotations

from ..extensions import db
from stockhub.time_utils import to_utc_z


class Bundle(db.Model):
    """
    A virtual product fulfilled by deducting its components.

    - 1:1 with a Product (uq_bundles_product); that product's is_bundle and
      bundle_components fields mirror this record.
    - The bundle product itself holds no stock of its own for sales purposes;
      selling it deducts the components.
    - Names/SKUs are snapshots taken when the bundle is written.
    """
    __tablename__ = "bundles"
    __table_args__ = (
        db.UniqueConstraint("bundle_product_id", name="uq_bundles_product"),
        db.Index("ix_bundles_sku_active", "bundle_sku", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    bundle_product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)
    bundle_product_name = db.Column(db.String(255), nullable=False)
    bundle_sku = db.Column(db.String(64), nullable=False)

    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    components = db.relationship(
        "BundleComponent",
        back_populates="bundle",
        cascade="all, delete-orphan",
        order_by="BundleComponent.position",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<Bundle id={self.id} product_id={self.bundle_product_id} sku={self.bundle_sku!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "bundle_product_id": self.bundle_product_id,
            "bundle_product_name": self.bundle_product_name,
            "bundle_sku": self.bundle_sku,
            "component_products": [c.to_dict() for c in self.components],
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class BundleComponent(db.Model):
    __tablename__ = "bundle_components"
    __table_args__ = (
        db.UniqueConstraint("bundle_id", "product_id", name="uq_bundle_components_bundle_product"),
        db.CheckConstraint("quantity >= 1", name="ck_bundle_components_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    bundle_id = db.Column(db.Integer, db.ForeignKey("bundles.id"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False, default=0)

    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    product_name = db.Column(db.String(255), nullable=False)
    product_sku = db.Column(db.String(64), nullable=False)

    # Units of this product consumed per bundle sold
    quantity = db.Column(db.Integer, nullable=False)

    bundle = db.relationship("Bundle", back_populates="components")

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "product_name": self.product_name,
            "product_sku": self.product_sku,
            "quantity": self.quantity,
        }
