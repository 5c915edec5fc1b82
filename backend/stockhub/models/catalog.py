from __future__ import annotations

from ..extensions import db
from stockhub.time_utils import to_utc_z


def compute_total_quantity(stock_rows) -> int:
    """
    Aggregate projection of per-location stock.

    Always derived from the detail rows, never adjusted incrementally, so
    the stored total cannot drift from the rows it summarises.
    """
    return sum(int(row.quantity or 0) for row in stock_rows)


class Product(db.Model):
    """
    Product master data plus the denormalized stock aggregate.

    SKU: globally unique (uq_products_sku). Creation with an existing SKU is
    rejected by the catalog service before insert.

    STOCK:
    - Per-location quantities live in ProductLocation rows (one per location).
    - total_quantity == sum(stock_rows.quantity), recomputed by the inventory
      engine on every write.
    - Only services/inventory_service.py mutates quantities.

    CONCURRENCY:
    version_id is SQLAlchemy's optimistic-lock column. Every stock write also
    touches updated_at on this row, so two writers that read the same version
    cannot both commit (the loser gets StaleDataError and is retried).

    BUNDLES:
    is_bundle / bundle_components mirror the Bundle record for this product
    and are only written by services/bundle_service.py.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.UniqueConstraint("sku", name="uq_products_sku"),
        db.Index("ix_products_name", "name"),
        db.CheckConstraint("total_quantity >= 0", name="ck_products_total_nonneg"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    sku = db.Column(db.String(64), nullable=False)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)

    # Authoritative storage in cents (frontend may only format for display)
    price_cents = db.Column(db.Integer, nullable=True)
    image_url = db.Column(db.String(512), nullable=True)

    total_quantity = db.Column(db.Integer, nullable=False, default=0)

    is_bundle = db.Column(db.Boolean, nullable=False, default=False)
    # [{"product_id": int, "quantity": int}, ...] while is_bundle, else NULL
    bundle_components = db.Column(db.JSON, nullable=True)

    # External channel identifiers (opaque)
    square_variation_id = db.Column(db.String(64), nullable=True, index=True)
    shopify_variant_id = db.Column(db.String(64), nullable=True, index=True)
    amazon_sku = db.Column(db.String(64), nullable=True, index=True)
    amazon_asin = db.Column(db.String(32), nullable=True, index=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    stock_rows = db.relationship(
        "ProductLocation",
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="ProductLocation.location_id",
        lazy="selectin",
    )

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product id={self.id} sku={self.sku!r} name={self.name!r} total={self.total_quantity}>"

    def stock_row(self, location_id: int) -> "ProductLocation | None":
        for row in self.stock_rows:
            if row.location_id == location_id:
                return row
        return None

    def quantity_at(self, location_id: int) -> int:
        row = self.stock_row(location_id)
        return row.quantity if row is not None else 0

    def locations_map(self) -> dict:
        return {
            str(row.location_id): {
                "quantity": row.quantity,
                "min_stock_level": row.min_stock_level,
            }
            for row in self.stock_rows
        }

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sku": self.sku,
            "name": self.name,
            "description": self.description,
            "price_cents": self.price_cents,
            "image_url": self.image_url,
            "locations": self.locations_map(),
            "total_quantity": self.total_quantity,
            "is_bundle": self.is_bundle,
            "bundle_components": self.bundle_components,
            "square_variation_id": self.square_variation_id,
            "shopify_variant_id": self.shopify_variant_id,
            "amazon_sku": self.amazon_sku,
            "amazon_asin": self.amazon_asin,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class ProductLocation(db.Model):
    """
    Stock of one product at one location.

    A row that exists, even at quantity 0, means the product "uses" the
    location: the registry refuses to delete the location while it exists.
    The location_id index makes that guard an indexed lookup.
    """
    __tablename__ = "product_locations"
    __table_args__ = (
        db.UniqueConstraint("product_id", "location_id", name="uq_product_locations_product_location"),
        db.CheckConstraint("quantity >= 0", name="ck_product_locations_quantity_nonneg"),
        db.Index("ix_product_locations_location", "location_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    location_id = db.Column(db.Integer, db.ForeignKey("locations.id"), nullable=False)

    quantity = db.Column(db.Integer, nullable=False, default=0)
    min_stock_level = db.Column(db.Integer, nullable=True)

    product = db.relationship("Product", back_populates="stock_rows")
    location = db.relationship("Location", lazy="joined")

    def __repr__(self) -> str:
        return f"<ProductLocation product_id={self.product_id} location_id={self.location_id} qty={self.quantity}>"

    @property
    def is_low_stock(self) -> bool:
        # A threshold of 0 (or none) means "not tracked"
        if not self.min_stock_level:
            return False
        return self.quantity <= self.min_stock_level
