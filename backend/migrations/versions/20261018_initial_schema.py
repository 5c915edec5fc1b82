"""Initial schema: locations, catalog, ledger, bundles, channel mappings

Revision ID: 20261018_initial
Revises:
Create Date: 2026-10-18
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261018_initial"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade():
    op.create_table(
        "locations",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("type", sa.String(length=16), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("is_primary", sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.CheckConstraint(
            "type IN ('warehouse', 'retail', 'fulfillment', 'other')",
            name="ck_locations_type",
        ),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_locations_primary_active", "locations", ["is_primary", "is_active"])

    op.create_table(
        "products",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("sku", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("price_cents", sa.Integer(), nullable=True),
        sa.Column("image_url", sa.String(length=512), nullable=True),
        sa.Column("total_quantity", sa.Integer(), nullable=False),
        sa.Column("is_bundle", sa.Boolean(), nullable=False),
        sa.Column("bundle_components", sa.JSON(), nullable=True),
        sa.Column("square_variation_id", sa.String(length=64), nullable=True),
        sa.Column("shopify_variant_id", sa.String(length=64), nullable=True),
        sa.Column("amazon_sku", sa.String(length=64), nullable=True),
        sa.Column("amazon_asin", sa.String(length=32), nullable=True),
        sa.Column("version_id", sa.Integer(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("sku", name="uq_products_sku"),
        sa.CheckConstraint("total_quantity >= 0", name="ck_products_total_nonneg"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_products_name", "products", ["name"])
    op.create_index("ix_products_square_variation_id", "products", ["square_variation_id"])
    op.create_index("ix_products_shopify_variant_id", "products", ["shopify_variant_id"])
    op.create_index("ix_products_amazon_sku", "products", ["amazon_sku"])
    op.create_index("ix_products_amazon_asin", "products", ["amazon_asin"])

    op.create_table(
        "product_locations",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("product_id", sa.Integer(), sa.ForeignKey("products.id"), nullable=False),
        sa.Column("location_id", sa.Integer(), sa.ForeignKey("locations.id"), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("min_stock_level", sa.Integer(), nullable=True),
        sa.UniqueConstraint("product_id", "location_id", name="uq_product_locations_product_location"),
        sa.CheckConstraint("quantity >= 0", name="ck_product_locations_quantity_nonneg"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_product_locations_product_id", "product_locations", ["product_id"])
    op.create_index("ix_product_locations_location", "product_locations", ["location_id"])

    op.create_table(
        "inventory_transactions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("type", sa.String(length=16), nullable=False),
        sa.Column("product_id", sa.Integer(), sa.ForeignKey("products.id"), nullable=False),
        sa.Column("product_name", sa.String(length=255), nullable=False),
        sa.Column("product_sku", sa.String(length=64), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("from_location_id", sa.Integer(), nullable=True),
        sa.Column("from_location_name", sa.String(length=120), nullable=True),
        sa.Column("to_location_id", sa.Integer(), nullable=True),
        sa.Column("to_location_name", sa.String(length=120), nullable=True),
        sa.Column("source", sa.String(length=16), nullable=False),
        sa.Column("batch_number", sa.String(length=64), nullable=True),
        sa.Column("production_date", sa.Date(), nullable=True),
        sa.Column("expiration_date", sa.Date(), nullable=True),
        sa.Column("order_id", sa.String(length=64), nullable=True),
        sa.Column("user_id", sa.String(length=128), nullable=True),
        sa.Column("notes", sa.String(length=255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "type IN ('sale', 'production', 'transfer', 'adjustment')",
            name="ck_invtx_type",
        ),
        sa.CheckConstraint(
            "source IN ('square', 'shopify', 'amazon', 'manual', 'webhook')",
            name="ck_invtx_source",
        ),
        sa.CheckConstraint(
            "(type = 'sale' AND quantity < 0 AND from_location_id IS NOT NULL AND to_location_id IS NULL)"
            " OR (type = 'production' AND quantity > 0 AND to_location_id IS NOT NULL AND from_location_id IS NULL)"
            " OR (type = 'transfer' AND quantity > 0 AND from_location_id IS NOT NULL AND to_location_id IS NOT NULL)"
            " OR (type = 'adjustment' AND quantity > 0 AND to_location_id IS NOT NULL AND from_location_id IS NULL)"
            " OR (type = 'adjustment' AND quantity < 0 AND from_location_id IS NOT NULL AND to_location_id IS NULL)",
            name="ck_invtx_location_shape",
        ),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_inventory_transactions_type", "inventory_transactions", ["type"])
    op.create_index("ix_inventory_transactions_product_id", "inventory_transactions", ["product_id"])
    op.create_index("ix_inventory_transactions_from_location_id", "inventory_transactions", ["from_location_id"])
    op.create_index("ix_inventory_transactions_to_location_id", "inventory_transactions", ["to_location_id"])
    op.create_index("ix_inventory_transactions_order_id", "inventory_transactions", ["order_id"])
    op.create_index("ix_inventory_transactions_created_at", "inventory_transactions", ["created_at"])
    op.create_index("ix_invtx_product_created", "inventory_transactions", ["product_id", "created_at"])
    op.create_index("ix_invtx_type_created", "inventory_transactions", ["type", "created_at"])

    op.create_table(
        "bundles",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("bundle_product_id", sa.Integer(), sa.ForeignKey("products.id"), nullable=False),
        sa.Column("bundle_product_name", sa.String(length=255), nullable=False),
        sa.Column("bundle_sku", sa.String(length=64), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("bundle_product_id", name="uq_bundles_product"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_bundles_is_active", "bundles", ["is_active"])
    op.create_index("ix_bundles_sku_active", "bundles", ["bundle_sku", "is_active"])

    op.create_table(
        "bundle_components",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("bundle_id", sa.Integer(), sa.ForeignKey("bundles.id"), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("product_id", sa.Integer(), sa.ForeignKey("products.id"), nullable=False),
        sa.Column("product_name", sa.String(length=255), nullable=False),
        sa.Column("product_sku", sa.String(length=64), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.UniqueConstraint("bundle_id", "product_id", name="uq_bundle_components_bundle_product"),
        sa.CheckConstraint("quantity >= 1", name="ck_bundle_components_quantity_positive"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_bundle_components_bundle_id", "bundle_components", ["bundle_id"])
    op.create_index("ix_bundle_components_product_id", "bundle_components", ["product_id"])

    op.create_table(
        "product_mappings",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("local_product_id", sa.Integer(), sa.ForeignKey("products.id"), nullable=False),
        sa.Column("local_sku", sa.String(length=64), nullable=False),
        sa.Column("shopify_product_id", sa.String(length=64), nullable=True),
        sa.Column("shopify_variant_id", sa.String(length=64), nullable=True),
        sa.Column("square_item_variation_id", sa.String(length=64), nullable=True),
        sa.Column("square_catalog_object_id", sa.String(length=64), nullable=True),
        sa.Column("amazon_asin", sa.String(length=32), nullable=True),
        sa.Column("amazon_sku", sa.String(length=64), nullable=True),
        sa.Column("matched_by", sa.String(length=8), nullable=False),
        sa.Column("confidence", sa.Float(), nullable=True),
        sa.Column("matched_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        *_timestamps(),
        sa.UniqueConstraint("local_product_id", name="uq_product_mappings_local_product"),
        sa.CheckConstraint("matched_by IN ('ai', 'manual')", name="ck_product_mappings_matched_by"),
        sqlite_autoincrement=True,
    )
    for column in (
        "shopify_product_id",
        "shopify_variant_id",
        "square_item_variation_id",
        "square_catalog_object_id",
        "amazon_asin",
        "amazon_sku",
    ):
        op.create_index(f"ix_product_mappings_{column}", "product_mappings", [column])


def downgrade():
    op.drop_table("product_mappings")
    op.drop_table("bundle_components")
    op.drop_table("bundles")
    op.drop_table("inventory_transactions")
    op.drop_table("product_locations")
    op.drop_table("products")
    op.drop_table("locations")
