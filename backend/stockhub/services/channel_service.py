# backend/stockhub/services/channel_service.py
"""
Channel mapping and sale intake.

Translates what a sales channel reports (an order's line items, or the
channel's own stock count for an item) into inventory engine calls:

- channel ids resolve to a local product through ProductMapping, falling
  back to the external id columns on Product
- everything lands at the primary location; there is no per-channel
  location routing
- order lines are independent: one failing line is reported and the rest
  still run
- a bulk inventory sync applies each reported level on its own and leaves
  one SyncLog row describing the run

Signature verification and the channel payload formats stay with the
webhook receivers; by the time data gets here it is already trusted and
reduced to (external_id, quantity) pairs.
"""
from __future__ import annotations

from flask import current_app
from sqlalchemy import or_

from ..extensions import db
from ..models import CHANNEL_PLATFORMS, Product, ProductMapping, SyncLog
from stockhub.errors import BundleSalePartialFailure, InventoryError, NoPrimaryLocation, ProductNotFound
from stockhub.time_utils import utcnow
from stockhub.validation import ValidationError, coerce_int
from .bundle_service import is_bundle, process_bundle_sale
from .concurrency import run_with_retry
from .inventory_service import adjust_inventory, record_sale
from .location_service import get_primary_location

MAPPING_ID_FIELDS = {
    "shopify_product_id",
    "shopify_variant_id",
    "square_item_variation_id",
    "square_catalog_object_id",
    "amazon_asin",
    "amazon_sku",
}
MAPPING_MUTABLE_FIELDS = MAPPING_ID_FIELDS | {"matched_by", "confidence"}

# Lookup order per platform: mapping columns first, then Product columns
_MAPPING_LOOKUP = {
    "shopify": ("shopify_variant_id", "shopify_product_id"),
    "square": ("square_item_variation_id", "square_catalog_object_id"),
    "amazon": ("amazon_sku", "amazon_asin"),
}
_PRODUCT_LOOKUP = {
    "shopify": ("shopify_variant_id",),
    "square": ("square_variation_id",),
    "amazon": ("amazon_sku", "amazon_asin"),
}


def _require_platform(platform: str) -> str:
    if platform not in CHANNEL_PLATFORMS:
        raise ValidationError(f"platform must be one of: {', '.join(CHANNEL_PLATFORMS)}")
    return platform


# ---------------------------------------------------------------------------
# Mappings
# ---------------------------------------------------------------------------

def upsert_mapping(*, local_product_id: int, patch: dict) -> ProductMapping:
    """
    Create or update the mapping for a local product (one per product).

    Only the fields present in `patch` change; matched_at is refreshed on
    every write.
    """
    unknown = set(patch) - MAPPING_MUTABLE_FIELDS
    if unknown:
        raise ValidationError(f"Field not allowed: {', '.join(sorted(unknown))}")

    matched_by = patch.get("matched_by")
    if matched_by is not None and matched_by not in ("ai", "manual"):
        raise ValidationError("matched_by must be 'ai' or 'manual'")

    confidence = patch.get("confidence")
    if confidence is not None:
        try:
            confidence = float(confidence)
        except (TypeError, ValueError):
            raise ValidationError("confidence must be a number")
        if not 0.0 <= confidence <= 1.0:
            raise ValidationError("confidence must be between 0 and 1")

    def _op():
        product = db.session.get(Product, local_product_id)
        if product is None:
            raise ProductNotFound(local_product_id)

        mapping = (
            db.session.query(ProductMapping)
            .filter(ProductMapping.local_product_id == local_product_id)
            .first()
        )
        if mapping is None:
            mapping = ProductMapping(local_product_id=product.id, matched_by="manual")
            db.session.add(mapping)

        for key in MAPPING_ID_FIELDS & set(patch):
            value = patch[key]
            if value is not None:
                value = str(value).strip() or None
            setattr(mapping, key, value)
        if matched_by is not None:
            mapping.matched_by = matched_by
        if "confidence" in patch:
            mapping.confidence = confidence

        mapping.local_sku = product.sku
        mapping.matched_at = utcnow()

        db.session.commit()
        return mapping

    return run_with_retry(_op)


def list_mappings(*, platform: str | None = None) -> list[ProductMapping]:
    q = db.session.query(ProductMapping)
    if platform is not None:
        _require_platform(platform)
        columns = [getattr(ProductMapping, c) for c in _MAPPING_LOOKUP[platform]]
        q = q.filter(or_(*[c.isnot(None) for c in columns]))
    return q.order_by(ProductMapping.local_sku.asc(), ProductMapping.id.asc()).all()


def delete_mapping(mapping_id: int) -> bool:
    def _op():
        mapping = db.session.get(ProductMapping, mapping_id)
        if mapping is None:
            return False
        db.session.delete(mapping)
        db.session.commit()
        return True

    return run_with_retry(_op)


def resolve_product_id(platform: str, external_id) -> int | None:
    """Local product id for a channel's product/variant id, or None when unmapped."""
    _require_platform(platform)
    if external_id is None or not str(external_id).strip():
        return None
    external_id = str(external_id).strip()

    for column in _MAPPING_LOOKUP[platform]:
        row = (
            db.session.query(ProductMapping.local_product_id)
            .filter(getattr(ProductMapping, column) == external_id)
            .order_by(ProductMapping.id.asc())
            .first()
        )
        if row is not None:
            return row[0]

    for column in _PRODUCT_LOOKUP[platform]:
        row = (
            db.session.query(Product.id)
            .filter(getattr(Product, column) == external_id)
            .order_by(Product.id.asc())
            .first()
        )
        if row is not None:
            return row[0]

    return None


def _require_primary_location():
    location = get_primary_location()
    if location is None:
        raise NoPrimaryLocation("No primary location configured for channel sales")
    return location


# ---------------------------------------------------------------------------
# Intake
# ---------------------------------------------------------------------------

def _ingest_line(platform: str, order_id: str | None, location_id: int, item) -> dict:
    if not isinstance(item, dict):
        return {"status": "failed", "error": "Line item must be an object", "error_kind": "ValidationError"}

    external_id = item.get("external_id")
    line = {"external_id": external_id}

    try:
        quantity = coerce_int("quantity", item.get("quantity"))
    except ValidationError as exc:
        return {**line, "status": "failed", "error": str(exc), "error_kind": exc.kind}

    product_id = resolve_product_id(platform, external_id)
    if product_id is None:
        current_app.logger.warning("No %s mapping for %s; line skipped", platform, external_id)
        return {**line, "status": "unmapped", "quantity": quantity}

    line.update(product_id=product_id, quantity=quantity)
    try:
        if is_bundle(product_id):
            process_bundle_sale(
                bundle_product_id=product_id,
                quantity=quantity,
                location_id=location_id,
                source=platform,
                order_id=order_id,
            )
            line["bundle"] = True
        else:
            record_sale(
                product_id=product_id,
                location_id=location_id,
                quantity=quantity,
                source=platform,
                order_id=order_id,
            )
            line["bundle"] = False
    except BundleSalePartialFailure as exc:
        return {**line, "status": "partial", **exc.to_dict()}
    except InventoryError as exc:
        current_app.logger.warning(
            "Error processing %s sale for product %s: %s", platform, product_id, exc
        )
        return {**line, "status": "failed", "error": str(exc), "error_kind": exc.kind}

    line["status"] = "recorded"
    return line


def ingest_channel_order(*, platform: str, order_id: str | None, line_items: list) -> dict:
    """
    Record a channel order against local stock at the primary location.

    Each line resolves to a local product and becomes a bundle sale or a
    plain sale with source=platform. Lines succeed or fail independently.
    """
    _require_platform(platform)
    if not isinstance(line_items, list):
        raise ValidationError("line_items must be a list")

    location = _require_primary_location()
    location_id, location_name = location.id, location.name

    lines = [_ingest_line(platform, order_id, location_id, item) for item in line_items]

    counts = {status: 0 for status in ("recorded", "unmapped", "failed", "partial")}
    for line in lines:
        counts[line["status"]] += 1

    current_app.logger.info(
        "Processed %s order %s at %s: %d recorded, %d unmapped, %d failed, %d partial",
        platform,
        order_id,
        location_name,
        counts["recorded"],
        counts["unmapped"],
        counts["failed"],
        counts["partial"],
    )

    return {
        "success": counts["failed"] == 0 and counts["partial"] == 0,
        "platform": platform,
        "order_id": order_id,
        "location_id": location_id,
        "counts": counts,
        "lines": lines,
    }


def apply_channel_inventory_level(*, platform: str, external_id, available: int) -> dict:
    """
    Set primary-location stock of a mapped product to the channel's count.

    The change goes through the engine as an adjustment (source=webhook),
    so a count equal to local stock writes no ledger record.
    """
    _require_platform(platform)
    if available is None or available < 0:
        raise ValidationError("available must be a non-negative integer")

    location = _require_primary_location()

    product_id = resolve_product_id(platform, external_id)
    if product_id is None:
        current_app.logger.warning("No %s mapping for %s; inventory level ignored", platform, external_id)
        return {"success": False, "status": "unmapped", "external_id": external_id}

    result = adjust_inventory(
        product_id=product_id,
        location_id=location.id,
        new_quantity=available,
        notes=f"{platform.capitalize()} inventory sync: {available} units",
        source="webhook",
    )
    current_app.logger.info(
        "Synced %s inventory for product %s to %d", platform, product_id, available
    )
    return {**result, "status": "synced", "external_id": external_id}


# ---------------------------------------------------------------------------
# Reconciliation
# ---------------------------------------------------------------------------

def _normalize_level(item) -> tuple[str, int]:
    if not isinstance(item, dict):
        raise ValidationError("Each inventory level must be an object with external_id and available")
    external_id = item.get("external_id")
    if external_id is None or not str(external_id).strip():
        raise ValidationError("external_id is required")
    available = coerce_int("available", item.get("available"))
    if available < 0:
        raise ValidationError("available must be a non-negative integer")
    return str(external_id).strip(), available


def detect_discrepancies(*, platform: str, reported_levels: list) -> list[dict]:
    """
    Compare a channel's reported stock with primary-location stock.

    Read-only. Unmapped ids are skipped; difference is local - platform.
    """
    _require_platform(platform)
    if not isinstance(reported_levels, list):
        raise ValidationError("levels must be a list")
    levels = [_normalize_level(item) for item in reported_levels]

    location = _require_primary_location()

    discrepancies = []
    for external_id, platform_stock in levels:
        product_id = resolve_product_id(platform, external_id)
        if product_id is None:
            continue
        product = db.session.get(Product, product_id)
        local_stock = product.quantity_at(location.id)
        if local_stock != platform_stock:
            discrepancies.append({
                "product_id": product.id,
                "sku": product.sku,
                "product_name": product.name,
                "platform": platform,
                "external_id": external_id,
                "local_stock": local_stock,
                "platform_stock": platform_stock,
                "difference": local_stock - platform_stock,
            })

    current_app.logger.info(
        "Compared %d %s inventory level(s): %d discrepancy(ies)", len(levels), platform, len(discrepancies)
    )
    return discrepancies


def _write_sync_log(
    *,
    platform: str,
    status: str,
    items_processed: int,
    items_failed: int,
    message: str | None = None,
    details: dict | None = None,
) -> SyncLog:
    def _op():
        log = SyncLog(
            platform=platform,
            action="sync",
            status=status,
            items_processed=items_processed,
            items_failed=items_failed,
            message=message,
            details=details,
        )
        db.session.add(log)
        db.session.commit()
        return log

    return run_with_retry(_op)


def _sync_line(platform: str, item) -> dict:
    try:
        external_id, available = _normalize_level(item)
        result = apply_channel_inventory_level(platform=platform, external_id=external_id, available=available)
    except InventoryError as exc:
        external_id = item.get("external_id") if isinstance(item, dict) else None
        current_app.logger.warning("Failed to sync %s inventory for %s: %s", platform, external_id, exc)
        return {"external_id": external_id, "status": "failed", "error": str(exc), "error_kind": exc.kind}

    line = {"external_id": external_id, "status": result["status"], "available": available}
    if result["status"] == "synced":
        line["product_id"] = result["product_id"]
    return line


def sync_channel_inventory(*, platform: str, reported_levels: list) -> dict:
    """
    Apply a batch of channel stock counts to the primary location.

    Each level is applied on its own (see apply_channel_inventory_level);
    a failing item does not stop the rest. The run is recorded as one
    SyncLog: "success" when nothing failed, "partial" when some items
    failed, "failed" when items failed and none synced, or when no primary
    location exists.
    """
    _require_platform(platform)
    if not isinstance(reported_levels, list):
        raise ValidationError("levels must be a list")

    try:
        _require_primary_location()
    except NoPrimaryLocation as exc:
        _write_sync_log(
            platform=platform,
            status="failed",
            items_processed=0,
            items_failed=len(reported_levels),
            message=str(exc),
        )
        raise

    lines = [_sync_line(platform, item) for item in reported_levels]

    counts = {status: 0 for status in ("synced", "unmapped", "failed")}
    for line in lines:
        counts[line["status"]] += 1

    if counts["failed"] == 0:
        status = "success"
    elif counts["synced"] == 0:
        status = "failed"
    else:
        status = "partial"

    log = _write_sync_log(
        platform=platform,
        status=status,
        items_processed=counts["synced"],
        items_failed=counts["failed"],
        message=f"Synced {counts['synced']} of {len(lines)} {platform} inventory level(s)",
        details={
            "unmapped": [line["external_id"] for line in lines if line["status"] == "unmapped"],
            "failures": [
                {"external_id": line["external_id"], "error_kind": line["error_kind"], "error": line["error"]}
                for line in lines
                if line["status"] == "failed"
            ],
        },
    )
    current_app.logger.info(
        "%s inventory sync %s: %d synced, %d unmapped, %d failed",
        platform,
        status,
        counts["synced"],
        counts["unmapped"],
        counts["failed"],
    )

    return {
        "success": status == "success",
        "platform": platform,
        "counts": counts,
        "log": log.to_dict(),
        "lines": lines,
    }


def list_sync_logs(*, platform: str | None = None, limit: int = 20) -> list[SyncLog]:
    """Most recent sync runs first."""
    if limit is None or limit < 1:
        raise ValidationError("limit must be a positive integer")
    q = db.session.query(SyncLog)
    if platform is not None:
        _require_platform(platform)
        q = q.filter(SyncLog.platform == platform)
    return q.order_by(SyncLog.created_at.desc(), SyncLog.id.desc()).limit(min(limit, 200)).all()
