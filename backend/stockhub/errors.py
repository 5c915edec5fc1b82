# backend/stockhub/errors.py
"""
Inventory error taxonomy.

Every failure a service can raise carries a stable `kind` string so callers
(routes, webhook intake, CLI) can special-case it, e.g. render "not enough
stock" for InsufficientStock instead of a generic banner.

HTTP mapping:
- 400: caller sent something invalid (InvalidQuantity, SameLocation, ValidationError)
- 404: referenced entity does not exist
- 409: business rule conflict with current state
- 500: storage layer failed (StorageFault)
"""
from __future__ import annotations

from flask import jsonify


class InventoryError(ValueError):
    """Base class for all domain failures raised by the services."""

    kind = "InventoryError"
    http_status = 400

    def to_dict(self) -> dict:
        return {
            "success": False,
            "error": str(self),
            "error_kind": self.kind,
        }


class InvalidQuantity(InventoryError):
    kind = "InvalidQuantity"


class SameLocation(InventoryError):
    kind = "SameLocation"


class ProductNotFound(InventoryError):
    kind = "ProductNotFound"
    http_status = 404

    def __init__(self, product_id, message: str | None = None):
        self.product_id = product_id
        super().__init__(message or f"Product {product_id} not found")


class LocationNotFound(InventoryError):
    kind = "LocationNotFound"
    http_status = 404

    def __init__(self, location_id):
        self.location_id = location_id
        super().__init__(f"Location {location_id} not found")


class BundleNotFound(InventoryError):
    kind = "BundleNotFound"
    http_status = 404


class LocationInUse(InventoryError):
    kind = "LocationInUse"
    http_status = 409


class NoPrimaryLocation(InventoryError):
    kind = "NoPrimaryLocation"
    http_status = 409


class InsufficientStock(InventoryError):
    kind = "InsufficientStock"
    http_status = 409

    def __init__(self, product_id, location_id, available: int, requested: int):
        self.product_id = product_id
        self.location_id = location_id
        self.available = available
        self.requested = requested
        super().__init__(
            f"Insufficient inventory for product {product_id} at location {location_id}. "
            f"Available: {available}, Requested: {requested}"
        )

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["available"] = self.available
        data["requested"] = self.requested
        return data


class StorageFault(InventoryError):
    """Persistence failed underneath an operation. Never retried by the caller's request."""

    kind = "StorageFault"
    http_status = 500


class BundleSalePartialFailure(InventoryError):
    """
    A bundle cascade stopped part-way.

    Components in `completed` were already deducted and committed; they are
    NOT reversed. The component that failed and its underlying error are kept
    so reconciliation tooling can act on them.
    """

    kind = "BundleSalePartialFailure"
    http_status = 409

    def __init__(self, bundle_product_id, completed: list[dict], failed_product_id, cause: InventoryError):
        self.bundle_product_id = bundle_product_id
        self.completed = completed
        self.failed_product_id = failed_product_id
        self.cause = cause
        super().__init__(
            f"Bundle sale for product {bundle_product_id} partially applied: "
            f"{len(completed)} component(s) deducted before product {failed_product_id} failed ({cause})"
        )

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["partial"] = True
        data["completed"] = self.completed
        data["failed_product_id"] = self.failed_product_id
        data["cause_kind"] = self.cause.kind
        return data


class LedgerImmutable(InventoryError):
    """Raised by the ORM guard when code tries to update or delete a ledger row."""

    kind = "LedgerImmutable"
    http_status = 409


def error_response(exc: InventoryError):
    return jsonify(exc.to_dict()), exc.http_status
