# backend/stockhub/ledger_entries.py
"""
Typed ledger entries, one class per transaction type.

Each class declares exactly the fields its type needs, so the location
shape of a ledger record is fixed by construction:

    SaleEntry        from_location_id only, quantity stored negative
    ProductionEntry  to_location_id only, quantity stored positive
    TransferEntry    both locations, quantity stored as the moved magnitude
    AdjustmentEntry  to (delta > 0) or from (delta < 0), quantity = delta

The ledger service turns an entry into an InventoryTransaction row; the
table's CHECK constraint enforces the same shape in the database.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import ClassVar

from stockhub.errors import InvalidQuantity, SameLocation
from stockhub.validation import ValidationError


SALE_SOURCES = frozenset({"square", "shopify", "amazon", "manual", "webhook"})


class LedgerEntry:
    type: ClassVar[str]

    product_id: int

    def columns(self) -> dict:
        """Column values for the InventoryTransaction row (without snapshots)."""
        raise NotImplementedError


@dataclass(frozen=True)
class SaleEntry(LedgerEntry):
    type: ClassVar[str] = "sale"

    product_id: int
    from_location_id: int
    units: int
    source: str
    order_id: str | None = None

    def __post_init__(self):
        if self.units <= 0:
            raise InvalidQuantity("Sale quantity must be positive")
        if self.source not in SALE_SOURCES:
            raise ValidationError(f"Unknown sale source: {self.source}")

    def columns(self) -> dict:
        return {
            "type": self.type,
            "product_id": self.product_id,
            "quantity": -self.units,
            "from_location_id": self.from_location_id,
            "to_location_id": None,
            "source": self.source,
            "order_id": self.order_id,
        }


@dataclass(frozen=True)
class ProductionEntry(LedgerEntry):
    type: ClassVar[str] = "production"

    product_id: int
    to_location_id: int
    units: int
    batch_number: str | None = None
    production_date: date | None = None
    expiration_date: date | None = None
    user_id: str | None = None
    notes: str | None = None

    def __post_init__(self):
        if self.units <= 0:
            raise InvalidQuantity("Production quantity must be positive")

    def columns(self) -> dict:
        return {
            "type": self.type,
            "product_id": self.product_id,
            "quantity": self.units,
            "from_location_id": None,
            "to_location_id": self.to_location_id,
            "source": "manual",
            "batch_number": self.batch_number,
            "production_date": self.production_date,
            "expiration_date": self.expiration_date,
            "user_id": self.user_id,
            "notes": self.notes,
        }


@dataclass(frozen=True)
class TransferEntry(LedgerEntry):
    type: ClassVar[str] = "transfer"

    product_id: int
    from_location_id: int
    to_location_id: int
    units: int
    user_id: str | None = None
    notes: str | None = None

    def __post_init__(self):
        if self.units <= 0:
            raise InvalidQuantity("Transfer quantity must be positive")
        if self.from_location_id == self.to_location_id:
            raise SameLocation("Cannot transfer to the same location")

    def columns(self) -> dict:
        return {
            "type": self.type,
            "product_id": self.product_id,
            "quantity": self.units,
            "from_location_id": self.from_location_id,
            "to_location_id": self.to_location_id,
            "source": "manual",
            "user_id": self.user_id,
            "notes": self.notes,
        }


@dataclass(frozen=True)
class AdjustmentEntry(LedgerEntry):
    type: ClassVar[str] = "adjustment"

    product_id: int
    location_id: int
    delta: int
    user_id: str | None = None
    notes: str | None = None
    source: str = "manual"

    def __post_init__(self):
        if self.delta == 0:
            raise InvalidQuantity("An adjustment entry needs a non-zero delta")
        if self.source not in SALE_SOURCES:
            raise ValidationError(f"Unknown adjustment source: {self.source}")

    def columns(self) -> dict:
        return {
            "type": self.type,
            "product_id": self.product_id,
            "quantity": self.delta,
            "from_location_id": self.location_id if self.delta < 0 else None,
            "to_location_id": self.location_id if self.delta > 0 else None,
            "source": self.source,
            "user_id": self.user_id,
            "notes": self.notes,
        }
