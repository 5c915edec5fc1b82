from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any

from stockhub.errors import InventoryError
from stockhub.time_utils import parse_iso_date, parse_iso_datetime


# Maximum price: $9,999,999.99 (999,999,999 cents)
# This prevents database overflow issues and nonsensical prices
MAX_PRICE_CENTS = 999_999_999


class ValidationError(InventoryError):
    """400-level input problem."""

    kind = "ValidationError"


class ConflictError(InventoryError):
    """409-level business rule conflict (e.g., bundle already defined for a product)."""

    kind = "ConflictError"
    http_status = 409


class DuplicateSku(ConflictError):
    kind = "DuplicateSku"


@dataclass(frozen=True)
class PayloadPolicy:
    """
    Request payload policy:
    - fields: what clients are allowed to send, mapped to the expected type
      ("int", "float", "str", "bool", "datetime", "date", "list")
    - required: fields that must be present
    """
    fields: dict[str, str]
    required: frozenset[str] = field(default_factory=frozenset)


def coerce_int(key: str, value: Any) -> int:
    # Already an int (but not bool which is a subclass of int)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    # String input - must be plain digits (with optional leading minus)
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{key} must be an integer")
        # Reject scientific notation (e.g., "1e15", "1E10")
        if "e" in stripped.lower():
            raise ValidationError(f"{key} must be a plain integer (scientific notation not allowed)")
        if "." in stripped:
            raise ValidationError(f"{key} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{key} must be an integer")
    if isinstance(value, float):
        raise ValidationError(f"{key} must be an integer, not a decimal")
    raise ValidationError(f"{key} must be an integer")


def query_int(args, key: str, default: int | None = None) -> int | None:
    """Integer query-string argument; malformed values raise instead of being dropped."""
    raw = args.get(key)
    if raw is None or raw == "":
        return default
    return coerce_int(key, raw)


def enforce_price_cents(value: int | None) -> None:
    if value is None:
        return
    if value < 0:
        raise ValidationError("price_cents cannot be negative")
    if value > MAX_PRICE_CENTS:
        raise ValidationError(f"price_cents cannot exceed {MAX_PRICE_CENTS}")


def _coerce_value(key: str, kind: str, value: Any):
    if value is None:
        return None

    if kind == "int":
        return coerce_int(key, value)

    if kind == "float":
        if isinstance(value, bool):
            raise ValidationError(f"{key} must be a number")
        try:
            return float(value)
        except (TypeError, ValueError):
            raise ValidationError(f"{key} must be a number")

    if kind == "bool":
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.strip().lower() in ("true", "false"):
            return value.strip().lower() == "true"
        raise ValidationError(f"{key} must be a boolean")

    if kind == "datetime":
        if isinstance(value, datetime):
            return value
        try:
            dt = parse_iso_datetime(str(value))
        except ValueError:
            raise ValidationError(f"{key} must be an ISO-8601 datetime")
        if dt is None:
            raise ValidationError(f"{key} must be an ISO-8601 datetime")
        return dt

    if kind == "date":
        if isinstance(value, date):
            return value
        try:
            d = parse_iso_date(str(value))
        except ValueError:
            raise ValidationError(f"{key} must be an ISO-8601 date")
        if d is None:
            raise ValidationError(f"{key} must be an ISO-8601 date")
        return d

    if kind == "list":
        if not isinstance(value, list):
            raise ValidationError(f"{key} must be a list")
        return value

    # Strings
    stripped = str(value).strip()
    return stripped or None


def validate_payload(*, payload: Any, policy: PayloadPolicy) -> dict:
    """
    Validates + normalizes an incoming JSON body against a policy.

    - rejects non-object bodies and unknown fields
    - enforces required fields (present and not null)
    - coerces each provided field to its declared type

    Returns a cleaned dict containing only the fields the client sent.
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    missing = sorted(f for f in policy.required if payload.get(f) is None)
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    for k in payload.keys():
        if k not in policy.fields:
            raise ValidationError(f"Field not allowed: {k}")

    cleaned: dict = {}
    for k, raw in payload.items():
        cleaned[k] = _coerce_value(k, policy.fields[k], raw)

    for k in policy.required:
        if cleaned.get(k) is None:
            raise ValidationError(f"{k} is required")

    return cleaned
