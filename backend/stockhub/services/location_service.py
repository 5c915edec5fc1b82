from __future__ import annotations

from ..extensions import db
from ..models import Location, ProductLocation, LOCATION_TYPES
from stockhub.errors import LocationInUse, LocationNotFound
from stockhub.validation import ValidationError
from .concurrency import lock_for_update, run_with_retry


LOCATION_MUTABLE_FIELDS = {"name", "type", "is_active", "is_primary"}

DEFAULT_LOCATIONS = (
    {"name": "Warehouse", "type": "warehouse", "is_active": True, "is_primary": True},
    {"name": "Retail Store", "type": "retail", "is_active": True},
    {"name": "Fulfillment Center", "type": "fulfillment", "is_active": True},
    {"name": "Other", "type": "other", "is_active": True},
)


def _validate_name(name) -> str:
    if name is None or not str(name).strip():
        raise ValidationError("Location name is required")
    return str(name).strip()


def _validate_type(location_type) -> str:
    if location_type not in LOCATION_TYPES:
        raise ValidationError(f"Location type must be one of: {', '.join(LOCATION_TYPES)}")
    return location_type


def _unset_all_primary(*, except_id: int | None = None) -> None:
    q = lock_for_update(db.session.query(Location).filter(Location.is_primary.is_(True)))
    for location in q.all():
        if location.id != except_id:
            location.is_primary = False


def create_location(
    name: str,
    type: str,
    is_active: bool = True,
    is_primary: bool = False,
) -> Location:
    name = _validate_name(name)
    _validate_type(type)

    def _op():
        # Single designated primary: clear the flag everywhere before inserting
        if is_primary:
            _unset_all_primary()

        location = Location(
            name=name,
            type=type,
            is_active=bool(is_active),
            is_primary=bool(is_primary),
        )
        db.session.add(location)
        db.session.commit()
        return location

    return run_with_retry(_op)


def update_location(location_id: int, **patch) -> Location:
    unknown = set(patch) - LOCATION_MUTABLE_FIELDS
    if unknown:
        raise ValidationError(f"Field not allowed: {', '.join(sorted(unknown))}")
    if "name" in patch:
        patch["name"] = _validate_name(patch["name"])
    if "type" in patch:
        _validate_type(patch["type"])

    def _op():
        location = lock_for_update(db.session.query(Location).filter_by(id=location_id)).first()
        if location is None:
            raise LocationNotFound(location_id)

        if patch.get("is_primary"):
            _unset_all_primary(except_id=location.id)

        for key, value in patch.items():
            if value is None:
                continue
            setattr(location, key, value)

        db.session.commit()
        return location

    return run_with_retry(_op)


def location_in_use(location_id: int) -> bool:
    """True when any product has a stock row here, whatever its quantity."""
    return (
        db.session.query(ProductLocation.id)
        .filter(ProductLocation.location_id == location_id)
        .first()
        is not None
    )


def delete_location(location_id: int) -> None:
    def _op():
        location = lock_for_update(db.session.query(Location).filter_by(id=location_id)).first()
        if location is None:
            raise LocationNotFound(location_id)

        if location_in_use(location_id):
            raise LocationInUse("Cannot delete location that is in use by products")

        db.session.delete(location)
        db.session.commit()

    run_with_retry(_op)


def get_location(location_id: int) -> Location | None:
    return db.session.get(Location, location_id)


def require_location(location_id: int) -> Location:
    location = get_location(location_id)
    if location is None:
        raise LocationNotFound(location_id)
    return location


def list_locations(*, active_only: bool = False) -> list[Location]:
    q = db.session.query(Location)
    if active_only:
        q = q.filter(Location.is_active.is_(True))
    return q.order_by(Location.name.asc(), Location.id.asc()).all()


def get_primary_location() -> Location | None:
    """The designated primary location, if it is also active."""
    return (
        db.session.query(Location)
        .filter(Location.is_primary.is_(True), Location.is_active.is_(True))
        .order_by(Location.id.asc())
        .first()
    )


def initialize_default_locations() -> list[Location]:
    """
    Seed the registry on first run. Returns the created locations, or an
    empty list when any location already exists.
    """
    def _op():
        if db.session.query(Location.id).first() is not None:
            return []

        created = [Location(**data) for data in DEFAULT_LOCATIONS]
        db.session.add_all(created)
        db.session.commit()
        return created

    return run_with_retry(_op)
