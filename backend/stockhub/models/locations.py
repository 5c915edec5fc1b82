from __future__ import annotations

from ..extensions import db
from stockhub.time_utils import to_utc_z


LOCATION_TYPES = ("warehouse", "retail", "fulfillment", "other")


class Location(db.Model):
    """
    A physical or logical place stock can sit.

    PRIMARY LOCATION:
    At most one location is flagged is_primary. It is the default sink for
    channel sales that do not name a location. The registry service clears
    the flag everywhere else before setting it, so the invariant holds after
    every create/update.

    DELETION:
    Only allowed while no product has a stock row here (ProductLocation).
    Ledger rows keep their own location id + name snapshot and do not block it.
    """
    __tablename__ = "locations"
    __table_args__ = (
        db.CheckConstraint(
            "type IN ('warehouse', 'retail', 'fulfillment', 'other')",
            name="ck_locations_type",
        ),
        db.Index("ix_locations_primary_active", "is_primary", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    type = db.Column(db.String(16), nullable=False, default="other")

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    is_primary = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Location id={self.id} name={self.name!r} type={self.type} primary={self.is_primary}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "is_active": self.is_active,
            "is_primary": self.is_primary,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
