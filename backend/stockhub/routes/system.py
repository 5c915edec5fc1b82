# backend/stockhub/routes/system.py
"""
System health endpoint.

Reports database connectivity plus a few counts that show whether the
registry has been seeded.
"""

import time
from flask import Blueprint, current_app
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import Location, Product, InventoryTransaction
from stockhub.services.location_service import get_primary_location
from stockhub.time_utils import utcnow

system_bp = Blueprint("system", __name__, url_prefix="/api")


def check_database_health() -> dict:
    """
    Check database connectivity and basic operations.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        location_count = db.session.query(Location).count()
        product_count = db.session.query(Product).count()
        transaction_count = db.session.query(InventoryTransaction).count()
        primary = get_primary_location()

        elapsed_ms = (time.time() - start_time) * 1000

        details = {
            "locations": location_count,
            "products": product_count,
            "transactions": transaction_count,
            "primary_location_id": primary.id if primary else None,
        }

        if primary is None:
            # Channel intake needs a primary location
            return {
                "status": "degraded",
                "latency_ms": round(elapsed_ms, 2),
                "warning": "No active primary location",
                "details": details,
            }

        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": details,
        }
    except SQLAlchemyError:
        db.session.rollback()
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error"
        }


@system_bp.get("/health")
def health():
    """
    Returns:
    - 200: healthy, or degraded (operational, but e.g. no primary location)
    - 503: database unreachable
    """
    database_health = check_database_health()
    http_status = 503 if database_health["status"] == "unhealthy" else 200

    response = {
        "status": database_health["status"],
        "timestamp": utcnow().isoformat() + "Z",
        "checks": {
            "database": database_health,
        }
    }

    return response, http_status
