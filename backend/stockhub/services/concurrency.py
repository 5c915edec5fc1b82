# Overview: Per-product locking and bounded retry for read-modify-write operations.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from stockhub.errors import InventoryError, StorageFault


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE; there the Product.version_id
    optimistic check is what serialises concurrent writers.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int | None = None, backoff_base: float = 0.1):
    """
    Execute a whole read-modify-write DB operation, re-running it on
    concurrency conflicts.

    - OperationalError (locks, deadlocks) and StaleDataError (optimistic
      version mismatch) roll back and re-run `func` from the start, up to
      `attempts` times, then surface as StorageFault.
    - Domain errors roll back and propagate unchanged.
    - Any other SQLAlchemy error is a StorageFault immediately.
    """
    if attempts is None:
        attempts = current_app.config.get("DB_RETRY_ATTEMPTS", 3)
    attempts = max(1, attempts)

    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            if attempt >= attempts - 1:
                current_app.logger.error("Giving up after %d conflicting attempts: %s", attempts, exc)
                raise StorageFault(f"Storage conflict persisted after {attempts} attempts") from exc
            current_app.logger.info(
                "Concurrent write conflict, retrying (attempt %d/%d): %s", attempt + 1, attempts, exc
            )
            time.sleep(backoff_base * (2 ** attempt))
        except InventoryError:
            db.session.rollback()
            raise
        except SQLAlchemyError as exc:
            db.session.rollback()
            current_app.logger.exception("Storage failure")
            raise StorageFault("Storage failure") from exc
