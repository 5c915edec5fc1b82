# backend/stockhub/config.py
from __future__ import annotations
import os


def _env_flag(name: str, default: bool = False) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/stockhub.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",  # optional alternative location
        "sqlite:///stockhub.sqlite3",  # default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Attempts for a single-product read-modify-write before it surfaces as a storage fault
    DB_RETRY_ATTEMPTS = int(os.environ.get("DB_RETRY_ATTEMPTS", "3"))

    # Bundle cascade behaviour (both off = best-effort, partial failures reported)
    BUNDLE_SALE_PREFLIGHT = _env_flag("BUNDLE_SALE_PREFLIGHT")
    BUNDLE_SALE_ATOMIC = _env_flag("BUNDLE_SALE_ATOMIC")

    LEDGER_QUERY_MAX_LIMIT = int(os.environ.get("LEDGER_QUERY_MAX_LIMIT", "500"))
