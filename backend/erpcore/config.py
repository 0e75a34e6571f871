# backend/erpcore/config.py
from __future__ import annotations
import os


def _sqlite_engine_options(uri: str) -> dict:
    # Concurrent writers wait on the database lock instead of failing at once.
    if uri.startswith("sqlite"):
        return {"connect_args": {"timeout": 30}}
    return {}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored next to the backend by default
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",  # optional alternative location
        "sqlite:///erpcore.sqlite3",  # default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = _sqlite_engine_options(SQLALCHEMY_DATABASE_URI)

    # Bearer tokens issued by the auth service carry tenant_id / user_id claims
    JWT_SECRET_KEY = os.environ.get("JWT_SECRET_KEY", "dev-jwt-secret-change-me")
    JWT_ALGORITHM = os.environ.get("JWT_ALGORITHM", "HS256")
    JWT_EXPIRE_MINUTES = int(os.environ.get("JWT_EXPIRE_MINUTES", "720"))

    # Tenant display defaults (used when a company has not configured its own)
    DEFAULT_TIMEZONE = os.environ.get("DEFAULT_TIMEZONE", "Asia/Kolkata")
    DEFAULT_DATE_FORMAT = os.environ.get("DEFAULT_DATE_FORMAT", "DD-MM-YYYY")
    DEFAULT_TIME_STYLE = os.environ.get("DEFAULT_TIME_STYLE", "12-hour")

    # Document number allocation
    SEQUENCE_RETRY_ATTEMPTS = int(os.environ.get("SEQUENCE_RETRY_ATTEMPTS", "5"))
    SEQUENCE_RETRY_BACKOFF = float(os.environ.get("SEQUENCE_RETRY_BACKOFF", "0.05"))

    PAGE_SIZE_MAX = int(os.environ.get("PAGE_SIZE_MAX", "200"))
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
