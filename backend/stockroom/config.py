# backend/stockroom/config.py
from __future__ import annotations
import os


def _int_env(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


def _float_env(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    return float(raw)


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored next to the app unless DATABASE_URL points elsewhere
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///stockroom.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Movement log pagination
    MOVEMENTS_PAGE_LIMIT_DEFAULT = 50
    MOVEMENTS_PAGE_LIMIT_MAX = _int_env("MOVEMENTS_PAGE_LIMIT_MAX", 200)

    # Digits in generated document numbers (PO-2610-0001)
    DOCUMENT_NUMBER_PAD = _int_env("DOCUMENT_NUMBER_PAD", 4)

    # Transaction retry policy for lock/version conflicts
    DB_RETRY_ATTEMPTS = _int_env("DB_RETRY_ATTEMPTS", 3)
    DB_RETRY_BACKOFF = _float_env("DB_RETRY_BACKOFF", 0.1)
