# backend/backoffice/config.py
from __future__ import annotations
import os


def _env_flag(name: str, default: bool = False) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/backoffice.sqlite3 unless DATABASE_URL says otherwise.
    # Use postgresql+psycopg2://... in production; each tenant gets its own schema there.
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///backoffice.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # SQLite only: directory holding one attached database file per tenant namespace.
    # Defaults to "<main db dir>/namespaces".
    SQLITE_NAMESPACE_DIR = os.environ.get("SQLITE_NAMESPACE_DIR")

    # Bearer tokens
    JWT_SECRET_KEY = os.environ.get("JWT_SECRET_KEY", SECRET_KEY)
    JWT_ALGORITHM = "HS256"
    TOKEN_TTL_HOURS = int(os.environ.get("TOKEN_TTL_HOURS", "8"))
    BCRYPT_ROUNDS = int(os.environ.get("BCRYPT_ROUNDS", "12"))

    # Registration approval variant
    REGISTRATION_REQUIRES_APPROVAL = _env_flag("REGISTRATION_REQUIRES_APPROVAL")
    APPROVAL_TOKEN_TTL_HOURS = int(os.environ.get("APPROVAL_TOKEN_TTL_HOURS", "72"))
    APPROVAL_BASE_URL = os.environ.get("APPROVAL_BASE_URL", "http://localhost:5000/api/auth/approve")

    # Payment gateway callback shared secret
    PAYMENT_SECRET_KEY = os.environ.get("PAYMENT_SECRET_KEY", "")

    # Outbound mail (operator notifications). Unset MAIL_SERVER means log-only.
    MAIL_SERVER = os.environ.get("MAIL_SERVER")
    MAIL_PORT = int(os.environ.get("MAIL_PORT", "587"))
    MAIL_USERNAME = os.environ.get("MAIL_USERNAME")
    MAIL_PASSWORD = os.environ.get("MAIL_PASSWORD")
    MAIL_SENDER = os.environ.get("MAIL_SENDER", "no-reply@backoffice.local")
    OPERATOR_EMAIL = os.environ.get("OPERATOR_EMAIL")
