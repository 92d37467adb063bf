"""
Application configuration.

This module defines the configuration settings for the Flask application, including database connection,
session cookie policy, identity-token verification and mail transport. It uses environment variables for
sensitive information and defaults for development. In production, make sure to set SECRET_KEY,
IDENTITY_TOKEN_SECRET and SESSION_COOKIE_SECURE.
"""

import os
from datetime import timedelta
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    """Base configuration shared by all environments."""

    # IMPORTANT: change this in production (signs the session cookie)
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-change-me-please")

    # Database: SQLite for development (simple file in project folder)
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        f"sqlite:///{BASE_DIR / 'quotedesk.db'}"
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Session cookie: one signed cookie for both credential schemes
    SESSION_COOKIE_NAME = os.environ.get("SESSION_COOKIE_NAME", "quotedesk_session")
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SECURE = _env_bool("SESSION_COOKIE_SECURE", False)
    # SameSite=None is only valid together with Secure
    SESSION_COOKIE_SAMESITE = "None" if SESSION_COOKIE_SECURE and _env_bool("CROSS_SITE_COOKIE", False) else "Lax"
    PERMANENT_SESSION_LIFETIME = timedelta(days=int(os.environ.get("SESSION_LIFETIME_DAYS", "7")))
    REMEMBER_COOKIE_HTTPONLY = True

    # CSRF protection for mutating requests (token sent in X-CSRFToken header)
    WTF_CSRF_ENABLED = True
    WTF_CSRF_TIME_LIMIT = None

    # Externally-issued identity tokens (JWT)
    IDENTITY_TOKEN_SECRET = os.environ.get("IDENTITY_TOKEN_SECRET", "dev-identity-secret")
    IDENTITY_TOKEN_ALGORITHMS = [
        alg.strip() for alg in os.environ.get("IDENTITY_TOKEN_ALGORITHMS", "HS256").split(",") if alg.strip()
    ]
    IDENTITY_TOKEN_AUDIENCE = os.environ.get("IDENTITY_TOKEN_AUDIENCE") or None
    IDENTITY_TOKEN_ISSUER = os.environ.get("IDENTITY_TOKEN_ISSUER") or None

    # Password reset
    RESET_TOKEN_EXPIRY_HOURS = int(os.environ.get("RESET_TOKEN_EXPIRY_HOURS", "24"))
    MIN_PASSWORD_LENGTH = 8

    # Links placed in emails
    APP_BASE_URL = os.environ.get("APP_BASE_URL", "http://localhost:5000")

    # Mail: "console" logs the message, "smtp" sends it
    MAIL_TRANSPORT = os.environ.get("MAIL_TRANSPORT", "console")
    MAIL_SMTP = os.environ.get("MAIL_SMTP", "localhost")
    MAIL_PORT = int(os.environ.get("MAIL_PORT", "587"))
    MAIL_USERNAME = os.environ.get("MAIL_USERNAME", "")
    MAIL_PASSWORD = os.environ.get("MAIL_PASSWORD", "")
    MAIL_SENDER = os.environ.get("MAIL_SENDER", "no-reply@quotedesk.local")
    OWNER_EMAIL = os.environ.get("OWNER_EMAIL", "")

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # App name (used in documents and emails)
    APP_NAME = "QuoteDesk"


class TestConfig(Config):
    """Configuration used by the pytest suite."""

    TESTING = True
    SECRET_KEY = "test-secret"
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    WTF_CSRF_ENABLED = False
    SESSION_COOKIE_SECURE = False
    SESSION_COOKIE_SAMESITE = "Lax"
    IDENTITY_TOKEN_SECRET = "test-identity-secret"
    IDENTITY_TOKEN_ALGORITHMS = ["HS256"]
    IDENTITY_TOKEN_AUDIENCE = None
    IDENTITY_TOKEN_ISSUER = None
    MAIL_TRANSPORT = "console"
    OWNER_EMAIL = "owner@quotedesk.local"
    LOG_LEVEL = "DEBUG"
