# nexus_isp/config.py
from __future__ import annotations

import os


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


class Config:
    # =========================================================
    # Core Flask
    # =========================================================
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-change-me")

    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL")
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # =========================================================
    # Rate limiting storage (Flask-Limiter)
    # =========================================================
    RATELIMIT_STORAGE_URI = os.getenv("REDIS_URL", "memory://")

    # =========================================================
    # Lifecycle policy
    # =========================================================
    # Off by default: any status value may be written (legacy behavior).
    # On: ticket/invoice/installation edits must follow the transition tables.
    STRICT_TRANSITIONS = _env_bool("STRICT_TRANSITIONS", False)

    # =========================================================
    # Billing / invoice export
    # =========================================================
    # Fallback when the "currency" row is missing from system_settings.
    DEFAULT_CURRENCY = os.getenv("DEFAULT_CURRENCY", "USD").strip().upper()
    COMPANY_NAME = os.getenv("COMPANY_NAME", "Nexus ISP").strip()

    # =========================================================
    # Portal URL (used in notifications)
    # =========================================================
    PORTAL_BASE_URL = os.getenv("PORTAL_BASE_URL", "").rstrip("/")

    # =========================================================
    # Escalation notifications (best-effort)
    # =========================================================
    WHATSAPP_ENABLED = _env_bool("WHATSAPP_ENABLED", False)
    WHATSAPP_TOKEN = os.getenv("WHATSAPP_TOKEN", "").strip()
    WHATSAPP_PHONE_NUMBER_ID = os.getenv("WHATSAPP_PHONE_NUMBER_ID", "").strip()
    WHATSAPP_TO = os.getenv("WHATSAPP_TO", "").strip()  # NOC on-call number

    EMAIL_ENABLED = _env_bool("EMAIL_ENABLED", False)
    SMTP_HOST = os.getenv("SMTP_HOST", "").strip()
    SMTP_PORT = int(os.getenv("SMTP_PORT", "587"))
    SMTP_USER = os.getenv("SMTP_USER", "").strip()
    SMTP_PASS = os.getenv("SMTP_PASS", "")
    EMAIL_FROM = os.getenv("EMAIL_FROM", "").strip()
    EMAIL_TO = os.getenv("EMAIL_TO", "").strip()  # comma separated
