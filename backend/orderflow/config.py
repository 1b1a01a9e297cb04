# backend/orderflow/config.py
from __future__ import annotations
import os


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/orderflow.sqlite3 unless DATABASE_URL is set
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location (e.g. the hosted Postgres)
        "sqlite:///orderflow.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Operating timezone: decides which calendar day a paid order lands on
    TIMEZONE = os.environ.get("TIMEZONE", "Asia/Kolkata")

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Telegram notification channel (disabled when the token is empty)
    TELEGRAM_TOKEN = os.environ.get("TELEGRAM_TOKEN", "")
    TELEGRAM_API_URL = os.environ.get("TELEGRAM_API_URL", "https://api.telegram.org")
    OPERATOR_CHAT_ID = os.environ.get("OPERATOR_CHAT_ID") or None
    SUPPLIER_CHAT_ID = os.environ.get("SUPPLIER_CHAT_ID") or None

    # WooCommerce REST (status mirroring is skipped unless key and secret are both set)
    WC_BASE_URL = os.environ.get("WC_BASE_URL", "https://visionsjersey.com")
    WC_KEY = os.environ.get("WC_KEY", "")
    WC_SECRET = os.environ.get("WC_SECRET", "")

    GATEWAY_TIMEOUT_SECONDS = float(os.environ.get("GATEWAY_TIMEOUT_SECONDS", "15"))

    # 1 = apply reminder steps sequentially inside the request
    SCHEDULER_MAX_WORKERS = _env_int("SCHEDULER_MAX_WORKERS", 1)

    # Flat discount offered with the 48h reminder
    REMINDER_DISCOUNT = _env_int("REMINDER_DISCOUNT", 30)

    # Sender block printed on supplier summaries
    SHOP_NAME = os.environ.get("SHOP_NAME", "Vision Jerseys")
    SHOP_PHONE = os.environ.get("SHOP_PHONE", "")

    # Bearer token for /api/operator routes (routes are open when empty)
    OPERATOR_API_TOKEN = os.environ.get("OPERATOR_API_TOKEN", "")
