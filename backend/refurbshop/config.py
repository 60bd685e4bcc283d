# backend/refurbshop/config.py
from __future__ import annotations
import os


PAYMENT_MODE_STUB = "stub"
PAYMENT_MODE_STRIPE = "stripe"
PAYMENT_MODES = {PAYMENT_MODE_STUB, PAYMENT_MODE_STRIPE}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/refurbshop.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",  # optional alternative location
        "sqlite:///refurbshop.sqlite3",  # default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Payment mode is chosen here, never inferred from a failing processor call.
    #   stub   -> orders are marked paid inline at checkout
    #   stripe -> hosted Stripe Checkout, completion arrives via webhook
    PAYMENT_MODE = os.environ.get("PAYMENT_MODE", PAYMENT_MODE_STUB)
    STRIPE_SECRET_KEY = os.environ.get("STRIPE_SECRET_KEY")
    STRIPE_WEBHOOK_SECRET = os.environ.get("STRIPE_WEBHOOK_SECRET")
    STRIPE_CURRENCY = os.environ.get("STRIPE_CURRENCY", "aud")

    # Used to build Stripe success/cancel redirect URLs
    STOREFRONT_URL = os.environ.get("STOREFRONT_URL", "http://localhost:3000")

    # Shared bearer token for staff endpoints (sessions are issued elsewhere)
    STAFF_API_TOKEN = os.environ.get("STAFF_API_TOKEN")

    # Bounded retry for optimistic/locking conflicts
    TXN_RETRY_ATTEMPTS = int(os.environ.get("TXN_RETRY_ATTEMPTS", "3"))
    TXN_RETRY_BACKOFF = float(os.environ.get("TXN_RETRY_BACKOFF", "0.05"))

    CORS_ALLOWED_ORIGINS = {
        origin.strip()
        for origin in os.environ.get(
            "CORS_ALLOWED_ORIGINS",
            "http://localhost:3000,http://127.0.0.1:3000",
        ).split(",")
        if origin.strip()
    }
