"""Runtime settings for the Checkout domain.

Values come from environment variables so the same build runs in
development, test and production. ``get_settings()`` caches one instance
per process; tests call ``reset_settings()`` after patching the environment.
"""

import os

from pydantic import BaseModel, Field


def _env(name: str, default=None):
    value = os.getenv(name)
    return default if value in (None, "") else value


class Settings(BaseModel):
    environment: str = "development"
    currency: str = "INR"

    # Pricing fallbacks when no StoreSettings record exists
    shipping_cost: float = Field(default=50.0, ge=0)
    free_shipping_threshold: float = Field(default=499.0, ge=0)

    # Abuse control and operational cleanup
    rate_limit_max_pending: int = Field(default=5, ge=1)
    rate_limit_window_minutes: int = Field(default=15, ge=1)
    stale_order_hours: int = Field(default=4, ge=1)

    # Logging
    log_level: str | None = None
    log_dir: str = "logs"

    # Transactional store for the inventory ledger and invoice counter
    database_url: str | None = None

    # Payment gateway
    payment_gateway: str = "fake"
    gateway_key_id: str = ""
    gateway_key_secret: str = ""
    gateway_webhook_secret: str = ""
    gateway_timeout_seconds: float = Field(default=10.0, gt=0)

    # Invoice documents
    invoice_storage_dir: str | None = None
    invoice_public_base_url: str = "http://localhost:8000/invoices/files"
    store_name: str = "Storefront"
    store_support_email: str = "support@example.com"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            environment=_env("PROTEAN_ENV", "development"),
            currency=_env("CHECKOUT_CURRENCY", "INR"),
            shipping_cost=float(_env("CHECKOUT_SHIPPING_COST", 50)),
            free_shipping_threshold=float(_env("CHECKOUT_FREE_SHIPPING_THRESHOLD", 499)),
            rate_limit_max_pending=int(_env("CHECKOUT_RATE_LIMIT_MAX_PENDING", 5)),
            rate_limit_window_minutes=int(_env("CHECKOUT_RATE_LIMIT_WINDOW_MINUTES", 15)),
            stale_order_hours=int(_env("CHECKOUT_STALE_ORDER_HOURS", 4)),
            database_url=_env("CHECKOUT_DATABASE_URL"),
            payment_gateway=_env("PAYMENT_GATEWAY", "fake"),
            gateway_key_id=_env("RAZORPAY_KEY_ID", ""),
            gateway_key_secret=_env("RAZORPAY_KEY_SECRET", ""),
            gateway_webhook_secret=_env("RAZORPAY_WEBHOOK_SECRET", ""),
            gateway_timeout_seconds=float(_env("GATEWAY_TIMEOUT_SECONDS", 10)),
            invoice_storage_dir=_env("INVOICE_STORAGE_DIR"),
            invoice_public_base_url=_env("INVOICE_PUBLIC_BASE_URL", "http://localhost:8000/invoices/files"),
            store_name=_env("STORE_NAME", "Storefront"),
            store_support_email=_env("STORE_SUPPORT_EMAIL", "support@example.com"),
            log_level=_env("LOG_LEVEL"),
            log_dir=_env("LOG_DIR", "logs"),
        )


_settings: Settings | None = None


def get_settings() -> Settings:
    """Return the process-wide settings, loading them from the environment once."""
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
    return _settings


def set_settings(settings: Settings) -> None:
    """Override the active settings (useful for tests)."""
    global _settings
    _settings = settings


def reset_settings() -> None:
    global _settings
    _settings = None
