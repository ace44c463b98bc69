"""Storefront checkout FastAPI application.

Serves checkout, payment verification, the gateway webhook and invoice
generation. Every request runs inside the checkout domain context.

Usage:
    uvicorn app:app --app-dir src --host 0.0.0.0 --port 8000 --reload
"""

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# The domain is initialized at module level so uvicorn workers share it.
# PROTEAN_ENV selects the Protean config overlay.
from checkout.config import get_settings
from checkout.domain import checkout
from checkout.utils.logging import clear_context, configure_logging
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

configure_logging()
checkout.init()

# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Storefront Checkout API",
    description="Checkout, payment reconciliation and invoicing",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def domain_context_middleware(request: Request, call_next):
    """Push the checkout domain context for each request."""
    clear_context()
    with checkout.domain_context():
        response = await call_next(request)
    return response


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
from checkout.api import checkout_router, invoice_router, order_router, payment_router  # noqa: E402
from checkout.api.errors import register_error_handlers  # noqa: E402

register_error_handlers(app)

app.include_router(checkout_router)
app.include_router(order_router)
app.include_router(payment_router)
app.include_router(invoice_router)

# Invoice documents written by the filesystem store are served read-only
_settings = get_settings()
if _settings.invoice_storage_dir:
    app.mount(
        "/invoices/files",
        StaticFiles(directory=_settings.invoice_storage_dir, check_dir=False),
        name="invoice-files",
    )


# ---------------------------------------------------------------------------
# Health / root
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return JSONResponse(
        content={
            "status": "ok",
            "domain": checkout.name,
            "environment": _settings.environment,
        }
    )
