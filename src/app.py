"""Storefront FastAPI application.

Web server that processes checkout, cart and order commands synchronously
via HTTP. Requests under the ordering routes are wrapped in the ordering
domain context.

Usage:
    uvicorn src.app:app --host 0.0.0.0 --port 8000 --reload
"""

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# The domain is initialized at module level so uvicorn workers share it.
import logging
import os

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from ordering.domain import ordering
from ordering.utils.logging import configure_logging

configure_logging(
    level=logging.DEBUG if os.environ.get("PROTEAN_ENV", "development") == "development" else logging.INFO,
    json_output=os.environ.get("PROTEAN_ENV") == "production",
)

ordering.init()

_DOMAIN_PREFIXES = ("/checkout", "/carts", "/orders", "/tax-rates")


# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Storefront API",
    description="Carts, checkout and order lifecycle",
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
    """Push the ordering domain context for ordering routes."""
    if request.url.path.startswith(_DOMAIN_PREFIXES):
        with ordering.domain_context():
            response = await call_next(request)
        return response
    # Health check, docs and gateway controls run without a domain context
    return await call_next(request)


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
from ordering.api.errors import register_error_handlers  # noqa: E402
from ordering.api.routes import (  # noqa: E402
    cart_router,
    checkout_router,
    order_router,
    tax_rate_router,
)
from payments.api.routes import gateway_router  # noqa: E402

app.include_router(checkout_router)
app.include_router(cart_router)
app.include_router(order_router)
app.include_router(tax_rate_router)
app.include_router(gateway_router)

register_error_handlers(app)


# ---------------------------------------------------------------------------
# Health / root
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return JSONResponse(
        content={
            "status": "ok",
            "domains": {
                "ordering": {"name": ordering.name},
            },
        }
    )
