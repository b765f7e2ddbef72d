"""HTTP mapping for checkout failures.

Protean's own exceptions (``ValidationError`` → 400, ``ObjectNotFoundError``
→ 404) are mapped by ``protean.integrations.fastapi``. The handlers here add
the checkout errors on top.
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from protean.integrations.fastapi import register_exception_handlers

from ordering.errors import (
    CheckoutError,
    GatewayError,
    InventoryConflict,
    StateViolation,
    TaxUnavailable,
)


async def _inventory_conflict(request: Request, exc: InventoryConflict) -> JSONResponse:
    return JSONResponse(
        status_code=409,
        content={
            "detail": exc.message,
            "rejected": [{"product_id": r.product_id, "reason": r.reason} for r in exc.rejected],
        },
    )


async def _tax_unavailable(request: Request, exc: TaxUnavailable) -> JSONResponse:
    return JSONResponse(status_code=503, content={"detail": exc.message, "retryable": True})


async def _gateway_error(request: Request, exc: GatewayError) -> JSONResponse:
    return JSONResponse(
        status_code=502,
        content={"detail": exc.message, "order_id": exc.order_id, "retryable": True},
    )


async def _checkout_error(request: Request, exc: CheckoutError) -> JSONResponse:
    return JSONResponse(status_code=500, content={"detail": exc.message, "retryable": exc.retryable})


async def _state_violation(request: Request, exc: StateViolation) -> JSONResponse:
    return JSONResponse(status_code=409, content={"detail": exc.messages})


def register_error_handlers(app: FastAPI) -> None:
    register_exception_handlers(app)
    app.add_exception_handler(InventoryConflict, _inventory_conflict)
    app.add_exception_handler(TaxUnavailable, _tax_unavailable)
    app.add_exception_handler(GatewayError, _gateway_error)
    app.add_exception_handler(CheckoutError, _checkout_error)
    app.add_exception_handler(StateViolation, _state_violation)
