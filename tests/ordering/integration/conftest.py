import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from ordering.api.errors import register_error_handlers
from ordering.api.routes import cart_router, checkout_router, order_router, tax_rate_router
from payments.api.routes import gateway_router


@pytest.fixture()
def client():
    app = FastAPI()
    app.include_router(checkout_router)
    app.include_router(cart_router)
    app.include_router(order_router)
    app.include_router(tax_rate_router)
    app.include_router(gateway_router)
    register_error_handlers(app)
    return TestClient(app)


@pytest.fixture()
def products(catalogue):
    catalogue.add_product("prod-001", name="Candle", price="12.50", stock=5, category="home")
    catalogue.add_product("prod-002", name="Matches", price="2.00", stock=3)
    return catalogue
