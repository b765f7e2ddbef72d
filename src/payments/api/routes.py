"""FastAPI routes for the Payments package: fake gateway controls."""

import os

from fastapi import APIRouter, HTTPException

from payments.api.schemas import ConfigureGatewayRequest, GatewayConfigResponse
from payments.gateway import get_gateway
from payments.gateway.fake_adapter import FakeGateway

gateway_router = APIRouter(prefix="/payments/gateway", tags=["payments"])


@gateway_router.post("/configure", response_model=GatewayConfigResponse)
async def configure_gateway(body: ConfigureGatewayRequest) -> GatewayConfigResponse:
    """Configure the FakeGateway behavior (non-production only).

    Lets manual and end-to-end testing make the provider decline requests or
    time out, including after it has silently opened the session.
    """
    if os.environ.get("PROTEAN_ENV") == "production":
        raise HTTPException(status_code=403, detail="Gateway configuration not available in production")

    gateway = get_gateway()
    if not isinstance(gateway, FakeGateway):
        raise HTTPException(status_code=400, detail="Gateway configuration only available for FakeGateway")

    gateway.configure(
        should_succeed=body.should_succeed,
        failure_reason=body.failure_reason,
        timeout=body.timeout,
        create_before_timeout=body.create_before_timeout,
    )
    return GatewayConfigResponse(
        gateway=type(gateway).__name__,
        should_succeed=gateway.should_succeed,
        failure_reason=gateway.failure_reason,
        timeout=gateway.timeout,
    )
