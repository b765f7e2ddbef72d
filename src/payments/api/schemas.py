"""Pydantic request/response schemas for the Payments API."""

from pydantic import BaseModel


class ConfigureGatewayRequest(BaseModel):
    should_succeed: bool = True
    failure_reason: str = "Card declined"
    timeout: bool = False
    create_before_timeout: bool = False


class GatewayConfigResponse(BaseModel):
    gateway: str
    should_succeed: bool
    failure_reason: str
    timeout: bool
