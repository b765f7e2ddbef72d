"""Pydantic request/response schemas for the Ordering API.

These are external contracts (anti-corruption layer), separate from
internal Protean commands. Money leaves the API as decimal strings in major
units, e.g. ``"27.00"``.
"""

from decimal import Decimal

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class AddressSchema(BaseModel):
    street: str
    city: str
    state: str = Field(description="Two-letter region code; selects the tax rate")
    postal_code: str
    country: str


class GuestInfoSchema(BaseModel):
    email: str
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    phone: str | None = None


class LineItemSchema(BaseModel):
    product_id: str
    quantity: int = Field(ge=1)
    selected_color: str | None = None
    selected_fragrance: str | None = None


class RejectionSchema(BaseModel):
    product_id: str
    reason: str


# ---------------------------------------------------------------------------
# Checkout
# ---------------------------------------------------------------------------
class CheckoutRequest(BaseModel):
    shipping_address: AddressSchema
    items: list[LineItemSchema] | None = None
    guest_info: GuestInfoSchema | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "shipping_address": {
                        "street": "1 Market St",
                        "city": "San Francisco",
                        "state": "CA",
                        "postal_code": "94105",
                        "country": "US",
                    },
                    "items": None,
                    "guest_info": None,
                }
            ]
        }
    }


class CheckoutResponse(BaseModel):
    order_id: str
    order_number: str
    payment_redirect_url: str | None = None
    rejected: list[RejectionSchema] = []
    subtotal: Decimal
    tax_amount: Decimal
    total_amount: Decimal
    currency: str


class PaymentWebhookRequest(BaseModel):
    provider_reference: str
    status: str = Field(description="succeeded, failed or refunded")


class TaxRateResponse(BaseModel):
    region: str
    rate: Decimal


# ---------------------------------------------------------------------------
# Cart
# ---------------------------------------------------------------------------
class AddToCartRequest(LineItemSchema):
    quantity: int = Field(ge=1, default=1)


class UpdateCartQuantityRequest(BaseModel):
    quantity: int = Field(ge=0, description="0 removes the line")


class CartItemResponse(BaseModel):
    item_id: str
    product_id: str
    quantity: int
    selected_color: str | None = None
    selected_fragrance: str | None = None
    unit_price: Decimal | None = None


class CartResponse(BaseModel):
    cart_id: str | None = None
    items: list[CartItemResponse] = []


class MergeCartRequest(BaseModel):
    session_id: str


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------
class OrderItemResponse(BaseModel):
    product_id: str
    name: str
    category: str | None = None
    quantity: int
    unit_price: Decimal
    selected_color: str | None = None
    selected_fragrance: str | None = None
    tax_rate: float
    tax_amount: Decimal


class OrderResponse(BaseModel):
    order_id: str
    order_number: str
    customer_id: str | None = None
    guest_email: str | None = None
    status: str
    payment_status: str
    payment_reference: str | None = None
    items: list[OrderItemResponse]
    shipping_address: AddressSchema
    tax_region: str | None = None
    subtotal: Decimal
    tax_amount: Decimal
    total_amount: Decimal
    currency: str
    cancellation_reason: str | None = None
    cancelled_by: str | None = None


class CancelOrderRequest(BaseModel):
    reason: str | None = None
    cancelled_by: str = "Customer"


class AssociateGuestOrdersRequest(BaseModel):
    email: str


class AssociatedOrdersResponse(BaseModel):
    associated: int


class StatusResponse(BaseModel):
    status: str = "ok"


# ---------------------------------------------------------------------------
# Tax rates
# ---------------------------------------------------------------------------
class ConfigureTaxRateRequest(BaseModel):
    rate: float = Field(ge=0, le=100)
    enabled: bool = True
    region_name: str | None = None
    notes: str | None = None


class TaxRateIdResponse(BaseModel):
    tax_rate_id: str
