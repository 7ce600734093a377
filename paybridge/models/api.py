"""
API Models - Pydantic models for request/response bodies.

Request bodies are deliberately permissive about values: business rules
(minimum amounts, required sources) are enforced by the request validator so
that violations produce the services' own 400 error shape.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model exposing camelCase field names on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ============================================================================
# Stripe service
# ============================================================================


class PaymentIntentBody(CamelModel):
    """POST /create-payment-intent request body."""

    amount: Any = None
    currency: str | None = None


class PaymentIntentResponse(CamelModel):
    """POST /create-payment-intent response."""

    client_secret: str | None
    payment_intent_id: str


class PaymentIntentStatusResponse(CamelModel):
    """GET /payment-status/{id} response (Stripe)."""

    status: str
    amount: int
    currency: str


class WebhookAck(BaseModel):
    """Webhook acknowledgement."""

    received: bool = True


# ============================================================================
# Square service
# ============================================================================


class CardPaymentBody(CamelModel):
    """POST /create-square-payment request body."""

    amount: Any = None
    currency: str | None = None
    source_id: str | None = None
    location_id: str | None = None
    customer_id: str | None = None
    order_id: str | None = None
    note: str | None = None
    verification_token: str | None = None


class StoredCardPaymentBody(CamelModel):
    """POST /pay-with-stored-card request body."""

    amount: Any = None
    currency: str | None = None
    card_id: str | None = None
    customer_id: str | None = None
    location_id: str | None = None
    order_id: str | None = None
    note: str | None = None


class CreateCustomerBody(CamelModel):
    """POST /create-square-customer request body."""

    given_name: str | None = None
    family_name: str | None = None
    company_name: str | None = None
    email_address: str | None = None
    phone_number: str | None = None
    reference_id: str | None = None
    note: str | None = None


class StoreCardBody(CamelModel):
    """POST /store-card request body."""

    customer_id: str | None = None
    source_id: str | None = None
    card_nonce: str | None = None
    cardholder_name: str | None = None
    verification_token: str | None = None


class CardDetails(CamelModel):
    """Masked card summary."""

    brand: str | None = None
    last_four: str | None = None
    exp_month: int | None = None
    exp_year: int | None = None


class SquarePaymentResponse(CamelModel):
    """POST /create-square-payment response."""

    success: bool = True
    payment_id: str
    amount: int
    currency: str
    status: str | None
    receipt_number: str | None = None
    receipt_url: str | None = None
    card_details: CardDetails | None = None


class StoredCardPaymentResponse(CamelModel):
    """POST /pay-with-stored-card response."""

    success: bool = True
    payment_id: str
    amount: int
    currency: str
    status: str | None
    receipt_number: str | None = None


class CustomerResponse(CamelModel):
    """POST /create-square-customer response."""

    success: bool = True
    customer: dict[str, Any]
    customer_id: str


class StoreCardResponse(CamelModel):
    """POST /store-card response."""

    success: bool = True
    card: dict[str, Any]
    card_id: str
    last_four: str | None = None
    card_brand: str | None = None
    exp_month: int | None = None
    exp_year: int | None = None


class SquarePaymentStatusResponse(CamelModel):
    """GET /payment-status/{id} response (Square)."""

    success: bool = True
    payment: dict[str, Any]
    status: str | None
    amount: int
    currency: str
    created_at: str | None = None
    updated_at: str | None = None


class Location(CamelModel):
    """A single Square location."""

    id: str
    name: str | None = None
    address: dict[str, Any] | None = None
    status: str | None = None
    capabilities: list[str] = Field(default_factory=list)


class LocationsResponse(CamelModel):
    """GET /square-locations response."""

    success: bool = True
    locations: list[Location]


class ErrorResponse(BaseModel):
    """
    Error body shared by both services.

    Square responses carry ``success: false``; category and code appear only
    when the provider supplied them.
    """

    success: bool | None = None
    error: str
    message: str | None = None
    category: str | None = None
    code: str | None = None
    errors: list[dict[str, Any]] | None = None
