"""
Payment Provider Protocol - Provider-agnostic interface.

All data crossing the provider boundary uses strongly typed models.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol


class PaymentOutcome(str, Enum):
    """Provider-agnostic classification of a payment status."""

    SUCCEEDED = "succeeded"
    PENDING = "pending"
    FAILED = "failed"
    UNKNOWN = "unknown"


class WebhookEventKind(str, Enum):
    """Webhook event kinds the services act upon."""

    PAYMENT_SUCCEEDED = "payment_succeeded"
    PAYMENT_FAILED = "payment_failed"
    OTHER = "other"


@dataclass(frozen=True)
class PaymentRequest:
    """
    Validated intent to charge.

    Built by the request validator; the gateway never sees unvalidated input.
    """

    amount_minor: int
    currency: str
    source_id: str | None = None
    location_id: str | None = None
    customer_id: str | None = None
    order_id: str | None = None
    note: str | None = None
    verification_token: str | None = None

    def __post_init__(self) -> None:
        """Validate request constraints."""
        if self.amount_minor <= 0:
            raise ValueError(f"Payment amount must be positive: {self.amount_minor}")
        if not self.currency:
            raise ValueError("Currency cannot be empty")


@dataclass(frozen=True)
class ProviderCallParams:
    """
    Provider-shaped request derived 1:1 from a PaymentRequest.

    Carries a fresh idempotency key per call attempt.
    """

    idempotency_key: str
    amount_minor: int
    currency: str
    source_id: str | None = None
    location_id: str | None = None
    customer_id: str | None = None
    order_id: str | None = None
    note: str | None = None
    verification_token: str | None = None


@dataclass(frozen=True)
class CardSummary:
    """Masked card details safe to return to the caller."""

    brand: str | None
    last_four: str | None
    exp_month: int | None
    exp_year: int | None


@dataclass(frozen=True)
class PaymentResult:
    """
    Provider-agnostic payment result.

    `status` is the provider's status string, verbatim. `outcome` is its
    classification; unrecognised statuses classify as UNKNOWN.
    """

    payment_id: str
    status: str
    outcome: PaymentOutcome
    amount_minor: int
    currency: str
    client_secret: str | None = None
    receipt_number: str | None = None
    receipt_url: str | None = None
    card: CardSummary | None = None
    created_at: str | None = None
    updated_at: str | None = None
    raw: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)


@dataclass(frozen=True)
class CustomerRequest:
    """Validated request to create a customer record."""

    given_name: str | None = None
    family_name: str | None = None
    company_name: str | None = None
    email_address: str | None = None
    phone_number: str | None = None
    reference_id: str | None = None
    note: str | None = None


@dataclass(frozen=True)
class CustomerRecord:
    """Customer stored with the provider."""

    customer_id: str
    given_name: str | None
    family_name: str | None
    email_address: str | None
    phone_number: str | None
    created_at: str | None
    raw: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)


@dataclass(frozen=True)
class StoreCardRequest:
    """Validated request to vault a card for a customer."""

    customer_id: str
    source_id: str
    cardholder_name: str | None = None
    verification_token: str | None = None


@dataclass(frozen=True)
class StoredCard:
    """Card vaulted with the provider."""

    card_id: str
    customer_id: str | None
    summary: CardSummary
    raw: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)


@dataclass(frozen=True)
class LocationInfo:
    """A merchant location configured with the provider."""

    location_id: str
    name: str | None
    address: dict[str, Any] | None
    status: str | None
    capabilities: list[str]


@dataclass(frozen=True)
class WebhookEvent:
    """
    Provider-agnostic webhook event.

    Only ever built from a payload whose signature has been verified.
    """

    event_id: str
    event_type: str
    kind: WebhookEventKind
    payment_id: str | None
    payload: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)


class IntentProvider(Protocol):
    """
    Charge-style provider (client-confirmed payment intents).
    """

    async def create_payment_intent(self, params: ProviderCallParams) -> PaymentResult:
        """
        Create a payment intent with the provider.

        Raises:
            PaymentProviderError: If the provider rejects the request
            ProviderTransportError: If the provider cannot be reached
        """
        ...

    async def get_payment_intent(self, payment_id: str) -> PaymentResult:
        """
        Retrieve the current state of a payment intent.

        Raises:
            PaymentProviderError: If the provider rejects the request
            ProviderTransportError: If the provider cannot be reached
        """
        ...

    async def verify_webhook(self, payload: bytes, signature: str) -> WebhookEvent:
        """
        Verify the raw webhook payload against its signature, then parse it.

        Raises:
            WebhookVerificationError: If signature verification fails
        """
        ...


class PointOfSaleProvider(Protocol):
    """
    Point-of-sale provider with customer and card vaulting.
    """

    async def create_payment(self, params: ProviderCallParams) -> PaymentResult: ...

    async def create_customer(
        self, request: CustomerRequest, idempotency_key: str
    ) -> CustomerRecord: ...

    async def create_card(self, request: StoreCardRequest, idempotency_key: str) -> StoredCard: ...

    async def get_payment(self, payment_id: str) -> PaymentResult: ...

    async def list_locations(self) -> list[LocationInfo]: ...
