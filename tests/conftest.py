"""
Pytest Configuration and Centralized Fixtures.

Provides reusable fakes and fixtures for testing:
- Settings built explicitly (no environment or .env lookups)
- Fake Stripe-style and Square-style providers with call recording
- Test clients for both services
- Stripe webhook signing helper
"""

import hashlib
import hmac
import time
from typing import Any

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from paybridge.config import Settings
from paybridge.main import create_square_app, create_stripe_app
from paybridge.services.payment_provider import (
    CardSummary,
    CustomerRecord,
    CustomerRequest,
    LocationInfo,
    PaymentOutcome,
    PaymentResult,
    ProviderCallParams,
    StoreCardRequest,
    StoredCard,
    WebhookEvent,
)
from paybridge.services.stripe_provider import StripeProvider

WEBHOOK_SECRET = "whsec_test_fake_secret"


def sign_stripe_payload(payload: bytes, secret: str = WEBHOOK_SECRET, timestamp: int | None = None) -> str:
    """Build a ``stripe-signature`` header the way Stripe signs deliveries."""
    timestamp = timestamp if timestamp is not None else int(time.time())
    signed_payload = f"{timestamp}.".encode() + payload
    signature = hmac.new(secret.encode(), signed_payload, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={signature}"


# ============================================================================
# Settings
# ============================================================================


@pytest.fixture
def settings() -> Settings:
    """Settings for both services with fake credentials."""
    return Settings(
        _env_file=None,
        stripe_secret_key="sk_test_fake_key",
        stripe_webhook_secret=WEBHOOK_SECRET,
        square_access_token="EAAA_fake_token",
        square_location_id="LOC_MAIN",
        log_format="console",
        tracing_enabled=False,
    )


# ============================================================================
# Fake Providers
# ============================================================================


class FakeIntentProvider:
    """In-memory charge-style provider that records every call."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, Any]] = []
        self.error: Exception | None = None
        self.result = PaymentResult(
            payment_id="pi_123",
            status="requires_payment_method",
            outcome=PaymentOutcome.PENDING,
            amount_minor=1000,
            currency="eur",
            client_secret="pi_123_secret_abc",
        )
        self.webhook_event: WebhookEvent | None = None

    async def create_payment_intent(self, params: ProviderCallParams) -> PaymentResult:
        self.calls.append(("create_payment_intent", params))
        if self.error:
            raise self.error
        return self.result

    async def get_payment_intent(self, payment_id: str) -> PaymentResult:
        self.calls.append(("get_payment_intent", payment_id))
        if self.error:
            raise self.error
        return self.result

    async def verify_webhook(self, payload: bytes, signature: str) -> WebhookEvent:
        self.calls.append(("verify_webhook", payload))
        assert self.webhook_event is not None
        return self.webhook_event


class FakePointOfSaleProvider:
    """In-memory point-of-sale provider that records every call."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, Any]] = []
        self.error: Exception | None = None
        self.payment = PaymentResult(
            payment_id="sq_pay_1",
            status="COMPLETED",
            outcome=PaymentOutcome.SUCCEEDED,
            amount_minor=2500,
            currency="USD",
            receipt_number="R123",
            receipt_url="https://squareup.com/receipt/preview/sq_pay_1",
            card=CardSummary(brand="VISA", last_four="1111", exp_month=12, exp_year=2030),
            created_at="2024-05-01T10:00:00Z",
            updated_at="2024-05-01T10:00:01Z",
            raw={"id": "sq_pay_1", "status": "COMPLETED"},
        )

    def _maybe_fail(self) -> None:
        if self.error:
            raise self.error

    async def create_payment(self, params: ProviderCallParams) -> PaymentResult:
        self.calls.append(("create_payment", params))
        self._maybe_fail()
        return self.payment

    async def create_customer(self, request: CustomerRequest, idempotency_key: str) -> CustomerRecord:
        self.calls.append(("create_customer", (request, idempotency_key)))
        self._maybe_fail()
        return CustomerRecord(
            customer_id="CUST_1",
            given_name=request.given_name,
            family_name=request.family_name,
            email_address=request.email_address,
            phone_number=request.phone_number,
            created_at="2024-05-01T10:00:00Z",
            raw={"id": "CUST_1", "given_name": request.given_name},
        )

    async def create_card(self, request: StoreCardRequest, idempotency_key: str) -> StoredCard:
        self.calls.append(("create_card", (request, idempotency_key)))
        self._maybe_fail()
        return StoredCard(
            card_id="ccof:CARD_1",
            customer_id=request.customer_id,
            summary=CardSummary(brand="MASTERCARD", last_four="4444", exp_month=6, exp_year=2031),
            raw={"id": "ccof:CARD_1", "customer_id": request.customer_id},
        )

    async def get_payment(self, payment_id: str) -> PaymentResult:
        self.calls.append(("get_payment", payment_id))
        self._maybe_fail()
        return self.payment

    async def list_locations(self) -> list[LocationInfo]:
        self.calls.append(("list_locations", None))
        self._maybe_fail()
        return [
            LocationInfo(
                location_id="LOC_MAIN",
                name="Main Street",
                address={"address_line_1": "1 Main St", "locality": "Springfield"},
                status="ACTIVE",
                capabilities=["CREDIT_CARD_PROCESSING"],
            )
        ]


# ============================================================================
# Apps and Clients
# ============================================================================


@pytest.fixture
def intent_provider() -> FakeIntentProvider:
    return FakeIntentProvider()


@pytest.fixture
def pos_provider() -> FakePointOfSaleProvider:
    return FakePointOfSaleProvider()


@pytest.fixture
def stripe_app(settings: Settings, intent_provider: FakeIntentProvider) -> FastAPI:
    return create_stripe_app(settings, provider=intent_provider)


@pytest.fixture
def stripe_client(stripe_app: FastAPI) -> TestClient:
    return TestClient(stripe_app)


@pytest.fixture
def stripe_provider() -> StripeProvider:
    """Real Stripe provider; only used for webhook verification (no network)."""
    return StripeProvider(api_key="sk_test_fake_key", webhook_secret=WEBHOOK_SECRET)


@pytest.fixture
def square_app(settings: Settings, pos_provider: FakePointOfSaleProvider) -> FastAPI:
    return create_square_app(settings, provider=pos_provider)


@pytest.fixture
def square_client(square_app: FastAPI) -> TestClient:
    return TestClient(square_app)


@pytest.fixture
def sign():
    """Stripe signing helper, bound to the test webhook secret by default."""
    return sign_stripe_payload
