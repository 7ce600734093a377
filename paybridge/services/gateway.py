"""
Provider Gateway - turn validated requests into exactly one provider call.

Mutating calls get a fresh idempotency key per attempt. Nothing here
retries: a failed call is surfaced to the caller unchanged.
"""

import time
from collections.abc import Awaitable
from typing import TypeVar

from structlog import get_logger

from paybridge.exceptions import PaymentProviderError, ProviderTransportError
from paybridge.observability.metrics import metrics
from paybridge.observability.tracing import trace_operation
from paybridge.services.idempotency import generate_idempotency_key, generate_order_id
from paybridge.services.payment_provider import (
    CustomerRecord,
    CustomerRequest,
    IntentProvider,
    LocationInfo,
    PaymentRequest,
    PaymentResult,
    PointOfSaleProvider,
    ProviderCallParams,
    StoreCardRequest,
    StoredCard,
)
from paybridge.services.transactions import (
    LoggingTransactionRecorder,
    TransactionRecord,
    TransactionRecorder,
)

logger = get_logger(__name__)

T = TypeVar("T")


async def _call_provider(provider: str, operation: str, call: Awaitable[T]) -> T:
    """Await a single provider call, recording its duration and outcome."""
    start_time = time.perf_counter()
    with trace_operation(f"{provider}.{operation}", provider=provider):
        try:
            result = await call
        except PaymentProviderError:
            metrics.record_provider_call(
                provider, operation, "rejected", time.perf_counter() - start_time
            )
            raise
        except ProviderTransportError:
            metrics.record_provider_call(
                provider, operation, "unavailable", time.perf_counter() - start_time
            )
            metrics.record_error("ProviderTransportError", operation)
            raise
    metrics.record_provider_call(provider, operation, "ok", time.perf_counter() - start_time)
    return result


def build_call_params(request: PaymentRequest) -> ProviderCallParams:
    """Derive provider call parameters, with a new idempotency key, from a request."""
    return ProviderCallParams(
        idempotency_key=generate_idempotency_key(),
        amount_minor=request.amount_minor,
        currency=request.currency,
        source_id=request.source_id,
        location_id=request.location_id,
        customer_id=request.customer_id,
        order_id=request.order_id or generate_order_id(),
        note=request.note,
        verification_token=request.verification_token,
    )


class StripeGateway:
    """Gateway for the charge-style (payment intent) provider."""

    provider_name = "stripe"

    def __init__(self, provider: IntentProvider) -> None:
        self.provider = provider

    async def create_payment_intent(self, request: PaymentRequest) -> PaymentResult:
        params = build_call_params(request)
        result = await _call_provider(
            self.provider_name,
            "create_payment_intent",
            self.provider.create_payment_intent(params),
        )
        logger.info(
            "payment_intent_created",
            payment_intent_id=result.payment_id,
            order_id=params.order_id,
        )
        return result

    async def get_payment_status(self, payment_id: str) -> PaymentResult:
        return await _call_provider(
            self.provider_name,
            "get_payment_intent",
            self.provider.get_payment_intent(payment_id),
        )


class SquareGateway:
    """
    Gateway for the point-of-sale provider.

    Completed charges are handed to the transaction recorder. A recorder
    failure is logged but never turns a completed charge into an error:
    the customer has already been charged.
    """

    provider_name = "square"

    def __init__(
        self,
        provider: PointOfSaleProvider,
        recorder: TransactionRecorder | None = None,
    ) -> None:
        self.provider = provider
        self.recorder = recorder or LoggingTransactionRecorder()

    async def _charge(self, request: PaymentRequest, operation: str) -> PaymentResult:
        params = build_call_params(request)
        result = await _call_provider(
            self.provider_name, operation, self.provider.create_payment(params)
        )
        metrics.record_payment(self.provider_name, result.amount_minor)
        await self._record(result, request.customer_id)
        return result

    async def _record(self, result: PaymentResult, customer_id: str | None) -> None:
        record = TransactionRecord.from_result(self.provider_name, result, customer_id)
        try:
            await self.recorder.record(record)
        except Exception as exc:
            metrics.record_error(type(exc).__name__, "record_transaction")
            logger.error(
                "transaction_record_failed",
                payment_id=result.payment_id,
                error=str(exc),
                exc_info=True,
            )

    async def create_payment(self, request: PaymentRequest) -> PaymentResult:
        """Charge a card token."""
        return await self._charge(request, "create_payment")

    async def pay_with_stored_card(self, request: PaymentRequest) -> PaymentResult:
        """Charge a vaulted card; the request's source is the card id."""
        return await self._charge(request, "pay_with_stored_card")

    async def create_customer(self, request: CustomerRequest) -> CustomerRecord:
        return await _call_provider(
            self.provider_name,
            "create_customer",
            self.provider.create_customer(request, generate_idempotency_key()),
        )

    async def store_card(self, request: StoreCardRequest) -> StoredCard:
        return await _call_provider(
            self.provider_name,
            "store_card",
            self.provider.create_card(request, generate_idempotency_key()),
        )

    async def get_payment(self, payment_id: str) -> PaymentResult:
        return await _call_provider(
            self.provider_name, "get_payment", self.provider.get_payment(payment_id)
        )

    async def list_locations(self) -> list[LocationInfo]:
        return await _call_provider(
            self.provider_name, "list_locations", self.provider.list_locations()
        )
