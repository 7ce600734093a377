"""
Stripe service routes - payment intents, status lookup and webhooks.

Error bodies follow the service's public contract: validation failures are
400 ``{"error": ...}``; any provider failure is 500 with an
endpoint-specific ``error`` string.
"""

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import JSONResponse, PlainTextResponse
from structlog import get_logger

from paybridge.api.dependencies import (
    get_amount_policy,
    get_stripe_gateway,
    get_webhook_processor,
)
from paybridge.exceptions import (
    PaymentProviderError,
    PaymentValidationError,
    ProviderTransportError,
)
from paybridge.models.api import (
    ErrorResponse,
    PaymentIntentBody,
    PaymentIntentResponse,
    PaymentIntentStatusResponse,
    WebhookAck,
)
from paybridge.observability.metrics import metrics
from paybridge.services.gateway import StripeGateway
from paybridge.services.validation import AmountPolicy, validate_intent_request
from paybridge.services.webhooks import VerificationState, WebhookProcessor

logger = get_logger(__name__)
router = APIRouter(tags=["stripe"])

PROVIDER_UNAVAILABLE = "Payment provider unavailable"


def _error(status_code: int, error: str, message: str | None = None) -> JSONResponse:
    body = ErrorResponse(error=error, message=message)
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


@router.post("/create-payment-intent", response_model=PaymentIntentResponse)
async def create_payment_intent(
    body: PaymentIntentBody,
    gateway: StripeGateway = Depends(get_stripe_gateway),
    policy: AmountPolicy = Depends(get_amount_policy),
) -> Response | PaymentIntentResponse:
    """
    Create a payment intent the client confirms with its client secret.
    """
    try:
        payment_request = validate_intent_request(body, policy)
    except PaymentValidationError as exc:
        metrics.record_validation_rejection("create_payment_intent")
        logger.info("payment_intent_rejected", reason=exc.message)
        return _error(status.HTTP_400_BAD_REQUEST, exc.message)

    try:
        result = await gateway.create_payment_intent(payment_request)
    except PaymentProviderError as exc:
        logger.error(
            "payment_intent_creation_error",
            error=exc.message,
            category=exc.category,
            code=exc.code,
        )
        return _error(
            status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to create payment intent", exc.message
        )
    except ProviderTransportError as exc:
        logger.error("payment_intent_creation_error", error=exc.message)
        return _error(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Failed to create payment intent",
            PROVIDER_UNAVAILABLE,
        )

    return PaymentIntentResponse(
        client_secret=result.client_secret,
        payment_intent_id=result.payment_id,
    )


@router.get("/payment-status/{payment_intent_id}", response_model=PaymentIntentStatusResponse)
async def get_payment_status(
    payment_intent_id: str,
    gateway: StripeGateway = Depends(get_stripe_gateway),
) -> Response | PaymentIntentStatusResponse:
    """Report the current status of a payment intent."""
    try:
        result = await gateway.get_payment_status(payment_intent_id)
    except (PaymentProviderError, ProviderTransportError) as exc:
        logger.error(
            "payment_status_error",
            payment_intent_id=payment_intent_id,
            error=exc.message,
        )
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to retrieve payment status")

    return PaymentIntentStatusResponse(
        status=result.status,
        amount=result.amount_minor,
        currency=result.currency,
    )


@router.post("/webhook", response_model=WebhookAck)
async def stripe_webhook(
    request: Request,
    processor: WebhookProcessor = Depends(get_webhook_processor),
) -> Response | WebhookAck:
    """
    Handle Stripe webhook events.

    The body is read raw and verified before anything parses it.
    """
    payload = await request.body()
    signature = request.headers.get("stripe-signature")

    outcome = await processor.process(payload, signature)
    if outcome.state is VerificationState.REJECTED:
        return PlainTextResponse(
            f"Webhook Error: {outcome.error}", status_code=status.HTTP_400_BAD_REQUEST
        )

    return WebhookAck(received=True)
