"""
Stripe Payment Provider Implementation.

Uses an explicitly constructed StripeClient; no module-level API key.
"""

import json
from typing import Any

import stripe
from structlog import get_logger

from paybridge.exceptions import WebhookVerificationError
from paybridge.services.normalizer import error_from_stripe, payment_from_stripe
from paybridge.services.payment_provider import (
    PaymentResult,
    ProviderCallParams,
    WebhookEvent,
    WebhookEventKind,
)

logger = get_logger(__name__)

WEBHOOK_EVENT_KINDS = {
    "payment_intent.succeeded": WebhookEventKind.PAYMENT_SUCCEEDED,
    "payment_intent.payment_failed": WebhookEventKind.PAYMENT_FAILED,
}


class StripeProvider:
    """
    Stripe payment provider implementation.

    Implements the IntentProvider protocol for Stripe.
    """

    def __init__(
        self, api_key: str, webhook_secret: str, client: stripe.StripeClient | None = None
    ) -> None:
        """
        Initialize Stripe provider.

        Args:
            api_key: Stripe secret API key
            webhook_secret: Stripe webhook signing secret
            client: Preconfigured client (defaults to an httpx-backed client)
        """
        self.webhook_secret = webhook_secret
        self.client = client or stripe.StripeClient(api_key, http_client=stripe.HTTPXClient())

    async def create_payment_intent(self, params: ProviderCallParams) -> PaymentResult:
        """
        Create a Stripe PaymentIntent.

        Raises:
            PaymentProviderError: If Stripe rejects the request
            ProviderTransportError: If Stripe cannot be reached
        """
        request: dict[str, Any] = {
            "amount": params.amount_minor,
            "currency": params.currency,
            "automatic_payment_methods": {"enabled": True},
            "metadata": {"order_id": params.order_id or ""},
        }
        try:
            logger.info(
                "creating_stripe_payment_intent",
                amount_minor=params.amount_minor,
                currency=params.currency,
                idempotency_key=params.idempotency_key,
            )

            payment_intent = await self.client.v1.payment_intents.create_async(
                params=request,  # type: ignore[arg-type]
                options={"idempotency_key": params.idempotency_key},
            )

            logger.info(
                "stripe_payment_intent_created",
                payment_intent_id=payment_intent.id,
                status=payment_intent.status,
            )
            return payment_from_stripe(payment_intent)

        except stripe.StripeError as exc:
            logger.error(
                "stripe_payment_intent_failed",
                error=str(exc),
                error_type=type(exc).__name__,
            )
            raise error_from_stripe(exc) from exc

    async def get_payment_intent(self, payment_id: str) -> PaymentResult:
        """
        Get current status of a payment intent from Stripe.

        Raises:
            PaymentProviderError: If Stripe rejects the request
            ProviderTransportError: If Stripe cannot be reached
        """
        try:
            logger.info("getting_stripe_payment_status", payment_intent_id=payment_id)

            payment_intent = await self.client.v1.payment_intents.retrieve_async(payment_id)

            logger.info(
                "stripe_payment_status_retrieved",
                payment_intent_id=payment_id,
                status=payment_intent.status,
            )
            return payment_from_stripe(payment_intent)

        except stripe.StripeError as exc:
            logger.error(
                "stripe_payment_status_failed",
                payment_intent_id=payment_id,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            raise error_from_stripe(exc) from exc

    async def verify_webhook(self, payload: bytes, signature: str) -> WebhookEvent:
        """
        Verify and parse a Stripe webhook event.

        The signature is checked against the raw, unparsed payload bytes; the
        event is only parsed once the signature matches.

        Raises:
            WebhookVerificationError: If signature verification fails
        """
        if not self.webhook_secret:
            logger.error("stripe_webhook_secret_missing")
            raise WebhookVerificationError("Webhook secret is not configured")
        if not signature:
            logger.warning("stripe_webhook_signature_missing")
            raise WebhookVerificationError("Missing stripe-signature header")

        try:
            self.client.construct_event(payload, signature, self.webhook_secret)
        except stripe.SignatureVerificationError as exc:
            logger.error("stripe_webhook_verification_failed", error=str(exc))
            raise WebhookVerificationError("Invalid Stripe webhook signature") from exc
        except ValueError as exc:
            logger.error("stripe_webhook_parsing_failed", error=str(exc))
            raise WebhookVerificationError("Invalid webhook payload") from exc

        body: dict[str, Any] = json.loads(payload)
        event_id = body.get("id", "")
        event_type = body.get("type", "")
        data_object = (body.get("data") or {}).get("object") or {}

        logger.info("stripe_webhook_verified", event_id=event_id, event_type=event_type)

        return WebhookEvent(
            event_id=event_id,
            event_type=event_type,
            kind=WEBHOOK_EVENT_KINDS.get(event_type, WebhookEventKind.OTHER),
            payment_id=data_object.get("id"),
            payload=body,
        )
