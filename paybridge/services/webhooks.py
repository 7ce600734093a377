"""
Webhook Verifier - authenticate provider notifications, then dispatch them.

A delivery moves UNVERIFIED -> VERIFIED or UNVERIFIED -> REJECTED. Only
VERIFIED events reach a handler.
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum

from structlog import get_logger

from paybridge.exceptions import WebhookVerificationError
from paybridge.observability.metrics import metrics
from paybridge.services.payment_provider import IntentProvider, WebhookEvent, WebhookEventKind

logger = get_logger(__name__)

WebhookHandler = Callable[[WebhookEvent], Awaitable[None]]


class VerificationState(str, Enum):
    """Lifecycle of a webhook delivery."""

    UNVERIFIED = "unverified"
    VERIFIED = "verified"
    REJECTED = "rejected"


@dataclass(frozen=True)
class WebhookOutcome:
    """Result of processing one webhook delivery."""

    state: VerificationState
    event: WebhookEvent | None = None
    error: str | None = None
    handled: bool = False


async def log_payment_succeeded(event: WebhookEvent) -> None:
    logger.info("payment_succeeded", payment_id=event.payment_id, event_id=event.event_id)


async def log_payment_failed(event: WebhookEvent) -> None:
    logger.warning("payment_failed", payment_id=event.payment_id, event_id=event.event_id)


async def log_unhandled_event(event: WebhookEvent) -> None:
    logger.info("unhandled_webhook_event", event_type=event.event_type, event_id=event.event_id)


class WebhookProcessor:
    """
    Verifies webhook deliveries and dispatches them by event kind.

    Handlers default to logging. Once an event is verified it is always
    acknowledged, even if its handler fails, so the sender does not retry
    an event that can never succeed.
    """

    def __init__(
        self,
        provider: IntentProvider,
        handlers: dict[WebhookEventKind, WebhookHandler] | None = None,
    ) -> None:
        self.provider = provider
        self.handlers: dict[WebhookEventKind, WebhookHandler] = {
            WebhookEventKind.PAYMENT_SUCCEEDED: log_payment_succeeded,
            WebhookEventKind.PAYMENT_FAILED: log_payment_failed,
            WebhookEventKind.OTHER: log_unhandled_event,
        }
        if handlers:
            self.handlers.update(handlers)

    async def process(self, payload: bytes, signature: str | None) -> WebhookOutcome:
        """
        Verify the raw payload and dispatch the resulting event.

        Args:
            payload: Raw request body, exactly as received
            signature: Signature header value
        """
        try:
            event = await self.provider.verify_webhook(payload, signature or "")
        except WebhookVerificationError as exc:
            metrics.record_webhook(VerificationState.REJECTED.value, "unknown")
            logger.warning("webhook_rejected", reason=exc.message)
            return WebhookOutcome(state=VerificationState.REJECTED, error=exc.message)

        metrics.record_webhook(VerificationState.VERIFIED.value, event.kind.value)
        handled = await self._dispatch(event)
        return WebhookOutcome(state=VerificationState.VERIFIED, event=event, handled=handled)

    async def _dispatch(self, event: WebhookEvent) -> bool:
        handler = self.handlers[event.kind]
        try:
            await handler(event)
        except Exception as exc:
            metrics.record_error(type(exc).__name__, "webhook_dispatch")
            logger.error(
                "webhook_handler_failed",
                event_id=event.event_id,
                event_type=event.event_type,
                error=str(exc),
                exc_info=True,
            )
            return False
        return True
