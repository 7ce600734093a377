"""
Tests for webhook verification and dispatch.

Uses the real Stripe provider with locally signed payloads, so signature
checking runs exactly as in production (no network involved).
"""

import json
import time

import pytest

from paybridge.services.payment_provider import WebhookEvent, WebhookEventKind
from paybridge.services.stripe_provider import StripeProvider
from paybridge.services.webhooks import VerificationState, WebhookProcessor


def event_payload(event_type: str = "payment_intent.succeeded") -> bytes:
    return json.dumps(
        {
            "id": "evt_1",
            "object": "event",
            "type": event_type,
            "data": {"object": {"id": "pi_123", "object": "payment_intent", "amount": 1000}},
        }
    ).encode()


class CountingHandlers:
    """Handler set that records every event it receives."""

    def __init__(self) -> None:
        self.events: list[WebhookEvent] = []

    async def __call__(self, event: WebhookEvent) -> None:
        self.events.append(event)

    def as_dict(self):
        return {kind: self for kind in WebhookEventKind}


@pytest.fixture
def handlers() -> CountingHandlers:
    return CountingHandlers()


@pytest.fixture
def processor(stripe_provider: StripeProvider, handlers: CountingHandlers) -> WebhookProcessor:
    return WebhookProcessor(stripe_provider, handlers.as_dict())


class TestVerifiedDeliveries:
    """Correctly signed deliveries."""

    @pytest.mark.asyncio
    async def test_succeeded_event_dispatched(self, processor, handlers, sign):
        payload = event_payload()
        outcome = await processor.process(payload, sign(payload))

        assert outcome.state is VerificationState.VERIFIED
        assert outcome.handled is True
        assert outcome.event.kind is WebhookEventKind.PAYMENT_SUCCEEDED
        assert outcome.event.payment_id == "pi_123"
        assert outcome.event.event_id == "evt_1"
        assert len(handlers.events) == 1

    @pytest.mark.asyncio
    async def test_failed_event_kind(self, processor, sign):
        payload = event_payload("payment_intent.payment_failed")
        outcome = await processor.process(payload, sign(payload))
        assert outcome.event.kind is WebhookEventKind.PAYMENT_FAILED

    @pytest.mark.asyncio
    async def test_other_event_acknowledged(self, processor, handlers, sign):
        payload = event_payload("charge.refunded")
        outcome = await processor.process(payload, sign(payload))
        assert outcome.state is VerificationState.VERIFIED
        assert outcome.event.kind is WebhookEventKind.OTHER
        assert len(handlers.events) == 1

    @pytest.mark.asyncio
    async def test_handler_failure_still_verified(self, stripe_provider, sign):
        async def broken(event: WebhookEvent) -> None:
            raise RuntimeError("downstream unavailable")

        processor = WebhookProcessor(
            stripe_provider, {WebhookEventKind.PAYMENT_SUCCEEDED: broken}
        )
        payload = event_payload()
        outcome = await processor.process(payload, sign(payload))

        assert outcome.state is VerificationState.VERIFIED
        assert outcome.handled is False

    @pytest.mark.asyncio
    async def test_default_handlers(self, stripe_provider, sign):
        processor = WebhookProcessor(stripe_provider)
        payload = event_payload()
        outcome = await processor.process(payload, sign(payload))
        assert outcome.handled is True


class TestRejectedDeliveries:
    """Anything not signed with the shared secret is rejected before dispatch."""

    @pytest.mark.asyncio
    async def test_every_body_byte_mutation_rejected(self, processor, handlers, sign):
        payload = event_payload()
        signature = sign(payload)

        for index in range(len(payload)):
            tampered = bytearray(payload)
            tampered[index] ^= 0x01
            outcome = await processor.process(bytes(tampered), signature)
            assert outcome.state is VerificationState.REJECTED, index

        assert handlers.events == []

    @pytest.mark.asyncio
    async def test_every_signature_char_mutation_rejected(self, processor, handlers, sign):
        payload = event_payload()
        header = sign(payload)
        prefix, digest = header.split(",v1=")

        for index, char in enumerate(digest):
            replacement = "0" if char != "0" else "1"
            tampered = digest[:index] + replacement + digest[index + 1 :]
            outcome = await processor.process(payload, f"{prefix},v1={tampered}")
            assert outcome.state is VerificationState.REJECTED, index

        assert handlers.events == []

    @pytest.mark.asyncio
    async def test_wrong_secret(self, processor, handlers, sign):
        payload = event_payload()
        outcome = await processor.process(
            payload, sign(payload, secret="whsec_other")
        )
        assert outcome.state is VerificationState.REJECTED
        assert outcome.error == "Invalid Stripe webhook signature"
        assert handlers.events == []

    @pytest.mark.asyncio
    async def test_stale_timestamp(self, processor, handlers, sign):
        payload = event_payload()
        signature = sign(payload, timestamp=int(time.time()) - 3600)
        outcome = await processor.process(payload, signature)
        assert outcome.state is VerificationState.REJECTED
        assert handlers.events == []

    @pytest.mark.asyncio
    async def test_missing_signature(self, processor, handlers, sign):
        outcome = await processor.process(event_payload(), None)
        assert outcome.state is VerificationState.REJECTED
        assert outcome.error == "Missing stripe-signature header"
        assert handlers.events == []

    @pytest.mark.asyncio
    async def test_missing_secret(self, handlers, sign):
        provider = StripeProvider(api_key="sk_test_fake_key", webhook_secret="")
        processor = WebhookProcessor(provider, handlers.as_dict())
        payload = event_payload()
        outcome = await processor.process(payload, sign(payload))
        assert outcome.state is VerificationState.REJECTED
        assert outcome.error == "Webhook secret is not configured"
        assert handlers.events == []


def test_signing_helper_format(sign):
    assert sign(b"{}", timestamp=1).startswith("t=1,v1=")
