"""
FastAPI Dependencies - components wired onto ``app.state`` at startup.
"""

from fastapi import Request

from paybridge.services.gateway import SquareGateway, StripeGateway
from paybridge.services.validation import AmountPolicy
from paybridge.services.webhooks import WebhookProcessor


def get_amount_policy(request: Request) -> AmountPolicy:
    """Amount policy of the service handling the request."""
    policy: AmountPolicy = request.app.state.amount_policy
    return policy


def get_stripe_gateway(request: Request) -> StripeGateway:
    gateway: StripeGateway = request.app.state.stripe_gateway
    return gateway


def get_webhook_processor(request: Request) -> WebhookProcessor:
    processor: WebhookProcessor = request.app.state.webhook_processor
    return processor


def get_square_gateway(request: Request) -> SquareGateway:
    gateway: SquareGateway = request.app.state.square_gateway
    return gateway
