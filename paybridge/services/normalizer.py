"""
Response Normalizer - map provider payloads into provider-agnostic models.

Success payloads become PaymentResult and friends; error payloads become
PaymentProviderError. Category and code are never fabricated.
"""

from decimal import Decimal
from typing import Any

import stripe

from paybridge.exceptions import PaymentProviderError, ProviderTransportError
from paybridge.services.payment_provider import (
    CardSummary,
    CustomerRecord,
    LocationInfo,
    PaymentOutcome,
    PaymentResult,
    StoredCard,
)

_STATUS_OUTCOMES = {
    # Stripe PaymentIntent statuses
    "succeeded": PaymentOutcome.SUCCEEDED,
    "processing": PaymentOutcome.PENDING,
    "requires_payment_method": PaymentOutcome.PENDING,
    "requires_confirmation": PaymentOutcome.PENDING,
    "requires_action": PaymentOutcome.PENDING,
    "requires_capture": PaymentOutcome.PENDING,
    "canceled": PaymentOutcome.FAILED,
    # Square Payment statuses
    "COMPLETED": PaymentOutcome.SUCCEEDED,
    "APPROVED": PaymentOutcome.PENDING,
    "PENDING": PaymentOutcome.PENDING,
    "CANCELED": PaymentOutcome.FAILED,
    "FAILED": PaymentOutcome.FAILED,
}


def to_minor_units(value: Any) -> int:
    """
    Convert a provider amount to an exact integer number of minor units.

    Providers may hand back wide integers as ints, numeric strings or
    Decimals. Fractional or non-numeric values are malformed responses.
    """
    if isinstance(value, bool):
        raise ProviderTransportError(f"Malformed amount in provider response: {value!r}")
    if isinstance(value, int):
        return value
    try:
        amount = Decimal(str(value).strip())
    except ArithmeticError as exc:
        raise ProviderTransportError(
            f"Malformed amount in provider response: {value!r}"
        ) from exc
    if not amount.is_finite() or amount != amount.to_integral_value():
        raise ProviderTransportError(f"Malformed amount in provider response: {value!r}")
    return int(amount)


def classify_status(status: str | None) -> PaymentOutcome:
    """Classify a raw provider status string."""
    if status is None:
        return PaymentOutcome.UNKNOWN
    return _STATUS_OUTCOMES.get(status, PaymentOutcome.UNKNOWN)


def _optional_int(value: Any) -> int | None:
    return None if value is None else int(value)


def _require_id(obj: dict[str, Any], kind: str) -> str:
    if not obj.get("id"):
        raise ProviderTransportError(f"Square {kind} response is missing an id")
    return str(obj["id"])


# ============================================================================
# Stripe
# ============================================================================


def payment_from_stripe(payment_intent: Any) -> PaymentResult:
    """Map a Stripe PaymentIntent object into a PaymentResult."""
    status = payment_intent.status
    created = getattr(payment_intent, "created", None)
    return PaymentResult(
        payment_id=payment_intent.id,
        status=status,
        outcome=classify_status(status),
        amount_minor=to_minor_units(payment_intent.amount),
        currency=payment_intent.currency,
        client_secret=getattr(payment_intent, "client_secret", None),
        created_at=str(created) if created is not None else None,
    )


def error_from_stripe(exc: stripe.StripeError) -> PaymentProviderError | ProviderTransportError:
    """
    Map a Stripe SDK exception.

    Connection failures are transport errors; everything else is a rejection
    carrying Stripe's error type as category and its code when present.
    """
    if isinstance(exc, stripe.APIConnectionError):
        return ProviderTransportError(exc.user_message or str(exc))

    error = getattr(exc, "error", None)
    category = getattr(error, "type", None) if error is not None else None
    return PaymentProviderError(
        message=exc.user_message or str(exc),
        category=category,
        code=exc.code,
        status_code=exc.http_status,
    )


# ============================================================================
# Square
# ============================================================================


def card_summary_from_square(card: dict[str, Any] | None) -> CardSummary | None:
    """Map Square card details (payment.card_details.card or a Card object)."""
    if not card:
        return None
    return CardSummary(
        brand=card.get("card_brand"),
        last_four=card.get("last_4"),
        exp_month=_optional_int(card.get("exp_month")),
        exp_year=_optional_int(card.get("exp_year")),
    )


def payment_from_square(payment: dict[str, Any]) -> PaymentResult:
    """Map a Square Payment object into a PaymentResult."""
    money = payment.get("amount_money") or payment.get("total_money") or {}
    status = payment.get("status")
    card_details = payment.get("card_details") or {}
    return PaymentResult(
        payment_id=_require_id(payment, "payment"),
        status=status,
        outcome=classify_status(status),
        amount_minor=to_minor_units(money.get("amount", 0)),
        currency=money.get("currency", ""),
        receipt_number=payment.get("receipt_number"),
        receipt_url=payment.get("receipt_url"),
        card=card_summary_from_square(card_details.get("card")),
        created_at=payment.get("created_at"),
        updated_at=payment.get("updated_at"),
        raw=payment,
    )


def customer_from_square(customer: dict[str, Any]) -> CustomerRecord:
    """Map a Square Customer object."""
    return CustomerRecord(
        customer_id=_require_id(customer, "customer"),
        given_name=customer.get("given_name"),
        family_name=customer.get("family_name"),
        email_address=customer.get("email_address"),
        phone_number=customer.get("phone_number"),
        created_at=customer.get("created_at"),
        raw=customer,
    )


def card_from_square(card: dict[str, Any]) -> StoredCard:
    """Map a Square Card object."""
    summary = card_summary_from_square(card) or CardSummary(None, None, None, None)
    return StoredCard(
        card_id=_require_id(card, "card"),
        customer_id=card.get("customer_id"),
        summary=summary,
        raw=card,
    )


def location_from_square(location: dict[str, Any]) -> LocationInfo:
    """Map a Square Location object."""
    return LocationInfo(
        location_id=_require_id(location, "location"),
        name=location.get("name"),
        address=location.get("address"),
        status=location.get("status"),
        capabilities=list(location.get("capabilities") or []),
    )


def error_from_square(status_code: int, body: dict[str, Any]) -> PaymentProviderError:
    """
    Map a Square error response.

    The first error entry's ``detail`` becomes the message. Category and code
    are taken from that entry only when Square supplied them.
    """
    errors = body.get("errors") or []
    first: dict[str, Any] = errors[0] if errors else {}
    message = first.get("detail") or first.get("code") or f"Square API error ({status_code})"
    return PaymentProviderError(
        message=message,
        category=first.get("category"),
        code=first.get("code"),
        errors=errors,
        status_code=status_code,
    )
