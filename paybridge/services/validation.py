"""
Request Validator - checks request bodies before any provider call.

Every function here either returns a validated model or raises
PaymentValidationError. Nothing in this module touches the network.
"""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any

from paybridge.exceptions import PaymentValidationError
from paybridge.models.api import (
    CardPaymentBody,
    CreateCustomerBody,
    PaymentIntentBody,
    StoreCardBody,
    StoredCardPaymentBody,
)
from paybridge.services.payment_provider import (
    CustomerRequest,
    PaymentRequest,
    StoreCardRequest,
)


@dataclass(frozen=True)
class AmountPolicy:
    """Provider-specific business rules for payment amounts."""

    minimum: int
    default_currency: str

    @property
    def minimum_message(self) -> str:
        unit = "cent" if self.minimum == 1 else "cents"
        return f"Amount must be at least {self.minimum} {unit}"


def _blank(value: str | None) -> bool:
    return value is None or not value.strip()


def _clean(value: str | None) -> str | None:
    return None if _blank(value) else value.strip()  # type: ignore[union-attr]


def parse_amount(value: Any, policy: AmountPolicy) -> int:
    """
    Parse an amount in minor units and enforce the policy minimum.

    Accepts integers, integral floats and digit strings. A missing or zero
    amount is reported the same way as one below the minimum.
    """
    if isinstance(value, bool):
        raise PaymentValidationError("Amount must be a number", field="amount")
    if value is None or value == "" or value == 0:
        raise PaymentValidationError(policy.minimum_message, field="amount")

    if isinstance(value, int):
        amount = value
    else:
        try:
            parsed = Decimal(str(value).strip())
        except InvalidOperation:
            raise PaymentValidationError("Amount must be a number", field="amount") from None
        if not parsed.is_finite():
            raise PaymentValidationError("Amount must be a number", field="amount")
        if parsed != parsed.to_integral_value():
            raise PaymentValidationError(
                "Amount must be a whole number of minor currency units", field="amount"
            )
        amount = int(parsed)

    if amount < policy.minimum:
        raise PaymentValidationError(policy.minimum_message, field="amount")
    return amount


def _currency(value: str | None, policy: AmountPolicy) -> str:
    currency = _clean(value) or policy.default_currency
    if len(currency) != 3 or not currency.isalpha():
        raise PaymentValidationError("Currency must be a 3-letter ISO code", field="currency")
    return currency


def validate_intent_request(body: PaymentIntentBody, policy: AmountPolicy) -> PaymentRequest:
    """Validate a Stripe payment intent request."""
    amount = parse_amount(body.amount, policy)
    return PaymentRequest(amount_minor=amount, currency=_currency(body.currency, policy))


def validate_card_payment(body: CardPaymentBody, policy: AmountPolicy) -> PaymentRequest:
    """Validate a direct Square charge; a card source token is required."""
    if _blank(body.source_id):
        raise PaymentValidationError("sourceId is required", field="sourceId")
    amount = parse_amount(body.amount, policy)
    return PaymentRequest(
        amount_minor=amount,
        currency=_currency(body.currency, policy),
        source_id=body.source_id.strip(),  # type: ignore[union-attr]
        location_id=_clean(body.location_id),
        customer_id=_clean(body.customer_id),
        order_id=_clean(body.order_id),
        note=_clean(body.note),
        verification_token=_clean(body.verification_token),
    )


def validate_stored_card_payment(
    body: StoredCardPaymentBody, policy: AmountPolicy
) -> PaymentRequest:
    """Validate a charge against a vaulted card; the card id is the source."""
    if _blank(body.card_id):
        raise PaymentValidationError("cardId is required", field="cardId")
    amount = parse_amount(body.amount, policy)
    return PaymentRequest(
        amount_minor=amount,
        currency=_currency(body.currency, policy),
        source_id=body.card_id.strip(),  # type: ignore[union-attr]
        location_id=_clean(body.location_id),
        customer_id=_clean(body.customer_id),
        order_id=_clean(body.order_id),
        note=_clean(body.note),
    )


def validate_customer(body: CreateCustomerBody) -> CustomerRequest:
    """Validate a customer creation request; at least one identifying field is required."""
    request = CustomerRequest(
        given_name=_clean(body.given_name),
        family_name=_clean(body.family_name),
        company_name=_clean(body.company_name),
        email_address=_clean(body.email_address),
        phone_number=_clean(body.phone_number),
        reference_id=_clean(body.reference_id),
        note=_clean(body.note),
    )
    identifying = (
        request.given_name,
        request.family_name,
        request.company_name,
        request.email_address,
        request.phone_number,
    )
    if not any(identifying):
        raise PaymentValidationError(
            "At least one of givenName, familyName, companyName, emailAddress "
            "or phoneNumber is required"
        )
    return request


def validate_store_card(body: StoreCardBody) -> StoreCardRequest:
    """Validate a card vaulting request."""
    if _blank(body.customer_id):
        raise PaymentValidationError("customerId is required", field="customerId")
    source_id = _clean(body.source_id) or _clean(body.card_nonce)
    if source_id is None:
        raise PaymentValidationError("sourceId or cardNonce is required", field="sourceId")
    return StoreCardRequest(
        customer_id=body.customer_id.strip(),  # type: ignore[union-attr]
        source_id=source_id,
        cardholder_name=_clean(body.cardholder_name),
        verification_token=_clean(body.verification_token),
    )
