"""
Square service routes - charges, customers, card vaulting and lookups.

Errors raised here are turned into ``{"success": false, ...}`` bodies by the
Square app's exception handlers (see ``paybridge.main``).
"""

from fastapi import APIRouter, Depends
from structlog import get_logger

from paybridge.api.dependencies import get_amount_policy, get_square_gateway
from paybridge.exceptions import PaymentNotFoundError, PaymentProviderError
from paybridge.models.api import (
    CardDetails,
    CardPaymentBody,
    CreateCustomerBody,
    CustomerResponse,
    Location,
    LocationsResponse,
    SquarePaymentResponse,
    SquarePaymentStatusResponse,
    StoreCardBody,
    StoreCardResponse,
    StoredCardPaymentBody,
    StoredCardPaymentResponse,
)
from paybridge.services.gateway import SquareGateway
from paybridge.services.payment_provider import CardSummary
from paybridge.services.validation import (
    AmountPolicy,
    validate_card_payment,
    validate_customer,
    validate_store_card,
    validate_stored_card_payment,
)

logger = get_logger(__name__)
router = APIRouter(tags=["square"])


def _card_details(card: CardSummary | None) -> CardDetails | None:
    if card is None:
        return None
    return CardDetails(
        brand=card.brand,
        last_four=card.last_four,
        exp_month=card.exp_month,
        exp_year=card.exp_year,
    )


@router.post(
    "/create-square-payment",
    response_model=SquarePaymentResponse,
    response_model_exclude_none=True,
)
async def create_square_payment(
    body: CardPaymentBody,
    gateway: SquareGateway = Depends(get_square_gateway),
    policy: AmountPolicy = Depends(get_amount_policy),
) -> SquarePaymentResponse:
    """Charge a card token (nonce) produced by the client-side payment form."""
    payment_request = validate_card_payment(body, policy)
    result = await gateway.create_payment(payment_request)

    return SquarePaymentResponse(
        payment_id=result.payment_id,
        amount=result.amount_minor,
        currency=result.currency,
        status=result.status,
        receipt_number=result.receipt_number,
        receipt_url=result.receipt_url,
        card_details=_card_details(result.card),
    )


@router.post("/create-square-customer", response_model=CustomerResponse)
async def create_square_customer(
    body: CreateCustomerBody,
    gateway: SquareGateway = Depends(get_square_gateway),
) -> CustomerResponse:
    """Create a customer profile that cards can be stored against."""
    customer = await gateway.create_customer(validate_customer(body))
    return CustomerResponse(customer=customer.raw, customer_id=customer.customer_id)


@router.post("/store-card", response_model=StoreCardResponse)
async def store_card(
    body: StoreCardBody,
    gateway: SquareGateway = Depends(get_square_gateway),
) -> StoreCardResponse:
    """Vault a card for an existing customer."""
    card = await gateway.store_card(validate_store_card(body))
    return StoreCardResponse(
        card=card.raw,
        card_id=card.card_id,
        last_four=card.summary.last_four,
        card_brand=card.summary.brand,
        exp_month=card.summary.exp_month,
        exp_year=card.summary.exp_year,
    )


@router.post("/pay-with-stored-card", response_model=StoredCardPaymentResponse)
async def pay_with_stored_card(
    body: StoredCardPaymentBody,
    gateway: SquareGateway = Depends(get_square_gateway),
    policy: AmountPolicy = Depends(get_amount_policy),
) -> StoredCardPaymentResponse:
    """Charge a previously stored card."""
    payment_request = validate_stored_card_payment(body, policy)
    result = await gateway.pay_with_stored_card(payment_request)

    return StoredCardPaymentResponse(
        payment_id=result.payment_id,
        amount=result.amount_minor,
        currency=result.currency,
        status=result.status,
        receipt_number=result.receipt_number,
    )


@router.get("/payment-status/{payment_id}", response_model=SquarePaymentStatusResponse)
async def get_payment_status(
    payment_id: str,
    gateway: SquareGateway = Depends(get_square_gateway),
) -> SquarePaymentStatusResponse:
    """Look up a payment; unknown ids answer 404."""
    try:
        result = await gateway.get_payment(payment_id)
    except PaymentProviderError as exc:
        if exc.is_not_found:
            raise PaymentNotFoundError.from_provider_error(exc) from exc
        raise
    return SquarePaymentStatusResponse(
        payment=result.raw,
        status=result.status,
        amount=result.amount_minor,
        currency=result.currency,
        created_at=result.created_at,
        updated_at=result.updated_at,
    )


@router.get("/square-locations", response_model=LocationsResponse)
async def list_square_locations(
    gateway: SquareGateway = Depends(get_square_gateway),
) -> LocationsResponse:
    """List the merchant locations available to this access token."""
    locations = await gateway.list_locations()
    return LocationsResponse(
        locations=[
            Location(
                id=location.location_id,
                name=location.name,
                address=location.address,
                status=location.status,
                capabilities=location.capabilities,
            )
            for location in locations
        ]
    )
