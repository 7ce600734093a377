"""
Square Payment Provider Implementation.

Talks to the Square Connect v2 REST API.
https://developer.squareup.com/reference/square
"""

from typing import Any
from urllib.parse import quote

import httpx
from structlog import get_logger

from paybridge.exceptions import ProviderTransportError
from paybridge.services.normalizer import (
    card_from_square,
    customer_from_square,
    error_from_square,
    location_from_square,
    payment_from_square,
)
from paybridge.services.payment_provider import (
    CustomerRecord,
    CustomerRequest,
    LocationInfo,
    PaymentResult,
    ProviderCallParams,
    StoreCardRequest,
    StoredCard,
)

logger = get_logger(__name__)


def _compact(data: dict[str, Any]) -> dict[str, Any]:
    """Drop unset fields; Square rejects explicit nulls on several endpoints."""
    return {key: value for key, value in data.items() if value is not None}


class SquareProvider:
    """
    Square payment provider.

    Implements the PointOfSaleProvider protocol: payments, customers,
    card vaulting and locations.
    """

    def __init__(
        self,
        access_token: str,
        base_url: str,
        api_version: str,
        location_id: str | None = None,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize Square provider.

        Args:
            access_token: Square access token
            base_url: Sandbox or production Connect API base URL
            api_version: Value sent as the Square-Version header
            location_id: Default location for payments
            timeout: Transport timeout in seconds
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self.access_token = access_token
        self.base_url = base_url
        self.api_version = api_version
        self.location_id = location_id or None
        self.timeout = timeout
        self.transport = transport

        logger.info(
            "square_provider_initialized",
            base_url=base_url,
            location_configured=self.location_id is not None,
        )

    async def _make_request(
        self,
        method: str,
        endpoint: str,
        json: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Make an authenticated request to the Square API."""
        headers = {
            "Authorization": f"Bearer {self.access_token}",
            "Square-Version": self.api_version,
            "Content-Type": "application/json",
        }

        try:
            async with httpx.AsyncClient(
                base_url=self.base_url, timeout=self.timeout, transport=self.transport
            ) as client:
                response = await client.request(method, endpoint, headers=headers, json=json)
        except httpx.HTTPError as exc:
            logger.error(
                "square_api_unreachable",
                endpoint=endpoint,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            raise ProviderTransportError(f"Square API request failed: {exc}") from exc

        try:
            body: dict[str, Any] = response.json()
        except ValueError as exc:
            logger.error(
                "square_api_malformed_response",
                endpoint=endpoint,
                status=response.status_code,
            )
            raise ProviderTransportError(
                f"Malformed Square API response ({response.status_code})"
            ) from exc

        if response.status_code >= 400:
            error = error_from_square(response.status_code, body)
            logger.warning(
                "square_api_error",
                endpoint=endpoint,
                status=response.status_code,
                category=error.category,
                code=error.code,
                error=error.message,
            )
            raise error

        return body

    @staticmethod
    def _field(body: dict[str, Any], name: str) -> dict[str, Any]:
        value = body.get(name)
        if not isinstance(value, dict):
            raise ProviderTransportError(f"Square API response is missing '{name}'")
        return value

    async def create_payment(self, params: ProviderCallParams) -> PaymentResult:
        """
        Create a payment from a card token or a card on file.

        Raises:
            PaymentProviderError: If Square rejects the payment
            ProviderTransportError: If Square cannot be reached
        """
        payload = _compact(
            {
                "idempotency_key": params.idempotency_key,
                "source_id": params.source_id,
                "amount_money": {"amount": params.amount_minor, "currency": params.currency},
                "location_id": params.location_id or self.location_id,
                "customer_id": params.customer_id,
                "reference_id": params.order_id,
                "note": params.note,
                "verification_token": params.verification_token,
                "autocomplete": True,
            }
        )

        logger.info(
            "creating_square_payment",
            amount_minor=params.amount_minor,
            currency=params.currency,
            idempotency_key=params.idempotency_key,
        )
        body = await self._make_request("POST", "/v2/payments", json=payload)
        result = payment_from_square(self._field(body, "payment"))
        logger.info(
            "square_payment_created",
            payment_id=result.payment_id,
            status=result.status,
        )
        return result

    async def create_customer(
        self, request: CustomerRequest, idempotency_key: str
    ) -> CustomerRecord:
        """Create a customer profile."""
        payload = _compact(
            {
                "idempotency_key": idempotency_key,
                "given_name": request.given_name,
                "family_name": request.family_name,
                "company_name": request.company_name,
                "email_address": request.email_address,
                "phone_number": request.phone_number,
                "reference_id": request.reference_id,
                "note": request.note,
            }
        )

        logger.info("creating_square_customer", idempotency_key=idempotency_key)
        body = await self._make_request("POST", "/v2/customers", json=payload)
        customer = customer_from_square(self._field(body, "customer"))
        logger.info("square_customer_created", customer_id=customer.customer_id)
        return customer

    async def create_card(self, request: StoreCardRequest, idempotency_key: str) -> StoredCard:
        """Vault a card for an existing customer."""
        payload = _compact(
            {
                "idempotency_key": idempotency_key,
                "source_id": request.source_id,
                "verification_token": request.verification_token,
                "card": _compact(
                    {
                        "customer_id": request.customer_id,
                        "cardholder_name": request.cardholder_name,
                    }
                ),
            }
        )

        logger.info(
            "storing_square_card",
            customer_id=request.customer_id,
            idempotency_key=idempotency_key,
        )
        body = await self._make_request("POST", "/v2/cards", json=payload)
        card = card_from_square(self._field(body, "card"))
        logger.info(
            "square_card_stored",
            card_id=card.card_id,
            customer_id=card.customer_id,
            card_brand=card.summary.brand,
        )
        return card

    async def get_payment(self, payment_id: str) -> PaymentResult:
        """Look up a payment by id."""
        logger.info("getting_square_payment", payment_id=payment_id)
        body = await self._make_request("GET", f"/v2/payments/{quote(payment_id, safe='')}")
        return payment_from_square(self._field(body, "payment"))

    async def list_locations(self) -> list[LocationInfo]:
        """List the merchant's locations."""
        body = await self._make_request("GET", "/v2/locations")
        locations = [location_from_square(item) for item in body.get("locations") or []]
        logger.info("square_locations_listed", count=len(locations))
        return locations
