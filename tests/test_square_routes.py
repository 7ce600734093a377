"""
Tests for the Square service HTTP surface.
"""

import pytest
from fastapi.testclient import TestClient

from paybridge.exceptions import ConfigurationError, PaymentProviderError, ProviderTransportError
from paybridge.main import create_square_app
from paybridge.services.transactions import TransactionRecord

CARD_DECLINED = [
    {"category": "PAYMENT_METHOD_ERROR", "code": "CARD_DECLINED", "detail": "Card declined"}
]


class CollectingRecorder:
    def __init__(self) -> None:
        self.records: list[TransactionRecord] = []

    async def record(self, transaction: TransactionRecord) -> None:
        self.records.append(transaction)


class FailingRecorder:
    async def record(self, transaction: TransactionRecord) -> None:
        raise ConnectionError("database unavailable")


class TestCreateSquarePayment:
    """POST /create-square-payment."""

    def test_success(self, square_client, pos_provider):
        response = square_client.post(
            "/create-square-payment",
            json={"sourceId": "cnon:card-nonce-ok", "amount": 2500, "currency": "USD"},
        )

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "paymentId": "sq_pay_1",
            "amount": 2500,
            "currency": "USD",
            "status": "COMPLETED",
            "receiptNumber": "R123",
            "receiptUrl": "https://squareup.com/receipt/preview/sq_pay_1",
            "cardDetails": {
                "brand": "VISA",
                "lastFour": "1111",
                "expMonth": 12,
                "expYear": 2030,
            },
        }
        [(operation, params)] = pos_provider.calls
        assert operation == "create_payment"
        assert params.source_id == "cnon:card-nonce-ok"
        assert params.amount_minor == 2500
        assert len(params.idempotency_key) <= 45

    def test_passes_optional_fields(self, square_client, pos_provider):
        square_client.post(
            "/create-square-payment",
            json={
                "sourceId": "cnon:ok",
                "amount": 100,
                "locationId": "LOC_2",
                "customerId": "CUST_1",
                "orderId": "order_42",
                "note": "Table 4",
                "verificationToken": "verf:abc",
            },
        )

        params = pos_provider.calls[0][1]
        assert params.currency == "USD"
        assert params.location_id == "LOC_2"
        assert params.customer_id == "CUST_1"
        assert params.order_id == "order_42"
        assert params.note == "Table 4"
        assert params.verification_token == "verf:abc"

    def test_missing_source_id(self, square_client, pos_provider):
        response = square_client.post("/create-square-payment", json={"amount": 100})

        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "sourceId is required"}
        assert pos_provider.calls == []

    def test_zero_amount(self, square_client, pos_provider):
        response = square_client.post(
            "/create-square-payment", json={"sourceId": "cnon:ok", "amount": 0}
        )

        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "Amount must be at least 1 cent"}
        assert pos_provider.calls == []

    def test_card_declined(self, square_client, pos_provider):
        pos_provider.error = PaymentProviderError(
            "Card declined",
            category="PAYMENT_METHOD_ERROR",
            code="CARD_DECLINED",
            errors=CARD_DECLINED,
            status_code=402,
        )

        response = square_client.post(
            "/create-square-payment", json={"sourceId": "cnon:declined", "amount": 100}
        )

        assert response.status_code == 400
        assert response.json() == {
            "success": False,
            "error": "Card declined",
            "category": "PAYMENT_METHOD_ERROR",
            "code": "CARD_DECLINED",
            "errors": CARD_DECLINED,
        }

    def test_error_without_category_or_code(self, square_client, pos_provider):
        pos_provider.error = PaymentProviderError("Something went wrong", status_code=400)

        response = square_client.post(
            "/create-square-payment", json={"sourceId": "cnon:ok", "amount": 100}
        )

        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "Something went wrong"}

    def test_transport_failure(self, square_client, pos_provider):
        pos_provider.error = ProviderTransportError("timed out")

        response = square_client.post(
            "/create-square-payment", json={"sourceId": "cnon:ok", "amount": 100}
        )

        assert response.status_code == 500
        assert response.json() == {"success": False, "error": "Internal server error"}
        assert len(pos_provider.calls) == 1

    def test_malformed_json(self, square_client, pos_provider):
        response = square_client.post(
            "/create-square-payment",
            content=b"[1, 2",
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["error"] == "Invalid request body"
        assert pos_provider.calls == []

    def test_unexpected_failure_is_generic_500(self, square_app, pos_provider):
        pos_provider.error = RuntimeError("secret internals")
        client = TestClient(square_app, raise_server_exceptions=False)

        response = client.post(
            "/create-square-payment", json={"sourceId": "cnon:ok", "amount": 100}
        )

        assert response.status_code == 500
        assert response.json() == {"success": False, "error": "Internal server error"}
        assert "secret" not in response.text


class TestTransactionRecording:
    """Completed charges are handed to the recorder."""

    def test_charge_is_recorded(self, settings, pos_provider):
        recorder = CollectingRecorder()
        client = TestClient(create_square_app(settings, provider=pos_provider, recorder=recorder))

        client.post(
            "/create-square-payment",
            json={"sourceId": "cnon:ok", "amount": 2500, "customerId": "CUST_1"},
        )

        [record] = recorder.records
        assert record.provider == "square"
        assert record.payment_id == "sq_pay_1"
        assert record.amount_minor == 2500
        assert record.customer_id == "CUST_1"

    def test_recorder_failure_does_not_fail_charge(self, settings, pos_provider):
        client = TestClient(
            create_square_app(settings, provider=pos_provider, recorder=FailingRecorder())
        )

        response = client.post(
            "/create-square-payment", json={"sourceId": "cnon:ok", "amount": 2500}
        )

        assert response.status_code == 200
        assert response.json()["paymentId"] == "sq_pay_1"

    def test_rejected_charge_not_recorded(self, settings, pos_provider):
        recorder = CollectingRecorder()
        pos_provider.error = PaymentProviderError("Card declined", code="CARD_DECLINED")
        client = TestClient(create_square_app(settings, provider=pos_provider, recorder=recorder))

        client.post("/create-square-payment", json={"sourceId": "cnon:ok", "amount": 100})

        assert recorder.records == []


class TestCustomersAndCards:
    """Customer creation, card vaulting and stored-card charges."""

    def test_create_customer(self, square_client, pos_provider):
        response = square_client.post(
            "/create-square-customer",
            json={"givenName": "Ada", "familyName": "Lovelace", "emailAddress": "ada@example.com"},
        )

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "customer": {"id": "CUST_1", "given_name": "Ada"},
            "customerId": "CUST_1",
        }
        request, key = pos_provider.calls[0][1]
        assert request.email_address == "ada@example.com"
        assert key

    def test_create_customer_requires_identity(self, square_client, pos_provider):
        response = square_client.post("/create-square-customer", json={"note": "vip"})

        assert response.status_code == 400
        assert response.json()["success"] is False
        assert pos_provider.calls == []

    def test_store_card(self, square_client, pos_provider):
        response = square_client.post(
            "/store-card",
            json={"customerId": "CUST_1", "cardNonce": "cnon:ok", "cardholderName": "Ada L"},
        )

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "card": {"id": "ccof:CARD_1", "customer_id": "CUST_1"},
            "cardId": "ccof:CARD_1",
            "lastFour": "4444",
            "cardBrand": "MASTERCARD",
            "expMonth": 6,
            "expYear": 2031,
        }
        request, _ = pos_provider.calls[0][1]
        assert request.source_id == "cnon:ok"
        assert request.cardholder_name == "Ada L"

    def test_store_card_requires_customer(self, square_client, pos_provider):
        response = square_client.post("/store-card", json={"sourceId": "cnon:ok"})

        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "customerId is required"}
        assert pos_provider.calls == []

    def test_pay_with_stored_card(self, square_client, pos_provider):
        response = square_client.post(
            "/pay-with-stored-card",
            json={"cardId": "ccof:CARD_1", "customerId": "CUST_1", "amount": 2500},
        )

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "paymentId": "sq_pay_1",
            "amount": 2500,
            "currency": "USD",
            "status": "COMPLETED",
            "receiptNumber": "R123",
        }
        params = pos_provider.calls[0][1]
        assert params.source_id == "ccof:CARD_1"
        assert params.customer_id == "CUST_1"

    def test_pay_with_stored_card_requires_card(self, square_client, pos_provider):
        response = square_client.post("/pay-with-stored-card", json={"amount": 2500})

        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "cardId is required"}


class TestLookups:
    """Payment status and locations."""

    def test_payment_status(self, square_client, pos_provider):
        response = square_client.get("/payment-status/sq_pay_1")

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "payment": {"id": "sq_pay_1", "status": "COMPLETED"},
            "status": "COMPLETED",
            "amount": 2500,
            "currency": "USD",
            "createdAt": "2024-05-01T10:00:00Z",
            "updatedAt": "2024-05-01T10:00:01Z",
        }
        assert pos_provider.calls == [("get_payment", "sq_pay_1")]

    def test_unknown_payment_is_404(self, square_client, pos_provider):
        pos_provider.error = PaymentProviderError(
            "Could not find payment",
            category="INVALID_REQUEST_ERROR",
            code="NOT_FOUND",
            status_code=404,
        )

        response = square_client.get("/payment-status/nope")

        assert response.status_code == 404
        body = response.json()
        assert body["success"] is False
        assert body["code"] == "NOT_FOUND"

    def test_locations(self, square_client):
        response = square_client.get("/square-locations")

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "locations": [
                {
                    "id": "LOC_MAIN",
                    "name": "Main Street",
                    "address": {"address_line_1": "1 Main St", "locality": "Springfield"},
                    "status": "ACTIVE",
                    "capabilities": ["CREDIT_CARD_PROCESSING"],
                }
            ],
        }


class TestServiceEndpoints:
    """Root and startup checks."""

    def test_root(self, square_client):
        response = square_client.get("/")

        assert response.json() == {
            "message": "Square Payment Server is running!",
            "environment": "sandbox",
            "locationConfigured": True,
        }

    def test_missing_access_token_fails_fast(self, settings):
        with pytest.raises(ConfigurationError):
            create_square_app(settings.model_copy(update={"square_access_token": ""}))

    def test_builds_real_provider_from_settings(self, settings):
        app = create_square_app(settings)

        provider = app.state.square_gateway.provider
        assert provider.base_url == "https://connect.squareupsandbox.com"
        assert provider.location_id == "LOC_MAIN"


class TestNotFoundMapping:
    """Only payment lookups answer 404 for a provider NOT_FOUND."""

    @staticmethod
    def not_found() -> PaymentProviderError:
        return PaymentProviderError(
            "Customer not found",
            category="INVALID_REQUEST_ERROR",
            code="NOT_FOUND",
            status_code=404,
        )

    def test_store_card_for_unknown_customer_is_400(self, square_client, pos_provider):
        pos_provider.error = self.not_found()

        response = square_client.post(
            "/store-card", json={"customerId": "CUST_GONE", "sourceId": "cnon:ok"}
        )

        assert response.status_code == 400
        assert response.json()["code"] == "NOT_FOUND"

    def test_stored_card_payment_with_unknown_card_is_400(self, square_client, pos_provider):
        pos_provider.error = self.not_found()

        response = square_client.post(
            "/pay-with-stored-card", json={"cardId": "ccof:GONE", "amount": 100}
        )

        assert response.status_code == 400
        assert response.json()["success"] is False

    def test_other_lookup_errors_stay_400(self, square_client, pos_provider):
        pos_provider.error = PaymentProviderError(
            "Invalid id", category="INVALID_REQUEST_ERROR", code="BAD_REQUEST", status_code=400
        )

        response = square_client.get("/payment-status/bad_id")

        assert response.status_code == 400
