"""
Exception Classes - Strongly typed exception hierarchy.

Every failure a request can end in is one of these categories.
"""

from typing import Any


class PaymentGatewayError(Exception):
    """Base exception for all payment gateway errors."""

    pass


class ConfigurationError(PaymentGatewayError):
    """Raised when critical configuration is missing or invalid."""

    pass


class PaymentValidationError(PaymentGatewayError):
    """Raised when a request fails local validation, before any provider call."""

    def __init__(self, message: str, field: str | None = None) -> None:
        self.message = message
        self.field = field
        super().__init__(message)


class PaymentProviderError(PaymentGatewayError):
    """
    Raised when the payment provider rejects a request.

    Category and code are only set when the provider supplied them.
    """

    def __init__(
        self,
        message: str,
        category: str | None = None,
        code: str | None = None,
        errors: list[dict[str, Any]] | None = None,
        status_code: int | None = None,
    ) -> None:
        self.message = message
        self.category = category
        self.code = code
        self.errors = errors or []
        self.status_code = status_code
        super().__init__(f"Payment provider error: {message}")

    @property
    def is_not_found(self) -> bool:
        """Whether the provider reported the requested resource as missing."""
        return self.status_code == 404 or self.code == "NOT_FOUND"


class ProviderTransportError(PaymentGatewayError):
    """Raised when the provider could not be reached or answered unintelligibly."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(f"Payment provider unavailable: {message}")


class WebhookVerificationError(PaymentGatewayError):
    """Raised when webhook verification fails."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(f"Webhook verification error: {message}")


class PaymentNotFoundError(PaymentProviderError):
    """Raised when a payment lookup names a payment the provider does not have."""

    @classmethod
    def from_provider_error(cls, error: PaymentProviderError) -> "PaymentNotFoundError":
        return cls(
            error.message,
            category=error.category,
            code=error.code,
            errors=error.errors,
            status_code=error.status_code,
        )
