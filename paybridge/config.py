"""
Application Configuration - Pydantic Settings for type-safe config.

FAIL FAST - Invalid policy values are rejected when settings are built.
Settings are constructed once at startup and passed into each app factory.
"""

import sys

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from paybridge import __version__
from paybridge.exceptions import ConfigurationError

SQUARE_BASE_URLS = {
    "sandbox": "https://connect.squareupsandbox.com",
    "production": "https://connect.squareup.com",
}


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Server
    host: str = "0.0.0.0"
    port: int = 3000
    api_version: str = __version__
    cors_origins: list[str] = Field(
        default_factory=lambda: [
            "http://localhost:3000",
            "http://10.0.2.2:3000",
            "http://192.168.100.79:3000",
        ]
    )

    # Payment Provider - Stripe
    stripe_secret_key: str = ""  # sk_test_... or sk_live_...
    stripe_webhook_secret: str = ""  # whsec_...

    # Payment Provider - Square
    square_access_token: str = ""
    square_environment: str = "sandbox"  # sandbox or production
    square_location_id: str = ""
    square_api_version: str = "2024-01-18"
    square_timeout_seconds: float = 30.0

    # Payment policy (provider-specific business rules)
    stripe_minimum_amount: int = 50
    stripe_default_currency: str = "eur"
    square_minimum_amount: int = 1
    square_default_currency: str = "USD"

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"  # json or console

    # Observability
    metrics_enabled: bool = True
    tracing_enabled: bool = False
    otlp_endpoint: str = "http://otel-collector:4317"
    otlp_insecure: bool = True
    service_name: str = "paybridge"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    @model_validator(mode="after")
    def validate_policy(self) -> "Settings":
        """
        FAIL FAST: Reject configuration that would make every request fail.
        """
        errors: list[str] = []

        if self.square_environment not in SQUARE_BASE_URLS:
            errors.append(
                f"SQUARE_ENVIRONMENT must be one of {sorted(SQUARE_BASE_URLS)}, "
                f"got: {self.square_environment!r}"
            )
        if self.stripe_minimum_amount < 1:
            errors.append("STRIPE_MINIMUM_AMOUNT must be at least 1")
        if self.square_minimum_amount < 1:
            errors.append("SQUARE_MINIMUM_AMOUNT must be at least 1")
        for name in ("stripe_default_currency", "square_default_currency"):
            if len(getattr(self, name)) != 3:
                errors.append(f"{name.upper()} must be a 3-letter currency code")

        if errors:
            error_msg = "\n".join(
                [
                    "",
                    "=" * 60,
                    "CRITICAL CONFIGURATION ERROR - APPLICATION CANNOT START",
                    "=" * 60,
                    *[f"  ✗ {e}" for e in errors],
                    "=" * 60,
                    "",
                ]
            )
            print(error_msg, file=sys.stderr)
            raise ConfigurationError(error_msg)

        return self

    @property
    def square_base_url(self) -> str:
        """Square Connect API base URL for the configured environment."""
        return SQUARE_BASE_URLS[self.square_environment]
