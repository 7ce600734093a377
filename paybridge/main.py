"""
Main Application - FastAPI application factories.

Each payment service is its own app:
    uvicorn paybridge.main:create_stripe_app --factory
    uvicorn paybridge.main:create_square_app --factory
"""

import argparse
import time
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from prometheus_client import generate_latest
from starlette.routing import Match

from paybridge.api.square_routes import router as square_router
from paybridge.api.stripe_routes import router as stripe_router
from paybridge.config import Settings
from paybridge.exceptions import (
    ConfigurationError,
    PaymentNotFoundError,
    PaymentProviderError,
    PaymentValidationError,
    ProviderTransportError,
)
from paybridge.models.api import ErrorResponse
from paybridge.observability import (
    get_logger,
    instrument_fastapi,
    log_context,
    metrics,
    setup_logging,
    setup_tracing,
)
from paybridge.services.gateway import SquareGateway, StripeGateway
from paybridge.services.payment_provider import (
    IntentProvider,
    PointOfSaleProvider,
    WebhookEventKind,
)
from paybridge.services.square_provider import SquareProvider
from paybridge.services.stripe_provider import StripeProvider
from paybridge.services.transactions import TransactionRecorder
from paybridge.services.validation import AmountPolicy
from paybridge.services.webhooks import WebhookHandler, WebhookProcessor

logger = get_logger(__name__)

INTERNAL_ERROR = "Internal server error"
UNMATCHED_ROUTE = "unmatched"


def route_template(request: Request) -> str:
    """
    Route path template for the request, e.g. ``/payment-status/{payment_id}``.

    Used as the metrics label so caller-supplied ids never become label values.
    """
    for route in request.app.router.routes:
        match, _ = route.matches(request.scope)
        if match is Match.FULL:
            return getattr(route, "path", UNMATCHED_ROUTE)
    return UNMATCHED_ROUTE


def _error_body(error: str, success_flag: bool, **fields: object) -> dict[str, object]:
    body = ErrorResponse(success=False if success_flag else None, error=error, **fields)  # type: ignore[arg-type]
    return body.model_dump(exclude_none=True)


def _create_app(settings: Settings, title: str, service_name: str, success_flag: bool) -> FastAPI:
    """
    Build the parts both services share.

    ``success_flag`` adds ``"success": false`` to error bodies (Square contract).
    """
    setup_logging(settings, service_name)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info(
            "application_starting",
            service=service_name,
            version=settings.api_version,
            tracing_enabled=settings.tracing_enabled,
            metrics_enabled=settings.metrics_enabled,
        )
        yield
        logger.info("application_shutting_down", service=service_name)

    app = FastAPI(title=title, version=settings.api_version, lifespan=lifespan)
    app.state.settings = settings

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Malformed bodies are client errors, answered in the service's error shape."""
        errors = [
            {"loc": list(error.get("loc", ())), "msg": error.get("msg"), "type": error.get("type")}
            for error in exc.errors()
        ]
        metrics.record_validation_rejection(route_template(request))
        logger.warning(
            "request_body_invalid",
            path=request.url.path,
            method=request.method,
            errors=errors,
        )
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=_error_body("Invalid request body", success_flag, errors=errors),
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Last resort: never leak internals to the caller."""
        logger.error(
            "unhandled_exception",
            path=request.url.path,
            error_type=type(exc).__name__,
            exc_info=exc,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=_error_body(INTERNAL_ERROR, success_flag),
        )

    setup_tracing(settings, service_name)
    instrument_fastapi(app, settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def logging_middleware(
        request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        """Log all HTTP requests with timing."""
        start_time = time.time()
        request_id = request.headers.get("X-Request-ID", "unknown")
        endpoint = route_template(request)
        method = request.method

        with log_context(request_id=request_id):
            logger.info("request_started", method=method, path=request.url.path)
            metrics.http_requests_in_progress.labels(endpoint=endpoint, method=method).inc()
            try:
                response = await call_next(request)
                duration = time.time() - start_time
                metrics.record_http_request(endpoint, method, response.status_code, duration)
                logger.info(
                    "request_completed",
                    method=method,
                    path=request.url.path,
                    status_code=response.status_code,
                    duration_seconds=duration,
                )
                return response
            except Exception as e:
                duration = time.time() - start_time
                metrics.record_http_request(endpoint, method, 500, duration)
                metrics.record_error(type(e).__name__, "http_request")
                logger.error(
                    "request_failed",
                    method=method,
                    path=request.url.path,
                    error=str(e),
                    duration_seconds=duration,
                    exc_info=True,
                )
                raise
            finally:
                metrics.http_requests_in_progress.labels(endpoint=endpoint, method=method).dec()

    if settings.metrics_enabled:

        @app.get("/metrics", include_in_schema=False)
        async def metrics_endpoint() -> Response:
            """Prometheus metrics in text format."""
            return PlainTextResponse(generate_latest())

    return app


def create_stripe_app(
    settings: Settings | None = None,
    provider: IntentProvider | None = None,
    webhook_handlers: dict[WebhookEventKind, WebhookHandler] | None = None,
) -> FastAPI:
    """
    Build the Stripe payment service.

    Args:
        settings: Configuration (read from the environment when omitted)
        provider: Provider override; defaults to the Stripe API
        webhook_handlers: Handlers replacing the default logging ones
    """
    settings = settings or Settings()
    if provider is None:
        if not settings.stripe_secret_key:
            raise ConfigurationError("STRIPE_SECRET_KEY is required to start the Stripe service")
        provider = StripeProvider(
            api_key=settings.stripe_secret_key,
            webhook_secret=settings.stripe_webhook_secret,
        )
    if not settings.stripe_webhook_secret:
        logger.warning("stripe_webhook_secret_missing", consequence="webhooks will be rejected")

    app = _create_app(settings, "Stripe Payment Server", "paybridge-stripe", success_flag=False)
    app.state.amount_policy = AmountPolicy(
        minimum=settings.stripe_minimum_amount,
        default_currency=settings.stripe_default_currency,
    )
    app.state.stripe_gateway = StripeGateway(provider)
    app.state.webhook_processor = WebhookProcessor(provider, webhook_handlers)
    app.include_router(stripe_router)

    @app.get("/")
    async def root() -> dict[str, str]:
        """Liveness check."""
        return {"message": "Stripe Payment Server is running!"}

    return app


def create_square_app(
    settings: Settings | None = None,
    provider: PointOfSaleProvider | None = None,
    recorder: TransactionRecorder | None = None,
) -> FastAPI:
    """
    Build the Square payment service.

    Args:
        settings: Configuration (read from the environment when omitted)
        provider: Provider override; defaults to the Square Connect API
        recorder: Transaction recorder; defaults to logging only
    """
    settings = settings or Settings()
    if provider is None:
        if not settings.square_access_token:
            raise ConfigurationError("SQUARE_ACCESS_TOKEN is required to start the Square service")
        provider = SquareProvider(
            access_token=settings.square_access_token,
            base_url=settings.square_base_url,
            api_version=settings.square_api_version,
            location_id=settings.square_location_id,
            timeout=settings.square_timeout_seconds,
        )

    app = _create_app(settings, "Square Payment Server", "paybridge-square", success_flag=True)
    app.state.amount_policy = AmountPolicy(
        minimum=settings.square_minimum_amount,
        default_currency=settings.square_default_currency,
    )
    app.state.square_gateway = SquareGateway(provider, recorder)

    @app.exception_handler(PaymentValidationError)
    async def payment_validation_handler(
        request: Request, exc: PaymentValidationError
    ) -> JSONResponse:
        metrics.record_validation_rejection(route_template(request))
        logger.info("square_request_rejected", path=request.url.path, reason=exc.message)
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=_error_body(exc.message, success_flag=True),
        )

    @app.exception_handler(PaymentProviderError)
    async def provider_error_handler(request: Request, exc: PaymentProviderError) -> JSONResponse:
        status_code = (
            status.HTTP_404_NOT_FOUND
            if isinstance(exc, PaymentNotFoundError)
            else status.HTTP_400_BAD_REQUEST
        )
        logger.warning(
            "square_provider_error",
            path=request.url.path,
            error=exc.message,
            category=exc.category,
            code=exc.code,
        )
        return JSONResponse(
            status_code=status_code,
            content=_error_body(
                exc.message,
                success_flag=True,
                category=exc.category,
                code=exc.code,
                errors=exc.errors or None,
            ),
        )

    @app.exception_handler(ProviderTransportError)
    async def transport_error_handler(
        request: Request, exc: ProviderTransportError
    ) -> JSONResponse:
        logger.error("square_provider_unavailable", path=request.url.path, error=exc.message)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=_error_body(INTERNAL_ERROR, success_flag=True),
        )

    app.include_router(square_router)

    @app.get("/")
    async def root() -> dict[str, object]:
        """Liveness check."""
        return {
            "message": "Square Payment Server is running!",
            "environment": settings.square_environment,
            "locationConfigured": bool(settings.square_location_id),
        }

    return app


if __name__ == "__main__":
    import uvicorn

    parser = argparse.ArgumentParser(description="Run a paybridge payment service")
    parser.add_argument("service", choices=["stripe", "square"])
    args = parser.parse_args()

    run_settings = Settings()
    uvicorn.run(
        f"paybridge.main:create_{args.service}_app",
        factory=True,
        host=run_settings.host,
        port=run_settings.port,
        log_level=run_settings.log_level.lower(),
    )
