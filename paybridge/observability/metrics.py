"""
Metrics Collection with Prometheus.

Exposes payment and HTTP metrics for monitoring.
"""

from enum import Enum

from prometheus_client import Counter, Gauge, Histogram, Info

from paybridge import __version__


class MetricLabels(str, Enum):
    """Standard metric label names."""

    ENDPOINT = "endpoint"
    METHOD = "method"
    STATUS_CODE = "status_code"
    PROVIDER = "provider"
    OPERATION = "operation"
    OUTCOME = "outcome"
    ERROR_TYPE = "error_type"

    def __str__(self) -> str:
        return self.value


class PaymentMetrics:
    """
    Centralized metrics for the payment services.

    Covers:
    - HTTP requests (rate, duration, in flight)
    - Provider calls (rate, duration, outcome)
    - Validation rejections
    - Webhook outcomes
    """

    def __init__(self) -> None:
        """Initialize all Prometheus metrics."""

        # ====================================================================
        # Service Info
        # ====================================================================
        self.service_info = Info(
            "paybridge_service",
            "Service information",
        )
        self.service_info.info({"version": __version__})

        # ====================================================================
        # HTTP Metrics
        # ====================================================================
        self.http_requests_total = Counter(
            "paybridge_http_requests_total",
            "Total HTTP requests",
            [MetricLabels.ENDPOINT, MetricLabels.METHOD, MetricLabels.STATUS_CODE],
        )

        self.http_request_duration_seconds = Histogram(
            "paybridge_http_request_duration_seconds",
            "HTTP request duration in seconds",
            [MetricLabels.ENDPOINT, MetricLabels.METHOD],
            buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
        )

        self.http_requests_in_progress = Gauge(
            "paybridge_http_requests_in_progress",
            "Number of HTTP requests currently being processed",
            [MetricLabels.ENDPOINT, MetricLabels.METHOD],
        )

        # ====================================================================
        # Provider Metrics
        # ====================================================================
        self.provider_calls_total = Counter(
            "paybridge_provider_calls_total",
            "Total outbound payment provider calls",
            [MetricLabels.PROVIDER, MetricLabels.OPERATION, MetricLabels.OUTCOME],
        )

        self.provider_call_duration_seconds = Histogram(
            "paybridge_provider_call_duration_seconds",
            "Payment provider call duration in seconds",
            [MetricLabels.PROVIDER, MetricLabels.OPERATION],
            buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
        )

        self.payment_amount_minor = Histogram(
            "paybridge_payment_amount_minor",
            "Successful payment amounts in minor units (cents)",
            [MetricLabels.PROVIDER],
            buckets=(50, 100, 250, 500, 1000, 2500, 5000, 10000, 25000, 100000),
        )

        # ====================================================================
        # Validation / Webhook Metrics
        # ====================================================================
        self.validation_rejections_total = Counter(
            "paybridge_validation_rejections_total",
            "Requests rejected by local validation",
            [MetricLabels.OPERATION],
        )

        self.webhook_events_total = Counter(
            "paybridge_webhook_events_total",
            "Webhook deliveries by verification outcome and event kind",
            [MetricLabels.OUTCOME, "kind"],
        )

        # ====================================================================
        # Error Metrics
        # ====================================================================
        self.errors_total = Counter(
            "paybridge_errors_total",
            "Total errors by type",
            [MetricLabels.ERROR_TYPE, MetricLabels.OPERATION],
        )

    # ========================================================================
    # Helper Methods
    # ========================================================================

    def record_http_request(
        self, endpoint: str, method: str, status_code: int, duration: float
    ) -> None:
        """Record HTTP request metrics."""
        self.http_requests_total.labels(
            endpoint=endpoint, method=method, status_code=status_code
        ).inc()
        self.http_request_duration_seconds.labels(endpoint=endpoint, method=method).observe(
            duration
        )

    def record_provider_call(
        self, provider: str, operation: str, outcome: str, duration: float
    ) -> None:
        """Record a single outbound provider call."""
        self.provider_calls_total.labels(
            provider=provider, operation=operation, outcome=outcome
        ).inc()
        self.provider_call_duration_seconds.labels(
            provider=provider, operation=operation
        ).observe(duration)

    def record_payment(self, provider: str, amount_minor: int) -> None:
        """Record a successful payment amount."""
        self.payment_amount_minor.labels(provider=provider).observe(amount_minor)

    def record_validation_rejection(self, operation: str) -> None:
        """Record a request rejected before reaching the provider."""
        self.validation_rejections_total.labels(operation=operation).inc()

    def record_webhook(self, outcome: str, kind: str) -> None:
        """Record a webhook delivery."""
        self.webhook_events_total.labels(outcome=outcome, kind=kind).inc()

    def record_error(self, error_type: str, operation: str) -> None:
        """Record error occurrence."""
        self.errors_total.labels(error_type=error_type, operation=operation).inc()


# Global metrics instance
metrics = PaymentMetrics()
