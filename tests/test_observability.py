"""
Tests for logging, metrics and tracing helpers.
"""

import pytest
import structlog
from prometheus_client import generate_latest

from paybridge.observability import log_context, metrics, setup_logging, trace_operation


def test_log_context_binds_and_unbinds(settings):
    setup_logging(settings, "paybridge-test")

    with log_context(request_id="req-123"):
        assert structlog.contextvars.get_contextvars()["request_id"] == "req-123"

    assert "request_id" not in structlog.contextvars.get_contextvars()


def test_metric_label_names_render_plainly():
    metrics.record_provider_call("square", "create_payment", "ok", 0.01)

    output = generate_latest().decode()

    assert 'operation="create_payment"' in output
    assert "MetricLabels" not in output


def test_trace_operation_propagates_errors():
    with pytest.raises(ValueError):
        with trace_operation("square.create_payment", provider="square"):
            raise ValueError("boom")


def test_trace_operation_returns_span():
    with trace_operation("stripe.get_payment_intent", provider="stripe") as span:
        assert span is not None
