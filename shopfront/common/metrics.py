"""Prometheus metric definitions for the storefront."""

from prometheus_client import Counter, Histogram, generate_latest
from starlette.responses import Response


checkout_sessions_total = Counter(
    "checkout_sessions_total",
    "Checkout session creation attempts",
    ["service", "outcome"],
)
payment_verifications_total = Counter(
    "payment_verifications_total",
    "Reconciled payment session outcomes",
    ["service", "result_code", "status"],
)
order_status_write_failures_total = Counter(
    "order_status_write_failures_total",
    "Order status writes that failed during reconciliation",
    ["service"],
)
gateway_errors_total = Counter(
    "gateway_errors_total",
    "Failed calls to the payment-session gateway",
    ["service", "operation"],
)
gateway_latency_seconds = Histogram(
    "gateway_latency_seconds",
    "Payment-session gateway call latency seconds",
    ["service", "operation"],
)
http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["service", "route", "method", "status_code"],
)
http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration seconds",
    ["service", "route", "method"],
)


def metrics_response() -> Response:
    """Expose all registered Prometheus metrics in text format."""

    return Response(content=generate_latest(), media_type="text/plain")
