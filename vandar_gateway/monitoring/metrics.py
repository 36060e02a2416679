"""
Prometheus metrics for the gateway SDK.

Tracks:
- Inbound HTTP requests by route and status
- Gateway API calls by operation and outcome
- Rate limit rejections
- Callback notifications
"""
from prometheus_client import Counter, Histogram

http_requests_total = Counter(
    "vandar_http_requests_total",
    "Total inbound HTTP requests",
    ["method", "path", "status"],
)

http_request_duration_seconds = Histogram(
    "vandar_http_request_duration_seconds",
    "Inbound HTTP request duration in seconds",
    ["path"],
    buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)

gateway_requests_total = Counter(
    "vandar_gateway_requests_total",
    "Total gateway API requests",
    ["operation", "outcome"],  # outcome: success, api_error, network_error, invalid_response
)

gateway_request_duration_seconds = Histogram(
    "vandar_gateway_request_duration_seconds",
    "Gateway API call duration in seconds",
    ["operation"],
    buckets=(0.1, 0.25, 0.5, 0.75, 1.0, 2.5, 5.0, 10.0, 30.0),
)

rate_limit_rejections_total = Counter(
    "vandar_rate_limit_rejections_total",
    "Requests rejected by the rate limiter",
    ["path"],
)

callbacks_received_total = Counter(
    "vandar_callbacks_received_total",
    "Gateway callback notifications received",
    ["status"],
)

# Callback statuses come from the network; anything else is counted as "other"
CALLBACK_STATUS_LABELS = frozenset({"INIT", "PAID", "FAILED", "CANCELED", "EXPIRED", "REFUNDED"})


class MetricsCollector:
    """Helper class for collecting metrics."""

    @staticmethod
    def record_http_request(method: str, path: str, status: int, duration_seconds: float) -> None:
        http_requests_total.labels(method=method, path=path, status=str(status)).inc()
        http_request_duration_seconds.labels(path=path).observe(duration_seconds)

    @staticmethod
    def record_gateway_call(operation: str, outcome: str, duration_seconds: float) -> None:
        """Record a gateway API call."""
        gateway_requests_total.labels(operation=operation, outcome=outcome).inc()
        gateway_request_duration_seconds.labels(operation=operation).observe(duration_seconds)

    @staticmethod
    def record_rate_limit_rejection(path: str) -> None:
        rate_limit_rejections_total.labels(path=path).inc()

    @staticmethod
    def record_callback(status: str) -> None:
        """Count an applied callback, bucketing unrecognized statuses."""
        label = status.upper() if status else ""
        if label not in CALLBACK_STATUS_LABELS:
            label = "other"
        callbacks_received_total.labels(status=label).inc()


# Export singleton instance
metrics = MetricsCollector()
