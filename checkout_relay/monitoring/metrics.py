"""
Prometheus metrics for checkout relay monitoring.

Tracks:
- Checkout session requests by status
- Webhook deliveries by event type and outcome
- Webhook processing duration
- Order backend errors
"""
from prometheus_client import Counter, Histogram

# Checkout metrics
checkout_sessions_total = Counter(
    "checkout_sessions_total",
    "Total checkout session requests",
    ["status"],  # created, invalid, failed, unauthorized
)

# Webhook metrics
webhook_events_received_total = Counter(
    "webhook_events_received_total",
    "Total verified webhook events received",
    ["event_type"],
)

webhook_outcomes_total = Counter(
    "webhook_outcomes_total",
    "Webhook deliveries by reconciliation outcome",
    ["outcome"],  # settled, already_settled, ignored, noted, signature_invalid, failed
)

webhook_processing_duration_seconds = Histogram(
    "webhook_processing_duration_seconds",
    "Webhook processing duration in seconds",
    buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)

# Order backend metrics
order_backend_errors_total = Counter(
    "order_backend_errors_total",
    "Total order backend request failures",
    ["operation"],  # fetch, update, ping
)


class MetricsCollector:
    """Helper class for collecting metrics."""

    @staticmethod
    def record_checkout_session(status: str) -> None:
        """Record a checkout session request."""
        checkout_sessions_total.labels(status=status).inc()

    @staticmethod
    def record_webhook_event(event_type: str) -> None:
        """Record a verified webhook event."""
        webhook_events_received_total.labels(event_type=event_type).inc()

    @staticmethod
    def record_webhook_outcome(outcome: str, duration_seconds: float) -> None:
        """Record webhook processing result."""
        webhook_outcomes_total.labels(outcome=outcome).inc()
        webhook_processing_duration_seconds.observe(duration_seconds)

    @staticmethod
    def record_order_backend_error(operation: str) -> None:
        """Record order backend failure."""
        order_backend_errors_total.labels(operation=operation).inc()


# Export singleton instance
metrics = MetricsCollector()
