# ==== PROMETHEUS METRICS ==== #

"""
Prometheus metrics for monitoring Credit Gate.

This module provides application metrics with Prometheus integration covering
credit decisions, override usage, ledger drift, data-source failures and
request latency.
"""

from fastapi import APIRouter
from fastapi.responses import PlainTextResponse
from prometheus_client import (
    Counter,
    Gauge,
    Histogram,
    generate_latest,
    REGISTRY
)


# ==== REQUEST METRICS ==== #

http_request_latency_seconds = Histogram(
    "credit_gate_http_request_latency_seconds",
    "HTTP request latency in seconds",
    ["company", "method", "route"]
)


# ==== CREDIT DECISION METRICS ==== #

credit_validations_total = Counter(
    "credit_gate_validations_total",
    "Total full credit validations by company and decision",
    ["company", "decision"]
)

credit_validation_duration_seconds = Histogram(
    "credit_gate_validation_duration_seconds",
    "Time spent in a full credit validation in seconds",
    ["company"]
)

credit_overrides_total = Counter(
    "credit_gate_overrides_total",
    "Validations bypassed through the override flag",
    ["company"]
)

credit_reconciliation_drift_total = Counter(
    "credit_gate_reconciliation_drift_total",
    "Validations where cached balance and ledger disagree beyond tolerance",
    ["company"]
)

credit_data_source_errors_total = Counter(
    "credit_gate_data_source_errors_total",
    "Failed or timed out reads by reader",
    ["reader"]
)


# ==== QUICK STATUS METRICS ==== #

quick_status_lookups_total = Counter(
    "credit_gate_quick_status_lookups_total",
    "Quick status lookups by company and mode",
    ["company", "mode"]
)

quick_status_customers_total = Counter(
    "credit_gate_quick_status_customers_total",
    "Customers classified by quick status label",
    ["company", "label"]
)


# ==== SYSTEM METRICS ==== #

db_connections_active = Gauge(
    "credit_gate_db_connections_active",
    "Number of active read sessions"
)

app_info = Gauge(
    "credit_gate_app_info",
    "Application information",
    ["version", "environment", "service_name"]
)


def init_metrics(app) -> None:
    """Initialize metrics collection.

    Args:
        app: FastAPI application instance
    """
    from app.settings import settings
    app_info.labels(
        version=settings.SERVICE_VERSION,
        environment=settings.APP_ENV,
        service_name=settings.SERVICE_NAME
    ).set(1)


# Metrics router for Prometheus scraping
metrics_router = APIRouter()


@metrics_router.get("/metrics")
def get_metrics() -> PlainTextResponse:
    """Expose Prometheus metrics for scraping.

    Returns:
        Prometheus metrics in text format
    """
    return PlainTextResponse(
        generate_latest(REGISTRY).decode("utf-8"),
        media_type="text/plain"
    )
