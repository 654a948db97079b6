"""
Prometheus Metrics for the Investment Portfolio gateway.

This module defines all metrics exposed at the /metrics endpoint.
Metrics are categorized into:

1. Cache Metrics - how often the authentication cache saves a sign-in
2. Upstream Metrics - FinClub latency and failures
3. HTTP Metrics - standard request counters
"""
from typing import Optional

from prometheus_client import Counter, Histogram, Info

# =============================================================================
# SERVICE INFO
# =============================================================================

SERVICE_INFO = Info(
    "portfolio_service",
    "Service information"
)
SERVICE_INFO.info({
    "version": "0.1.0",
    "service": "investment-portfolio",
})

# =============================================================================
# CACHE METRICS
# =============================================================================

# Counter: Cache validity checks by result
CACHE_LOOKUPS = Counter(
    "finclub_cache_lookups_total",
    "Authentication cache validity checks",
    ["result"]  # fresh, expired, absent, denied
)

# Counter: Cache writes by outcome
CACHE_WRITES = Counter(
    "finclub_cache_writes_total",
    "Authentication cache writes",
    ["outcome"]  # created, overwritten, failed
)

# =============================================================================
# UPSTREAM METRICS
# =============================================================================

# Histogram: FinClub API latency
UPSTREAM_LATENCY = Histogram(
    "finclub_upstream_latency_seconds",
    "Time to complete a FinClub API call",
    ["operation"],  # login, escrow_account_overview
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0]
)

# Counter: FinClub API failures
UPSTREAM_FAILURES = Counter(
    "finclub_upstream_failures_total",
    "Total FinClub API failures",
    ["operation", "error_type"]  # timeout, connection_error, http_error, empty_body
)

# Counter: Envelopes returned by status
ENVELOPES = Counter(
    "finclub_envelopes_total",
    "Status envelopes returned by orchestrated operations",
    ["operation", "status"]
)

# =============================================================================
# HTTP METRICS (Standard)
# =============================================================================

HTTP_REQUESTS = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status"]
)

HTTP_REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint"],
    buckets=[0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0]
)

# =============================================================================
# HELPER FUNCTIONS
# =============================================================================


def record_cache_lookup(result: str) -> None:
    """Record the result of a cache validity check."""
    CACHE_LOOKUPS.labels(result=result).inc()


def record_cache_write(outcome: str) -> None:
    """Record a cache write outcome."""
    CACHE_WRITES.labels(outcome=outcome).inc()


def record_upstream_call(
    operation: str,
    success: bool,
    latency_seconds: float,
    error_type: Optional[str] = None,
) -> None:
    """Record FinClub API call metrics."""
    UPSTREAM_LATENCY.labels(operation=operation).observe(latency_seconds)

    if not success:
        UPSTREAM_FAILURES.labels(
            operation=operation,
            error_type=error_type or "unknown",
        ).inc()


def record_envelope(operation: str, status: int) -> None:
    """Record the status of a returned envelope."""
    ENVELOPES.labels(operation=operation, status=str(status)).inc()


def record_http_request(method: str, endpoint: str, status: int, latency_seconds: Optional[float] = None) -> None:
    """Record a completed HTTP request."""
    HTTP_REQUESTS.labels(method=method, endpoint=endpoint, status=status).inc()
    if latency_seconds is not None:
        HTTP_REQUEST_LATENCY.labels(method=method, endpoint=endpoint).observe(latency_seconds)
