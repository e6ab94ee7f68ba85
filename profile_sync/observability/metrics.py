"""
Prometheus metrics for profile-sync

Counts propagation outcomes, transform latency, store writes and bulk
reconcile results.
"""
import os

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

# Private registry so tests and embedded use never collide with the default one
REGISTRY = CollectorRegistry()


# =======================
# PROPAGATION METRICS
# =======================

# Outcomes of source mutation events
propagation_events_total = Counter(
    name="profile_sync_propagation_events_total",
    documentation="Source mutation events handled by the change propagator",
    labelnames=["operation", "status"],  # status: flattened, deleted, or a skip reason
    registry=REGISTRY,
)

transform_duration_seconds = Histogram(
    name="profile_sync_transform_duration_seconds",
    documentation="Time spent flattening a single document",
    buckets=[0.0005, 0.001, 0.005, 0.01, 0.05, 0.1, 0.5],
    registry=REGISTRY,
)

# =======================
# STORE METRICS
# =======================

store_writes_total = Counter(
    name="profile_sync_store_writes_total",
    documentation="Writes applied to the flattened profile store",
    labelnames=["backend", "operation"],  # operation: upsert, delete
    registry=REGISTRY,
)

# =======================
# RECONCILE METRICS
# =======================

reconcile_rows_total = Counter(
    name="profile_sync_reconcile_rows_total",
    documentation="Source rows seen by the bulk reconciler",
    labelnames=["status"],  # status: written, skipped, failed, duplicate
    registry=REGISTRY,
)

reconcile_gap = Gauge(
    name="profile_sync_reconcile_gap",
    documentation="Rows considered minus rows written in the last reconcile pass",
    registry=REGISTRY,
)

reconcile_duration_seconds = Histogram(
    name="profile_sync_reconcile_duration_seconds",
    documentation="Duration of bulk reconcile passes",
    buckets=[1.0, 5.0, 30.0, 60.0, 300.0, 900.0, 3600.0],
    registry=REGISTRY,
)


# =======================
# HELPER FUNCTIONS
# =======================

def generate_metrics() -> bytes:
    """Generate Prometheus metrics in text format"""
    return generate_latest(REGISTRY)


def get_content_type() -> str:
    """Get content type for Prometheus metrics"""
    return CONTENT_TYPE_LATEST


def start_metrics_server(port: int | None = None) -> None:
    """
    Start HTTP server for Prometheus metrics

    Args:
        port: Port to listen on (defaults to env var METRICS_PORT or 8000)
    """
    from prometheus_client import start_http_server

    metrics_port = port or int(os.getenv("METRICS_PORT", "8000"))
    start_http_server(metrics_port, registry=REGISTRY)


def increment_counter(counter: Counter, value: float = 1.0, **labels) -> None:
    """
    Increment a counter metric

    Args:
        counter: Prometheus Counter metric
        value: Amount to increment (default: 1.0)
        **labels: Label values for the metric
    """
    if labels:
        counter.labels(**labels).inc(value)
    else:
        counter.inc(value)


def record_propagation(operation: str, status: str) -> None:
    """Count one handled source mutation."""
    increment_counter(propagation_events_total, 1, operation=operation, status=status)


def record_reconcile(
    written: int,
    skipped: int,
    failed: int,
    duplicates: int,
    gap: int,
    duration_seconds: float,
) -> None:
    """
    Record the results of a bulk reconcile pass.

    Args:
        written: Records upserted
        skipped: Rows without key or document
        failed: Rows whose transform or write failed
        duplicates: Rows discarded by the dedup rule
        gap: Considered minus written
        duration_seconds: Pass duration
    """
    for status, count in (
        ("written", written),
        ("skipped", skipped),
        ("failed", failed),
        ("duplicate", duplicates),
    ):
        if count > 0:
            increment_counter(reconcile_rows_total, count, status=status)

    reconcile_gap.set(gap)
    if duration_seconds > 0:
        reconcile_duration_seconds.observe(duration_seconds)
