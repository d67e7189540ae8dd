"""
Prometheus metrics for sql-event-router

Tracks per-table import volume, dropped records, batch outcomes and
bind failures in a private registry.
"""
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
    start_http_server,
)


# Global registry for metrics
REGISTRY = CollectorRegistry()


# =======================
# IMPORT METRICS
# =======================

records_imported_total = Counter(
    name="sqlrouter_records_imported_total",
    documentation="Total number of rows handed to bulk inserts",
    labelnames=["table"],
    registry=REGISTRY,
)

records_dropped_total = Counter(
    name="sqlrouter_records_dropped_total",
    documentation="Total number of records dropped because they could not be converted",
    labelnames=["table"],
    registry=REGISTRY,
)

batches_total = Counter(
    name="sqlrouter_batches_total",
    documentation="Total number of batches imported",
    labelnames=["table", "status"],  # status: success, error
    registry=REGISTRY,
)

bulk_insert_duration_seconds = Histogram(
    name="sqlrouter_bulk_insert_duration_seconds",
    documentation="Time spent in bulk inserts in seconds",
    labelnames=["table"],
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 5.0, 10.0, 30.0],
    registry=REGISTRY,
)

# =======================
# BINDING METRICS
# =======================

bind_failures_total = Counter(
    name="sqlrouter_bind_failures_total",
    documentation="Total number of tables that failed to bind at startup",
    labelnames=["table"],
    registry=REGISTRY,
)

active_tables = Gauge(
    name="sqlrouter_active_tables",
    documentation="Number of tables currently taking part in routing",
    registry=REGISTRY,
)


# =======================
# HELPER FUNCTIONS
# =======================

def generate_metrics() -> bytes:
    """Generate Prometheus metrics in text format"""
    return generate_latest(REGISTRY)


def get_content_type() -> str:
    return CONTENT_TYPE_LATEST


def start_metrics_server(port: int) -> None:
    """
    Expose the registry over HTTP

    Args:
        port: Port to listen on
    """
    start_http_server(port, registry=REGISTRY)


class MetricsCollector:
    """
    Unified interface for recording router metrics
    """

    def record_import(self, table: str, imported: int, dropped: int, duration: float) -> None:
        records_imported_total.labels(table=table).inc(imported)
        if dropped:
            records_dropped_total.labels(table=table).inc(dropped)
        bulk_insert_duration_seconds.labels(table=table).observe(duration)
        batches_total.labels(table=table, status="success").inc()

    def record_import_failure(self, table: str, dropped: int) -> None:
        if dropped:
            records_dropped_total.labels(table=table).inc(dropped)
        batches_total.labels(table=table, status="error").inc()

    def record_bind_failure(self, table: str) -> None:
        bind_failures_total.labels(table=table).inc()

    def set_active_tables(self, count: int) -> None:
        active_tables.set(count)
