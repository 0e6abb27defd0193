"""
Application Metrics with Prometheus
=============================================================================
CONCEPT: Counters and Histograms

  COUNTER   only goes up. "How many employees were created today?"
            employee_writes_total{operation="create", outcome="success"}

  HISTOGRAM distribution of observed values. "p95 listing latency?"
            histogram_quantile(0.95, rate(employee_listing_seconds_bucket[5m]))

The app exposes these at /metrics for Prometheus to scrape.
=============================================================================
"""

from prometheus_client import Counter, Histogram


# =============================================================================
# Counter: Employee Writes
# =============================================================================
# LABELS:
#   operation: "create", "update", "delete"
#   outcome:   "success", "invalid", "not_found", "conflict"
#
# Conflict rate over the last hour:
#   increase(employee_writes_total{operation="update", outcome="conflict"}[1h])
# =============================================================================
employee_writes_total = Counter(
    name="employee_writes_total",
    documentation="Employee create/update/delete attempts, partitioned by outcome.",
    labelnames=["operation", "outcome"],
)


# =============================================================================
# Histogram: Listing Latency
# =============================================================================
# One COUNT plus one page query per request; anything past 250ms on a
# small table usually means a missing index on the sort column.
# =============================================================================
employee_listing_histogram = Histogram(
    name="employee_listing_seconds",
    documentation="Latency of employee listing queries in seconds.",
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)


# =============================================================================
# Histogram: Listing Result Size
# =============================================================================
employee_listing_results = Histogram(
    name="employee_listing_results",
    documentation="Number of employees matching the listing filter.",
    buckets=(0, 1, 5, 10, 50, 100, 500, 1000, 5000),
)


def record_write(operation: str, outcome: str) -> None:
    """Count one create/update/delete attempt."""
    employee_writes_total.labels(operation=operation, outcome=outcome).inc()


def record_listing(duration_ms: float, total_count: int) -> None:
    """
    Record one listing request.

    PARAMETERS:
      duration_ms: Wall time of the COUNT + page query, in milliseconds.
          Converted to seconds (Prometheus convention).
      total_count: Number of records matching the filter across all pages.
    """
    employee_listing_histogram.observe(duration_ms / 1000.0)
    employee_listing_results.observe(total_count)
