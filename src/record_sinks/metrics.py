"""
Prometheus metrics for sinks.

Registered in the global REGISTRY on import; scrape them with whatever
exporter the host process already runs.
"""

from prometheus_client import Counter, Histogram

SINK_WRITES_TOTAL = Counter(
    "record_sinks_writes_total",
    "Total flush attempts per backend",
    ["sink", "status"],
)

SINK_WRITE_LATENCY = Histogram(
    "record_sinks_write_latency_seconds",
    "Flush latency per backend",
    ["sink"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10],
)

SINK_ROWS_TOTAL = Counter(
    "record_sinks_rows_total",
    "Rows acknowledged by the destination",
    ["sink"],
)

SINK_SKIPPED_RECORDS_TOTAL = Counter(
    "record_sinks_skipped_records_total",
    "Records with no field matching any destination column",
    ["sink"],
)

SINK_DROPPED_FIELDS_TOTAL = Counter(
    "record_sinks_dropped_fields_total",
    "Record fields discarded because the destination has no such column",
    ["sink"],
)
