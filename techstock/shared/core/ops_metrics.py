"""
Operational Metrics for TechStock

Prometheus metrics for API errors, catalog query latency, dashboard
aggregation latency and CSV import throughput.
"""

from prometheus_client import Counter, Histogram

API_ERRORS_TOTAL = Counter(
    "techstock_api_errors_total",
    "Total API errors by path, method and status code",
    ["path", "method", "status_code"],
)

RESOURCE_QUERY_DURATION = Histogram(
    "techstock_resource_query_duration_seconds",
    "Latency of filtered resource page + count queries",
    buckets=(0.005, 0.01, 0.05, 0.1, 0.25, 0.5, 1, 2.5, 5),
)

DASHBOARD_SUMMARY_DURATION = Histogram(
    "techstock_dashboard_summary_duration_seconds",
    "Latency of dashboard summary aggregation",
    ["scoped"],
    buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10),
)

TAG_INDEX_BUILD_DURATION = Histogram(
    "techstock_tag_index_build_duration_seconds",
    "Latency of building the tag index or tag suggestions from a full scan",
    ["operation"],
    buckets=(0.01, 0.05, 0.1, 0.5, 1, 2.5, 5, 10, 30),
)

IMPORT_ROWS_TOTAL = Counter(
    "techstock_import_rows_total",
    "CSV import rows by outcome",
    ["outcome"],  # imported, skipped
)
