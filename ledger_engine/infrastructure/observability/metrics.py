"""Prometheus metrics for ledger writes, compensations, transfers and settlements"""

from prometheus_client import Counter, Histogram

# Write metrics
entries_written_counter = Counter(
    "ledger_entries_written_total",
    "Ledger entry records created or deleted",
    ["operation"],  # entry | installments | transfer | group_delete | transfer_delete
)

compensation_counter = Counter(
    "ledger_compensations_total",
    "Multi-record units rolled back after a partial failure",
    ["operation", "outcome"],  # outcome: clean | orphaned
)

# Money movement metrics
transfer_counter = Counter(
    "ledger_transfers_total",
    "Transfers attempted",
    ["outcome"],  # created | rejected | failed
)

settlement_counter = Counter(
    "ledger_invoice_settlements_total",
    "Card invoice payments",
    ["kind"],  # full | partial
)

# Store client metrics
store_request_failures_counter = Counter(
    "store_request_failures_total",
    "Failed remote store calls",
    ["method"],
)

store_latency_histogram = Histogram(
    "store_request_latency_seconds",
    "Remote store response time",
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_settlement(is_partial: bool) -> None:
    settlement_counter.labels(kind="partial" if is_partial else "full").inc()
