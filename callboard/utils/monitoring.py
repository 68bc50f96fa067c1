"""Monitoring utilities leveraging Prometheus client."""

from __future__ import annotations

from prometheus_client import Counter

store_operations_total = Counter(
    "callboard_store_operations_total",
    "Document store operations by outcome",
    ["operation", "outcome"],
)

admin_write_conflicts_total = Counter(
    "callboard_admin_write_conflicts_total",
    "Conditional admin-set writes rejected because the production changed underneath",
)


def observe_operation(operation: str, outcome: str) -> None:
    store_operations_total.labels(operation=operation, outcome=outcome).inc()


def observe_admin_conflict() -> None:
    admin_write_conflicts_total.inc()
