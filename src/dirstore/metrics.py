"""Prometheus metrics for DirStore.

Application-level counters live here; HTTP-level request metrics come from
``prometheus-fastapi-instrumentator`` and are exposed on the same
``/metrics`` endpoint.

Collectors are created lazily by ``init_metrics()`` because they register in
the global ``prometheus_client`` registry, which rejects duplicates. While
metrics are disabled the ``record_*`` helpers do nothing.
"""

from __future__ import annotations

from prometheus_client import Counter

s3_operations_total: Counter | None = None
bytes_received_total: Counter | None = None
bytes_sent_total: Counter | None = None


def init_metrics() -> None:
    """Create the DirStore collectors. Safe to call more than once."""
    global s3_operations_total, bytes_received_total, bytes_sent_total

    if s3_operations_total is not None:
        return

    s3_operations_total = Counter(
        "dirstore_s3_operations_total",
        "S3 operations handled, by operation name and HTTP status",
        ["operation", "status"],
    )
    bytes_received_total = Counter(
        "dirstore_bytes_received_total",
        "Request body bytes declared by Content-Length",
    )
    bytes_sent_total = Counter(
        "dirstore_bytes_sent_total",
        "Response body bytes declared by Content-Length",
    )


def record_operation(operation: str, status: int) -> None:
    """Count one dispatched S3 operation and its final status."""
    if s3_operations_total is not None:
        s3_operations_total.labels(operation=operation, status=str(status)).inc()


def record_bytes(received: int, sent: int) -> None:
    """Add request and response body sizes to the byte counters."""
    if bytes_received_total is not None and received > 0:
        bytes_received_total.inc(received)
    if bytes_sent_total is not None and sent > 0:
        bytes_sent_total.inc(sent)
