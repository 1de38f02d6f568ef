from __future__ import annotations

import time
from contextlib import contextmanager
from typing import Generator

from prometheus_client import Counter, Histogram

# Labels stay low-cardinality: operation names only, never object keys.
OPERATIONS = Counter(
    "objstore_operations_total",
    "Total object store operations",
    ["operation", "status"],
)

LATENCY = Histogram(
    "objstore_operation_duration_seconds",
    "Object store operation latency in seconds",
    ["operation"],
)


@contextmanager
def track_operation(operation: str) -> Generator[None, None, None]:
    start = time.perf_counter()
    status = "error"
    try:
        yield
        status = "ok"
    finally:
        OPERATIONS.labels(operation, status).inc()
        LATENCY.labels(operation).observe(time.perf_counter() - start)
