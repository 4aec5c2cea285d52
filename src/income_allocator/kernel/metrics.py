"""
Prometheus metrics for Income Allocator.

Counts edits by outcome, times each engine operation and tallies
validation findings by severity.
"""

import time
from collections.abc import Callable
from functools import wraps
from typing import ParamSpec, TypeVar

from prometheus_client import Counter, Histogram

# ============================================================================
# Rebalancing Metrics
# ============================================================================

edits_total = Counter(
    "allocator_edits_total",
    "Total number of bucket edits by outcome",
    ["bucket_type", "outcome"],  # outcome: applied, noop, or a condition name
)

operation_duration_seconds = Histogram(
    "allocator_operation_duration_seconds",
    "Duration of engine operations in seconds",
    ["operation"],
    buckets=(0.0005, 0.001, 0.0025, 0.005, 0.01, 0.025, 0.05, 0.1),
)

operations_total = Counter(
    "allocator_operations_total",
    "Total number of engine operations",
    ["operation", "status"],  # status: success, failure
)

# ============================================================================
# Validation Metrics
# ============================================================================

findings_total = Counter(
    "allocator_findings_total",
    "Validation findings emitted, by bucket type and severity",
    ["bucket_type", "severity"],
)

# ============================================================================
# Helper Functions
# ============================================================================

P = ParamSpec("P")
R = TypeVar("R")


def track_operation_duration(operation: str) -> Callable[[Callable[P, R]], Callable[P, R]]:
    """
    Decorator to track engine operation duration.

    Args:
        operation: Name of the operation being timed

    Returns:
        Decorated function that tracks duration
    """

    def decorator(func: Callable[P, R]) -> Callable[P, R]:
        @wraps(func)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            start = time.perf_counter()
            status = "success"
            try:
                return func(*args, **kwargs)
            except Exception:
                status = "failure"
                raise
            finally:
                duration = time.perf_counter() - start
                operation_duration_seconds.labels(operation=operation).observe(duration)
                operations_total.labels(operation=operation, status=status).inc()

        return wrapper

    return decorator
