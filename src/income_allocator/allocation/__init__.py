"""
Allocation Module - Buckets, safety policy and rebalancing

Partitions monthly income across semantic buckets:
- Bucket models with lock flags and original amounts
- Per-type safety policy (recommended minimums, discretionary tiers)
- Proportional redistribution keeping the total equal to income
- Validation findings recomputed after every change

The session module (slider mirror and commit-on-release) builds on the
engine façade and is imported from income_allocator directly.
"""

from income_allocator.allocation.models import (
    AllocationAdjustment,
    AllocationBucket,
    AllocationSummary,
    BucketSet,
    BucketType,
    DiscretionaryStatus,
    DiscretionaryValidation,
    EditResult,
    FindingMessage,
    RebalanceCondition,
    Severity,
    ValidationFinding,
)

__all__ = [
    "AllocationAdjustment",
    "AllocationBucket",
    "AllocationSummary",
    "BucketSet",
    "BucketType",
    "DiscretionaryStatus",
    "DiscretionaryValidation",
    "EditResult",
    "FindingMessage",
    "RebalanceCondition",
    "Severity",
    "ValidationFinding",
]
