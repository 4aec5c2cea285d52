"""
Income Allocator - Budget allocation engine

Partitions monthly income across essential spending, discretionary
spending, emergency fund, investments and debt service, keeps the
buckets summing to income whenever one of them is edited, honours
per-bucket locks, and reports safety-policy findings for display.
"""

from income_allocator.allocation.models import (
    AllocationBucket,
    BucketSet,
    BucketType,
    EditResult,
    RebalanceCondition,
    Severity,
    ValidationFinding,
)
from income_allocator.engine import AllocationEngine
from income_allocator.allocation.session import BudgetingSession, SliderMirror
from income_allocator.kernel.safety_policy import SafetyPolicy

__version__ = "0.1.0"
__all__ = [
    "AllocationEngine",
    "AllocationBucket",
    "BucketSet",
    "BucketType",
    "BudgetingSession",
    "EditResult",
    "RebalanceCondition",
    "SafetyPolicy",
    "Severity",
    "SliderMirror",
    "ValidationFinding",
    "__version__",
]
