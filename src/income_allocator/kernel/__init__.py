"""
Kernel - Shared infrastructure for the allocation engine

Money arithmetic, the safety policy table, the error hierarchy, and the
logging and metrics plumbing every allocation module builds on.
"""

from income_allocator.kernel.errors import (
    AllocationSumViolation,
    AllocatorError,
    BucketNotFound,
    DuplicateBucket,
    InvariantViolation,
    LockedBucketModified,
    NegativeAllocation,
)
from income_allocator.kernel.money import EPSILON, to_money
from income_allocator.kernel.safety_policy import SafetyPolicy, default_safety_policy

__all__ = [
    # Money
    "EPSILON",
    "to_money",
    # Policy
    "SafetyPolicy",
    "default_safety_policy",
    # Errors
    "AllocatorError",
    "BucketNotFound",
    "DuplicateBucket",
    "InvariantViolation",
    "AllocationSumViolation",
    "NegativeAllocation",
    "LockedBucketModified",
]
