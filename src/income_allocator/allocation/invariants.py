"""
Allocation Invariants - Checks run after every rebalancing pass

Pure functions that raise when a settled bucket set breaks one of the
allocation guarantees:

1. Sum: amounts add up to monthly income (within a cent)
2. Non-negativity: no bucket below zero
3. Lock preservation: locked buckets keep their amount

Rejected edits never reach these checks. A violation here means the
redistribution algorithm is wrong.
"""

from decimal import Decimal

from income_allocator.allocation.models import BucketSet, BucketType
from income_allocator.kernel.errors import (
    AllocationSumViolation,
    LockedBucketModified,
    NegativeAllocation,
)
from income_allocator.kernel.money import is_close


def validate_allocation_sum(bucket_set: BucketSet, monthly_income: Decimal) -> None:
    """
    Ensure amounts add up to monthly income

    Raises:
        AllocationSumViolation: If total differs from income by a cent or more
    """
    total = bucket_set.total_allocated()
    if not is_close(total, monthly_income):
        raise AllocationSumViolation(
            monthly_income=str(monthly_income),
            total_allocated=str(total),
            variance=str(total - monthly_income),
        )


def validate_non_negative(bucket_set: BucketSet) -> None:
    """
    Ensure no bucket holds a negative amount

    Raises:
        NegativeAllocation: For the first negative bucket found
    """
    for bucket in bucket_set.buckets:
        if bucket.amount < 0:
            raise NegativeAllocation(
                bucket_type=bucket.bucket_type.value, amount=str(bucket.amount)
            )


def validate_locks_preserved(
    before: BucketSet, after: BucketSet, edited: BucketType | None = None
) -> None:
    """
    Ensure redistribution left every locked bucket alone

    The edited bucket itself is exempt: it may only be edited while
    unlocked, and the edit moves it.

    Raises:
        LockedBucketModified: If a locked bucket's amount changed
    """
    for bucket in before.buckets:
        if not bucket.is_locked or bucket.bucket_type == edited:
            continue
        settled = after.get(bucket.bucket_type)
        if settled.amount != bucket.amount:
            raise LockedBucketModified(
                bucket_type=bucket.bucket_type.value,
                before=str(bucket.amount),
                after=str(settled.amount),
            )


def validate_settled(
    before: BucketSet,
    after: BucketSet,
    monthly_income: Decimal,
    edited: BucketType | None = None,
) -> None:
    """Run every invariant against a settled bucket set"""
    validate_non_negative(after)
    validate_allocation_sum(after, monthly_income)
    validate_locks_preserved(before, after, edited)
