"""
Test Helper Functions - Builders and Assertions

Builders keep bucket-set construction short in tests; the assertions
check the allocation guarantees every settled set must satisfy.
"""

from decimal import Decimal
from typing import Any

from income_allocator.allocation.models import BucketSet, BucketType


def make_bucket_set(
    amounts: dict[BucketType, Any],
    locked: tuple[BucketType, ...] = (),
) -> BucketSet:
    """
    Builder for bucket sets from plain numbers

    Example:
        >>> make_bucket_set(
        ...     {BucketType.ESSENTIAL_SPENDING: 4000, BucketType.INVESTMENTS: 1000},
        ...     locked=(BucketType.ESSENTIAL_SPENDING,),
        ... )
    """
    return BucketSet.from_amounts(
        {bucket_type: Decimal(str(amount)) for bucket_type, amount in amounts.items()},
        locked=locked,
    )


def assert_balanced(bucket_set: BucketSet, monthly_income: Any) -> None:
    """Assert amounts add up to income within a cent"""
    total = bucket_set.total_allocated()
    income = Decimal(str(monthly_income))
    if abs(total - income) >= Decimal("0.01"):
        raise AssertionError(
            f"Bucket set is not balanced: total {total} != income {income}\n"
            f"Amounts: {bucket_set.amounts()}"
        )


def assert_non_negative(bucket_set: BucketSet) -> None:
    negative = {b.bucket_type.value: b.amount for b in bucket_set.buckets if b.amount < 0}
    if negative:
        raise AssertionError(f"Negative bucket amounts: {negative}")


def assert_amounts(bucket_set: BucketSet, expected: dict[BucketType, Any]) -> None:
    """Assert exact amounts for the given bucket types"""
    actual = bucket_set.amounts()
    mismatched = {
        bucket_type.value: (str(actual[bucket_type]), str(amount))
        for bucket_type, amount in expected.items()
        if actual[bucket_type] != Decimal(str(amount))
    }
    if mismatched:
        raise AssertionError(f"Amount mismatch (actual, expected): {mismatched}")
