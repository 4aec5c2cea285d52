"""
Custom exceptions for Income Allocator

Rejected edits are not exceptions: they come back as conditions on the
EditResult. The errors below cover malformed input and broken invariants,
which mean a caller bug or an engine bug respectively.
"""


class AllocatorError(Exception):
    """Base exception for all Income Allocator errors"""

    pass


class BucketNotFound(AllocatorError):
    """Raised when an operation names a bucket type absent from the set"""

    def __init__(self, bucket_type: str) -> None:
        self.bucket_type = bucket_type
        super().__init__(f"Bucket {bucket_type} not found in bucket set")


class DuplicateBucket(AllocatorError):
    """Raised when a bucket set would hold two buckets of one type"""

    def __init__(self, bucket_type: str) -> None:
        self.bucket_type = bucket_type
        super().__init__(
            f"Bucket set already contains a {bucket_type} bucket - "
            "each type may appear at most once"
        )


class InvariantViolation(AllocatorError):
    """
    Raised when an allocation invariant would be violated

    The rebalancer checks these after every pass. They must hold: if one
    fires, the redistribution algorithm is wrong, not the caller.
    """

    pass


class AllocationSumViolation(InvariantViolation):
    """Raised when bucket amounts no longer add up to monthly income"""

    def __init__(self, monthly_income: str, total_allocated: str, variance: str) -> None:
        self.monthly_income = monthly_income
        self.total_allocated = total_allocated
        self.variance = variance
        super().__init__(
            f"Allocation sum violated: total allocated {total_allocated} != "
            f"monthly income {monthly_income} (variance: {variance})"
        )


class NegativeAllocation(InvariantViolation):
    """Raised when a bucket amount drops below zero"""

    def __init__(self, bucket_type: str, amount: str) -> None:
        self.bucket_type = bucket_type
        self.amount = amount
        super().__init__(f"Bucket {bucket_type} amount {amount} is negative")


class LockedBucketModified(InvariantViolation):
    """Raised when redistribution changed a locked bucket"""

    def __init__(self, bucket_type: str, before: str, after: str) -> None:
        self.bucket_type = bucket_type
        self.before = before
        self.after = after
        super().__init__(
            f"Locked bucket {bucket_type} changed from {before} to {after} "
            "while editing another bucket"
        )
