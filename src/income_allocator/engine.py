"""
AllocationEngine - Main façade

The primary interface for callers (UI layer, persistence layer, CLI).
It binds one SafetyPolicy to the pure rebalancing functions and wraps
every operation in structured logging and Prometheus metrics.

Example:
    >>> from income_allocator import AllocationEngine, BucketSet, BucketType
    >>> engine = AllocationEngine()
    >>> buckets = BucketSet.from_amounts({
    ...     BucketType.ESSENTIAL_SPENDING: 3200,
    ...     BucketType.DISCRETIONARY_SPENDING: 800,
    ...     BucketType.EMERGENCY_FUND: 500,
    ...     BucketType.INVESTMENTS: 500,
    ...     BucketType.DEBT_SERVICE: 0,
    ... })
    >>> result = engine.apply_edit(buckets, 5000, BucketType.EMERGENCY_FUND, 1000)
    >>> result.bucket_set.total_allocated()
    Decimal('5000.00')
"""

from decimal import Decimal

from income_allocator.allocation import policy as safety
from income_allocator.allocation import rebalancer
from income_allocator.allocation.models import (
    AllocationBucket,
    AllocationSummary,
    BucketSet,
    BucketType,
    EditResult,
    ValidationFinding,
)
from income_allocator.kernel.logging import LogOperation, get_logger
from income_allocator.kernel.metrics import (
    edits_total,
    findings_total,
    track_operation_duration,
)
from income_allocator.kernel.money import MoneyLike
from income_allocator.kernel.safety_policy import SafetyPolicy

logger = get_logger(__name__)


class AllocationEngine:
    """
    Income allocation engine façade

    Stateless apart from its policy: callers own the bucket set and pass
    the current snapshot on every call, so one engine can serve many
    budgeting sessions.
    """

    def __init__(self, safety_policy: SafetyPolicy | None = None) -> None:
        """
        Initialize engine

        Args:
            safety_policy: Safety policy (uses defaults if None)
        """
        self.safety_policy = safety_policy or SafetyPolicy()

    # Edits

    @track_operation_duration("apply_edit")
    def apply_edit(
        self,
        bucket_set: BucketSet,
        monthly_income: MoneyLike,
        bucket_type: BucketType,
        requested_amount: MoneyLike,
        essential_spending_amount: MoneyLike | None = None,
    ) -> EditResult:
        """
        Set one bucket's amount and rebalance the rest

        Args:
            bucket_set: Current snapshot
            monthly_income: Monthly income
            bucket_type: Bucket being edited
            requested_amount: Requested amount (clamped to [0, income])
            essential_spending_amount: Optional essential spending for
                emergency fund coverage

        Returns:
            EditResult (check .condition for rejected or partial edits)
        """
        bucket_type = BucketType(bucket_type)
        with LogOperation(
            logger,
            "apply_edit",
            bucket_type=bucket_type.value,
            monthly_income=str(monthly_income),
            requested_amount=str(requested_amount),
        ):
            result = rebalancer.apply_edit(
                bucket_set,
                monthly_income,
                bucket_type,
                requested_amount,
                self.safety_policy,
                essential_spending_amount,
            )
            self._record(bucket_type, bucket_set, result)
            return result

    @track_operation_duration("reset_bucket")
    def reset_bucket(
        self,
        bucket_set: BucketSet,
        monthly_income: MoneyLike,
        bucket_type: BucketType,
        essential_spending_amount: MoneyLike | None = None,
    ) -> EditResult:
        """Restore a bucket to its original amount, rebalancing the rest"""
        bucket_type = BucketType(bucket_type)
        with LogOperation(
            logger,
            "reset_bucket",
            bucket_type=bucket_type.value,
            monthly_income=str(monthly_income),
        ):
            result = rebalancer.reset_bucket(
                bucket_set,
                monthly_income,
                bucket_type,
                self.safety_policy,
                essential_spending_amount,
            )
            self._record(bucket_type, bucket_set, result)
            return result

    @track_operation_duration("rebalance_to_income")
    def rebalance_to_income(
        self,
        bucket_set: BucketSet,
        monthly_income: MoneyLike,
        essential_spending_amount: MoneyLike | None = None,
    ) -> EditResult:
        """Spread an income change across the unlocked buckets"""
        with LogOperation(logger, "rebalance_to_income", monthly_income=str(monthly_income)):
            result = rebalancer.rebalance_to_income(
                bucket_set, monthly_income, self.safety_policy, essential_spending_amount
            )
            self._record_findings(result.findings)
            return result

    # Locks

    def toggle_lock(self, bucket_set: BucketSet, bucket_type: BucketType) -> BucketSet:
        """Flip a bucket's lock flag"""
        bucket_type = BucketType(bucket_type)
        updated = rebalancer.toggle_lock(bucket_set, bucket_type)
        logger.info(
            "Bucket lock toggled",
            bucket_type=bucket_type.value,
            is_locked=updated.get(bucket_type).is_locked,
        )
        return updated

    def set_lock(
        self, bucket_set: BucketSet, bucket_type: BucketType, locked: bool
    ) -> BucketSet:
        bucket_type = BucketType(bucket_type)
        return rebalancer.set_lock(bucket_set, bucket_type, locked)

    # Queries

    @track_operation_duration("validate_all")
    def validate_all(
        self,
        bucket_set: BucketSet,
        monthly_income: MoneyLike,
        essential_spending_amount: MoneyLike | None = None,
    ) -> tuple[ValidationFinding, ...]:
        """Findings for every bucket without editing anything"""
        findings = safety.validate_all(
            bucket_set, monthly_income, essential_spending_amount, self.safety_policy
        )
        self._record_findings(findings)
        return findings

    def summarize(self, bucket_set: BucketSet, monthly_income: MoneyLike) -> AllocationSummary:
        return rebalancer.summarize(bucket_set, monthly_income, self.safety_policy)

    def recommended_minimum(self, bucket_type: BucketType, monthly_income: MoneyLike) -> Decimal:
        return safety.recommended_minimum(bucket_type, monthly_income, self.safety_policy)

    def max_safe_allocation(
        self, bucket_set: BucketSet, monthly_income: MoneyLike, bucket_type: BucketType
    ) -> Decimal:
        """Advisory slider ceiling for one bucket given the others"""
        bucket: AllocationBucket = bucket_set.get(bucket_type)
        return safety.max_safe_allocation(
            bucket, monthly_income, bucket_set.others(bucket.bucket_type), self.safety_policy
        )

    # Metrics

    def _record(
        self, bucket_type: BucketType, before: BucketSet, result: EditResult
    ) -> None:
        if result.condition is not None:
            outcome = result.condition.value
        elif result.bucket_set != before:
            outcome = "applied"
        else:
            outcome = "noop"
        edits_total.labels(bucket_type=bucket_type.value, outcome=outcome).inc()
        self._record_findings(result.findings)

    def _record_findings(self, findings: tuple[ValidationFinding, ...]) -> None:
        for finding in findings:
            findings_total.labels(
                bucket_type=finding.bucket_type.value, severity=finding.severity.value
            ).inc()
