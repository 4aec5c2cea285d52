"""
Allocation Safety Policy - Pure per-bucket rules

These functions turn the SafetyPolicy table into amounts and findings.
They are total over well-formed numbers: a monthly income of zero or
less yields zero amounts and zero percentages rather than an error,
meaning "no meaningful allocation possible".

The safe maximum computed here is advisory. It holds the other buckets
fixed, which redistribution does not; rebalancer.py is the enforcement
path.
"""

import math
from collections.abc import Iterable
from decimal import ROUND_HALF_UP, Decimal

from income_allocator.allocation.models import (
    AllocationBucket,
    BucketSet,
    BucketType,
    DiscretionaryStatus,
    DiscretionaryValidation,
    FindingMessage,
    Severity,
    ValidationFinding,
)
from income_allocator.kernel.money import ZERO, MoneyLike, percent_of, percentage_of, to_money
from income_allocator.kernel.safety_policy import SafetyPolicy, default_safety_policy

# Bucket types whose finding is a below-recommended-minimum check
MINIMUM_CHECKED_TYPES = (BucketType.EMERGENCY_FUND, BucketType.INVESTMENTS)


def recommended_minimum_percentage(
    bucket_type: BucketType, policy: SafetyPolicy = default_safety_policy
) -> Decimal:
    """Recommended minimum share of income for a bucket type, for display text"""
    return policy.recommended_minimum_percentage(BucketType(bucket_type).value)


def recommended_minimum(
    bucket_type: BucketType,
    monthly_income: MoneyLike,
    policy: SafetyPolicy = default_safety_policy,
) -> Decimal:
    """
    Recommended minimum allocation in currency

    Example:
        >>> recommended_minimum(BucketType.EMERGENCY_FUND, 5000)
        Decimal('500.00')
    """
    return percent_of(
        to_money(monthly_income), recommended_minimum_percentage(bucket_type, policy)
    )


def max_safe_allocation(
    bucket: AllocationBucket,
    monthly_income: MoneyLike,
    other_buckets: Iterable[AllocationBucket],
    policy: SafetyPolicy = default_safety_policy,
) -> Decimal:
    """
    Ceiling a bucket may reach without pushing another below its floor

    Each other bucket reserves its recommended minimum, or its current
    amount when it is locked or not modifiable (redistribution cannot
    move it). The type's hard limit, if any, caps the result.

    Args:
        bucket: Bucket whose slider ceiling is wanted
        monthly_income: Monthly income
        other_buckets: The remaining buckets (the bucket itself is skipped)
        policy: Safety policy

    Returns:
        Safe maximum in currency, never negative
    """
    income = to_money(monthly_income)
    if income <= 0:
        return ZERO

    if not bucket.is_modifiable:
        return bucket.amount

    reserved = ZERO
    for other in other_buckets:
        if other.bucket_type == bucket.bucket_type:
            continue
        if other.is_locked or not other.is_modifiable:
            reserved += other.amount
        else:
            reserved += recommended_minimum(other.bucket_type, income, policy)

    maximum = income - reserved
    hard_limit = policy.hard_limit_percentage(bucket.bucket_type.value)
    if hard_limit is not None:
        maximum = min(maximum, percent_of(income, hard_limit))

    return max(ZERO, maximum)


def validate_discretionary(
    amount: MoneyLike,
    monthly_income: MoneyLike,
    policy: SafetyPolicy = default_safety_policy,
) -> DiscretionaryValidation:
    """
    Tiered check for discretionary spending

    VALID below the warning threshold (35%), WARNING from there up to the
    hard limit (50%), HARD_LIMIT at or above it.
    """
    income = to_money(monthly_income)
    if income <= 0:
        return DiscretionaryValidation(status=DiscretionaryStatus.VALID)

    percentage = percentage_of(to_money(amount), income)

    if percentage >= policy.discretionary_hard_limit_percent:
        status = DiscretionaryStatus.HARD_LIMIT
    elif percentage >= policy.discretionary_warning_percent:
        status = DiscretionaryStatus.WARNING
    else:
        status = DiscretionaryStatus.VALID

    return DiscretionaryValidation(status=status, current_percentage=percentage)


def is_below_recommended_minimum(
    bucket: AllocationBucket,
    monthly_income: MoneyLike,
    policy: SafetyPolicy = default_safety_policy,
) -> bool:
    """Binary minimum check (emergency fund, investments)"""
    minimum = recommended_minimum(bucket.bucket_type, monthly_income, policy)
    return minimum > 0 and bucket.amount < minimum


def emergency_fund_months_to_target(
    monthly_contribution: MoneyLike,
    essential_spending: MoneyLike,
    target_months: int,
) -> int | None:
    """
    Months for a contribution to build `target_months` of essential spending

    Returns None when either amount is zero (no meaningful answer).
    """
    contribution = to_money(monthly_contribution)
    essential = to_money(essential_spending)
    if contribution <= 0 or essential <= 0:
        return None
    return math.ceil(essential * target_months / contribution)


def effective_emergency_duration(
    target_amount: MoneyLike,
    essential_spending: MoneyLike,
    policy: SafetyPolicy = default_safety_policy,
) -> int:
    """
    Closest supported coverage option for an emergency fund target

    A target worth about five months of essential spending maps to the
    6-month option. Falls back to the policy's target when essential
    spending is zero.
    """
    target = to_money(target_amount)
    essential = to_money(essential_spending)
    options = sorted(policy.emergency_fund_duration_options)
    if essential <= 0 or target <= 0 or not options:
        return policy.emergency_fund_target_months

    months = int((target / essential).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    # Thresholds sit halfway between neighbouring options
    for lower, upper in zip(options, options[1:]):
        if months <= (lower + upper) // 2:
            return lower
    return options[-1]


def validate_bucket(
    bucket: AllocationBucket,
    monthly_income: MoneyLike,
    essential_spending: MoneyLike | None = None,
    policy: SafetyPolicy = default_safety_policy,
) -> ValidationFinding:
    """
    Build the finding for one bucket

    Discretionary spending gets the tiered check, the emergency fund and
    investments the minimum check, everything else is informational.
    """
    income = to_money(monthly_income)
    percentage = percentage_of(bucket.amount, income)
    months_to_target = None

    if bucket.bucket_type == BucketType.EMERGENCY_FUND and essential_spending is not None:
        months_to_target = emergency_fund_months_to_target(
            bucket.amount, essential_spending, policy.emergency_fund_target_months
        )

    if income <= 0:
        severity, message = Severity.INFO, FindingMessage.NO_INCOME
    elif bucket.bucket_type == BucketType.DISCRETIONARY_SPENDING:
        check = validate_discretionary(bucket.amount, income, policy)
        severity, message = {
            DiscretionaryStatus.VALID: (Severity.INFO, FindingMessage.WITHIN_POLICY),
            DiscretionaryStatus.WARNING: (
                Severity.WARNING,
                FindingMessage.DISCRETIONARY_ABOVE_WARNING,
            ),
            DiscretionaryStatus.HARD_LIMIT: (
                Severity.HARD_LIMIT,
                FindingMessage.DISCRETIONARY_AT_HARD_LIMIT,
            ),
        }[check.status]
    elif bucket.bucket_type in MINIMUM_CHECKED_TYPES and is_below_recommended_minimum(
        bucket, income, policy
    ):
        severity, message = Severity.WARNING, FindingMessage.BELOW_RECOMMENDED_MINIMUM
    else:
        severity, message = Severity.INFO, FindingMessage.WITHIN_POLICY

    return ValidationFinding(
        bucket_type=bucket.bucket_type,
        severity=severity,
        percentage_of_income=percentage,
        message=message,
        months_to_target=months_to_target,
    )


def validate_all(
    bucket_set: BucketSet,
    monthly_income: MoneyLike,
    essential_spending_amount: MoneyLike | None = None,
    policy: SafetyPolicy = default_safety_policy,
) -> tuple[ValidationFinding, ...]:
    """
    Findings for every bucket, in canonical order (read-only)

    Emergency fund coverage uses essential_spending_amount, falling back
    to the essential spending bucket's current amount.
    """
    essential = essential_spending_amount
    if essential is None:
        essential_bucket = bucket_set.find(BucketType.ESSENTIAL_SPENDING)
        if essential_bucket is not None:
            essential = essential_bucket.amount

    return tuple(
        validate_bucket(bucket, monthly_income, essential, policy)
        for bucket in bucket_set.buckets
    )
