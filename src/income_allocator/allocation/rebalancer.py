"""
Rebalancing Engine - Keeps allocations summing to monthly income

Every operation here is a pure function of (bucket set, income, edit):
it reads an immutable snapshot and returns a new one together with
fresh validation findings. Nothing is held between calls.

Redistribution rule: the buckets that are neither locked nor fixed
("absorbers") take up the difference an edit creates, each in
proportion to its current share of the absorbers' total. Shares are
truncated to cents and the leftover cents go to the largest remainders,
ties broken by canonical bucket order. When the absorbers cannot give
enough, they drop to zero and the target settles below the request
(DEGENERATE_REDISTRIBUTION), so the sum always holds exactly.
"""

from collections.abc import Mapping
from decimal import Decimal

from income_allocator.allocation import policy as safety
from income_allocator.allocation.invariants import validate_settled
from income_allocator.allocation.models import (
    AllocationAdjustment,
    AllocationBucket,
    AllocationSummary,
    BucketSet,
    BucketType,
    DiscretionaryStatus,
    EditResult,
    RebalanceCondition,
)
from income_allocator.kernel.logging import get_logger
from income_allocator.kernel.money import (
    CENT,
    ZERO,
    MoneyLike,
    clamp,
    is_close,
    percentage_of,
    to_money,
    truncate_to_cents,
)
from income_allocator.kernel.safety_policy import SafetyPolicy, default_safety_policy

logger = get_logger(__name__)


def split_proportionally(
    weights: Mapping[BucketType, Decimal], total: Decimal
) -> dict[BucketType, Decimal]:
    """
    Split a cents amount across buckets in proportion to their weights

    Uses the largest remainder method so the shares add up to `total`
    exactly. All-zero weights split equally.

    Args:
        weights: Non-negative weight per bucket type
        total: Non-negative amount in cents to hand out

    Returns:
        Share per bucket type, summing to total

    Example:
        >>> split_proportionally({A: Decimal("1"), B: Decimal("2")}, Decimal("1.00"))
        {A: Decimal('0.33'), B: Decimal('0.67')}
    """
    if not weights:
        return {}

    weight_total = sum(weights.values(), ZERO)
    if weight_total <= 0:
        weights = {bucket_type: Decimal("1") for bucket_type in weights}
        weight_total = Decimal(len(weights))

    exact = {bt: total * w / weight_total for bt, w in weights.items()}
    shares = {bt: truncate_to_cents(value) for bt, value in exact.items()}

    leftover_cents = int((total - sum(shares.values(), ZERO)) / CENT)
    by_remainder = sorted(
        shares,
        key=lambda bt: (-(exact[bt] - shares[bt]), BucketType(bt).order()),
    )
    for bucket_type in by_remainder[:leftover_cents]:
        shares[bucket_type] += CENT

    return shares


def redistribute(
    absorbers: list[AllocationBucket], target_total: Decimal
) -> dict[BucketType, Decimal]:
    """
    New amounts for the absorbing buckets so they hold `target_total`

    Shrinking takes from each bucket in proportion to what it holds, so
    no bucket can be driven below zero while target_total >= 0.

    Args:
        absorbers: Unlocked, modifiable buckets other than the edited one
        target_total: What the absorbers must hold together (>= 0)

    Returns:
        New amount per absorbing bucket type
    """
    current = {b.bucket_type: b.amount for b in absorbers}
    current_total = sum(current.values(), ZERO)
    change = target_total - current_total

    if change == 0:
        return dict(current)

    if change < 0:
        reduction = -change
        if reduction >= current_total:
            return {bucket_type: ZERO for bucket_type in current}
        shares = split_proportionally(current, reduction)
        return {bt: current[bt] - shares[bt] for bt in current}

    shares = split_proportionally(current, change)
    return {bt: current[bt] + shares[bt] for bt in current}


def _absorbers_and_fixed(
    bucket_set: BucketSet, excluded: BucketType | None
) -> tuple[list[AllocationBucket], Decimal]:
    """Split the set (minus `excluded`) into absorbers and the fixed total"""
    absorbers: list[AllocationBucket] = []
    fixed_total = ZERO
    for bucket in bucket_set.buckets:
        if excluded is not None and bucket.bucket_type == excluded:
            continue
        if bucket.is_modifiable and not bucket.is_locked:
            absorbers.append(bucket)
        else:
            fixed_total += bucket.amount
    return absorbers, fixed_total


def _adjustments(
    before: BucketSet, after: BucketSet, excluded: BucketType | None = None
) -> tuple[AllocationAdjustment, ...]:
    adjustments = []
    for bucket in before.buckets:
        if bucket.bucket_type == excluded:
            continue
        new_amount = after.get(bucket.bucket_type).amount
        if new_amount != bucket.amount:
            adjustments.append(
                AllocationAdjustment(
                    bucket_type=bucket.bucket_type,
                    previous_amount=bucket.amount,
                    new_amount=new_amount,
                )
            )
    return tuple(adjustments)


def _unchanged(
    bucket_set: BucketSet,
    income: Decimal,
    condition: RebalanceCondition | None,
    requested: Decimal | None,
    settled: Decimal | None,
    policy: SafetyPolicy,
    essential_spending_amount: MoneyLike | None,
) -> EditResult:
    return EditResult(
        bucket_set=bucket_set,
        findings=safety.validate_all(bucket_set, income, essential_spending_amount, policy),
        condition=condition,
        requested_amount=requested,
        settled_amount=settled,
    )


def apply_edit(
    bucket_set: BucketSet,
    monthly_income: MoneyLike,
    bucket_type: BucketType,
    requested_amount: MoneyLike,
    policy: SafetyPolicy = default_safety_policy,
    essential_spending_amount: MoneyLike | None = None,
) -> EditResult:
    """
    Set one bucket's amount and rebalance the others around it

    The request is clamped to [0, monthly income] first. Locked and
    non-modifiable targets are rejected with NOT_MODIFIABLE; an edit with
    no unlocked, modifiable bucket left to absorb it is rejected with
    NO_ROOM_TO_REDISTRIBUTE. Rejections return the input set unchanged.

    Args:
        bucket_set: Current snapshot
        monthly_income: Monthly income the buckets must add up to
        bucket_type: Bucket being edited
        requested_amount: Amount the user asked for
        policy: Safety policy for findings
        essential_spending_amount: Essential spending for emergency fund
            coverage (defaults to the essential bucket's amount)

    Returns:
        EditResult with the settled set, findings and any condition

    Raises:
        BucketNotFound: If bucket_type is not in the set
    """
    income = to_money(monthly_income)
    target = bucket_set.get(bucket_type)
    requested = clamp(to_money(requested_amount), ZERO, max(income, ZERO))
    previous = target.amount

    if target.is_locked or not target.is_modifiable:
        logger.warning(
            "Edit rejected: bucket is not modifiable",
            bucket_type=target.bucket_type.value,
            is_locked=target.is_locked,
            condition=RebalanceCondition.NOT_MODIFIABLE.value,
        )
        return _unchanged(
            bucket_set,
            income,
            RebalanceCondition.NOT_MODIFIABLE,
            requested,
            previous,
            policy,
            essential_spending_amount,
        )

    # Re-applying the current amount to a balanced set is a no-op
    if is_close(requested, previous) and bucket_set.is_balanced(income):
        return _unchanged(
            bucket_set, income, None, requested, previous, policy, essential_spending_amount
        )

    absorbers, fixed_total = _absorbers_and_fixed(bucket_set, target.bucket_type)
    if not absorbers or fixed_total > income:
        logger.warning(
            "Edit rejected: no room to redistribute",
            bucket_type=target.bucket_type.value,
            absorbing_buckets=len(absorbers),
            condition=RebalanceCondition.NO_ROOM_TO_REDISTRIBUTE.value,
        )
        return _unchanged(
            bucket_set,
            income,
            RebalanceCondition.NO_ROOM_TO_REDISTRIBUTE,
            requested,
            previous,
            policy,
            essential_spending_amount,
        )

    # Target plus absorbers share whatever the fixed buckets leave over
    room = income - fixed_total
    condition = None
    settled = requested
    if requested > room:
        settled = room
        condition = RebalanceCondition.DEGENERATE_REDISTRIBUTION

    new_amounts = redistribute(absorbers, room - settled)
    new_amounts[target.bucket_type] = settled
    after = bucket_set.with_amounts(new_amounts)

    validate_settled(bucket_set, after, income, edited=target.bucket_type)

    adjustments = _adjustments(bucket_set, after, excluded=target.bucket_type)
    if condition is not None:
        logger.warning(
            "Edit partially honoured: absorbing buckets reached zero",
            bucket_type=target.bucket_type.value,
            condition=condition.value,
        )
    logger.debug(
        "Bucket rebalanced",
        bucket_type=target.bucket_type.value,
        absorbing_buckets=len(absorbers),
        adjusted_buckets=len(adjustments),
    )

    return EditResult(
        bucket_set=after,
        findings=safety.validate_all(after, income, essential_spending_amount, policy),
        condition=condition,
        requested_amount=requested,
        settled_amount=settled,
        adjustments=adjustments,
    )


def reset_bucket(
    bucket_set: BucketSet,
    monthly_income: MoneyLike,
    bucket_type: BucketType,
    policy: SafetyPolicy = default_safety_policy,
    essential_spending_amount: MoneyLike | None = None,
) -> EditResult:
    """
    Restore one bucket to its original amount

    Just an edit whose requested amount is the bucket's original amount,
    so locks and conditions apply exactly as for apply_edit.
    """
    target = bucket_set.get(bucket_type)
    return apply_edit(
        bucket_set,
        monthly_income,
        bucket_type,
        target.original_amount,
        policy,
        essential_spending_amount,
    )


def rebalance_to_income(
    bucket_set: BucketSet,
    monthly_income: MoneyLike,
    policy: SafetyPolicy = default_safety_policy,
    essential_spending_amount: MoneyLike | None = None,
) -> EditResult:
    """
    Restore the sum invariant after monthly income changed

    Spreads the gap between income and the current total across the
    unlocked, modifiable buckets with the same proportional rule as an
    edit. Rejected with NO_ROOM_TO_REDISTRIBUTE when nothing can absorb
    the gap or the fixed buckets alone exceed income.
    """
    income = to_money(monthly_income)

    if bucket_set.is_balanced(income):
        return _unchanged(bucket_set, income, None, None, None, policy, essential_spending_amount)

    absorbers, fixed_total = _absorbers_and_fixed(bucket_set, None)
    if not absorbers or fixed_total > income:
        logger.warning(
            "Income rebalance rejected: no room to redistribute",
            absorbing_buckets=len(absorbers),
            condition=RebalanceCondition.NO_ROOM_TO_REDISTRIBUTE.value,
        )
        return _unchanged(
            bucket_set,
            income,
            RebalanceCondition.NO_ROOM_TO_REDISTRIBUTE,
            None,
            None,
            policy,
            essential_spending_amount,
        )

    after = bucket_set.with_amounts(redistribute(absorbers, income - fixed_total))
    validate_settled(bucket_set, after, income)

    return EditResult(
        bucket_set=after,
        findings=safety.validate_all(after, income, essential_spending_amount, policy),
        adjustments=_adjustments(bucket_set, after),
    )


def toggle_lock(bucket_set: BucketSet, bucket_type: BucketType) -> BucketSet:
    """Flip one bucket's lock flag (no redistribution)"""
    bucket = bucket_set.get(bucket_type)
    return bucket_set.with_bucket(bucket.with_lock(not bucket.is_locked))


def set_lock(bucket_set: BucketSet, bucket_type: BucketType, locked: bool) -> BucketSet:
    """Set one bucket's lock flag (no redistribution)"""
    bucket = bucket_set.get(bucket_type)
    return bucket_set.with_bucket(bucket.with_lock(locked))


def summarize(
    bucket_set: BucketSet,
    monthly_income: MoneyLike,
    policy: SafetyPolicy = default_safety_policy,
) -> AllocationSummary:
    """
    Totals for display, plus an overall validity flag

    Valid means the total is within the policy's tolerance of 100% of
    income and discretionary spending is under its hard limit.
    """
    income = to_money(monthly_income)
    total = bucket_set.total_allocated()
    percentage = percentage_of(total, income)

    within_tolerance = income > 0 and (
        abs(percentage - Decimal("100")) < policy.allocation_tolerance_percent
    )
    discretionary = bucket_set.find(BucketType.DISCRETIONARY_SPENDING)
    discretionary_ok = (
        discretionary is None
        or safety.validate_discretionary(discretionary.amount, income, policy).status
        != DiscretionaryStatus.HARD_LIMIT
    )

    return AllocationSummary(
        monthly_income=income,
        total_allocated=total,
        allocation_percentage=percentage,
        is_valid=within_tolerance and discretionary_ok,
    )
