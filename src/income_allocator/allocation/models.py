"""
Allocation Domain Models - Buckets, bucket sets and edit results

These models represent one budgeting session's allocation of monthly
income. They are immutable: every engine operation returns new models
instead of mutating the ones it was given.

Key concepts:
- BucketType: Closed set of semantic buckets with fixed identity data
- AllocationBucket: One bucket's amount, lock flag and original amount
- BucketSet: At most one bucket per type, in canonical order
- Strict Balancing: After every rebalancing pass, amounts sum to income
"""

from collections.abc import Iterable, Mapping
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

from income_allocator.kernel.errors import BucketNotFound, DuplicateBucket
from income_allocator.kernel.money import ZERO, MoneyLike, is_close, to_money


class BucketType(str, Enum):
    """
    Allocation bucket classification

    Declaration order is the canonical bucket order: it drives display
    order and breaks ties when leftover cents are handed out.
    """

    ESSENTIAL_SPENDING = "essentialSpending"
    DISCRETIONARY_SPENDING = "discretionarySpending"
    EMERGENCY_FUND = "emergencyFund"
    INVESTMENTS = "investments"
    DEBT_SERVICE = "debtService"  # Fixed minimum payments

    def is_modifiable(self) -> bool:
        """Whether the user may edit this bucket at all"""
        return {
            BucketType.ESSENTIAL_SPENDING: True,
            BucketType.DISCRETIONARY_SPENDING: True,
            BucketType.EMERGENCY_FUND: True,
            BucketType.INVESTMENTS: True,
            BucketType.DEBT_SERVICE: False,
        }[self]

    def display_name(self) -> str:
        return {
            BucketType.ESSENTIAL_SPENDING: "Essential Spending",
            BucketType.DISCRETIONARY_SPENDING: "Discretionary Spending",
            BucketType.EMERGENCY_FUND: "Emergency Fund",
            BucketType.INVESTMENTS: "Investments",
            BucketType.DEBT_SERVICE: "Debt Service",
        }[self]

    def description(self) -> str:
        return {
            BucketType.ESSENTIAL_SPENDING: (
                "Core living expenses including housing, utilities, groceries, "
                "transportation, and healthcare"
            ),
            BucketType.DISCRETIONARY_SPENDING: (
                "Non-essential spending on entertainment, dining out, shopping, "
                "and hobbies"
            ),
            BucketType.EMERGENCY_FUND: (
                "Safety net for unexpected expenses. Target: 3-6 months of "
                "essential expenses"
            ),
            BucketType.INVESTMENTS: (
                "Long-term wealth building through retirement accounts, stocks, "
                "and other investments"
            ),
            BucketType.DEBT_SERVICE: "Minimum payments owed on existing debts",
        }[self]

    def order(self) -> int:
        """Position in canonical bucket order"""
        return list(BucketType).index(self)


class Severity(str, Enum):
    """Validation finding severity, lowest to highest"""

    INFO = "info"
    WARNING = "warning"
    HARD_LIMIT = "hardLimit"


class FindingMessage(str, Enum):
    """Message selector for a finding; callers own the wording"""

    WITHIN_POLICY = "withinPolicy"
    NO_INCOME = "noIncome"
    BELOW_RECOMMENDED_MINIMUM = "belowRecommendedMinimum"
    DISCRETIONARY_ABOVE_WARNING = "discretionaryAboveWarning"
    DISCRETIONARY_AT_HARD_LIMIT = "discretionaryAtHardLimit"


class DiscretionaryStatus(str, Enum):
    VALID = "valid"
    WARNING = "warning"
    HARD_LIMIT = "hardLimit"


class RebalanceCondition(str, Enum):
    """
    Reported outcome of an edit that could not be honoured as requested

    NOT_MODIFIABLE and NO_ROOM_TO_REDISTRIBUTE reject the edit and leave
    the bucket set unchanged. DEGENERATE_REDISTRIBUTION is informational:
    the edit went through but the target settled below the request.
    """

    NOT_MODIFIABLE = "NotModifiable"
    NO_ROOM_TO_REDISTRIBUTE = "NoRoomToRedistribute"
    DEGENERATE_REDISTRIBUTION = "DegenerateRedistribution"

    def is_rejection(self) -> bool:
        return self is not RebalanceCondition.DEGENERATE_REDISTRIBUTION


class AllocationBucket(BaseModel):
    """
    One portion of monthly income

    Serialises to the persisted record layout
    {type, amount, isLocked, originalAmount} via model_dump(by_alias=True).

    Attributes:
        bucket_type: Immutable identity
        amount: Current allocation (cents, never negative)
        is_locked: Redistribution must not alter this bucket
        original_amount: Recommended amount at session start (for reset)
    """

    bucket_type: BucketType = Field(alias="type")
    amount: Decimal = Field(ge=0)
    is_locked: bool = Field(default=False, alias="isLocked")
    original_amount: Decimal = Field(ge=0, alias="originalAmount")

    model_config = {
        "frozen": True,
        "populate_by_name": True,
        "json_schema_extra": {
            "examples": [
                {
                    "type": "emergencyFund",
                    "amount": "500.00",
                    "isLocked": False,
                    "originalAmount": "500.00",
                }
            ]
        },
    }

    @model_validator(mode="before")
    @classmethod
    def _default_original_amount(cls, data: Any) -> Any:
        # A freshly seeded bucket starts at its original amount
        if isinstance(data, dict):
            has_original = "original_amount" in data or "originalAmount" in data
            if not has_original and "amount" in data:
                data = {**data, "original_amount": data["amount"]}
        return data

    @field_validator("amount", "original_amount", mode="before")
    @classmethod
    def _quantise(cls, value: Any) -> Any:
        if isinstance(value, bool) or not isinstance(value, (Decimal, int, float, str)):
            return value
        try:
            return to_money(value)
        except InvalidOperation:
            # Let pydantic report the malformed number
            return value

    @property
    def is_modifiable(self) -> bool:
        return self.bucket_type.is_modifiable()

    def change_from_original(self) -> Decimal:
        """Signed difference between current and original amount"""
        return self.amount - self.original_amount

    def is_changed(self) -> bool:
        """True once the amount has moved away from the original by a cent or more"""
        return not is_close(self.amount, self.original_amount)

    def with_amount(self, amount: MoneyLike) -> "AllocationBucket":
        return self.model_copy(update={"amount": to_money(amount)})

    def with_lock(self, locked: bool) -> "AllocationBucket":
        return self.model_copy(update={"is_locked": locked})

    def to_record(self) -> dict[str, Any]:
        """Persisted record for this bucket"""
        return self.model_dump(mode="json", by_alias=True)


class BucketSet(BaseModel):
    """
    The buckets of one budgeting session

    Holds at most one bucket per BucketType, always in canonical order.
    A set is a snapshot: the with_* methods return new sets.
    """

    buckets: tuple[AllocationBucket, ...] = ()

    model_config = {"frozen": True}

    @field_validator("buckets")
    @classmethod
    def _unique_and_ordered(
        cls, buckets: tuple[AllocationBucket, ...]
    ) -> tuple[AllocationBucket, ...]:
        seen: set[BucketType] = set()
        for bucket in buckets:
            if bucket.bucket_type in seen:
                raise DuplicateBucket(bucket.bucket_type.value)
            seen.add(bucket.bucket_type)
        return tuple(sorted(buckets, key=lambda b: b.bucket_type.order()))

    @classmethod
    def from_amounts(
        cls,
        amounts: Mapping[BucketType, MoneyLike],
        locked: Iterable[BucketType] = (),
    ) -> "BucketSet":
        """
        Seed a session from recommended amounts

        Each bucket's original amount is its seeded amount.

        Example:
            >>> BucketSet.from_amounts(
            ...     {BucketType.ESSENTIAL_SPENDING: 3200, BucketType.INVESTMENTS: 500},
            ...     locked=[BucketType.ESSENTIAL_SPENDING],
            ... )
        """
        locked_types = set(locked)
        return cls(
            buckets=tuple(
                AllocationBucket(
                    bucket_type=bucket_type,
                    amount=amount,
                    is_locked=bucket_type in locked_types,
                )
                for bucket_type, amount in amounts.items()
            )
        )

    @classmethod
    def from_records(cls, records: Iterable[Mapping[str, Any]]) -> "BucketSet":
        """Rebuild a set from persisted {type, amount, isLocked, originalAmount} records"""
        return cls(buckets=tuple(AllocationBucket.model_validate(r) for r in records))

    def to_records(self) -> list[dict[str, Any]]:
        return [bucket.to_record() for bucket in self.buckets]

    def types(self) -> list[BucketType]:
        return [bucket.bucket_type for bucket in self.buckets]

    def find(self, bucket_type: BucketType) -> AllocationBucket | None:
        for bucket in self.buckets:
            if bucket.bucket_type == bucket_type:
                return bucket
        return None

    def get(self, bucket_type: BucketType) -> AllocationBucket:
        """
        Get bucket by type

        Raises:
            BucketNotFound: If the set has no bucket of this type
        """
        bucket = self.find(bucket_type)
        if bucket is None:
            raise BucketNotFound(getattr(bucket_type, "value", str(bucket_type)))
        return bucket

    def others(self, bucket_type: BucketType) -> list[AllocationBucket]:
        """Every bucket except the one of the given type"""
        return [b for b in self.buckets if b.bucket_type != bucket_type]

    def amounts(self) -> dict[BucketType, Decimal]:
        return {bucket.bucket_type: bucket.amount for bucket in self.buckets}

    def total_allocated(self) -> Decimal:
        """Sum of all bucket amounts"""
        return sum((bucket.amount for bucket in self.buckets), ZERO)

    def is_balanced(self, monthly_income: MoneyLike) -> bool:
        """Check that amounts add up to monthly income (within a cent)"""
        return is_close(self.total_allocated(), to_money(monthly_income))

    def with_amounts(self, amounts: Mapping[BucketType, MoneyLike]) -> "BucketSet":
        """New set with the given buckets' amounts replaced"""
        return self.model_copy(
            update={
                "buckets": tuple(
                    b.with_amount(amounts[b.bucket_type]) if b.bucket_type in amounts else b
                    for b in self.buckets
                )
            }
        )

    def with_bucket(self, replacement: AllocationBucket) -> "BucketSet":
        """New set with the bucket of replacement's type swapped for it"""
        self.get(replacement.bucket_type)
        return self.model_copy(
            update={
                "buckets": tuple(
                    replacement if b.bucket_type == replacement.bucket_type else b
                    for b in self.buckets
                )
            }
        )


class DiscretionaryValidation(BaseModel):
    """Tiered check result for discretionary spending"""

    status: DiscretionaryStatus
    current_percentage: Decimal = Decimal("0")

    model_config = {"frozen": True}

    def is_valid(self) -> bool:
        """Only the hard limit invalidates an allocation"""
        return self.status != DiscretionaryStatus.HARD_LIMIT


class ValidationFinding(BaseModel):
    """
    Transient validation result for one bucket

    Recomputed after every amount change and replaced wholesale, never
    mutated. percentage_of_income is full precision; callers truncate it
    for display.
    """

    bucket_type: BucketType
    severity: Severity
    percentage_of_income: Decimal
    message: FindingMessage
    months_to_target: int | None = None  # Emergency fund coverage only

    model_config = {"frozen": True}


class AllocationAdjustment(BaseModel):
    """One bucket the engine moved while settling an edit"""

    bucket_type: BucketType
    previous_amount: Decimal
    new_amount: Decimal

    model_config = {"frozen": True}

    @property
    def amount_changed(self) -> Decimal:
        return self.new_amount - self.previous_amount

    @property
    def is_increase(self) -> bool:
        return self.amount_changed > 0


class EditResult(BaseModel):
    """
    Outcome of an edit, reset or income rebalance

    bucket_set is always authoritative and balanced (unless the input was
    rejected, in which case it is the input unchanged).
    """

    bucket_set: BucketSet
    findings: tuple[ValidationFinding, ...] = ()
    condition: RebalanceCondition | None = None
    requested_amount: Decimal | None = None
    settled_amount: Decimal | None = None
    adjustments: tuple[AllocationAdjustment, ...] = ()

    model_config = {"frozen": True}

    def was_rejected(self) -> bool:
        return self.condition is not None and self.condition.is_rejection()

    def honored(self) -> bool:
        """Whether the target settled on the requested amount"""
        if self.requested_amount is None or self.settled_amount is None:
            return not self.was_rejected()
        return is_close(self.requested_amount, self.settled_amount)


class AllocationSummary(BaseModel):
    """Totals for an allocation screen header"""

    monthly_income: Decimal
    total_allocated: Decimal
    allocation_percentage: Decimal
    is_valid: bool

    model_config = {"frozen": True}
