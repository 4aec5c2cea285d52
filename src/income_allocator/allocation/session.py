"""
Budgeting Session - Authoritative snapshot plus a local slider mirror

A session owns the bucket set for one editing session. The engine is
the authority on amounts; the UI keeps its own mirror of slider values
so dragging feels immediate. Two-way reconciliation keeps them honest:
after every engine call the mirror refreshes any value that differs
from the authoritative snapshot by more than a cent.

Dragging only moves the mirror. The engine runs once, on commit (the
end of the interaction), so intermediate drag positions never leave
proportional-redistribution history behind.

Sessions are single-caller: edits must be serialised by the owner. Log
lines from engine calls made through a session carry its session ID.
"""

from decimal import Decimal

from income_allocator.allocation.models import (
    BucketSet,
    BucketType,
    EditResult,
    ValidationFinding,
)
from income_allocator.engine import AllocationEngine
from income_allocator.kernel.logging import generate_correlation_id, get_logger, session_context
from income_allocator.kernel.money import EPSILON, MoneyLike, to_money

logger = get_logger(__name__)


class SliderMirror:
    """
    Local copy of bucket amounts as the UI shows them

    Query methods: value, pending
    """

    def __init__(self, bucket_set: BucketSet) -> None:
        self.values: dict[BucketType, Decimal] = bucket_set.amounts()
        self._dragging: set[BucketType] = set()

    def value(self, bucket_type: BucketType) -> Decimal:
        return self.values[BucketType(bucket_type)]

    def drag(self, bucket_type: BucketType, amount: MoneyLike) -> None:
        """Move a slider locally; nothing is committed"""
        bucket_type = BucketType(bucket_type)
        self.values[bucket_type] = to_money(amount)
        self._dragging.add(bucket_type)

    def pending(self) -> set[BucketType]:
        """Sliders moved locally but not yet committed"""
        return set(self._dragging)

    def release(self, bucket_type: BucketType) -> None:
        self._dragging.discard(BucketType(bucket_type))

    def reconcile(self, authoritative: BucketSet) -> list[BucketType]:
        """
        Refresh mirror values that drifted from the authoritative snapshot

        Values within EPSILON are left alone so proportional rounding
        noise does not count as a change. Sliders still being dragged
        keep their local value.

        Returns:
            Bucket types whose mirror value was refreshed
        """
        refreshed = []
        for bucket in authoritative.buckets:
            if bucket.bucket_type in self._dragging:
                continue
            local = self.values.get(bucket.bucket_type)
            if local is None or abs(local - bucket.amount) > EPSILON:
                self.values[bucket.bucket_type] = bucket.amount
                refreshed.append(bucket.bucket_type)
        # Buckets that left the set leave the mirror too
        for bucket_type in set(self.values) - set(authoritative.types()):
            del self.values[bucket_type]
        return refreshed


class BudgetingSession:
    """
    One budgeting session

    Holds the authoritative bucket set, monthly income and the findings
    of the last engine call. Every mutation goes through the engine and
    replaces the snapshot wholesale.
    """

    def __init__(
        self,
        engine: AllocationEngine,
        bucket_set: BucketSet,
        monthly_income: MoneyLike,
        essential_spending_amount: MoneyLike | None = None,
        session_id: str | None = None,
    ) -> None:
        self.session_id = session_id or generate_correlation_id()
        self.engine = engine
        self.bucket_set = bucket_set
        self.monthly_income = to_money(monthly_income)
        self.essential_spending_amount = essential_spending_amount
        self.mirror = SliderMirror(bucket_set)
        with session_context(self.session_id):
            self.findings: tuple[ValidationFinding, ...] = engine.validate_all(
                bucket_set, self.monthly_income, essential_spending_amount
            )
        self.last_result: EditResult | None = None

    def _adopt(self, result: EditResult) -> EditResult:
        self.bucket_set = result.bucket_set
        self.findings = result.findings
        self.last_result = result
        self.mirror.reconcile(self.bucket_set)
        return result

    def drag(self, bucket_type: BucketType, amount: MoneyLike) -> None:
        """Track an in-progress slider drag (no engine call)"""
        self.mirror.drag(bucket_type, amount)

    def commit(self, bucket_type: BucketType) -> EditResult:
        """
        Commit a slider at the end of its interaction

        The mirror value goes through the engine; the slider then snaps
        to whatever amount actually settled.
        """
        bucket_type = BucketType(bucket_type)
        requested = self.mirror.value(bucket_type)
        self.mirror.release(bucket_type)
        return self.edit(bucket_type, requested)

    def edit(self, bucket_type: BucketType, amount: MoneyLike) -> EditResult:
        with session_context(self.session_id):
            result = self.engine.apply_edit(
                self.bucket_set,
                self.monthly_income,
                bucket_type,
                amount,
                self.essential_spending_amount,
            )
        return self._adopt(result)

    def reset(self, bucket_type: BucketType) -> EditResult:
        with session_context(self.session_id):
            result = self.engine.reset_bucket(
                self.bucket_set, self.monthly_income, bucket_type, self.essential_spending_amount
            )
        return self._adopt(result)

    def toggle_lock(self, bucket_type: BucketType) -> BucketSet:
        with session_context(self.session_id):
            self.bucket_set = self.engine.toggle_lock(self.bucket_set, bucket_type)
        return self.bucket_set

    def set_income(self, monthly_income: MoneyLike, rebalance: bool = True) -> EditResult:
        """
        Apply a new monthly income

        With rebalance=False the amounts stay put and only the findings
        are refreshed (the set may then not add up to income until the
        next edit).
        """
        self.monthly_income = to_money(monthly_income)
        with session_context(self.session_id):
            logger.info("Session income changed", rebalance=rebalance)
            if rebalance:
                result = self.engine.rebalance_to_income(
                    self.bucket_set, self.monthly_income, self.essential_spending_amount
                )
            else:
                result = EditResult(
                    bucket_set=self.bucket_set,
                    findings=self.engine.validate_all(
                        self.bucket_set, self.monthly_income, self.essential_spending_amount
                    ),
                )
        return self._adopt(result)

    def records(self) -> list[dict]:
        """Bucket records for the persistence collaborator"""
        return self.bucket_set.to_records()
