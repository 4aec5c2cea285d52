"""
Pytest configuration and shared fixtures

The scenario bucket sets mirror a typical recommendation for a 5,000
monthly income: most of it to essentials, the rest split across
discretionary spending, an emergency fund and investments.
"""

from decimal import Decimal

import pytest

from income_allocator.allocation.models import BucketSet, BucketType
from income_allocator.engine import AllocationEngine
from income_allocator.kernel.safety_policy import SafetyPolicy


@pytest.fixture
def safety_policy() -> SafetyPolicy:
    """Provide default safety policy for tests"""
    return SafetyPolicy()


@pytest.fixture
def engine(safety_policy: SafetyPolicy) -> AllocationEngine:
    """Provide an engine bound to the default policy"""
    return AllocationEngine(safety_policy)


@pytest.fixture
def monthly_income() -> Decimal:
    return Decimal("5000.00")


@pytest.fixture
def recommended_buckets() -> BucketSet:
    """
    Balanced five-bucket set for a 5,000 income, nothing locked

    essential 3200, discretionary 800, emergency fund 500,
    investments 500, debt service 0
    """
    return BucketSet.from_amounts(
        {
            BucketType.ESSENTIAL_SPENDING: Decimal("3200"),
            BucketType.DISCRETIONARY_SPENDING: Decimal("800"),
            BucketType.EMERGENCY_FUND: Decimal("500"),
            BucketType.INVESTMENTS: Decimal("500"),
            BucketType.DEBT_SERVICE: Decimal("0"),
        }
    )


@pytest.fixture
def buckets_with_debt() -> BucketSet:
    """Balanced set for a 5,000 income where 300 goes to fixed debt payments"""
    return BucketSet.from_amounts(
        {
            BucketType.ESSENTIAL_SPENDING: Decimal("2900"),
            BucketType.DISCRETIONARY_SPENDING: Decimal("800"),
            BucketType.EMERGENCY_FUND: Decimal("500"),
            BucketType.INVESTMENTS: Decimal("500"),
            BucketType.DEBT_SERVICE: Decimal("300"),
        }
    )
