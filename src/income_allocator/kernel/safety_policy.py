"""
Safety Policy - Tunable thresholds for income allocation

The SafetyPolicy holds the numbers behind every validation finding:
recommended minimum shares, discretionary warning and hard-limit tiers,
upper caps used for the slider's safe maximum, and emergency fund
coverage targets. Everything is keyed by bucket type identifier so the
policy stays one exhaustive table rather than per-type branches.
"""

from decimal import Decimal

from pydantic import BaseModel, Field


class SafetyPolicy(BaseModel):
    """
    Allocation safety parameters

    Defaults follow common personal-finance guidance: at least 10% of
    income to an emergency fund, at least 5% to investments, and
    discretionary spending kept under 35% (warning) and never 50% or more
    (hard limit).
    """

    policy_version: str = Field(
        default="1.0",
        description="Policy version for tracking changes over time",
    )

    recommended_minimum_percentages: dict[str, Decimal] = Field(
        default={
            "essentialSpending": Decimal("0"),
            "discretionarySpending": Decimal("0"),
            "emergencyFund": Decimal("10"),  # basic safety net
            "investments": Decimal("5"),  # wealth building
            "debtService": Decimal("0"),
        },
        description="Recommended minimum allocation per bucket type (% of income)",
    )

    hard_limit_percentages: dict[str, Decimal] = Field(
        default={
            "discretionarySpending": Decimal("50"),
        },
        description="Upper cap per bucket type (% of income); absent types have none",
    )

    discretionary_warning_percent: Decimal = Field(
        default=Decimal("35"),
        ge=0,
        le=100,
        description="Discretionary share at or above which a warning is raised",
    )

    discretionary_hard_limit_percent: Decimal = Field(
        default=Decimal("50"),
        ge=0,
        le=100,
        description="Discretionary share at or above which the allocation is invalid",
    )

    allocation_tolerance_percent: Decimal = Field(
        default=Decimal("0.1"),
        ge=0,
        description="Allowed deviation of the total from 100% of income",
    )

    emergency_fund_target_months: int = Field(
        default=6,
        ge=1,
        le=24,
        description="Months of essential spending the emergency fund should cover",
    )

    emergency_fund_duration_options: list[int] = Field(
        default=[3, 6, 12],
        description="Coverage options (months) offered for the emergency fund",
    )

    model_config = {
        "frozen": True,
        "json_schema_extra": {
            "description": "Safety parameters governing allocation findings"
        },
    }

    def recommended_minimum_percentage(self, bucket_type: str) -> Decimal:
        """Recommended minimum share for a bucket type (0 when unlisted)"""
        return self.recommended_minimum_percentages.get(bucket_type, Decimal("0"))

    def hard_limit_percentage(self, bucket_type: str) -> Decimal | None:
        """Upper cap for a bucket type, or None when it has none"""
        return self.hard_limit_percentages.get(bucket_type)


# Default global policy instance
default_safety_policy = SafetyPolicy()
