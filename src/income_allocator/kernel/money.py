"""
Money helpers - Decimal amounts quantised to cents

Every amount that enters the engine goes through to_money() so that
proportional splits work on whole cents and sums compare exactly.
"""

from decimal import ROUND_DOWN, ROUND_HALF_UP, Decimal
from typing import Union

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
HUNDRED = Decimal("100")

# Amounts closer than this are treated as equal
EPSILON = Decimal("0.01")

MoneyLike = Union[Decimal, int, float, str]


def to_money(value: MoneyLike) -> Decimal:
    """
    Convert a number to a Decimal rounded to cents

    Floats go through str() first so 0.1 becomes Decimal("0.10") rather
    than its binary expansion.
    """
    if isinstance(value, float):
        value = str(value)
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def truncate_to_cents(value: Decimal) -> Decimal:
    """Drop everything below one cent (toward zero)"""
    return value.quantize(CENT, rounding=ROUND_DOWN)


def percentage_of(amount: Decimal, total: Decimal) -> Decimal:
    """
    Express amount as a percentage of total

    Returns zero for a non-positive total instead of dividing by zero.
    """
    if total <= 0:
        return Decimal("0")
    return amount / total * HUNDRED


def percent_of(total: Decimal, percent: Decimal) -> Decimal:
    """Cents-rounded share of total for a percentage (zero when total <= 0)"""
    if total <= 0:
        return ZERO
    return to_money(total * percent / HUNDRED)


def clamp(value: Decimal, lower: Decimal, upper: Decimal) -> Decimal:
    """Clamp value into [lower, upper]"""
    return max(lower, min(value, upper))


def is_close(a: Decimal, b: Decimal) -> bool:
    """True when two amounts differ by less than EPSILON"""
    return abs(a - b) < EPSILON
