"""
Commission split for marketplace purchases.

Pure functions: no database, no logging. Amounts are Decimals quantized to
cents with ROUND_HALF_UP, applied once per field.
"""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Union

from subshare.utils.exceptions import ValidationFailedError

CENT = Decimal("0.01")

MoneyLike = Union[Decimal, int, float, str]


@dataclass(frozen=True)
class CommissionSplit:
    """Result of splitting a purchase between the owner and the platform."""
    total: Decimal
    owner_amount: Decimal
    commission_amount: Decimal
    percentage: Decimal


def to_money(value: MoneyLike) -> Decimal:
    """
    Coerce a numeric value to a two-place Decimal.

    Floats go through str() so 0.1 becomes Decimal("0.10") rather than the
    binary expansion.
    """
    if isinstance(value, bool):
        raise ValidationFailedError("Amount must be a number", {"value": value})
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationFailedError("Amount must be a number", {"value": str(value)})
    if not amount.is_finite():
        raise ValidationFailedError("Amount must be finite", {"value": str(value)})
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def to_percentage(value: MoneyLike) -> Decimal:
    """Coerce and range-check a commission percentage."""
    try:
        percentage = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationFailedError("Commission percentage must be a number", {"value": str(value)})
    if not percentage.is_finite() or percentage < 0 or percentage > 100:
        raise ValidationFailedError(
            "Commission percentage must be between 0 and 100",
            {"percentage": str(value)},
        )
    return percentage


def calculate_commission_amount(amount: MoneyLike, percentage: MoneyLike) -> Decimal:
    """Platform share of amount, rounded half-up to cents."""
    return (to_money(amount) * to_percentage(percentage) / 100).quantize(CENT, rounding=ROUND_HALF_UP)


def split(amount: MoneyLike, percentage: MoneyLike) -> CommissionSplit:
    """
    Split a purchase total between the subscription owner and the platform.

    The owner amount is derived by subtracting the rounded commission from
    the total, so owner_amount + commission_amount == total exactly.

    Raises:
        ValidationFailedError: amount is not positive or percentage is outside [0, 100]
    """
    total = to_money(amount)
    if total <= 0:
        raise ValidationFailedError("Amount must be positive", {"amount": str(total)})

    pct = to_percentage(percentage)
    commission_amount = calculate_commission_amount(total, pct)
    owner_amount = (total - commission_amount).quantize(CENT, rounding=ROUND_HALF_UP)

    return CommissionSplit(
        total=total,
        owner_amount=owner_amount,
        commission_amount=commission_amount,
        percentage=pct,
    )
