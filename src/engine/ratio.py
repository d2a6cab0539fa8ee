"""
Ratio Calculator

Splits a shared amount between the two partners. Ratios are always the
fraction attributed to user1.
"""

from decimal import Decimal
from typing import Optional, Union

from src.errors import InvalidRatioError
from src.models.transaction import DEFAULT_RATIO, ratio_in_range


Number = Union[Decimal, int, str]


def to_decimal(value: Number) -> Decimal:
    """Coerce an int/str/Decimal to Decimal. Floats are not accepted."""
    if isinstance(value, float):
        raise TypeError("Use Decimal or str for money, not float")
    return value if isinstance(value, Decimal) else Decimal(value)


def resolve_ratio(
    ratio: Optional[Number],
    transaction_id: Optional[str] = None,
) -> Decimal:
    """Apply the 50/50 default and check the [0, 1] range."""
    if ratio is None:
        return DEFAULT_RATIO
    value = to_decimal(ratio)
    if not ratio_in_range(value):
        raise InvalidRatioError(ratio, transaction_id)
    return value


def share(
    amount: Number,
    ratio: Optional[Number],
    is_payer_user1: bool,
) -> Decimal:
    """
    Amount the other partner owes the payer.

    If user1 paid, user2's share: |amount| * (1 - ratio).
    If user2 paid, user1's share: |amount| * ratio.

    Ratio 0 and 1 are valid and put the whole cost on one side.
    No rounding is applied.
    """
    r = resolve_ratio(ratio)
    total = abs(to_decimal(amount))
    if is_payer_user1:
        return total * (1 - r)
    return total * r


def calculate_shares(
    amount: Number,
    ratio: Optional[Number] = None,
) -> tuple[Decimal, Decimal]:
    """
    Split |amount| into (user1_share, user2_share).

    user2's share is computed as the remainder so the two always sum to
    the total.
    """
    r = resolve_ratio(ratio)
    total = abs(to_decimal(amount))
    user1_share = total * r
    return user1_share, total - user1_share
