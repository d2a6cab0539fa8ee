"""
Frequency Normalizer

Converts recurring charges between billing periods and the calendar.

DESIGN DECISION: No rounding happens here. Rounding for display is the
presentation layer's job; totals built from these figures stay exact.
"""

from datetime import date
from decimal import Decimal
from typing import Optional

from dateutil.relativedelta import relativedelta

from src.engine.ratio import Number, to_decimal
from src.models.transaction import Frequency


WEEKS_PER_MONTH = Decimal("4.33")

# Length of one billing period in calendar months
PERIOD_MONTHS: dict[Frequency, int] = {
    Frequency.MONTHLY: 1,
    Frequency.QUARTERLY: 3,
    Frequency.SEMIANNUAL: 6,
    Frequency.YEARLY: 12,
}


def monthly_equivalent(amount: Number, frequency: Optional[Frequency]) -> Decimal:
    """
    Normalize a charge to a per-month figure.

    monthly/manual: unchanged; quarterly: / 3; semiannual: / 6;
    yearly: / 12; weekly: * 4.33. A missing frequency counts as monthly.
    """
    value = to_decimal(amount)
    if frequency == Frequency.WEEKLY:
        return value * WEEKS_PER_MONTH
    months = PERIOD_MONTHS.get(frequency) if frequency else None
    if months is None:
        return value
    return value / months


def period_delta(frequency: Frequency) -> Optional[relativedelta]:
    """One billing period as a calendar delta. None for manual charges."""
    if frequency == Frequency.WEEKLY:
        return relativedelta(weeks=1)
    months = PERIOD_MONTHS.get(frequency)
    if months is None:
        return None
    return relativedelta(months=months)


def next_due_date(last_date: date, frequency: Frequency) -> Optional[date]:
    """Expected next charge after `last_date`, or None when unknown."""
    delta = period_delta(frequency)
    if delta is None:
        return None
    return last_date + delta


def is_expired(last_date: Optional[date], frequency: Frequency, today: date) -> bool:
    """
    True when `today` is more than one full period past the expected
    next charge. Manual charges and charges without history never expire.
    """
    if last_date is None:
        return False
    delta = period_delta(frequency)
    if delta is None:
        return False
    expected = last_date + delta
    return today > expected + delta


def month_index(year: int, month: int) -> int:
    """Months since year 0; month is 1-12."""
    return year * 12 + (month - 1)


def is_due_in_month(
    frequency: Frequency,
    anchor: Optional[date],
    month: int,
    year: int,
) -> bool:
    """
    Whether a charge with this frequency falls due in the target month.

    The phase anchor is the FIRST occurrence: quarterly and semiannual
    charges are due when the month difference from the anchor is a
    non-negative multiple of 3 or 6, yearly charges in the anchor's month.
    """
    if not 1 <= month <= 12:
        raise ValueError(f"Month must be between 1 and 12, got {month}")

    if frequency in (Frequency.MONTHLY, Frequency.MANUAL, Frequency.WEEKLY):
        return True
    if anchor is None:
        return True

    if frequency == Frequency.YEARLY:
        return month == anchor.month

    step = PERIOD_MONTHS[frequency]
    diff = month_index(year, month) - month_index(anchor.year, anchor.month)
    return diff >= 0 and diff % step == 0
