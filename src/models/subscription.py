"""
Subscription Models

Recurring-charge views derived from transaction history.

DESIGN DECISION: Candidates are recomputed on every request. Whether a
candidate is "recurring" or "expired" is a judgment made against today's
date, not a stored fact, so a wrongly-set frequency can be corrected and
the candidate reactivates on the next pass.
"""

from datetime import date
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from src.models.transaction import Frequency


class SubscriptionCandidate(BaseModel):
    """
    A cluster of historical charges believed to be one recurring charge.

    `frequency` is the effective frequency (user setting over inference);
    `inferred_frequency` is what the detector found on its own, if anything.
    """

    label: str
    amount: Decimal = Field(
        ...,
        ge=0,
        description="Nominal charge amount (positive)"
    )
    category: Optional[str] = None
    occurrences: int = Field(ge=0)
    avg_day_of_month: int = Field(ge=1, le=31)
    first_date: Optional[date] = None
    last_date: Optional[date] = None
    frequency: Frequency
    inferred_frequency: Optional[Frequency] = None
    median_interval_days: Optional[float] = None
    next_expected_date: Optional[date] = None
    transaction_ids: list[str] = Field(default_factory=list)

    is_active: bool = True
    is_category_based: bool = Field(
        default=False,
        description="Single charge promoted because of its category or recurring flag"
    )
    is_from_partner: bool = Field(
        default=False,
        description="Shared charge paid from the partner's own account"
    )

    @property
    def key(self) -> tuple[str, Decimal]:
        return (self.label, self.amount)

    @property
    def anchor_date(self) -> Optional[date]:
        """Phase anchor for calendar projection: the first occurrence."""
        return self.first_date or self.last_date


class PossibleRecurring(BaseModel):
    """
    Repeated charge whose gaps do not match any supported period.

    No frequency is asserted; the user can still assign one through a
    setting, which promotes it on the next pass.
    """

    label: str
    amount: Decimal = Field(ge=0)
    last_amount: Decimal = Field(ge=0)
    category: Optional[str] = None
    occurrences: int = Field(ge=2)
    first_date: date
    last_date: date
    median_interval_days: Optional[float] = None
    transaction_ids: list[str] = Field(default_factory=list)

    @property
    def key(self) -> tuple[str, Decimal]:
        return (self.label, self.amount)


class RecurrenceReport(BaseModel):
    """Output of subscription detection."""

    recurring: list[SubscriptionCandidate] = Field(default_factory=list)
    expired: list[SubscriptionCandidate] = Field(default_factory=list)
    possible: list[PossibleRecurring] = Field(default_factory=list)
    computed_for: date = Field(
        ...,
        description="The 'today' the expiry judgment was made against"
    )


class MonthlyProjection(BaseModel):
    """
    Subscriptions projected into one calendar month for one viewer.

    monthly_equivalent_total: average monthly cost of my share across all
        recurring subscriptions (yearly / 12, and so on).
    calendar_total: cash I must have available for charges due this month.
    """

    year: int
    month: int = Field(ge=1, le=12)
    due: list[SubscriptionCandidate] = Field(default_factory=list)
    monthly_equivalent_total: Decimal = Decimal("0")
    calendar_total: Decimal = Decimal("0")
    by_day: dict[int, Decimal] = Field(
        default_factory=dict,
        description="Calendar amount per day of month (days with charges only)"
    )


class SubscriptionView(BaseModel):
    """Detection result plus the calendar for one month."""

    report: RecurrenceReport
    projection: MonthlyProjection
