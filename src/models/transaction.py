"""
Core Transaction Models

These models define the records the engine consumes. They are supplied by
the storage/API layer and are read-only to the engine.

DESIGN DECISION: Money is always Decimal. Floats never enter a balance.
Plain dicts coming from an API layer are validated into these models at the
edge of every engine function.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    model_validator,
)


DEFAULT_RATIO = Decimal("0.5")


def ratio_in_range(ratio: Decimal) -> bool:
    """A usable ratio is a finite value in [0, 1]."""
    return ratio.is_finite() and 0 <= ratio <= 1


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionType(str, Enum):
    """
    How a transaction participates in the couple's budget.

    Only SHARED transactions move money between partners.
    """
    INDIVIDUAL = "individual"
    SHARED = "shared"
    INTERNAL_TRANSFER = "internal_transfer"  # Neutral: money between own accounts


class PartnerRole(str, Enum):
    """Which side of the couple a user sits on."""
    USER1 = "user1"
    USER2 = "user2"

    @property
    def other(self) -> "PartnerRole":
        return PartnerRole.USER2 if self is PartnerRole.USER1 else PartnerRole.USER1


class Frequency(str, Enum):
    """
    Billing frequency of a recurring charge.

    WEEKLY is only reachable through a user setting; detection never
    infers it and calendar projection treats it as due every month.
    """
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    SEMIANNUAL = "semiannual"
    YEARLY = "yearly"
    MANUAL = "manual"
    WEEKLY = "weekly"


# =============================================================================
# RECORDS
# =============================================================================

class Transaction(BaseModel):
    """
    A single bank transaction as imported for one partner.

    NOTE: ratio is deliberately unbounded here. An out-of-range ratio on a
    shared transaction is reported by the engine as InvalidRatioError with
    the transaction id, instead of failing deserialization of the whole
    batch.
    """
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    id: str = Field(
        ...,
        min_length=1,
        description="Opaque unique identifier"
    )
    date: date
    label: str = Field(
        ...,
        description="Bank-provided description, used as clustering key"
    )
    amount: Decimal = Field(
        ...,
        description="Signed amount in EUR (negative = expense)"
    )
    type: TransactionType = Field(
        default=TransactionType.INDIVIDUAL,
        description="Budget participation"
    )
    category: Optional[str] = Field(
        default=None,
        description="Free-text category, informational only"
    )
    ratio: Optional[Decimal] = Field(
        default=None,
        description="Fraction of a shared transaction attributed to user1"
    )
    payer_user_id: str = Field(
        ...,
        min_length=1,
        description="Partner whose account the money moved through"
    )
    is_recurring: bool = False
    created_at: Optional[datetime] = None

    @property
    def effective_ratio(self) -> Decimal:
        """Ratio with the 50/50 default applied."""
        return DEFAULT_RATIO if self.ratio is None else self.ratio

    @property
    def is_expense(self) -> bool:
        return self.amount < 0

    @property
    def is_revenue(self) -> bool:
        return self.amount > 0

    @property
    def is_shared(self) -> bool:
        return self.type == TransactionType.SHARED


class Couple(BaseModel):
    """
    The two partners sharing a pool.

    DESIGN DECISION: Exactly two members. Ratios are always expressed
    relative to user1.
    """
    model_config = ConfigDict(frozen=True)

    user1_id: str = Field(..., min_length=1)
    user2_id: str = Field(..., min_length=1)

    @model_validator(mode='after')
    def validate_distinct(self) -> 'Couple':
        if self.user1_id == self.user2_id:
            raise ValueError("A couple needs two distinct partners")
        return self

    def is_member(self, user_id: Optional[str]) -> bool:
        return user_id in (self.user1_id, self.user2_id)

    def role_of(self, user_id: str) -> PartnerRole:
        """Resolve a user id to its side of the couple."""
        if user_id == self.user1_id:
            return PartnerRole.USER1
        if user_id == self.user2_id:
            return PartnerRole.USER2
        raise ValueError(f"User {user_id} is not part of this couple")

    def user_id_for(self, role: PartnerRole) -> str:
        return self.user1_id if role is PartnerRole.USER1 else self.user2_id

    def partner_of(self, user_id: str) -> str:
        return self.user_id_for(self.role_of(user_id).other)


class SubscriptionSetting(BaseModel):
    """
    User overrides for one recurring charge, keyed by (label, amount).

    These are honored over anything the detector infers.
    """
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    label: str
    amount: Decimal = Field(
        ...,
        ge=0,
        description="Nominal charge amount (positive)"
    )
    is_shared: bool = False
    frequency: Optional[Frequency] = None
    payer_user_id: Optional[str] = None

    @property
    def key(self) -> tuple[str, Decimal]:
        return (self.label, self.amount)
