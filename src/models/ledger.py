"""
Ledger Models

Derived balance views and the settlement record.

DESIGN DECISION: Balances are never persisted by the engine. They are
recomputed from transactions and settlements every time they are requested,
so these models carry no identity of their own. Settlements are the only
records the engine creates, and they are immutable.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field

from src.models.transaction import PartnerRole


ZERO = Decimal("0")


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single data-quality issue found on an input record."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'ambiguous_payer', 'invalid_ratio')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    record_id: Optional[str] = Field(
        default=None,
        description="Identifier of the offending record, when known"
    )
    suggested_fix: Optional[str] = None


class ValidationResult(BaseModel):
    """
    Result of the two-stage validation of a transaction batch.

    Stage 1: Schema validation (types, required fields)
    Stage 2: Semantic validation (ratio range, payer membership)
    """

    validated_at: datetime = Field(
        default_factory=datetime.utcnow
    )
    schema_valid: bool
    semantic_valid: bool
    record_count: int = Field(ge=0)

    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return self.schema_valid and self.semantic_valid

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")

    @property
    def warnings(self) -> list[ValidationIssue]:
        return [issue for issue in self.issues if issue.severity == "warning"]


# =============================================================================
# SETTLEMENTS
# =============================================================================

class Settlement(BaseModel):
    """
    A recorded real-world payment that clears outstanding debt.

    CRITICAL: Settlements are never mutated. Reversal removes the record
    and the balance is recomputed.

    `debtor` is the side that was the net debtor when the settlement was
    recorded. The positive-balance convention (user2 owes user1) makes
    USER2 the default.
    """
    model_config = ConfigDict(frozen=True)

    id: UUID = Field(
        default_factory=uuid4,
        description="Unique settlement ID"
    )
    amount: Decimal = Field(
        ...,
        gt=0,
        description="Amount paid by the debtor to the creditor"
    )
    note: Optional[str] = Field(
        default=None,
        max_length=500
    )
    settled_at: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the payment was recorded"
    )
    debtor: PartnerRole = Field(
        default=PartnerRole.USER2,
        description="Which partner paid this settlement"
    )

    @property
    def signed_amount(self) -> Decimal:
        """Effect on the net balance (positive net = user2 owes user1)."""
        return -self.amount if self.debtor is PartnerRole.USER2 else self.amount


# =============================================================================
# BALANCE VIEWS
# =============================================================================

class PartnerTotals(BaseModel):
    """What one partner paid and owes over the shared transactions."""

    user_id: str
    total_paid: Decimal = ZERO
    total_owed: Decimal = Field(
        default=ZERO,
        description="What this partner owes the other"
    )


class Balance(BaseModel):
    """
    Net position of the couple.

    net_balance > 0 means user2 owes user1; < 0 means user1 owes user2.
    """

    user1: PartnerTotals
    user2: PartnerTotals
    net_balance_before_settlement: Decimal
    settled_total: Decimal = Field(
        default=ZERO,
        description="Signed effect of all active settlements"
    )
    net_balance: Decimal
    transaction_count: int = Field(default=0, ge=0)

    @property
    def is_settled(self) -> bool:
        return self.net_balance == 0

    @property
    def debtor(self) -> Optional[PartnerRole]:
        if self.net_balance > 0:
            return PartnerRole.USER2
        if self.net_balance < 0:
            return PartnerRole.USER1
        return None


class BalanceReport(BaseModel):
    """A balance plus the records that could not be aggregated."""

    balance: Balance
    warnings: list[ValidationIssue] = Field(default_factory=list)
    skipped_transaction_ids: list[str] = Field(default_factory=list)

    @property
    def has_warnings(self) -> bool:
        return bool(self.warnings)


class Harmonization(BaseModel):
    """
    Who pays whom to even things out.

    The amount is rounded down to the cent, in favor of the debtor.
    """

    needed: bool
    amount: Decimal = ZERO
    debtor_id: Optional[str] = None
    creditor_id: Optional[str] = None


class SharedTransactionLine(BaseModel):
    """A shared transaction as listed under the partner who paid it."""

    id: str
    date: date
    label: str
    amount: Decimal
    category: Optional[str] = None
    ratio: Decimal
    is_revenue: bool


class HarmonizationView(BaseModel):
    """Everything the harmonization screen shows for one period."""

    report: BalanceReport
    harmonization: Harmonization
    category_breakdown: dict[str, Decimal] = Field(default_factory=dict)
    user1_transactions: list[SharedTransactionLine] = Field(default_factory=list)
    user2_transactions: list[SharedTransactionLine] = Field(default_factory=list)
    settlements: list[Settlement] = Field(default_factory=list)
