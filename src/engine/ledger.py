"""
Ledger Aggregator

Folds the couple's shared transactions into per-partner totals and a single
signed net balance, then reconciles it against the settlement history.

DESIGN DECISION: Full recompute is the only mode. There is no cached
state to invalidate when a transaction changes or a settlement is voided;
the data volume (hundreds of transactions a month) does not warrant one.

Sign conventions:
- net_balance > 0: user2 owes user1
- net_balance < 0: user1 owes user2
- user.total_owed is what that partner owes the OTHER partner
"""

from collections.abc import Iterable
from datetime import date
from decimal import ROUND_DOWN, Decimal
from typing import Any, Optional

from src.audit.logger import get_logger
from src.engine.ratio import resolve_ratio, share
from src.errors import AmbiguousPayerError, InvalidRatioError
from src.models.ledger import (
    Balance,
    BalanceReport,
    Harmonization,
    PartnerTotals,
    Settlement,
    SharedTransactionLine,
)
from src.models.transaction import Couple, PartnerRole, Transaction, TransactionType
from src.validation.validator import ambiguous_payer_issue, coerce_records


UNCATEGORIZED = "Uncategorized"
CENT = Decimal("0.01")

logger = get_logger(__name__)


def filter_period(
    transactions: Iterable[Transaction],
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
) -> list[Transaction]:
    """Keep transactions dated within [date_from, date_to] (inclusive)."""
    out = []
    for tx in transactions:
        if date_from and tx.date < date_from:
            continue
        if date_to and tx.date > date_to:
            continue
        out.append(tx)
    return out


def settlements_in_period(
    settlements: Iterable[Settlement],
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
) -> list[Settlement]:
    """Keep settlements recorded within [date_from, date_to] (inclusive)."""
    out = []
    for s in settlements:
        settled_on = s.settled_at.date()
        if date_from and settled_on < date_from:
            continue
        if date_to and settled_on > date_to:
            continue
        out.append(s)
    return out


def settlement_adjustment(settlements: Iterable[Settlement]) -> Decimal:
    """
    Signed effect of a settlement history on the net balance.

    Each settlement moves the balance toward zero in the direction it was
    recorded for. The result is never clamped: over-settling flips the
    sign, and that history is kept as-is.
    """
    return sum((s.signed_amount for s in settlements), Decimal("0"))


def compute_balance(
    transactions: Iterable[Any],
    settlements: Iterable[Any],
    couple: Couple,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    strict: bool = False,
) -> BalanceReport:
    """
    Compute the couple's balance from scratch.

    Args:
        transactions: Transactions (models or dicts) for the couple
        settlements: Active settlements (models or dicts)
        couple: The two partners; ratios are relative to user1
        date_from: Only count transactions and settlements on or after this date
        date_to: Only count transactions and settlements on or before this date
        strict: Raise on a payer outside the couple instead of skipping it

    Returns:
        BalanceReport with the balance and any skipped records

    Raises:
        MalformedInputError: if either collection is structurally invalid
        InvalidRatioError: if a shared transaction has a ratio outside [0, 1]
        AmbiguousPayerError: in strict mode, if a payer is not a partner
    """
    txs = coerce_records(transactions, Transaction, "transactions")
    history = settlements_in_period(
        coerce_records(settlements, Settlement, "settlements"),
        date_from,
        date_to,
    )

    shared = [
        tx for tx in filter_period(txs, date_from, date_to)
        if tx.type == TransactionType.SHARED and tx.amount != 0
    ]

    # Refuse before aggregating anything: a wrong ratio misstates the balance
    for tx in shared:
        try:
            resolve_ratio(tx.ratio, tx.id)
        except InvalidRatioError:
            logger.error(
                "invalid_ratio",
                transaction_id=tx.id,
                ratio=str(tx.ratio),
            )
            raise

    user1_paid = Decimal("0")
    user2_paid = Decimal("0")
    user1_owes = Decimal("0")  # What user1 owes user2
    user2_owes = Decimal("0")  # What user2 owes user1

    warnings = []
    skipped = []
    counted = 0

    for tx in shared:
        if not couple.is_member(tx.payer_user_id):
            if strict:
                raise AmbiguousPayerError(tx.payer_user_id, tx.id)
            issue = ambiguous_payer_issue(tx)
            warnings.append(issue)
            skipped.append(tx.id)
            logger.warning(
                "transaction_skipped",
                transaction_id=tx.id,
                issue_type=issue.issue_type,
                payer_user_id=tx.payer_user_id,
            )
            continue

        counted += 1
        payer_is_user1 = tx.payer_user_id == couple.user1_id
        counterpart_share = share(tx.amount, tx.ratio, payer_is_user1)

        if tx.is_revenue:
            # Shared income: the receiver owes the other partner's share
            if payer_is_user1:
                user1_owes += counterpart_share
            else:
                user2_owes += counterpart_share
            continue

        if payer_is_user1:
            user1_paid += abs(tx.amount)
            user2_owes += counterpart_share
        else:
            user2_paid += abs(tx.amount)
            user1_owes += counterpart_share

    net_before = user2_owes - user1_owes
    adjustment = settlement_adjustment(history)

    balance = Balance(
        user1=PartnerTotals(
            user_id=couple.user1_id,
            total_paid=user1_paid,
            total_owed=user1_owes,
        ),
        user2=PartnerTotals(
            user_id=couple.user2_id,
            total_paid=user2_paid,
            total_owed=user2_owes,
        ),
        net_balance_before_settlement=net_before,
        settled_total=adjustment,
        net_balance=net_before + adjustment,
        transaction_count=counted,
    )

    logger.debug(
        "balance_computed",
        net_balance=str(balance.net_balance),
        transaction_count=counted,
        settlement_count=len(history),
        skipped_count=len(skipped),
    )

    return BalanceReport(
        balance=balance,
        warnings=warnings,
        skipped_transaction_ids=skipped,
    )


def calculate_harmonization(balance: Balance, couple: Couple) -> Harmonization:
    """
    Turn a balance into a single "X pays Y" instruction.

    The amount is rounded down to the cent, in favor of the debtor.
    """
    debtor = balance.debtor
    if debtor is None:
        return Harmonization(needed=False)

    amount = abs(balance.net_balance).quantize(CENT, rounding=ROUND_DOWN)
    if amount == 0:
        # Sub-cent residue from ratio arithmetic
        return Harmonization(needed=False)

    return Harmonization(
        needed=True,
        amount=amount,
        debtor_id=couple.user_id_for(debtor),
        creditor_id=couple.user_id_for(debtor.other),
    )


def category_breakdown(transactions: Iterable[Any]) -> dict[str, Decimal]:
    """
    Total spending per category.

    Income and internal transfers are not spending and are left out.
    """
    totals: dict[str, Decimal] = {}
    for tx in coerce_records(transactions, Transaction, "transactions"):
        if tx.type == TransactionType.INTERNAL_TRANSFER:
            continue
        if not tx.is_expense:
            continue
        category = tx.category or UNCATEGORIZED
        totals[category] = totals.get(category, Decimal("0")) + abs(tx.amount)
    return totals


def split_by_payer(
    transactions: Iterable[Any],
    couple: Couple,
) -> dict[PartnerRole, list[SharedTransactionLine]]:
    """
    List shared transactions (expenses and income) under the partner who
    paid or received them, newest first.
    """
    lines: dict[PartnerRole, list[SharedTransactionLine]] = {
        PartnerRole.USER1: [],
        PartnerRole.USER2: [],
    }
    txs = coerce_records(transactions, Transaction, "transactions")
    for tx in sorted(txs, key=lambda t: t.date, reverse=True):
        if tx.type != TransactionType.SHARED:
            continue
        if not couple.is_member(tx.payer_user_id):
            continue
        lines[couple.role_of(tx.payer_user_id)].append(SharedTransactionLine(
            id=tx.id,
            date=tx.date,
            label=tx.label,
            amount=tx.amount,
            category=tx.category,
            ratio=tx.effective_ratio,
            is_revenue=tx.is_revenue,
        ))
    return lines
