"""
Harmonization engine package.

Pure, synchronous transformations over transactions, settlements and
subscription settings. Nothing in here performs I/O.
"""

from src.engine.attribution import (
    calendar_amount,
    can_edit_payer,
    effective_amount,
    effective_frequency,
    index_settings,
    is_shared,
    transaction_share,
)
from src.engine.frequency import monthly_equivalent, next_due_date
from src.engine.ledger import (
    calculate_harmonization,
    category_breakdown,
    compute_balance,
    split_by_payer,
)
from src.engine.ratio import calculate_shares, share
from src.engine.recurrence import (
    detect_subscriptions,
    infer_frequency,
    is_due_in_month,
    project_month,
    subscriptions_due_in_month,
)
from src.engine.settlements import SettlementLedger

__all__ = [
    # Ratio
    "calculate_shares",
    "share",
    # Ledger
    "calculate_harmonization",
    "category_breakdown",
    "compute_balance",
    "split_by_payer",
    # Settlements
    "SettlementLedger",
    # Frequency
    "monthly_equivalent",
    "next_due_date",
    # Recurrence
    "detect_subscriptions",
    "infer_frequency",
    "is_due_in_month",
    "project_month",
    "subscriptions_due_in_month",
    # Attribution
    "calendar_amount",
    "can_edit_payer",
    "effective_amount",
    "effective_frequency",
    "index_settings",
    "is_shared",
    "transaction_share",
]
