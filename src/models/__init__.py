"""
Data Models Package

This package contains all Pydantic models used by the harmonization engine.
All data flowing through the engine must conform to these schemas.
"""

from src.models.transaction import (
    DEFAULT_RATIO,
    Couple,
    Frequency,
    PartnerRole,
    SubscriptionSetting,
    Transaction,
    TransactionType,
)
from src.models.ledger import (
    Balance,
    BalanceReport,
    Harmonization,
    HarmonizationView,
    PartnerTotals,
    Settlement,
    SharedTransactionLine,
    ValidationIssue,
    ValidationResult,
)
from src.models.subscription import (
    MonthlyProjection,
    PossibleRecurring,
    RecurrenceReport,
    SubscriptionCandidate,
    SubscriptionView,
)
from src.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Transaction models
    "DEFAULT_RATIO",
    "Couple",
    "Frequency",
    "PartnerRole",
    "SubscriptionSetting",
    "Transaction",
    "TransactionType",
    # Ledger models
    "Balance",
    "BalanceReport",
    "Harmonization",
    "HarmonizationView",
    "PartnerTotals",
    "Settlement",
    "SharedTransactionLine",
    "ValidationIssue",
    "ValidationResult",
    # Subscription models
    "MonthlyProjection",
    "PossibleRecurring",
    "RecurrenceReport",
    "SubscriptionCandidate",
    "SubscriptionView",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
