"""
Main Orchestrator for the Harmonization Engine

This module ties the engine components together into the two views a
presentation layer asks for:
1. Harmonization (transactions + settlements → balance → who pays whom)
2. Subscriptions (transactions + settings → candidates → month calendar)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Every view is recomputed from the inputs it is given
- The viewing user is always an explicit argument, never ambient state
- Settlement changes and skipped records are audited

The components themselves never call each other's views; this is the only
place they are composed.
"""

from datetime import date
from typing import Any, Iterable, Optional
from uuid import UUID

from src.audit import AuditLogger, create_correlation_id
from src.engine.attribution import SettingsInput
from src.engine.ledger import (
    calculate_harmonization,
    category_breakdown,
    compute_balance,
    filter_period,
    split_by_payer,
)
from src.engine.recurrence import detect_subscriptions, project_month
from src.engine.settlements import SettlementLedger
from src.errors import HarmonizationError
from src.models.ledger import HarmonizationView, Settlement
from src.models.subscription import SubscriptionView
from src.models.transaction import Couple, PartnerRole, Transaction
from src.validation import coerce_records


class HarmonizationFlow:
    """
    Orchestrates the harmonization view and settlement actions for a couple.

    Flow:
    1. Validate → coerce input records (malformed input is fatal)
    2. Aggregate → balance over shared transactions, minus settlements
    3. Harmonize → single "X pays Y" instruction
    4. Settle / Void → append or reverse a settlement, then recompute
    """

    def __init__(
        self,
        couple: Couple,
        ledger: Optional[SettlementLedger] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._couple = couple
        self._audit_logger = audit_logger
        self._ledger = ledger or SettlementLedger(audit_logger=audit_logger)

    @property
    def ledger(self) -> SettlementLedger:
        return self._ledger

    def view(
        self,
        transactions: Iterable[Any],
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        correlation_id: Optional[UUID] = None,
    ) -> HarmonizationView:
        """
        Build the harmonization view.

        Raises:
            MalformedInputError: structurally invalid transactions
            InvalidRatioError: a shared transaction with a ratio outside [0, 1]
        """
        correlation_id = correlation_id or create_correlation_id()
        txs = coerce_records(transactions, Transaction, "transactions")
        settlements = self._ledger.settlements

        try:
            report = compute_balance(txs, settlements, self._couple, date_from, date_to)
        except HarmonizationError as e:
            if self._audit_logger:
                self._audit_logger.log_error(
                    error_type=type(e).__name__,
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            raise

        if self._audit_logger:
            for issue in report.warnings:
                self._audit_logger.log_record_rejected(
                    record_id=issue.record_id,
                    issue_type=issue.issue_type,
                    message=issue.message,
                    correlation_id=correlation_id,
                )
            self._audit_logger.log_balance_computed(
                net_balance=report.balance.net_balance,
                transaction_count=report.balance.transaction_count,
                skipped_count=len(report.skipped_transaction_ids),
                correlation_id=correlation_id,
            )

        in_period = filter_period(txs, date_from, date_to)
        by_payer = split_by_payer(in_period, self._couple)

        return HarmonizationView(
            report=report,
            harmonization=calculate_harmonization(report.balance, self._couple),
            category_breakdown=category_breakdown(in_period),
            user1_transactions=by_payer[PartnerRole.USER1],
            user2_transactions=by_payer[PartnerRole.USER2],
            settlements=self._ledger.history(),
        )

    def settle(
        self,
        transactions: Iterable[Any],
        note: Optional[str] = None,
    ) -> tuple[Settlement, HarmonizationView]:
        """
        Clear the current balance and return the recomputed view.

        The settled amount is the exact |net_balance| at this moment.
        """
        txs = coerce_records(transactions, Transaction, "transactions")
        current = compute_balance(txs, self._ledger.settlements, self._couple)
        settlement = self._ledger.settle(current.balance, note=note)
        return settlement, self.view(txs)

    def void(
        self,
        settlement_id: Any,
        transactions: Iterable[Any],
    ) -> HarmonizationView:
        """
        Reverse a settlement and return the recomputed view.

        Raises:
            NotFoundError: if the settlement does not exist
        """
        self._ledger.void(settlement_id)
        return self.view(transactions)


class SubscriptionFlow:
    """
    Orchestrates the subscriptions view for one viewing partner.

    Flow:
    1. Detect → cluster charges, infer frequency, apply settings, judge expiry
    2. Project → which recurring charges fall due in the requested month
    """

    def __init__(
        self,
        couple: Optional[Couple] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._couple = couple
        self._audit_logger = audit_logger

    def view(
        self,
        transactions: Iterable[Any],
        viewer_id: str,
        month: int,
        year: int,
        settings: SettingsInput = None,
        today: Optional[date] = None,
        correlation_id: Optional[UUID] = None,
    ) -> SubscriptionView:
        report = detect_subscriptions(
            transactions,
            settings=settings,
            couple=self._couple,
            viewer_id=viewer_id,
            today=today,
        )

        if self._audit_logger:
            self._audit_logger.log_subscriptions_detected(
                recurring=len(report.recurring),
                expired=len(report.expired),
                possible=len(report.possible),
                correlation_id=correlation_id,
            )

        projection = project_month(
            report.recurring,
            month,
            year,
            settings=settings,
            viewer_id=viewer_id,
        )

        return SubscriptionView(report=report, projection=projection)


def create_app_components(
    couple: Couple,
    settlements: Optional[Iterable[Any]] = None,
) -> tuple[HarmonizationFlow, SubscriptionFlow, AuditLogger]:
    """
    Factory function to create all engine components for one couple.

    Args:
        couple: The two partners
        settlements: Settlement history loaded by the caller

    Returns:
        (harmonization_flow, subscription_flow, audit_logger)
    """
    audit_logger = AuditLogger()
    ledger = SettlementLedger(settlements, audit_logger=audit_logger)

    harmonization_flow = HarmonizationFlow(
        couple,
        ledger=ledger,
        audit_logger=audit_logger,
    )
    subscription_flow = SubscriptionFlow(
        couple,
        audit_logger=audit_logger,
    )

    return harmonization_flow, subscription_flow, audit_logger
