"""
Audit Models

Every user-visible change to the couple's ledger is logged for audit
purposes: settlements recorded and reversed, records the engine refused to
aggregate, and the balances it produced.

DESIGN DECISION: Audit events are append-only. We never delete or modify
them, even when the settlement they describe is voided.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Settlements
    SETTLEMENT_RECORDED = "settlement_recorded"
    SETTLEMENT_VOIDED = "settlement_voided"
    SETTLEMENT_VOID_FAILED = "settlement_void_failed"

    # Computations
    BALANCE_COMPUTED = "balance_computed"
    RECORD_REJECTED = "record_rejected"
    SUBSCRIPTIONS_DETECTED = "subscriptions_detected"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'settlement', 'transaction', 'balance')"
    )
    entity_id: Optional[str] = None

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one harmonization view)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(default_factory=dict)

    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.settlement_recorded(settlement_id, amount, "user2")
        event = AuditEventBuilder.record_rejected(tx_id, "ambiguous_payer", message)
    """

    @staticmethod
    def settlement_recorded(
        settlement_id: UUID,
        amount: Decimal,
        debtor: str,
        note: Optional[str] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SETTLEMENT_RECORDED,
            entity_type="settlement",
            entity_id=str(settlement_id),
            correlation_id=correlation_id,
            description=f"Settlement recorded: {debtor} paid €{amount}",
            details={
                "amount": str(amount),
                "debtor": debtor,
                "note": note,
            },
            is_user_action=True,
        )

    @staticmethod
    def settlement_voided(
        settlement_id: UUID,
        amount: Decimal,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SETTLEMENT_VOIDED,
            entity_type="settlement",
            entity_id=str(settlement_id),
            correlation_id=correlation_id,
            description=f"Settlement of €{amount} reversed",
            details={
                "amount": str(amount),
            },
            is_user_action=True,
        )

    @staticmethod
    def settlement_void_failed(
        settlement_id: Any,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SETTLEMENT_VOID_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="settlement",
            entity_id=str(settlement_id),
            correlation_id=correlation_id,
            description="Attempted to reverse an unknown settlement",
            error_message="not_found",
            is_user_action=True,
        )

    @staticmethod
    def balance_computed(
        net_balance: Decimal,
        transaction_count: int,
        skipped_count: int,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BALANCE_COMPUTED,
            entity_type="balance",
            correlation_id=correlation_id,
            description=f"Balance computed over {transaction_count} shared transactions",
            details={
                "net_balance": str(net_balance),
                "transaction_count": transaction_count,
                "skipped_count": skipped_count,
            },
        )

    @staticmethod
    def record_rejected(
        record_id: Optional[str],
        issue_type: str,
        message: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORD_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="transaction",
            entity_id=record_id,
            correlation_id=correlation_id,
            description=f"Transaction skipped: {issue_type}",
            error_message=message,
            details={
                "issue_type": issue_type,
            },
        )

    @staticmethod
    def subscriptions_detected(
        recurring: int,
        expired: int,
        possible: int,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SUBSCRIPTIONS_DETECTED,
            entity_type="subscriptions",
            correlation_id=correlation_id,
            description=(
                f"Detected {recurring} recurring, {expired} expired "
                f"and {possible} possible subscriptions"
            ),
            details={
                "recurring": recurring,
                "expired": expired,
                "possible": possible,
            },
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
