"""
Audit Logger

DESIGN DECISION: Every change to the couple's ledger is logged.
This provides:
1. Complete traceability of settlements and their reversals
2. Visibility into records the engine refused to aggregate
3. Debugging capability for balances users dispute

The engine performs no I/O, so the audit logger does not persist anything
itself. It writes structured log lines and keeps recent events in memory
for the caller's storage layer to pick up.
"""

import logging
from collections import deque
from decimal import Decimal
from typing import Any, Optional
from uuid import UUID, uuid4

import structlog

from src.config import AppSettings, get_settings
from src.models.audit import AuditEvent, AuditEventBuilder


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def engine_log_level(app: AppSettings) -> str:
    """Effective level for the engine's loggers."""
    return "DEBUG" if app.debug_mode else app.log_level


logging.getLogger("src").setLevel(engine_log_level(get_settings().app))


def get_logger(name: Optional[str] = None) -> Any:
    """Structured logger shared by the engine modules."""
    return structlog.get_logger(name)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. An in-memory buffer (for the caller to persist)
    """

    def __init__(self, history_size: Optional[int] = None):
        """
        Initialize audit logger.

        Args:
            history_size: How many events to keep in memory.
                          Defaults to the configured audit_history_size.
        """
        size = history_size or get_settings().app.audit_history_size
        self._events: deque[AuditEvent] = deque(maxlen=size)
        self._logger = get_logger(__name__)

    @property
    def events(self) -> list[AuditEvent]:
        """Buffered events, oldest first."""
        return list(self._events)

    def drain(self) -> list[AuditEvent]:
        """Return buffered events and clear the buffer."""
        events = list(self._events)
        self._events.clear()
        return events

    def log(self, event: AuditEvent) -> None:
        """Log an audit event locally and buffer it."""
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        self._events.append(event)

    def log_settlement_recorded(
        self,
        settlement_id: UUID,
        amount: Decimal,
        debtor: str,
        note: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.settlement_recorded(
            settlement_id=settlement_id,
            amount=amount,
            debtor=debtor,
            note=note,
            correlation_id=correlation_id,
        ))

    def log_settlement_voided(
        self,
        settlement_id: UUID,
        amount: Decimal,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.settlement_voided(
            settlement_id=settlement_id,
            amount=amount,
            correlation_id=correlation_id,
        ))

    def log_settlement_void_failed(
        self,
        settlement_id: Any,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.settlement_void_failed(
            settlement_id=settlement_id,
            correlation_id=correlation_id,
        ))

    def log_balance_computed(
        self,
        net_balance: Decimal,
        transaction_count: int,
        skipped_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.balance_computed(
            net_balance=net_balance,
            transaction_count=transaction_count,
            skipped_count=skipped_count,
            correlation_id=correlation_id,
        ))

    def log_record_rejected(
        self,
        record_id: Optional[str],
        issue_type: str,
        message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.record_rejected(
            record_id=record_id,
            issue_type=issue_type,
            message=message,
            correlation_id=correlation_id,
        ))

    def log_subscriptions_detected(
        self,
        recurring: int,
        expired: int,
        possible: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.subscriptions_detected(
            recurring=recurring,
            expired=expired,
            possible=possible,
            correlation_id=correlation_id,
        ))

    def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., opening the
    harmonization view). Pass it through all subsequent operations.
    """
    return uuid4()
