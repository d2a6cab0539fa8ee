"""
Settlement Ledger

Append-only record of "debt cleared" events.

DESIGN DECISION: The ledger trusts its caller for the amount. Recording a
settlement stores whatever |net_balance| the presentation layer showed the
user at that moment; the ledger does not re-derive it. Reversal removes the
record and the next balance computation simply leaves it out.
"""

from collections.abc import Iterable
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional, Union
from uuid import UUID

from src.audit.logger import AuditLogger, get_logger
from src.config import get_settings
from src.engine.ratio import Number, to_decimal
from src.errors import HarmonizationError, NotFoundError
from src.models.ledger import Balance, Settlement
from src.models.transaction import PartnerRole
from src.validation.validator import coerce_records


logger = get_logger(__name__)


class SettlementLedger:
    """
    In-memory settlement history for one couple.

    The caller owns persistence: seed the ledger with stored settlements,
    and persist whatever `record` returns or `void` removes.
    """

    def __init__(
        self,
        settlements: Optional[Iterable[Any]] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        """
        Args:
            settlements: Existing settlements (models or dicts)
            audit_logger: Receives an event for every record/void.
                          If None, only local logging happens.
        """
        self._settlements: dict[UUID, Settlement] = {}
        for s in coerce_records(settlements or [], Settlement, "settlements"):
            self._settlements[s.id] = s
        self._audit_logger = audit_logger

    def __len__(self) -> int:
        return len(self._settlements)

    def __contains__(self, settlement_id: object) -> bool:
        return settlement_id in self._settlements

    @property
    def settlements(self) -> list[Settlement]:
        """Active settlements, oldest first."""
        return sorted(self._settlements.values(), key=lambda s: s.settled_at)

    @property
    def total(self) -> Decimal:
        """Sum of settled amounts, regardless of direction."""
        return sum((s.amount for s in self._settlements.values()), Decimal("0"))

    def get(self, settlement_id: Union[UUID, str]) -> Settlement:
        key = self._key(settlement_id)
        if key not in self._settlements:
            raise NotFoundError(f"Settlement {settlement_id} not found")
        return self._settlements[key]

    def history(self, limit: Optional[int] = None) -> list[Settlement]:
        """Most recent settlements first."""
        if limit is None:
            limit = get_settings().app.settlement_history_limit
        return list(reversed(self.settlements))[:limit]

    def record(
        self,
        amount: Number,
        note: Optional[str] = None,
        debtor: PartnerRole = PartnerRole.USER2,
        settled_at: Optional[datetime] = None,
    ) -> Settlement:
        """
        Append a settlement.

        Args:
            amount: What the debtor paid; the caller's |net_balance| snapshot
            note: Free-text note
            debtor: Which partner paid (the net debtor at this moment)
            settled_at: When it happened; defaults to now (UTC)

        Raises:
            HarmonizationError: if the amount is not positive
        """
        value = to_decimal(amount)
        if not value.is_finite() or value <= 0:
            raise HarmonizationError(f"Settlement amount must be positive, got {amount}")

        fields: dict[str, Any] = {"amount": value, "note": note, "debtor": debtor}
        if settled_at is not None:
            fields["settled_at"] = settled_at
        settlement = Settlement(**fields)

        self._settlements[settlement.id] = settlement

        logger.info(
            "settlement_recorded",
            settlement_id=str(settlement.id),
            amount=str(settlement.amount),
            debtor=settlement.debtor.value,
        )
        if self._audit_logger:
            self._audit_logger.log_settlement_recorded(
                settlement_id=settlement.id,
                amount=settlement.amount,
                debtor=settlement.debtor.value,
                note=note,
            )

        return settlement

    def settle(self, balance: Balance, note: Optional[str] = None) -> Settlement:
        """
        Record a settlement that clears `balance` exactly.

        Raises:
            HarmonizationError: if there is nothing to settle
        """
        debtor = balance.debtor
        if debtor is None:
            raise HarmonizationError("Nothing to settle: the balance is already even")
        return self.record(abs(balance.net_balance), note=note, debtor=debtor)

    def void(self, settlement_id: Union[UUID, str]) -> Settlement:
        """
        Reverse a settlement.

        Returns:
            The removed settlement

        Raises:
            NotFoundError: if no settlement has this id
        """
        try:
            key = self._key(settlement_id)
        except NotFoundError:
            key = None

        if key is None or key not in self._settlements:
            logger.warning("settlement_void_failed", settlement_id=str(settlement_id))
            if self._audit_logger:
                self._audit_logger.log_settlement_void_failed(settlement_id)
            raise NotFoundError(f"Settlement {settlement_id} not found")

        removed = self._settlements.pop(key)

        logger.info(
            "settlement_voided",
            settlement_id=str(removed.id),
            amount=str(removed.amount),
        )
        if self._audit_logger:
            self._audit_logger.log_settlement_voided(
                settlement_id=removed.id,
                amount=removed.amount,
            )

        return removed

    @staticmethod
    def _key(settlement_id: Union[UUID, str]) -> UUID:
        if isinstance(settlement_id, UUID):
            return settlement_id
        try:
            return UUID(str(settlement_id))
        except ValueError as e:
            raise NotFoundError(f"Settlement {settlement_id} not found") from e
