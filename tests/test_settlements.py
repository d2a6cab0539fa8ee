"""
Tests for the settlement ledger.
"""

import pytest
from datetime import datetime
from decimal import Decimal
from uuid import uuid4

from src.audit import AuditLogger
from src.engine.ledger import compute_balance
from src.engine.settlements import SettlementLedger
from src.errors import HarmonizationError, NotFoundError
from src.models.audit import AuditEventType
from src.models.transaction import PartnerRole

from tests.conftest import BOB, make_tx


@pytest.fixture
def audit_logger():
    return AuditLogger(history_size=50)


@pytest.fixture
def ledger(audit_logger):
    return SettlementLedger(audit_logger=audit_logger)


class TestRecord:
    """Tests for SettlementLedger.record()."""

    def test_record_appends(self, ledger):
        settlement = ledger.record(Decimal("50"), note="Octobre")

        assert len(ledger) == 1
        assert settlement.id in ledger
        assert settlement.amount == Decimal("50")
        assert settlement.note == "Octobre"
        assert settlement.debtor is PartnerRole.USER2
        assert ledger.get(settlement.id) == settlement
        assert ledger.get(str(settlement.id)) == settlement

    @pytest.mark.parametrize("amount", ["0", "-10"])
    def test_record_rejects_non_positive(self, ledger, amount):
        with pytest.raises(HarmonizationError, match="must be positive"):
            ledger.record(Decimal(amount))
        assert len(ledger) == 0

    def test_record_is_audited(self, ledger, audit_logger):
        settlement = ledger.record(Decimal("12.50"))
        event = audit_logger.events[-1]
        assert event.event_type == AuditEventType.SETTLEMENT_RECORDED
        assert event.entity_id == str(settlement.id)
        assert event.details["amount"] == "12.50"

    def test_full_settlement_scenario(self, couple, ledger):
        """Alice paid 100 shared; Bob settles the 50 he owes."""
        txs = [make_tx("-100")]
        assert compute_balance(txs, ledger.settlements, couple).balance.net_balance == Decimal("50")

        ledger.record(Decimal("50"))

        assert compute_balance(txs, ledger.settlements, couple).balance.net_balance == 0


class TestSettle:
    """Tests for SettlementLedger.settle()."""

    def test_settle_user1_debt(self, couple, ledger):
        txs = [make_tx("-100", payer=BOB)]
        before = compute_balance(txs, [], couple).balance

        settlement = ledger.settle(before)

        assert settlement.debtor is PartnerRole.USER1
        assert settlement.amount == Decimal("50")
        assert compute_balance(txs, ledger.settlements, couple).balance.net_balance == 0

    def test_settle_even_balance_raises(self, couple, ledger):
        balance = compute_balance([], [], couple).balance
        with pytest.raises(HarmonizationError, match="Nothing to settle"):
            ledger.settle(balance)


class TestVoid:
    """Tests for SettlementLedger.void()."""

    def test_void_restores_balance_exactly(self, couple, ledger):
        txs = [make_tx("-100", ratio="0.3"), make_tx("-37.42", payer=BOB)]
        before = compute_balance(txs, ledger.settlements, couple).balance

        settlement = ledger.record(Decimal("20"))
        assert compute_balance(txs, ledger.settlements, couple).balance.net_balance != before.net_balance

        removed = ledger.void(settlement.id)
        after = compute_balance(txs, ledger.settlements, couple).balance

        assert removed == settlement
        assert after.net_balance == before.net_balance
        assert after.settled_total == 0

    def test_void_unknown_raises(self, ledger, audit_logger):
        with pytest.raises(NotFoundError):
            ledger.void(uuid4())
        assert audit_logger.events[-1].event_type == AuditEventType.SETTLEMENT_VOID_FAILED

    def test_void_garbage_id_raises_not_found(self, ledger):
        with pytest.raises(NotFoundError):
            ledger.void("not-a-uuid")

    def test_void_twice_raises(self, ledger):
        settlement = ledger.record(Decimal("5"))
        ledger.void(str(settlement.id))
        with pytest.raises(NotFoundError):
            ledger.void(settlement.id)

    def test_void_is_audited(self, ledger, audit_logger):
        settlement = ledger.record(Decimal("5"))
        ledger.void(settlement.id)
        assert [e.event_type for e in audit_logger.events] == [
            AuditEventType.SETTLEMENT_RECORDED,
            AuditEventType.SETTLEMENT_VOIDED,
        ]


class TestHistory:
    """Tests for history and seeding."""

    def test_history_newest_first(self, ledger):
        first = ledger.record(Decimal("1"), settled_at=datetime(2026, 1, 1))
        third = ledger.record(Decimal("3"), settled_at=datetime(2026, 3, 1))
        second = ledger.record(Decimal("2"), settled_at=datetime(2026, 2, 1))

        assert ledger.history() == [third, second, first]
        assert ledger.history(limit=2) == [third, second]
        assert ledger.settlements == [first, second, third]

    def test_history_limit_zero(self, ledger):
        ledger.record(Decimal("1"))
        assert ledger.history(limit=0) == []

    def test_total(self, ledger):
        ledger.record(Decimal("10"))
        ledger.record(Decimal("2.5"), debtor=PartnerRole.USER1)
        assert ledger.total == Decimal("12.5")

    def test_seed_from_dicts(self):
        ledger = SettlementLedger([
            {"amount": "40", "settled_at": "2026-05-01T10:00:00"},
            {"amount": "10", "debtor": "user1", "settled_at": "2026-06-01T10:00:00"},
        ])
        assert len(ledger) == 2
        assert ledger.history()[0].amount == Decimal("10")

    def test_get_unknown_raises(self, ledger):
        with pytest.raises(NotFoundError):
            ledger.get(uuid4())
