"""
Tests for the ledger aggregator.

Sign convention throughout: positive net balance means user2 (bob) owes
user1 (alice).
"""

import pytest
from datetime import date, datetime
from decimal import Decimal

from src.engine.ledger import (
    calculate_harmonization,
    category_breakdown,
    compute_balance,
    filter_period,
    split_by_payer,
)
from src.errors import AmbiguousPayerError, InvalidRatioError, MalformedInputError
from src.models.ledger import Settlement
from src.models.transaction import PartnerRole, TransactionType

from tests.conftest import ALICE, BOB, make_tx


class TestComputeBalance:
    """Tests for compute_balance()."""

    def test_simple_split(self, couple):
        """Alice pays 100 shared at 50/50: Bob owes 50."""
        report = compute_balance([make_tx("-100", payer=ALICE)], [], couple)
        balance = report.balance

        assert balance.user1.total_paid == Decimal("100")
        assert balance.user2.total_owed == Decimal("50")
        assert balance.user1.total_owed == Decimal("0")
        assert balance.net_balance == Decimal("50")
        assert balance.debtor is PartnerRole.USER2
        assert balance.transaction_count == 1

    def test_symmetric_spending_is_zero_sum(self, couple):
        """Equal 50/50 expenses on both sides cancel out."""
        txs = [make_tx("-60", payer=ALICE), make_tx("-60", payer=BOB)]
        balance = compute_balance(txs, [], couple).balance
        assert balance.net_balance == 0
        assert balance.is_settled

    def test_net_is_difference_of_owed(self, couple):
        txs = [
            make_tx("-100", payer=ALICE, ratio="0.7"),
            make_tx("-40", payer=BOB, ratio="0.25"),
        ]
        balance = compute_balance(txs, [], couple).balance
        assert balance.user2.total_owed == Decimal("30.0")
        assert balance.user1.total_owed == Decimal("10.00")
        assert balance.net_balance == balance.user2.total_owed - balance.user1.total_owed

    def test_user2_payer_makes_user1_debtor(self, couple):
        balance = compute_balance([make_tx("-100", payer=BOB)], [], couple).balance
        assert balance.net_balance == Decimal("-50")
        assert balance.debtor is PartnerRole.USER1

    def test_shared_income_is_owed_by_receiver(self, couple):
        """Bob receives 200 shared income: he owes Alice her half."""
        txs = [make_tx("200", payer=BOB), make_tx("-100", payer=BOB)]
        balance = compute_balance(txs, [], couple).balance
        assert balance.user2.total_owed == Decimal("100")
        assert balance.user1.total_owed == Decimal("50")
        assert balance.user2.total_paid == Decimal("100")
        assert balance.net_balance == Decimal("50")

    def test_non_shared_transactions_are_ignored(self, couple):
        txs = [
            make_tx("-500", type=TransactionType.INDIVIDUAL),
            make_tx("-300", type=TransactionType.INTERNAL_TRANSFER),
            make_tx("0"),
        ]
        report = compute_balance(txs, [], couple)
        assert report.balance.net_balance == 0
        assert report.balance.transaction_count == 0

    def test_ambiguous_payer_is_skipped_with_warning(self, couple):
        stranger = make_tx("-80", payer="carol", id="t-carol")
        report = compute_balance([make_tx("-100"), stranger], [], couple)

        assert report.balance.net_balance == Decimal("50")
        assert report.skipped_transaction_ids == ["t-carol"]
        assert report.has_warnings
        assert report.warnings[0].issue_type == "ambiguous_payer"
        assert report.warnings[0].record_id == "t-carol"

    def test_strict_mode_raises_on_ambiguous_payer(self, couple):
        stranger = make_tx("-80", payer="carol", id="t-carol")
        with pytest.raises(AmbiguousPayerError) as exc_info:
            compute_balance([stranger], [], couple, strict=True)
        assert exc_info.value.transaction_id == "t-carol"

    def test_invalid_ratio_refuses_whole_balance(self, couple):
        txs = [make_tx("-100"), make_tx("-50", ratio="1.2", id="t-bad")]
        with pytest.raises(InvalidRatioError) as exc_info:
            compute_balance(txs, [], couple)
        assert exc_info.value.transaction_id == "t-bad"

    def test_invalid_ratio_on_individual_is_ignored(self, couple):
        tx = make_tx("-50", ratio="3", type=TransactionType.INDIVIDUAL)
        assert compute_balance([tx], [], couple).balance.net_balance == 0

    def test_accepts_plain_dicts(self, couple):
        record = {
            "id": "d1",
            "date": "2026-10-01",
            "label": "Loyer",
            "amount": "-900",
            "type": "shared",
            "payer_user_id": ALICE,
        }
        balance = compute_balance([record], [{"amount": "100"}], couple).balance
        assert balance.net_balance_before_settlement == Decimal("450")
        assert balance.net_balance == Decimal("350")

    def test_malformed_record_raises(self, couple):
        records = [{"id": "d1", "label": "Loyer", "amount": "-900", "payer_user_id": ALICE}]
        with pytest.raises(MalformedInputError) as exc_info:
            compute_balance(records, [], couple)
        assert exc_info.value.collection == "transactions"
        assert 0 in exc_info.value.errors

    def test_missing_collection_raises(self, couple):
        with pytest.raises(MalformedInputError):
            compute_balance(None, [], couple)

    def test_period_filter_is_inclusive(self, couple):
        txs = [
            make_tx("-100", when=date(2026, 9, 30)),
            make_tx("-100", when=date(2026, 10, 1)),
            make_tx("-100", when=date(2026, 10, 31)),
            make_tx("-100", when=date(2026, 11, 1)),
        ]
        balance = compute_balance(
            txs, [], couple, date_from=date(2026, 10, 1), date_to=date(2026, 10, 31),
        ).balance
        assert balance.net_balance == Decimal("100")
        assert balance.transaction_count == 2


class TestSettlementsInBalance:
    """Settlements shift the net balance without touching transactions."""

    def test_full_settlement_clears_balance(self, couple):
        txs = [make_tx("-100")]
        balance = compute_balance(txs, [Settlement(amount="50")], couple).balance
        assert balance.net_balance_before_settlement == Decimal("50")
        assert balance.settled_total == Decimal("-50")
        assert balance.net_balance == 0

    def test_over_settlement_flips_sign(self, couple):
        balance = compute_balance(
            [make_tx("-100")], [Settlement(amount="80")], couple,
        ).balance
        assert balance.net_balance == Decimal("-30")

    def test_period_only_applies_settlements_in_period(self, couple):
        txs = [
            make_tx("-100", when=date(2024, 1, 10)),
            make_tx("-100", when=date(2024, 2, 10)),
        ]
        settlements = [Settlement(amount="50", settled_at=datetime(2024, 1, 31, 18, 0))]

        february = compute_balance(
            txs, settlements, couple, date_from=date(2024, 2, 1), date_to=date(2024, 2, 29),
        ).balance
        assert february.net_balance == Decimal("50")
        assert february.settled_total == 0

        january = compute_balance(
            txs, settlements, couple, date_from=date(2024, 1, 1), date_to=date(2024, 1, 31),
        ).balance
        assert january.net_balance == 0

        overall = compute_balance(txs, settlements, couple).balance
        assert overall.net_balance == Decimal("50")

    def test_user1_settlement_raises_balance(self, couple):
        txs = [make_tx("-100", payer=BOB)]
        balance = compute_balance(txs, [Settlement(amount="50", debtor="user1")], couple).balance
        assert balance.net_balance == 0


class TestHarmonization:
    """Tests for calculate_harmonization()."""

    def test_rounds_down_to_cent(self, couple):
        """Bob owes 66.665; the instruction says 66.66."""
        balance = compute_balance([make_tx("-100", ratio="0.33335")], [], couple).balance
        assert balance.net_balance == Decimal("66.66500")

        harmonization = calculate_harmonization(balance, couple)
        assert harmonization.needed
        assert harmonization.amount == Decimal("66.66")
        assert harmonization.debtor_id == BOB
        assert harmonization.creditor_id == ALICE

    def test_user1_debtor(self, couple):
        balance = compute_balance([make_tx("-100", payer=BOB)], [], couple).balance
        harmonization = calculate_harmonization(balance, couple)
        assert harmonization.debtor_id == ALICE
        assert harmonization.creditor_id == BOB
        assert harmonization.amount == Decimal("50.00")

    def test_not_needed_when_even(self, couple):
        balance = compute_balance([], [], couple).balance
        harmonization = calculate_harmonization(balance, couple)
        assert not harmonization.needed
        assert harmonization.debtor_id is None

    def test_sub_cent_residue_is_not_needed(self, couple):
        balance = compute_balance([make_tx("-0.01", ratio="0.9")], [], couple).balance
        assert balance.net_balance == Decimal("0.001")
        assert not calculate_harmonization(balance, couple).needed


class TestBreakdowns:
    """Tests for category_breakdown(), split_by_payer() and filter_period()."""

    def test_category_breakdown(self):
        txs = [
            make_tx("-30", category="Courses"),
            make_tx("-20", category="Courses"),
            make_tx("-15"),
            make_tx("1000", category="Salaire"),
            make_tx("-200", type=TransactionType.INTERNAL_TRANSFER, category="Epargne"),
        ]
        assert category_breakdown(txs) == {
            "Courses": Decimal("50"),
            "Uncategorized": Decimal("15"),
        }

    def test_split_by_payer_newest_first(self, couple):
        txs = [
            make_tx("-10", payer=ALICE, when=date(2026, 10, 1), id="a-old"),
            make_tx("-20", payer=ALICE, when=date(2026, 10, 5), id="a-new"),
            make_tx("50", payer=BOB, id="b-income"),
            make_tx("-99", payer=BOB, type=TransactionType.INDIVIDUAL),
            make_tx("-5", payer="carol"),
        ]
        lines = split_by_payer(txs, couple)

        assert [line.id for line in lines[PartnerRole.USER1]] == ["a-new", "a-old"]
        assert [line.id for line in lines[PartnerRole.USER2]] == ["b-income"]
        assert lines[PartnerRole.USER2][0].is_revenue
        assert lines[PartnerRole.USER1][0].ratio == Decimal("0.5")

    def test_filter_period_open_ended(self):
        txs = [make_tx("-1", when=date(2026, 1, 1)), make_tx("-1", when=date(2026, 6, 1))]
        assert len(filter_period(txs)) == 2
        assert len(filter_period(txs, date_from=date(2026, 3, 1))) == 1
        assert len(filter_period(txs, date_to=date(2026, 3, 1))) == 1
