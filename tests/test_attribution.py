"""
Tests for shared-cost attribution: my share versus cash I must hold.
"""

import pytest
from decimal import Decimal

from src.engine.attribution import (
    calendar_amount,
    can_edit_payer,
    effective_amount,
    effective_frequency,
    index_settings,
    is_shared,
    transaction_share,
)
from src.errors import InvalidRatioError
from src.models.subscription import SubscriptionCandidate
from src.models.transaction import Frequency, SubscriptionSetting, TransactionType

from tests.conftest import ALICE, BOB, make_tx


@pytest.fixture
def box():
    return SubscriptionCandidate(
        label="Box internet",
        amount=Decimal("30"),
        occurrences=6,
        avg_day_of_month=8,
        frequency=Frequency.MONTHLY,
    )


class TestSubscriptionAttribution:
    """Subscriptions are split 50/50 when shared."""

    def test_shared_paid_by_partner(self, box):
        """I owe half but my account is never debited."""
        settings = [SubscriptionSetting(label="Box internet", amount="30.00", is_shared=True, payer_user_id=BOB)]
        assert effective_amount(box, settings) == Decimal("15")
        assert calendar_amount(box, settings, viewer_id=ALICE) == Decimal("0")

    def test_shared_paid_by_me(self, box):
        settings = [SubscriptionSetting(label="Box internet", amount="30", is_shared=True, payer_user_id=ALICE)]
        assert effective_amount(box, settings) == Decimal("15")
        assert calendar_amount(box, settings, viewer_id=ALICE) == Decimal("30")

    def test_not_shared(self, box):
        assert effective_amount(box) == Decimal("30")
        assert calendar_amount(box, viewer_id=ALICE) == Decimal("30")

    def test_shared_without_viewer_is_not_fronted(self, box):
        settings = [SubscriptionSetting(label="Box internet", amount="30", is_shared=True, payer_user_id=ALICE)]
        assert calendar_amount(box, settings) == Decimal("0")

    def test_partner_import_is_always_shared(self):
        disney = SubscriptionCandidate(
            label="Disney+",
            amount=Decimal("8.99"),
            occurrences=0,
            avg_day_of_month=15,
            frequency=Frequency.MONTHLY,
            is_from_partner=True,
        )
        assert is_shared(disney)
        assert not can_edit_payer(disney)
        assert effective_amount(disney) == Decimal("4.495")
        assert calendar_amount(disney, viewer_id=ALICE) == Decimal("0")

    def test_setting_for_other_amount_does_not_apply(self, box):
        settings = [SubscriptionSetting(label="Box internet", amount="35", is_shared=True, payer_user_id=BOB)]
        assert effective_amount(box, settings) == Decimal("30")
        assert can_edit_payer(box)


class TestEffectiveFrequency:
    """Tests for effective_frequency()."""

    def test_setting_wins(self, box):
        setting = SubscriptionSetting(label="Box internet", amount="30", frequency="yearly")
        assert effective_frequency(box, setting) is Frequency.YEARLY

    def test_setting_without_frequency_falls_back(self, box):
        setting = SubscriptionSetting(label="Box internet", amount="30", is_shared=True)
        assert effective_frequency(box, setting) is Frequency.MONTHLY
        assert effective_frequency(box) is Frequency.MONTHLY


class TestTransactionAttribution:
    """One-off shared transactions use their own ratio."""

    def test_transaction_share_by_role(self, couple):
        tx = make_tx("-100", payer=ALICE, ratio="0.7")
        assert transaction_share(tx, couple, ALICE) == Decimal("70.0")
        assert transaction_share(tx, couple, BOB) == Decimal("30.0")

    def test_effective_amount_shared(self, couple):
        tx = make_tx("-100", payer=BOB, ratio="0.7")
        assert effective_amount(tx, couple=couple, viewer_id=BOB) == Decimal("30.0")

    def test_out_of_range_ratio_raises(self, couple):
        """A bad ratio is refused, never turned into a negative share."""
        tx = make_tx("-100", payer=ALICE, ratio="1.5", id="t-bad")
        with pytest.raises(InvalidRatioError) as exc_info:
            effective_amount(tx, couple=couple, viewer_id=BOB)
        assert exc_info.value.transaction_id == "t-bad"
        with pytest.raises(InvalidRatioError):
            transaction_share(tx, couple, ALICE)

    def test_effective_amount_individual(self):
        tx = make_tx("-42", type=TransactionType.INDIVIDUAL)
        assert effective_amount(tx) == Decimal("42")

    def test_shared_transaction_needs_couple(self):
        with pytest.raises(ValueError, match="needs the couple"):
            effective_amount(make_tx("-10"))

    def test_calendar_amount(self):
        tx = make_tx("-100", payer=BOB)
        assert calendar_amount(tx, viewer_id=ALICE) == Decimal("0")
        assert calendar_amount(tx, viewer_id=BOB) == Decimal("100")
        individual = make_tx("-20", type=TransactionType.INDIVIDUAL, payer=BOB)
        assert calendar_amount(individual, viewer_id=ALICE) == Decimal("20")


class TestIndexSettings:
    """Tests for index_settings()."""

    def test_accepts_dicts(self):
        indexed = index_settings([{"label": "Box internet", "amount": "30", "is_shared": True}])
        assert indexed[("Box internet", Decimal("30"))].is_shared

    def test_none_is_empty(self):
        assert index_settings(None) == {}

    def test_later_setting_wins(self):
        indexed = index_settings([
            SubscriptionSetting(label="Box", amount="30", frequency="monthly"),
            SubscriptionSetting(label="Box", amount="30", frequency="yearly"),
        ])
        assert len(indexed) == 1
        assert indexed[("Box", Decimal("30"))].frequency is Frequency.YEARLY
