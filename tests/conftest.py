"""
Shared fixtures for the harmonization engine tests.

No I/O anywhere: every test builds its records in memory.
"""

import itertools
from datetime import date
from decimal import Decimal

import pytest

from src.models.transaction import Couple, Transaction, TransactionType


ALICE = "alice"
BOB = "bob"

_ids = itertools.count(1)


def make_tx(
    amount,
    payer=ALICE,
    type=TransactionType.SHARED,
    ratio=None,
    when=date(2026, 10, 1),
    label="Courses",
    category=None,
    **extra,
) -> Transaction:
    """Build a transaction with sensible defaults."""
    return Transaction(
        id=extra.pop("id", f"tx-{next(_ids)}"),
        date=when,
        label=label,
        amount=Decimal(str(amount)),
        type=type,
        category=category,
        ratio=None if ratio is None else Decimal(str(ratio)),
        payer_user_id=payer,
        **extra,
    )


@pytest.fixture
def couple() -> Couple:
    return Couple(user1_id=ALICE, user2_id=BOB)
