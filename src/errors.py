"""
Engine Exceptions

Fail early, fail visibly: a value that would misstate who owes what is
raised, never clamped. Per-record data-quality problems that do not affect
the rest of the ledger are reported as warnings by the caller of these
classes instead.
"""

from typing import Any, Optional


class HarmonizationError(Exception):
    """Base exception for the harmonization engine."""
    pass


class InvalidRatioError(HarmonizationError):
    """A shared transaction carries a ratio outside [0, 1]."""

    def __init__(self, ratio: Any, transaction_id: Optional[str] = None):
        self.ratio = ratio
        self.transaction_id = transaction_id
        where = f" on transaction {transaction_id}" if transaction_id else ""
        super().__init__(f"Ratio {ratio}{where} must lie between 0 and 1")


class AmbiguousPayerError(HarmonizationError):
    """A shared transaction's payer is neither partner of the couple."""

    def __init__(self, payer_user_id: Any, transaction_id: Optional[str] = None):
        self.payer_user_id = payer_user_id
        self.transaction_id = transaction_id
        super().__init__(
            f"Payer {payer_user_id} of transaction {transaction_id} "
            "is not a member of the couple"
        )


class NotFoundError(HarmonizationError):
    """Entity not found (e.g. voiding an unknown settlement)."""
    pass


class MalformedInputError(HarmonizationError):
    """
    An input collection contains structurally invalid records.

    Fatal to the call that received it. `errors` maps the index of each
    offending record to the validation messages for it.
    """

    def __init__(self, collection: str, errors: dict[int, list[str]]):
        self.collection = collection
        self.errors = errors
        indices = ", ".join(str(i) for i in sorted(errors))
        super().__init__(
            f"{len(errors)} malformed record(s) in {collection} (index {indices})"
        )
