"""Validation package."""

from src.validation.validator import (
    TransactionValidator,
    ambiguous_payer_issue,
    coerce_records,
    invalid_ratio_issue,
)

__all__ = [
    "TransactionValidator",
    "ambiguous_payer_issue",
    "coerce_records",
    "invalid_ratio_issue",
]
