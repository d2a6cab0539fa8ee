"""
Two-Stage Validation Pipeline

DESIGN DECISION: Validation happens in two distinct stages:

STAGE 1 - SCHEMA VALIDATION:
- Required field presence
- Type checking (dates, Decimal amounts, enum values)
- A failure here is structural and fatal to the whole call

STAGE 2 - SEMANTIC VALIDATION:
- Ratio range on shared transactions
- Payer membership in the couple
- A failure here concerns a single record

WHY TWO STAGES:
1. Structural errors mean the caller sent the wrong thing; nothing useful
   can be computed from it
2. Semantic errors are data-quality problems on individual records; one
   bad record should not hide the rest of the ledger
3. Better error messages (know exactly what kind of issue)

IMPORTANT: Validation NEVER silently fixes issues.
It reports them for the caller to surface.
"""

from collections.abc import Iterable, Mapping
from typing import Any, Optional, TypeVar

from pydantic import BaseModel, ValidationError

from src.errors import MalformedInputError
from src.models.ledger import ValidationIssue, ValidationResult
from src.models.transaction import Couple, Transaction, ratio_in_range


ModelT = TypeVar("ModelT", bound=BaseModel)


def coerce_records(
    records: Iterable[Any],
    model: type[ModelT],
    collection: str,
) -> list[ModelT]:
    """
    Turn a collection of models or plain dicts into validated models.

    Raises:
        MalformedInputError: if any record is structurally invalid.
            Every offending record is reported, not just the first.
    """
    if records is None:
        raise MalformedInputError(collection, {0: ["collection is missing"]})

    coerced: list[ModelT] = []
    errors: dict[int, list[str]] = {}

    for index, record in enumerate(records):
        if isinstance(record, model):
            coerced.append(record)
            continue
        try:
            if isinstance(record, Mapping):
                coerced.append(model.model_validate(dict(record)))
            else:
                coerced.append(model.model_validate(record, from_attributes=True))
        except ValidationError as e:
            errors[index] = [
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
                for err in e.errors()
            ]

    if errors:
        raise MalformedInputError(collection, errors)

    return coerced


def invalid_ratio_issue(transaction: Transaction) -> ValidationIssue:
    return ValidationIssue(
        field="ratio",
        issue_type="invalid_ratio",
        message=f"Ratio {transaction.ratio} is outside [0, 1]",
        severity="error",
        record_id=transaction.id,
        suggested_fix="Set a ratio between 0 and 1 on this shared transaction",
    )


def ambiguous_payer_issue(transaction: Transaction) -> ValidationIssue:
    return ValidationIssue(
        field="payer_user_id",
        issue_type="ambiguous_payer",
        message=(
            f"Payer {transaction.payer_user_id} of '{transaction.label}' "
            "is not a member of the couple"
        ),
        severity="warning",
        record_id=transaction.id,
        suggested_fix="Reassign the transaction to one of the two partners",
    )


class TransactionValidator:
    """
    Validates a transaction batch through a two-stage pipeline.

    Stage 1: Schema validation (no couple needed)
    Stage 2: Semantic validation (needs the couple for payer checks)
    """

    def __init__(self, couple: Optional[Couple] = None):
        """
        Initialize validator.

        Args:
            couple: The couple the batch belongs to.
                    If None, payer membership checks are skipped.
        """
        self._couple = couple

    def _validate_schema(
        self,
        records: Iterable[Any],
    ) -> tuple[bool, list[ValidationIssue], list[Transaction]]:
        """
        Stage 1: Schema validation.

        Returns: (is_valid, list_of_issues, coerced_transactions)
        """
        try:
            transactions = coerce_records(records, Transaction, "transactions")
        except MalformedInputError as e:
            issues = [
                ValidationIssue(
                    field=f"transactions[{index}]",
                    issue_type="malformed",
                    message="; ".join(messages),
                    severity="error",
                )
                for index, messages in sorted(e.errors.items())
            ]
            return False, issues, []

        return True, [], transactions

    def _validate_semantic(
        self,
        transactions: list[Transaction],
    ) -> tuple[bool, list[ValidationIssue]]:
        """
        Stage 2: Semantic validation.

        Checks, on shared transactions only:
        - Ratio within [0, 1]
        - Payer is one of the two partners

        Returns: (is_valid, list_of_issues)
        """
        issues = []

        for tx in transactions:
            if not tx.is_shared:
                continue

            if tx.ratio is not None and not ratio_in_range(tx.ratio):
                issues.append(invalid_ratio_issue(tx))

            if self._couple and not self._couple.is_member(tx.payer_user_id):
                issues.append(ambiguous_payer_issue(tx))

        is_valid = not any(issue.severity == "error" for issue in issues)

        return is_valid, issues

    def validate(self, records: Iterable[Any]) -> ValidationResult:
        """
        Run full two-stage validation pipeline.

        Args:
            records: Transactions as models or plain dicts

        Returns:
            ValidationResult with all issues found
        """
        records = list(records) if records is not None else None
        schema_valid, issues, transactions = self._validate_schema(records)

        # Only run stage 2 if stage 1 passes
        semantic_valid = False
        if schema_valid:
            semantic_valid, semantic_issues = self._validate_semantic(transactions)
            issues.extend(semantic_issues)

        return ValidationResult(
            schema_valid=schema_valid,
            semantic_valid=semantic_valid,
            record_count=len(records) if records is not None else 0,
            issues=issues,
        )

    def get_user_friendly_summary(
        self,
        result: ValidationResult,
    ) -> str:
        """
        Generate a user-friendly summary of validation results.
        """
        if result.is_valid and not result.warnings:
            return "All transactions can be used for the balance."

        lines = []

        if result.has_errors:
            lines.append("Some transactions prevent the balance from being computed:")
            for issue in result.issues:
                if issue.severity == "error":
                    lines.append(f"   • {issue.message}")
                    if issue.suggested_fix:
                        lines.append(f"     → {issue.suggested_fix}")

        if result.warnings:
            if lines:
                lines.append("")
            lines.append("These transactions will be left out of the balance:")
            for issue in result.warnings:
                lines.append(f"   • {issue.message}")

        return "\n".join(lines)
