"""
Recurrence Detector / Calendar Projector

Finds subscriptions in a transaction history and projects them onto the
calendar.

Detection:
1. Group expenses by exact (label, amount). No fuzzy matching.
2. Groups with at least two charges are candidates.
3. The frequency comes from the gaps between consecutive charges. Gaps
   that do not cluster around a supported period make the group a
   "possible" recurring charge instead.
4. A user setting for the same (label, amount) overrides the inferred
   frequency.
5. Candidates more than one period overdue are reported as expired, not
   dropped, so a wrong frequency can be corrected.

DESIGN DECISION: "today" is an explicit input. Expiry is a judgment made
against it on every call, never a stored fact.
"""

from collections.abc import Iterable
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from statistics import median
from typing import Any, Optional

from src.audit.logger import get_logger
from src.config import RecurrenceSettings, get_settings
from src.engine.attribution import (
    SettingsInput,
    calendar_amount,
    effective_amount,
    effective_frequency,
    index_settings,
)
from src.engine.frequency import (
    is_due_in_month as frequency_due_in_month,
    is_expired,
    monthly_equivalent,
    next_due_date,
)
from src.models.subscription import (
    MonthlyProjection,
    PossibleRecurring,
    RecurrenceReport,
    SubscriptionCandidate,
)
from src.models.transaction import (
    Couple,
    Frequency,
    SubscriptionSetting,
    Transaction,
    TransactionType,
)
from src.validation.validator import coerce_records


logger = get_logger(__name__)

GroupKey = tuple[str, Decimal]


def group_charges(transactions: Iterable[Transaction]) -> dict[GroupKey, list[Transaction]]:
    """
    Group expenses by exact (label, |amount|), each group sorted by date.

    Internal transfers are never subscriptions and are left out.
    """
    groups: dict[GroupKey, list[Transaction]] = {}
    for tx in transactions:
        if not tx.is_expense:
            continue
        if tx.type == TransactionType.INTERNAL_TRANSFER:
            continue
        groups.setdefault((tx.label, abs(tx.amount)), []).append(tx)
    for charges in groups.values():
        charges.sort(key=lambda t: (t.date, t.id))
    return groups


def interval_days(dates: list[date]) -> list[int]:
    """Gaps in days between consecutive dates."""
    return [(later - earlier).days for earlier, later in zip(dates, dates[1:])]


def average_day_of_month(dates: list[date]) -> int:
    """Mean calendar day, rounded half up."""
    mean = Decimal(sum(d.day for d in dates)) / len(dates)
    return int(mean.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def infer_frequency(
    gaps: list[int],
    config: Optional[RecurrenceSettings] = None,
) -> Optional[Frequency]:
    """
    Classify a list of gaps into a supported frequency.

    The median gap picks the window; at least `min_regular_gap_share` of
    the gaps must fall inside it. Returns None for irregular series.
    """
    if not gaps:
        return None
    config = config or get_settings().recurrence

    typical = median(gaps)
    for name, (low, high) in config.windows.items():
        if low <= typical <= high:
            regular = sum(1 for g in gaps if low <= g <= high)
            if regular / len(gaps) >= config.min_regular_gap_share:
                return Frequency(name)
            return None
    return None


def is_generic_label(label: str, config: RecurrenceSettings) -> bool:
    lowered = label.lower()
    return any(fragment in lowered for fragment in config.generic_labels_list)


def is_due_in_month(
    candidate: SubscriptionCandidate,
    month: int,
    year: int,
    settings: SettingsInput = None,
) -> bool:
    """
    Whether a subscription falls due in the given month (1-12).

    Uses the effective frequency and the first occurrence as phase anchor.
    """
    setting = index_settings(settings).get(candidate.key)
    return frequency_due_in_month(
        effective_frequency(candidate, setting),
        candidate.anchor_date,
        month,
        year,
    )


def _build_candidate(
    key: GroupKey,
    charges: list[Transaction],
    inferred: Optional[Frequency],
    setting: Optional[SubscriptionSetting],
    today: date,
    median_gap: Optional[float],
    is_category_based: bool = False,
) -> SubscriptionCandidate:
    label, amount = key
    dates = [tx.date for tx in charges]
    if setting and setting.frequency:
        frequency = setting.frequency
    else:
        frequency = inferred or Frequency.MANUAL
    last_date = dates[-1]

    return SubscriptionCandidate(
        label=label,
        amount=amount,
        category=charges[-1].category,
        occurrences=len(charges),
        avg_day_of_month=average_day_of_month(dates),
        first_date=dates[0],
        last_date=last_date,
        frequency=frequency,
        inferred_frequency=inferred,
        median_interval_days=median_gap,
        next_expected_date=next_due_date(last_date, frequency),
        transaction_ids=[tx.id for tx in charges],
        is_active=not is_expired(last_date, frequency, today),
        is_category_based=is_category_based,
    )


def _partner_candidates(
    settings: dict[GroupKey, SubscriptionSetting],
    couple: Couple,
    viewer_id: str,
    known: set[GroupKey],
    config: RecurrenceSettings,
) -> list[SubscriptionCandidate]:
    """Shared subscriptions paid by the partner that the viewer has no charges for."""
    partner_id = couple.partner_of(viewer_id)
    out = []
    for key, setting in settings.items():
        if key in known:
            continue
        if not setting.is_shared or setting.payer_user_id != partner_id:
            continue
        out.append(SubscriptionCandidate(
            label=setting.label,
            amount=setting.amount,
            occurrences=0,
            avg_day_of_month=config.partner_default_day,
            frequency=setting.frequency or Frequency.MONTHLY,
            is_from_partner=True,
        ))
    return out


def detect_subscriptions(
    transactions: Iterable[Any],
    settings: SettingsInput = None,
    couple: Optional[Couple] = None,
    viewer_id: Optional[str] = None,
    today: Optional[date] = None,
) -> RecurrenceReport:
    """
    Detect subscriptions in a transaction history.

    Args:
        transactions: The viewer's transactions (models or dicts)
        settings: SubscriptionSetting overrides, as a list or keyed mapping
        couple: Needed to include the partner's shared subscriptions
        viewer_id: The viewing partner; needed with `couple`
        today: Reference date for expiry; defaults to date.today()

    Returns:
        RecurrenceReport with recurring, expired and possible charges

    Raises:
        MalformedInputError: if the transaction collection is malformed
    """
    txs = coerce_records(transactions, Transaction, "transactions")
    overrides = index_settings(settings)
    today = today or date.today()
    config = get_settings().recurrence

    recurring: list[SubscriptionCandidate] = []
    expired: list[SubscriptionCandidate] = []
    possible: list[PossibleRecurring] = []

    groups = group_charges(txs)
    subscription_categories = set(config.subscription_categories_list)

    for key, charges in groups.items():
        label, amount = key
        setting = overrides.get(key)

        if len(charges) < 2:
            flagged = charges[0].is_recurring or charges[0].category in subscription_categories
            if flagged and not is_generic_label(label, config):
                candidate = _build_candidate(
                    key, charges, None, setting, today, None, is_category_based=True,
                )
                (recurring if candidate.is_active else expired).append(candidate)
            continue

        if is_generic_label(label, config):
            logger.debug("generic_label_skipped", label=label)
            continue

        gaps = interval_days([tx.date for tx in charges])
        median_gap = float(median(gaps))
        inferred = infer_frequency(gaps, config)

        if inferred is None and not (setting and setting.frequency):
            possible.append(PossibleRecurring(
                label=label,
                amount=amount,
                last_amount=abs(charges[-1].amount),
                category=charges[-1].category,
                occurrences=len(charges),
                first_date=charges[0].date,
                last_date=charges[-1].date,
                median_interval_days=median_gap,
                transaction_ids=[tx.id for tx in charges],
            ))
            continue

        candidate = _build_candidate(key, charges, inferred, setting, today, median_gap)
        (recurring if candidate.is_active else expired).append(candidate)

    if couple is not None and viewer_id is not None:
        known = set(groups)
        recurring.extend(_partner_candidates(overrides, couple, viewer_id, known, config))

    recurring.sort(key=lambda c: (-c.occurrences, -c.amount, c.label))
    expired.sort(key=lambda c: (c.last_date or today), reverse=True)
    possible.sort(key=lambda p: (-p.occurrences, -p.amount, p.label))

    logger.debug(
        "subscriptions_detected",
        recurring=len(recurring),
        expired=len(expired),
        possible=len(possible),
        today=today.isoformat(),
    )

    return RecurrenceReport(
        recurring=recurring,
        expired=expired,
        possible=possible,
        computed_for=today,
    )


def subscriptions_due_in_month(
    candidates: Iterable[SubscriptionCandidate],
    month: int,
    year: int,
    settings: SettingsInput = None,
) -> list[SubscriptionCandidate]:
    overrides = index_settings(settings)
    return [c for c in candidates if is_due_in_month(c, month, year, overrides)]


def project_month(
    candidates: Iterable[SubscriptionCandidate],
    month: int,
    year: int,
    settings: SettingsInput = None,
    viewer_id: Optional[str] = None,
) -> MonthlyProjection:
    """
    Project subscriptions onto one calendar month for the viewer.

    monthly_equivalent_total covers every candidate given (my share,
    normalized per month); calendar_total and by_day cover only the
    charges actually due this month.
    """
    overrides = index_settings(settings)
    candidates = list(candidates)

    monthly_total = Decimal("0")
    for c in candidates:
        frequency = effective_frequency(c, overrides.get(c.key))
        monthly_total += monthly_equivalent(effective_amount(c, overrides), frequency)

    due = subscriptions_due_in_month(candidates, month, year, overrides)

    calendar_total = Decimal("0")
    by_day: dict[int, Decimal] = {}
    for c in due:
        cash = calendar_amount(c, overrides, viewer_id)
        calendar_total += cash
        by_day[c.avg_day_of_month] = by_day.get(c.avg_day_of_month, Decimal("0")) + cash

    return MonthlyProjection(
        year=year,
        month=month,
        due=due,
        monthly_equivalent_total=monthly_total,
        calendar_total=calendar_total,
        by_day=by_day,
    )
