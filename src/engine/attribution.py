"""
Shared-Cost Attribution

Answers two different questions for the viewing partner:

- effective_amount: "what is my share of this cost?"
- calendar_amount: "how much cash must be on my account for it?"

DESIGN DECISION: Subscriptions are always split 50/50 when shared, while
one-off shared transactions use their own ratio. A subscription coming
from the partner's import is always shared and paid by the partner.
"""

from collections.abc import Iterable, Mapping
from decimal import Decimal
from typing import Optional, Union

from src.engine.ratio import resolve_ratio
from src.models.subscription import SubscriptionCandidate
from src.models.transaction import (
    Couple,
    Frequency,
    PartnerRole,
    SubscriptionSetting,
    Transaction,
)


SUBSCRIPTION_SHARE = Decimal("0.5")

SettingsIndex = Mapping[tuple[str, Decimal], SubscriptionSetting]
SettingsInput = Union[SettingsIndex, Iterable[SubscriptionSetting], None]


def index_settings(settings: SettingsInput) -> dict[tuple[str, Decimal], SubscriptionSetting]:
    """Key settings by (label, amount). Accepts a mapping or an iterable."""
    if settings is None:
        return {}
    if isinstance(settings, Mapping):
        return dict(settings)
    indexed = {}
    for setting in settings:
        if not isinstance(setting, SubscriptionSetting):
            setting = SubscriptionSetting.model_validate(setting)
        indexed[setting.key] = setting
    return indexed


def setting_for(
    candidate: SubscriptionCandidate,
    settings: SettingsInput,
) -> Optional[SubscriptionSetting]:
    return index_settings(settings).get(candidate.key)


def effective_frequency(
    candidate: SubscriptionCandidate,
    setting: Optional[SubscriptionSetting] = None,
) -> Frequency:
    """User setting first, then the candidate's own, then monthly."""
    if setting and setting.frequency:
        return setting.frequency
    return candidate.frequency or Frequency.MONTHLY


def is_shared(
    candidate: SubscriptionCandidate,
    setting: Optional[SubscriptionSetting] = None,
) -> bool:
    return candidate.is_from_partner or bool(setting and setting.is_shared)


def can_edit_payer(candidate: SubscriptionCandidate) -> bool:
    """The viewer cannot reassign the payer of a partner's subscription."""
    return not candidate.is_from_partner


def viewer_pays(
    candidate: SubscriptionCandidate,
    setting: Optional[SubscriptionSetting],
    viewer_id: Optional[str],
) -> bool:
    if candidate.is_from_partner:
        return False
    return bool(setting and viewer_id and setting.payer_user_id == viewer_id)


def transaction_share(
    transaction: Transaction,
    couple: Couple,
    viewer_id: str,
) -> Decimal:
    """
    The viewer's share of a shared transaction, by its own ratio.

    Raises:
        InvalidRatioError: if the ratio is outside [0, 1]
    """
    total = abs(transaction.amount)
    ratio = resolve_ratio(transaction.ratio, transaction.id)
    if couple.role_of(viewer_id) is PartnerRole.USER1:
        return total * ratio
    return total * (1 - ratio)


def effective_amount(
    item: Union[SubscriptionCandidate, Transaction],
    settings: SettingsInput = None,
    couple: Optional[Couple] = None,
    viewer_id: Optional[str] = None,
) -> Decimal:
    """
    My share of the cost.

    Subscriptions: half the nominal amount when shared, else all of it.
    Transactions: my ratio share when shared (needs couple and viewer),
    else the full absolute amount.
    """
    if isinstance(item, Transaction):
        if item.is_shared:
            if couple is None or viewer_id is None:
                raise ValueError("A shared transaction needs the couple and the viewer")
            return transaction_share(item, couple, viewer_id)
        return abs(item.amount)

    setting = setting_for(item, settings)
    if is_shared(item, setting):
        return item.amount * SUBSCRIPTION_SHARE
    return item.amount


def calendar_amount(
    item: Union[SubscriptionCandidate, Transaction],
    settings: SettingsInput = None,
    viewer_id: Optional[str] = None,
) -> Decimal:
    """
    Cash that must be available on my account for this charge.

    Shared and the partner pays: 0, even though I owe a share.
    Shared and I pay: the full amount, I front it and am owed back.
    Not shared: the full amount.
    """
    if isinstance(item, Transaction):
        if item.is_shared and item.payer_user_id != viewer_id:
            return Decimal("0")
        return abs(item.amount)

    setting = setting_for(item, settings)
    if is_shared(item, setting):
        return item.amount if viewer_pays(item, setting, viewer_id) else Decimal("0")
    return item.amount
