"""
Reconciliation of per-platform pledges into ledger donations.

Collapses pledges that refer to the same contributor within one platform:
1. Normalized email as primary key (normalized name when no email)
2. Normalized name over the email-merged results

Amounts are summed; display attributes of the last pledge in iteration
order win. Groups keep the order in which they were first encountered.
Pure functions, no I/O.
"""

from dataclasses import replace
from typing import Callable, Dict, Hashable, Iterable, List, Optional, Tuple

from .helpers.identity import normalize_email, normalize_name
from .models import Donation, Pledge


KeyFunc = Callable[[Pledge], Optional[Hashable]]


def group_and_fold(pledges: Iterable[Pledge], key: KeyFunc) -> List[Pledge]:
    """
    Group pledges by key and fold each group into one pledge.

    A pledge whose key is None is never merged with anything.

    Args:
        pledges: Pledges in iteration order
        key: Extracts the grouping key from a pledge

    Returns:
        One pledge per group, in first-seen group order, carrying the summed
        amount and the attributes of the group's last pledge

    Example:
        >>> merged = group_and_fold(
        ...     [Pledge(p, Decimal(5), "Foo", "x"), Pledge(p, Decimal(3), "Bar", "x")],
        ...     key=lambda pledge: pledge.email,
        ... )
        >>> merged[0].amount, merged[0].name
        (Decimal('8'), 'Bar')
    """
    groups: Dict[Tuple[str, Hashable], Pledge] = {}

    for index, pledge in enumerate(pledges):
        group_key = key(pledge)
        # Keyless pledges get a synthetic token unique to their position
        slot = ("unique", index) if group_key is None else ("key", group_key)

        existing = groups.get(slot)
        if existing is None:
            groups[slot] = pledge
        else:
            groups[slot] = replace(pledge, amount=existing.amount + pledge.amount)

    return list(groups.values())


def email_key(pledge: Pledge) -> Optional[Hashable]:
    """Identity key for the first pass: email, else name."""
    email = normalize_email(pledge.email)
    if email is not None:
        return ("email", email)

    name = normalize_name(pledge.name)
    if name is not None:
        return ("name", name)

    return None


def name_key(pledge: Pledge) -> Optional[Hashable]:
    """Identity key for the second pass: name only."""
    return normalize_name(pledge.name)


def reconcile_pledges(pledges: Iterable[Pledge]) -> List[Pledge]:
    """Run the email pass followed by the name pass."""
    by_email = group_and_fold(pledges, email_key)
    return group_and_fold(by_email, name_key)


def reconcile(pledges: Iterable[Pledge]) -> List[Donation]:
    """
    Collapse one platform's pledges into ledger donations.

    Args:
        pledges: Pledges of a single platform, in API order

    Returns:
        Donations in first-seen order, names redacted for private contributors
    """
    return [
        pledge.to_donation()
        for pledge in reconcile_pledges(pledges)
        if pledge.amount > 0
    ]
