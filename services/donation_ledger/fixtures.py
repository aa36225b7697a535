"""
Fixed ledger used outside production, so local builds never hit the APIs.
"""

from decimal import Decimal
from typing import List

from .models import Donation, Platform


FIXTURE_DONATIONS = (
    Donation(name="96-LB", amount=Decimal("10"), platform=Platform.GITHUB_SPONSORS),
    Donation(name="JetBrains", amount=Decimal("300"), platform=Platform.GITHUB_SPONSORS),
    Donation(name="Simon Cropp", amount=Decimal("97.85"), platform=Platform.PATREON),
    Donation(name="KillerGoldFisch", amount=Decimal("32.42"), platform=Platform.PATREON),
    Donation(name="Greg Engle", amount=Decimal("125"), platform=Platform.PATREON),
    Donation(name="A dude", amount=Decimal("133.9"), platform=Platform.PATREON),
    Donation(name="Dominic Maas", amount=Decimal("120"), platform=Platform.PATREON),
    Donation(name="Mark Ledwich", amount=Decimal("100"), platform=Platform.PATREON),
    Donation(name="Peter Wesselius", amount=Decimal("480"), platform=Platform.PATREON),
    Donation(name="Thomas Sobieck", amount=Decimal("60"), platform=Platform.PATREON),
    Donation(name="Peter W", amount=Decimal("60"), platform=Platform.BUYMEACOFFEE),
    Donation(name="ACPWinitiate", amount=Decimal("40"), platform=Platform.BUYMEACOFFEE),
    Donation(name="Rich Burgess", amount=Decimal("15"), platform=Platform.BUYMEACOFFEE),
    Donation(name="eggeggss", amount=Decimal("15"), platform=Platform.BUYMEACOFFEE),
    Donation(amount=Decimal("9"), platform=Platform.BUYMEACOFFEE),
    Donation(name="Angelos Tsiflas", amount=Decimal("6"), platform=Platform.BUYMEACOFFEE),
    Donation(name="Filip Navara", amount=Decimal("20"), platform=Platform.BUYMEACOFFEE),
    Donation(amount=Decimal("210"), platform=Platform.BUYMEACOFFEE),
)


def fixture_donations() -> List[Donation]:
    """Return a fresh copy of the development ledger."""
    return list(FIXTURE_DONATIONS)
