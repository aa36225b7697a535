"""
Donation platform adapters, keyed by their settings name.
"""

from typing import Dict, Type

from .base import DonationSource
from .buymeacoffee import BuyMeACoffeeSource
from .github import GitHubSponsorsSource
from .patreon import PatreonSource

SOURCES: Dict[str, Type[DonationSource]] = {
    GitHubSponsorsSource.key: GitHubSponsorsSource,
    PatreonSource.key: PatreonSource,
    BuyMeACoffeeSource.key: BuyMeACoffeeSource,
}

__all__ = [
    "DonationSource",
    "BuyMeACoffeeSource",
    "GitHubSponsorsSource",
    "PatreonSource",
    "SOURCES",
]
