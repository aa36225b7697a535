"""
Canonical donation records shared by every source adapter.

A Pledge is the per-record projection an adapter produces from a raw API
item; the reconciliation engine folds pledges into Donations, which are the
only records that leave the pipeline.
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional, Union


class Platform(str, Enum):
    """Provenance tag of a donation. Values are the persisted platform names."""

    GITHUB_SPONSORS = "GitHub Sponsors"
    PATREON = "Patreon"
    BUYMEACOFFEE = "BuyMeACoffee"


class DataShapeError(ValueError):
    """A required field is missing or malformed in an API response."""

    def __init__(self, platform: Union[Platform, str], record: Any, reason: str):
        self.platform = platform
        self.record = record
        self.reason = reason

        platform_name = platform.value if isinstance(platform, Platform) else platform
        preview = repr(record)
        if len(preview) > 200:
            preview = preview[:200] + "..."
        super().__init__(f"{platform_name}: {reason} (record: {preview})")


@dataclass(frozen=True)
class Donation:
    """
    A reconciled donation as published in the ledger.

    Attributes:
        name: Display name, None when the contributor is anonymous
        amount: Total amount in the reporting currency
        platform: Platform the donation was made through
    """
    amount: Decimal
    platform: Platform
    name: Optional[str] = None

    def __post_init__(self):
        if not isinstance(self.amount, Decimal):
            object.__setattr__(self, "amount", Decimal(str(self.amount)))
        if self.amount < 0:
            raise ValueError(f"Donation amount must be non-negative, got {self.amount}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the persisted JSON shape; anonymous donations omit name."""
        result: Dict[str, Any] = {}
        if self.name is not None:
            result["name"] = self.name
        result["amount"] = _json_number(self.amount)
        result["platform"] = self.platform.value
        return result


@dataclass
class Pledge:
    """
    One contributor record as reported by a platform, before reconciliation.

    Attributes:
        platform: Source platform
        amount: Positive amount in the reporting currency
        name: Resolved display name, if the platform provided one
        email: Stable identity (email or platform account id), if known
        is_private: Contributor must be shown as anonymous
    """
    platform: Platform
    amount: Decimal
    name: Optional[str] = None
    email: Optional[str] = None
    is_private: bool = False

    def to_donation(self) -> Donation:
        """Project into a ledger record, redacting the name when private."""
        anonymous = self.is_private or not self.name
        return Donation(
            amount=self.amount,
            platform=self.platform,
            name=None if anonymous else self.name,
        )


def _json_number(amount: Decimal) -> Union[int, float]:
    """Render a decimal as an int when integral, else as a float."""
    if amount == amount.to_integral_value():
        return int(amount)
    return float(amount)
