"""
Buy Me a Coffee adapter.

Reads one-time supporters from /v1/supporters, paginated by page number
until `last_page`. The API enforces a tight request budget, so pages are
fetched with a fixed delay.
"""

from typing import Any, AsyncIterator, Dict, Optional

from ..models import Platform, Pledge
from ..pagination import Page, PageRequest, next_page_number, paginate
from .base import DonationSource


class BuyMeACoffeeSource(DonationSource):
    """One-time supporters from Buy Me a Coffee."""

    key = "buymeacoffee"
    platform = Platform.BUYMEACOFFEE

    def _request_for(self, page: Optional[int]) -> PageRequest:
        return PageRequest(
            url=f"{self.config.buymeacoffee_api_url.rstrip('/')}/supporters",
            headers=self.auth_headers(),
            params={"page": page or 1},
        )

    def _extract(self, body: Any, page: Optional[int]) -> Page[int]:
        items = self.require_list(body, "data")
        last_page = self.require(body, "last_page", int)
        return Page(items=items, next_cursor=next_page_number(page or 1, last_page))

    def to_pledge(self, supporter: Dict[str, Any]) -> Optional[Pledge]:
        """
        Project a supporter record into a pledge.

        Returns:
            Pledge, or None for refunded or non-positive supports

        Raises:
            DataShapeError: Required fields are missing or malformed
        """
        if self.optional(supporter, "is_refunded", bool, default=False):
            return None

        coffees = self.require(supporter, "support_coffees", int)
        price = self.require_decimal(supporter, "support_coffee_price")
        amount = price * coffees
        if amount <= 0:
            return None

        email = self.require(supporter, "payer_email", str)
        visibility = self.require(supporter, "support_visibility", int)
        # Blank supporter names fall back to the payer
        name = (
            (self.optional(supporter, "supporter_name", str) or "").strip()
            or (self.optional(supporter, "payer_name", str) or "").strip()
            or None
        )

        return Pledge(
            platform=self.platform,
            amount=amount,
            name=name,
            email=email,
            is_private=self.is_private(visibility == 0, name, email),
        )

    async def fetch_pledges(self) -> AsyncIterator[Pledge]:
        async for supporter in paginate(
            self._request_for,
            self._extract,
            initial_cursor=1,
            delay_seconds=self.delay_seconds,
            timeout=self.timeout,
            source=self.name,
        ):
            pledge = self.to_pledge(supporter)
            if pledge is not None:
                yield pledge
