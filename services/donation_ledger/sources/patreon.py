"""
Patreon adapter.

Lists the creator's campaigns, then every member of each campaign, using
JSON:API cursor pagination (`meta.pagination.cursors.next`). Members carry
their cumulative `lifetime_support_cents`.
"""

import asyncio
from decimal import Decimal
from typing import Any, AsyncIterator, Dict, Optional

from ..models import Platform, Pledge
from ..pagination import Page, PageRequest, next_cursor_token, paginate
from .base import DonationSource


MEMBER_FIELDS = "full_name,email,lifetime_support_cents"


class PatreonSource(DonationSource):
    """Campaign members from Patreon."""

    key = "patreon"
    platform = Platform.PATREON

    @property
    def base_url(self) -> str:
        return self.config.patreon_api_url.rstrip("/")

    def _campaigns_request(self, cursor: Optional[str]) -> PageRequest:
        params: Dict[str, Any] = {}
        if cursor:
            params["page[cursor]"] = cursor
        return PageRequest(
            url=f"{self.base_url}/campaigns",
            headers=self.auth_headers(),
            params=params,
        )

    def _members_request(self, campaign_id: str, cursor: Optional[str]) -> PageRequest:
        params: Dict[str, Any] = {"fields[member]": MEMBER_FIELDS}
        if cursor:
            params["page[cursor]"] = cursor
        return PageRequest(
            url=f"{self.base_url}/campaigns/{campaign_id}/members",
            headers=self.auth_headers(),
            params=params,
        )

    def _extract(self, body: Any, cursor: Optional[str]) -> Page[str]:
        items = self.require_list(body, "data")
        self.require(body, ("meta", "pagination"), dict)
        token = self.optional(body, ("meta", "pagination", "cursors", "next"), str)
        return Page(items=items, next_cursor=next_cursor_token(token))

    def to_pledge(self, member: Dict[str, Any]) -> Optional[Pledge]:
        """
        Project a campaign member into a pledge.

        Returns:
            Pledge, or None for members that never paid (cancelled before
            the first charge)

        Raises:
            DataShapeError: Required fields are missing or malformed
        """
        cents = self.require(member, ("attributes", "lifetime_support_cents"), int)
        if cents <= 0:
            return None

        name = self.require(member, ("attributes", "full_name"), str).strip() or None
        email = self.optional(member, ("attributes", "email"), str)

        return Pledge(
            platform=self.platform,
            amount=Decimal(cents) / 100,
            name=name,
            email=email,
            is_private=self.is_private(False, name, email),
        )

    async def fetch_pledges(self) -> AsyncIterator[Pledge]:
        campaign_ids = []
        async for campaign in paginate(
            self._campaigns_request,
            self._extract,
            delay_seconds=self.delay_seconds,
            timeout=self.timeout,
            source=self.name,
        ):
            campaign_ids.append(self.require(campaign, "id", str))

        for campaign_id in campaign_ids:
            # Campaign listing and member pages share one request budget
            if self.delay_seconds > 0:
                await asyncio.sleep(self.delay_seconds)

            async for member in paginate(
                lambda cursor: self._members_request(campaign_id, cursor),
                self._extract,
                delay_seconds=self.delay_seconds,
                timeout=self.timeout,
                source=self.name,
            ):
                pledge = self.to_pledge(member)
                if pledge is not None:
                    yield pledge
