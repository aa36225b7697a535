"""
GitHub Sponsors adapter.

GitHub exposes sponsorship history as an activity log rather than a
balance, so the total per sponsor is rebuilt from the events:
- one-time tiers: every NEW_SPONSORSHIP is one payment
- recurring tiers: NEW_SPONSORSHIP/TIER_CHANGE opens a membership window
  that lasts until the sponsor's next CANCELLED_SPONSORSHIP or TIER_CHANGE
  (or now), billed once per calendar month it touches
- REFUND deducts the refunded tier price
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, AsyncIterator, Callable, Dict, List, Optional

from ..client import DonationAPIError
from ..helpers.periods import billing_periods
from ..models import DataShapeError, Platform, Pledge
from ..pagination import Page, PageRequest, next_cursor_token, paginate
from ..settings import DonationLedgerSettings
from .base import DonationSource


NEW_SPONSORSHIP = "NEW_SPONSORSHIP"
CANCELLED_SPONSORSHIP = "CANCELLED_SPONSORSHIP"
TIER_CHANGE = "TIER_CHANGE"
REFUND = "REFUND"

# Actions that carry no money movement
IGNORED_ACTIONS = {"PENDING_CHANGE", "SPONSOR_MATCH_DISABLED"}

KNOWN_ACTIONS = {NEW_SPONSORSHIP, CANCELLED_SPONSORSHIP, TIER_CHANGE, REFUND} | IGNORED_ACTIONS

# Actions that end the current recurring window
TERMINATING_ACTIONS = {CANCELLED_SPONSORSHIP, TIER_CHANGE}

SPONSORS_ACTIVITIES_QUERY = """
query($cursor: String) {
  viewer {
    sponsorsActivities(after: $cursor, first: 100, period: ALL) {
      pageInfo {
        endCursor
        hasNextPage
      }
      nodes {
        action
        timestamp
        sponsor {
          ... on User {
            login
            name
            sponsorshipForViewerAsSponsorable {
              privacyLevel
            }
          }
          ... on Organization {
            login
            name
            sponsorshipForViewerAsSponsorable {
              privacyLevel
            }
          }
        }
        sponsorsTier {
          isOneTime
          monthlyPriceInCents
        }
      }
    }
  }
}
"""


@dataclass
class SponsorActivity:
    """A validated entry of the sponsors activity log."""
    action: str
    timestamp: datetime
    login: str
    name: Optional[str]
    is_private: bool
    is_one_time: bool = False
    price_cents: int = 0


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO 8601 timestamp (with trailing Z) into an aware UTC datetime."""
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def total_cents(activities: List[SponsorActivity], now: datetime) -> int:
    """
    Rebuild the cumulative support of one sponsor from its activities.

    Activities are ordered by timestamp with a stable sort, so events that
    share a timestamp keep their API order. A terminating event is the first
    CANCELLED_SPONSORSHIP/TIER_CHANGE positioned after the window start; one
    at the same instant still closes the window after a single period.

    Args:
        activities: All activities of a single sponsor
        now: End of windows that were never terminated

    Returns:
        Total in cents, never negative

    Example:
        >>> # new at 2021-01-01 for 1000/month, cancelled 2021-04-01
        >>> total_cents(activities, now)
        4000
    """
    ordered = sorted(activities, key=lambda activity: activity.timestamp)
    total = 0

    for index, activity in enumerate(ordered):
        if activity.action == NEW_SPONSORSHIP and activity.is_one_time:
            total += activity.price_cents

        elif activity.action in (NEW_SPONSORSHIP, TIER_CHANGE) and not activity.is_one_time:
            end = next(
                (
                    later.timestamp
                    for later in ordered[index + 1:]
                    if later.action in TERMINATING_ACTIONS
                ),
                now,
            )
            total += billing_periods(activity.timestamp, end) * activity.price_cents

        elif activity.action == REFUND:
            total -= activity.price_cents

    return max(total, 0)


class GitHubSponsorsSource(DonationSource):
    """Sponsors of the authenticated GitHub account."""

    key = "github"
    platform = Platform.GITHUB_SPONSORS

    def __init__(
        self,
        config: DonationLedgerSettings,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        super().__init__(config)
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    def _request_for(self, cursor: Optional[str]) -> PageRequest:
        return PageRequest(
            url=self.config.github_api_url,
            headers=self.auth_headers(),
            json={"query": SPONSORS_ACTIVITIES_QUERY, "variables": {"cursor": cursor}},
            method="POST",
        )

    def _extract(self, body: Any, cursor: Optional[str]) -> Page[str]:
        errors = self.optional(body, "errors", list)
        if errors:
            messages = "; ".join(
                str(error.get("message", error)) if isinstance(error, dict) else str(error)
                for error in errors
            )
            raise DonationAPIError(
                f"GitHub GraphQL query failed: {messages}",
                url=self.config.github_api_url,
                status_code=200,
            )

        path = ("data", "viewer", "sponsorsActivities")
        items = self.require_list(body, path + ("nodes",))
        has_next = self.require(body, path + ("pageInfo", "hasNextPage"), bool)
        end_cursor = self.optional(body, path + ("pageInfo", "endCursor"), str)

        if has_next and not end_cursor:
            raise DataShapeError(self.platform, body, "hasNextPage without endCursor")

        return Page(items=items, next_cursor=next_cursor_token(end_cursor, has_next))

    def to_activity(self, node: Dict[str, Any]) -> Optional[SponsorActivity]:
        """
        Validate an activity node.

        Returns:
            SponsorActivity, or None for actions without money movement

        Raises:
            DataShapeError: Required fields are missing or malformed
        """
        action = self.require(node, "action", str)
        if action not in KNOWN_ACTIONS:
            raise DataShapeError(self.platform, node, f"unknown sponsorship action '{action}'")
        if action in IGNORED_ACTIONS:
            return None

        raw_timestamp = self.require(node, "timestamp", str)
        try:
            timestamp = parse_timestamp(raw_timestamp)
        except ValueError as e:
            raise DataShapeError(self.platform, node, f"invalid timestamp '{raw_timestamp}'") from e

        login = self.require(node, ("sponsor", "login"), str)
        name = self.optional(node, ("sponsor", "name"), str)
        # Sponsorship is null once it has ended; only the block-list applies then
        privacy_level = self.optional(
            node, ("sponsor", "sponsorshipForViewerAsSponsorable", "privacyLevel"), str
        )

        activity = SponsorActivity(
            action=action,
            timestamp=timestamp,
            login=login,
            name=name.strip() if name and name.strip() else None,
            is_private=privacy_level == "PRIVATE",
        )

        if action != CANCELLED_SPONSORSHIP:
            activity.is_one_time = self.require(node, ("sponsorsTier", "isOneTime"), bool)
            activity.price_cents = self.require(node, ("sponsorsTier", "monthlyPriceInCents"), int)
            if activity.price_cents < 0:
                raise DataShapeError(self.platform, node, "negative monthlyPriceInCents")

        return activity

    async def fetch_pledges(self) -> AsyncIterator[Pledge]:
        by_sponsor: Dict[str, List[SponsorActivity]] = {}
        async for node in paginate(
            self._request_for,
            self._extract,
            delay_seconds=self.delay_seconds,
            timeout=self.timeout,
            source=self.name,
        ):
            activity = self.to_activity(node)
            if activity is not None:
                by_sponsor.setdefault(activity.login, []).append(activity)

        now = self.clock()

        for login, activities in by_sponsor.items():
            cents = total_cents(activities, now)
            if cents <= 0:
                continue

            latest = sorted(activities, key=lambda activity: activity.timestamp)[-1]
            name = latest.name or login

            yield Pledge(
                platform=self.platform,
                amount=Decimal(cents) / 100,
                name=name,
                email=login,
                is_private=self.is_private(latest.is_private, name, login),
            )
