"""
Pytest fixtures for donation_ledger tests.

No test touches the network: HTTP is mocked at httpx.AsyncClient or at
client.fetch_page.
"""

import asyncio
from decimal import Decimal
from typing import List, Optional

import pytest

from services.donation_ledger.models import Donation, Platform
from services.donation_ledger.settings import DonationLedgerSettings


def make_settings(**overrides) -> DonationLedgerSettings:
    """Production settings with every token set and no throttling."""
    values = {
        "environment": "production",
        "github_token": "gh-token",
        "patreon_token": "patreon-token",
        "buymeacoffee_token": "bmac-token",
        "private_donors": "",
        "platforms": "github,patreon,buymeacoffee",
        "github_api_url": "https://github.test/graphql",
        "patreon_api_url": "https://patreon.test/api/oauth2/v2",
        "buymeacoffee_api_url": "https://bmac.test/api/v1",
        "github_requests_per_minute": 0,
        "patreon_requests_per_minute": 0,
        "buymeacoffee_requests_per_minute": 0,
        "run_timeout": 5.0,
    }
    values.update(overrides)
    return DonationLedgerSettings(_env_file=None, **values)


@pytest.fixture
def config() -> DonationLedgerSettings:
    return make_settings()


class FakeSource:
    """Stand-in adapter yielding fixed donations, optionally failing or stalling."""

    def __init__(
        self,
        name: str,
        donations: Optional[List[Donation]] = None,
        error: Optional[Exception] = None,
        delay: float = 0.0,
    ):
        self.name = name
        self.donations = donations or []
        self.error = error
        self.delay = delay
        self.calls = 0
        self.cancelled = False

    async def fetch(self):
        self.calls += 1
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
        except asyncio.CancelledError:
            self.cancelled = True
            raise
        if self.error is not None:
            raise self.error
        for donation in self.donations:
            yield donation


def donation(amount, platform=Platform.PATREON, name=None) -> Donation:
    return Donation(amount=Decimal(str(amount)), platform=platform, name=name)


@pytest.fixture
def settings_factory():
    """Build production settings with overrides."""
    return make_settings


@pytest.fixture
def fake_source():
    """The FakeSource class, for building stand-in adapters."""
    return FakeSource


@pytest.fixture
def make_donation():
    return donation
