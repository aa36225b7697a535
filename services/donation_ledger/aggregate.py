"""
Aggregation driver.

Runs every configured platform adapter to completion and concatenates
their reconciled donations in platform order. Platforms are never merged
with each other. Any adapter failure aborts the whole run: a partial
ledger would misrepresent totals.
"""

import asyncio
import time
from typing import List, Optional, Sequence

import structlog

from .client import DonationAPIError
from .fixtures import fixture_donations
from .models import Donation
from .settings import DonationLedgerSettings
from .sources import SOURCES, DonationSource


logger = structlog.get_logger(__name__)


class AggregationTimeoutError(DonationAPIError):
    """The run deadline expired while sources were still fetching."""

    def __init__(self, sources: Sequence[str], timeout: float):
        self.sources = list(sources)
        self.timeout = timeout
        super().__init__(
            f"Aggregation deadline of {timeout}s exceeded while fetching: "
            f"{', '.join(self.sources)}"
        )


def build_sources(config: DonationLedgerSettings) -> List[DonationSource]:
    """
    Instantiate the enabled adapters in ledger order.

    Raises:
        ConfigurationError: An enabled platform has no token
    """
    config.require_tokens()
    return [SOURCES[key](config) for key in config.platform_keys]


async def collect(source: DonationSource) -> List[Donation]:
    """Drain one adapter."""
    return [donation async for donation in source.fetch()]


async def _run_sequentially(
    sources: Sequence[DonationSource],
    timeout: float,
) -> List[List[Donation]]:
    results: List[List[Donation]] = []
    in_flight: List[str] = []

    async def run() -> None:
        for source in sources:
            in_flight[:] = [source.name]
            results.append(await collect(source))
        in_flight.clear()

    try:
        await asyncio.wait_for(run(), timeout=timeout)
    except asyncio.TimeoutError as e:
        raise AggregationTimeoutError(in_flight, timeout) from e

    return results


async def _run_concurrently(
    sources: Sequence[DonationSource],
    timeout: float,
) -> List[List[Donation]]:
    # asyncio.wait rejects an empty task set
    if not sources:
        return []

    tasks = [asyncio.create_task(collect(source)) for source in sources]

    try:
        done, pending = await asyncio.wait(
            tasks,
            timeout=timeout,
            return_when=asyncio.FIRST_EXCEPTION,
        )
    finally:
        for task in tasks:
            if not task.done():
                task.cancel()

    if pending:
        await asyncio.gather(*pending, return_exceptions=True)

    # Report the first failure in platform order
    for task in tasks:
        if task in done and task.exception() is not None:
            raise task.exception()

    if pending:
        in_flight = [source.name for source, task in zip(sources, tasks) if task in pending]
        raise AggregationTimeoutError(in_flight, timeout)

    return [task.result() for task in tasks]


async def aggregate(
    config: DonationLedgerSettings,
    *,
    sources: Optional[Sequence[DonationSource]] = None,
    concurrent: Optional[bool] = None,
) -> List[Donation]:
    """
    Produce the donation ledger for one run.

    Outside production the fixed fixture ledger is returned and no source
    is touched.

    Args:
        config: Settings for this run
        sources: Adapters to run (defaults to the configured platforms)
        concurrent: Run adapters as concurrent tasks (defaults to
            config.concurrent_sources)

    Returns:
        Donations of every platform, concatenated in platform order

    Raises:
        ConfigurationError: Missing tokens (before any network call)
        DonationAPIError: A page request failed or the deadline expired
        DataShapeError: A platform returned a malformed record

    Example:
        >>> ledger = await aggregate(load_settings())
        >>> [donation.to_dict() for donation in ledger]
    """
    if not config.is_production():
        logger.info("Using fixture donations", environment=config.environment)
        return fixture_donations()

    if sources is None:
        sources = build_sources(config)

    if concurrent is None:
        concurrent = config.concurrent_sources

    started_at = time.monotonic()
    logger.info(
        "Aggregation starting",
        sources=[source.name for source in sources],
        concurrent=concurrent,
        timeout=config.run_timeout,
    )

    try:
        if concurrent:
            results = await _run_concurrently(sources, config.run_timeout)
        else:
            results = await _run_sequentially(sources, config.run_timeout)
    except Exception as e:
        logger.error(
            "Aggregation failed",
            error=str(e),
            error_type=type(e).__name__,
        )
        raise

    ledger = [donation for batch in results for donation in batch]

    logger.info(
        "Aggregation complete",
        donations=len(ledger),
        duration_seconds=round(time.monotonic() - started_at, 2),
    )

    return ledger
