"""
Base class for donation platform adapters.

An adapter wraps the paginated fetcher with platform-specific request
construction, projects raw items into Pledges, and reconciles them into
Donations.
"""

from abc import ABC, abstractmethod
from decimal import Decimal, InvalidOperation
from typing import Any, AsyncIterator, Dict, List, Optional, Sequence, Tuple, Type, Union

import structlog

from ..helpers.identity import is_blocked
from ..models import DataShapeError, Donation, Platform, Pledge
from ..pagination import delay_for_budget
from ..reconcile import reconcile
from ..settings import DonationLedgerSettings


logger = structlog.get_logger(__name__)

_MISSING = object()


class DonationSource(ABC):
    """
    A donation platform adapter.

    Subclasses set `key` (settings key) and `platform`, and implement
    fetch_pledges().
    """

    key: str
    platform: Platform

    def __init__(self, config: DonationLedgerSettings):
        self.config = config
        self.token = config.token_for(self.key)
        self.block_list = config.private_donor_set
        self.timeout = config.api_timeout
        self.delay_seconds = delay_for_budget(
            getattr(config, f"{self.key}_requests_per_minute")
        )

    @property
    def name(self) -> str:
        return self.platform.value

    @abstractmethod
    def fetch_pledges(self) -> AsyncIterator[Pledge]:
        """Yield one pledge per relevant raw record, in API order."""

    async def fetch(self) -> AsyncIterator[Donation]:
        """
        Fetch, reconcile and yield this platform's donations.

        Single-pass: every call performs a fresh fetch.

        Raises:
            DonationAPIError: A page request failed
            DataShapeError: A raw record is malformed
        """
        pledges: List[Pledge] = []
        async for pledge in self.fetch_pledges():
            pledges.append(pledge)

        donations = reconcile(pledges)

        logger.info(
            "Source fetched",
            source=self.name,
            pledges=len(pledges),
            donations=len(donations),
        )

        for donation in donations:
            yield donation

    def is_private(self, flagged: bool, *identities: Optional[str]) -> bool:
        """Private by platform flag or by block-list match on any identity."""
        return flagged or is_blocked(self.block_list, *identities)

    def auth_headers(self, scheme: str = "Bearer") -> Dict[str, str]:
        return {
            "Authorization": f"{scheme} {self.token}",
            "Accept": "application/json",
            "User-Agent": f"{self.config.service_name}/1.0",
        }

    # Field extraction

    def require(
        self,
        record: Any,
        path: Union[str, Sequence[str]],
        types: Union[Type, Tuple[Type, ...]],
    ) -> Any:
        """
        Extract a required field, raising DataShapeError if absent or mistyped.

        Args:
            record: Raw record (dict)
            path: Key or sequence of nested keys
            types: Accepted type(s) of the value

        Returns:
            The field value
        """
        value = self.optional(record, path, types, default=_MISSING)
        if value is _MISSING or value is None:
            raise DataShapeError(self.platform, record, f"missing required field '{_dotted(path)}'")
        return value

    def optional(
        self,
        record: Any,
        path: Union[str, Sequence[str]],
        types: Union[Type, Tuple[Type, ...]],
        default: Any = None,
    ) -> Any:
        """Extract an optional field; present values must still have the right type."""
        keys = [path] if isinstance(path, str) else list(path)
        value = record

        for key in keys:
            # A null parent object means the field is absent
            if value is None and value is not record:
                return default
            if not isinstance(value, dict):
                raise DataShapeError(
                    self.platform, record, f"expected an object at '{_dotted(path)}'"
                )
            if key not in value:
                return default
            value = value[key]

        if value is None:
            return default

        # bool is an int subclass; reject it where numbers are expected
        if isinstance(value, bool) and bool not in _as_tuple(types):
            raise DataShapeError(
                self.platform, record, f"field '{_dotted(path)}' has unexpected type bool"
            )
        if not isinstance(value, types):
            raise DataShapeError(
                self.platform,
                record,
                f"field '{_dotted(path)}' has unexpected type {type(value).__name__}",
            )

        return value

    def require_list(self, body: Any, path: Union[str, Sequence[str]]) -> List[Any]:
        items = self.require(body, path, list)
        for item in items:
            if not isinstance(item, dict):
                raise DataShapeError(
                    self.platform, item, f"expected objects in '{_dotted(path)}'"
                )
        return items

    def require_decimal(self, record: Any, path: Union[str, Sequence[str]]) -> Decimal:
        """Extract a required numeric field (number or numeric string) as Decimal."""
        value = self.require(record, path, (int, float, str))
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation as e:
            raise DataShapeError(
                self.platform, record, f"field '{_dotted(path)}' is not a number: {value!r}"
            ) from e
        if not result.is_finite():
            raise DataShapeError(
                self.platform, record, f"field '{_dotted(path)}' is not a finite number"
            )
        return result


def _dotted(path: Union[str, Sequence[str]]) -> str:
    return path if isinstance(path, str) else ".".join(path)


def _as_tuple(types: Union[Type, Tuple[Type, ...]]) -> Tuple[Type, ...]:
    return types if isinstance(types, tuple) else (types,)
