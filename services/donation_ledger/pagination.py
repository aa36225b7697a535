"""
Paginated retrieval against the donation platform APIs.

Handles iterating through paginated API responses, advancing the cursor
(page number or opaque token) and throttling between page requests.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Callable, Dict, Generic, List, Optional, TypeVar

import structlog

from . import client
from .models import DataShapeError


logger = structlog.get_logger(__name__)

CursorT = TypeVar("CursorT")


@dataclass
class PageRequest:
    """Everything needed to request one page."""
    url: str
    headers: Dict[str, str]
    params: Optional[Dict[str, Any]] = None
    json: Optional[Dict[str, Any]] = None
    method: str = "GET"


@dataclass
class Page(Generic[CursorT]):
    """
    Items extracted from one response plus the cursor of the next page.

    A next_cursor of None means the platform signalled the last page.
    """
    items: List[Any] = field(default_factory=list)
    next_cursor: Optional[CursorT] = None


def delay_for_budget(requests_per_minute: int) -> float:
    """
    Fixed delay between page requests that keeps under a request budget.

    Args:
        requests_per_minute: Allowed requests per minute (0 = unthrottled)

    Returns:
        Delay in seconds

    Example:
        >>> delay_for_budget(30)
        2.0
    """
    if requests_per_minute <= 0:
        return 0.0
    return 60.0 / requests_per_minute


def next_page_number(page: int, last_page: int) -> Optional[int]:
    """Next page number, or None once page >= last_page."""
    if page >= last_page:
        return None
    return page + 1


def next_cursor_token(token: Optional[str], has_more: bool = True) -> Optional[str]:
    """Next opaque cursor, or None when the token is absent or no more pages exist."""
    if not has_more or not token:
        return None
    return token


async def paginate(
    request_for: Callable[[Optional[CursorT]], PageRequest],
    extract: Callable[[Any, Optional[CursorT]], Page[CursorT]],
    *,
    initial_cursor: Optional[CursorT] = None,
    delay_seconds: float = 0.0,
    timeout: float = 30.0,
    source: Optional[str] = None,
) -> AsyncIterator[Any]:
    """
    Fetch all items of a paginated endpoint, one page after another.

    Yields items in the order the API returned them across pages. Each call
    starts a fresh pass from initial_cursor.

    Args:
        request_for: Builds the request for a cursor
        extract: Pulls the items and next cursor out of a decoded body;
            receives the cursor the body was fetched with
        initial_cursor: Cursor of the first page
        delay_seconds: Fixed pause between successive page requests
        timeout: Request timeout in seconds
        source: Platform name for log context

    Yields:
        Raw items from the API

    Raises:
        DonationAPIError: A page request failed
        DataShapeError: A response could not be interpreted

    Example:
        >>> async for item in paginate(request_for, extract, initial_cursor=1):
        ...     print(item["payer_email"])
    """
    cursor = initial_cursor
    page_index = 0
    total_items = 0

    while True:
        if page_index > 0 and delay_seconds > 0:
            await asyncio.sleep(delay_seconds)

        request = request_for(cursor)
        body = await client.fetch_page(
            request.url,
            headers=request.headers,
            params=request.params,
            json=request.json,
            method=request.method,
            timeout=timeout,
            source=source,
        )
        page = extract(body, cursor)

        page_index += 1
        total_items += len(page.items)

        logger.debug(
            "Page fetched",
            source=source,
            page=page_index,
            items=len(page.items),
            total_so_far=total_items,
            has_more=page.next_cursor is not None,
        )

        for item in page.items:
            yield item

        if page.next_cursor is None:
            logger.info(
                "Pagination complete",
                source=source,
                pages=page_index,
                items=total_items,
            )
            break

        if page.next_cursor == cursor:
            raise DataShapeError(
                source or request.url,
                {"cursor": cursor},
                "pagination cursor did not advance",
            )

        cursor = page.next_cursor
