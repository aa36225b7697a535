"""
HTTP client for the donation platform APIs.

Issues a single page request and turns failures into transport errors.
Requests are never retried: a failed page aborts the source.
"""

import time
from typing import Any, Dict, Optional

import httpx
import structlog

from .log_config import log_api_call
from .models import DataShapeError


logger = structlog.get_logger(__name__)


class DonationAPIError(Exception):
    """Base exception for transport errors against a donation platform."""

    def __init__(self, message: str, url: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class DonationAPIAuthError(DonationAPIError):
    """Authentication error (401/403)."""
    pass


class DonationAPIRateLimitError(DonationAPIError):
    """Rate limit exceeded (429) despite the configured throttle."""
    pass


async def fetch_page(
    url: str,
    *,
    headers: Dict[str, str],
    params: Optional[Dict[str, Any]] = None,
    json: Optional[Dict[str, Any]] = None,
    method: str = "GET",
    timeout: float = 30.0,
    source: Optional[str] = None,
) -> Any:
    """
    Fetch a single page and return its decoded JSON body.

    Args:
        url: Absolute request URL
        headers: Request headers, including authentication
        params: Query parameters
        json: JSON request body (GraphQL queries)
        method: HTTP method
        timeout: Request timeout in seconds
        source: Platform name for log context

    Returns:
        Decoded JSON response

    Raises:
        DonationAPIAuthError: Authentication failed
        DonationAPIRateLimitError: Rate limit exceeded
        DonationAPIError: Any other non-success status or network failure
        DataShapeError: The body is not valid JSON

    Example:
        >>> body = await fetch_page(
        ...     "https://www.patreon.com/api/oauth2/v2/campaigns",
        ...     headers={"Authorization": "Bearer ..."},
        ... )
        >>> body["data"][0]["id"]
        '123456'
    """
    started_at = time.monotonic()

    try:
        async with httpx.AsyncClient(timeout=timeout) as client:
            response = await client.request(
                method,
                url,
                params=params,
                json=json,
                headers=headers,
            )
    except httpx.HTTPError as e:
        logger.error(
            "Request failed",
            method=method,
            url=url,
            source=source,
            error=str(e),
            error_type=type(e).__name__,
        )
        raise DonationAPIError(
            f"Request '{method} {url}' failed: {type(e).__name__}: {e}",
            url=url,
        ) from e

    duration_ms = (time.monotonic() - started_at) * 1000
    log_api_call(
        logger,
        method=method,
        url=url,
        status_code=response.status_code,
        duration_ms=duration_ms,
        source=source,
    )

    if response.status_code in (401, 403):
        raise DonationAPIAuthError(
            f"Request '{method} {url}' failed. Status: {response.status_code}. "
            f"Authentication rejected.",
            url=url,
            status_code=response.status_code,
        )

    if response.status_code == 429:
        retry_after = response.headers.get("Retry-After", "unknown")
        raise DonationAPIRateLimitError(
            f"Request '{method} {url}' failed. Status: 429. "
            f"Rate limit exceeded, retry after {retry_after} seconds.",
            url=url,
            status_code=429,
        )

    if not 200 <= response.status_code < 300:
        raise DonationAPIError(
            f"Request '{method} {url}' failed. Status: {response.status_code}. "
            f"Body: '{response.text[:500]}'.",
            url=url,
            status_code=response.status_code,
        )

    try:
        return response.json()
    except ValueError as e:
        raise DataShapeError(
            source or url,
            response.text[:200],
            f"response from {url} is not valid JSON",
        ) from e
