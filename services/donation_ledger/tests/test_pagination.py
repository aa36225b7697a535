"""
Tests for pagination functionality.

Tests that the fetcher walks multi-page responses in order, stops on the
platform's last-page signal and throttles between requests.
"""

import pytest
from unittest.mock import AsyncMock, patch

from services.donation_ledger.client import DonationAPIError
from services.donation_ledger.models import DataShapeError
from services.donation_ledger.pagination import (
    Page,
    PageRequest,
    delay_for_budget,
    next_cursor_token,
    next_page_number,
    paginate,
)


def request_for(cursor):
    return PageRequest(
        url="https://api.test/items",
        headers={"Authorization": "Bearer t"},
        params={"cursor": cursor},
    )


def extract(body, cursor):
    return Page(items=body["items"], next_cursor=body.get("next"))


async def collect(iterator):
    return [item async for item in iterator]


@pytest.fixture
def mock_fetch_page():
    with patch("services.donation_ledger.pagination.client.fetch_page", new_callable=AsyncMock) as fetch:
        yield fetch


class TestPaginate:
    """Test multi-page iteration."""

    @pytest.mark.asyncio
    async def test_yields_items_across_pages_in_order(self, mock_fetch_page):
        """Test items from all pages arrive in response order."""
        mock_fetch_page.side_effect = [
            {"items": [1, 2], "next": "b"},
            {"items": [3, 4], "next": "c"},
            {"items": [5]},
        ]

        items = await collect(paginate(request_for, extract))

        assert items == [1, 2, 3, 4, 5]
        assert mock_fetch_page.call_count == 3

    @pytest.mark.asyncio
    async def test_cursor_advances(self, mock_fetch_page):
        """Test each request uses the cursor returned by the previous page."""
        mock_fetch_page.side_effect = [
            {"items": [1], "next": "b"},
            {"items": [2]},
        ]

        await collect(paginate(request_for, extract, initial_cursor="a"))

        cursors = [call.kwargs["params"]["cursor"] for call in mock_fetch_page.call_args_list]
        assert cursors == ["a", "b"]

    @pytest.mark.asyncio
    async def test_empty_single_page(self, mock_fetch_page):
        """Test an empty last page yields nothing."""
        mock_fetch_page.return_value = {"items": []}

        items = await collect(paginate(request_for, extract))

        assert items == []
        assert mock_fetch_page.call_count == 1

    @pytest.mark.asyncio
    async def test_each_call_starts_fresh(self, mock_fetch_page):
        """Test a second pass restarts from the initial cursor."""
        mock_fetch_page.side_effect = [
            {"items": [1]},
            {"items": [1]},
        ]

        first = await collect(paginate(request_for, extract, initial_cursor="a"))
        second = await collect(paginate(request_for, extract, initial_cursor="a"))

        assert first == second == [1]
        assert mock_fetch_page.call_args_list[1].kwargs["params"]["cursor"] == "a"

    @pytest.mark.asyncio
    async def test_error_aborts_iteration(self, mock_fetch_page):
        """Test a failed page propagates after earlier items were yielded."""
        mock_fetch_page.side_effect = [
            {"items": [1], "next": "b"},
            DonationAPIError("HTTP 500", url="https://api.test/items", status_code=500),
        ]

        seen = []
        with pytest.raises(DonationAPIError):
            async for item in paginate(request_for, extract):
                seen.append(item)

        assert seen == [1]

    @pytest.mark.asyncio
    async def test_stuck_cursor_is_data_shape_error(self, mock_fetch_page):
        """Test a cursor that does not advance stops the loop."""
        mock_fetch_page.return_value = {"items": [1], "next": "a"}

        with pytest.raises(DataShapeError):
            await collect(paginate(request_for, extract, initial_cursor="a"))


class TestThrottle:
    """Test the fixed delay between page requests."""

    @pytest.mark.asyncio
    async def test_sleeps_between_pages_only(self, mock_fetch_page):
        """Test the delay is applied between pages, never before the first."""
        mock_fetch_page.side_effect = [
            {"items": [1], "next": "b"},
            {"items": [2], "next": "c"},
            {"items": [3]},
        ]

        with patch("services.donation_ledger.pagination.asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            await collect(paginate(request_for, extract, delay_seconds=2.0))

        assert mock_sleep.await_count == 2
        mock_sleep.assert_awaited_with(2.0)

    @pytest.mark.asyncio
    async def test_no_sleep_when_unthrottled(self, mock_fetch_page):
        """Test a zero delay never sleeps."""
        mock_fetch_page.side_effect = [
            {"items": [1], "next": "b"},
            {"items": [2]},
        ]

        with patch("services.donation_ledger.pagination.asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            await collect(paginate(request_for, extract))

        mock_sleep.assert_not_awaited()

    def test_delay_for_budget(self):
        """Test the delay keeps under the request budget."""
        assert delay_for_budget(30) == 2.0
        assert delay_for_budget(60) == 1.0
        assert delay_for_budget(0) == 0.0


class TestTermination:
    """Test last-page detection helpers."""

    def test_page_number(self):
        """Test page numbers stop at last_page."""
        assert next_page_number(1, 3) == 2
        assert next_page_number(3, 3) is None
        assert next_page_number(4, 3) is None

    def test_cursor_token(self):
        """Test opaque cursors stop when absent or flagged done."""
        assert next_cursor_token("abc") == "abc"
        assert next_cursor_token(None) is None
        assert next_cursor_token("") is None
        assert next_cursor_token("abc", has_more=False) is None
