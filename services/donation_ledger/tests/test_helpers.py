"""
Tests for identity normalization and billing period helpers.
"""

from datetime import datetime, timezone

import pytest

from services.donation_ledger.helpers import (
    billing_periods,
    is_blocked,
    month_index,
    normalize_email,
    normalize_name,
)


class TestNormalizeName:
    """Test display name normalization."""

    def test_case_and_whitespace(self):
        """Test names compare case-insensitively with collapsed spaces."""
        assert normalize_name("  Simon   Cropp ") == "simon cropp"
        assert normalize_name("SIMON CROPP") == normalize_name("simon cropp")

    def test_unicode_composition(self):
        """Test composed and decomposed accents normalize alike."""
        composed = "Jos\u00e9"
        decomposed = "Jose\u0301"
        assert normalize_name(composed) == normalize_name(decomposed)

    @pytest.mark.parametrize("value", [None, "", "   "])
    def test_missing(self, value):
        """Test blank names have no key."""
        assert normalize_name(value) is None


class TestNormalizeEmail:
    """Test email normalization."""

    def test_case_insensitive(self):
        assert normalize_email(" Foo@Example.COM ") == "foo@example.com"

    @pytest.mark.parametrize("value", [None, "", "  "])
    def test_missing(self, value):
        assert normalize_email(value) is None


class TestIsBlocked:
    """Test block-list matching."""

    def test_matches_email_case_insensitively(self):
        assert is_blocked({"jane@example.com"}, "Jane Doe", "JANE@Example.com")

    def test_matches_name(self):
        assert is_blocked({"jane doe"}, "  Jane   Doe ", None)

    def test_no_match(self):
        assert not is_blocked({"jane@example.com"}, "John", "john@example.com")

    def test_empty_values(self):
        assert not is_blocked({"jane"}, None, "")


class TestBillingPeriods:
    """Test month-based billing arithmetic."""

    def test_inclusive_of_start_month(self):
        """Test January to April counts four periods."""
        start = datetime(2021, 1, 1, tzinfo=timezone.utc)
        end = datetime(2021, 4, 1, tzinfo=timezone.utc)
        assert billing_periods(start, end) == 4

    def test_same_month(self):
        """Test a window inside one month is one period."""
        assert billing_periods(datetime(2021, 1, 3), datetime(2021, 1, 28)) == 1

    def test_across_years(self):
        """Test November to February counts four periods."""
        assert billing_periods(datetime(2020, 11, 15), datetime(2021, 2, 1)) == 4

    def test_month_index(self):
        assert month_index(datetime(2021, 4, 1)) - month_index(datetime(2021, 1, 1)) == 3
