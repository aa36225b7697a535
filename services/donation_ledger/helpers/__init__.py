"""
Helper utilities for contributor identity and billing periods.

This module provides normalization of the identity fields used to merge
pledges, block-list matching, and month-based billing arithmetic.
"""

from .identity import is_blocked, normalize_email, normalize_name
from .periods import billing_periods, month_index

__all__ = [
    "is_blocked",
    "normalize_email",
    "normalize_name",
    "billing_periods",
    "month_index",
]
