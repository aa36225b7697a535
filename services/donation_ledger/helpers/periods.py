"""
Month-based billing period arithmetic for recurring sponsorships.
"""

from datetime import datetime


def month_index(moment: datetime) -> int:
    """Months elapsed since year 0 (year * 12 + zero-based month)."""
    return moment.year * 12 + (moment.month - 1)


def billing_periods(start: datetime, end: datetime) -> int:
    """
    Count monthly billing periods in [start, end), including the starting one.

    Computed as 1 + month_index(end) - month_index(start); an end before the
    start month still counts the starting period.

    Examples:
        >>> billing_periods(datetime(2021, 1, 1), datetime(2021, 4, 1))
        4
        >>> billing_periods(datetime(2021, 1, 15), datetime(2021, 1, 20))
        1
    """
    return max(1, 1 + month_index(end) - month_index(start))
