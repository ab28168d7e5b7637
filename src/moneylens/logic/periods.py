"""Calendar helpers for spend windows and cap periods."""

import re
from datetime import datetime, timedelta

from ..exceptions import ValidationError
from ..models import CapPeriod

_WINDOW_PATTERN = re.compile(r"^(\d+)d$")

# Longest lookback accepted for summary windows and day counts, about 100 years
MAX_LOOKBACK_DAYS = 36_500


def start_of_day(now: datetime) -> datetime:
    return now.replace(hour=0, minute=0, second=0, microsecond=0)


def month_start(now: datetime) -> datetime:
    """Midnight on the first day of `now`'s month."""
    return start_of_day(now).replace(day=1)


def period_start(period: CapPeriod, now: datetime) -> datetime:
    """When the current period of a spending cap began.

    Weeks start on Sunday.
    """
    if period is CapPeriod.DAILY:
        return start_of_day(now)
    if period is CapPeriod.WEEKLY:
        days_since_sunday = (now.weekday() + 1) % 7
        return start_of_day(now) - timedelta(days=days_since_sunday)
    if period is CapPeriod.MONTHLY:
        return month_start(now)
    return start_of_day(now).replace(month=1, day=1)


def parse_window(window: str) -> int | None:
    """Turn a summary window such as "30d" into a day count.

    Returns:
        Number of days, or None for "all"

    Raises:
        ValidationError: If the window is not "<N>d" or "all"
    """
    if window == "all":
        return None

    match = _WINDOW_PATTERN.match(window)
    if not match or not 1 <= int(match.group(1)) <= MAX_LOOKBACK_DAYS:
        raise ValidationError(
            f"Invalid window. Use a day count from 1d to {MAX_LOOKBACK_DAYS}d, or 'all'",
            window=window,
        )
    return int(match.group(1))
