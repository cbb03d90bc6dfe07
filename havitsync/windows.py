from __future__ import annotations

from datetime import datetime, timedelta

from .models import LOCAL_TZ, DateWindow

WEEK_DAYS = 7
RECENT_DAYS = 30


def now_local() -> datetime:
    return datetime.now(LOCAL_TZ)


def ensure_aware(ts: datetime) -> datetime:
    if ts.tzinfo is None:
        return ts.replace(tzinfo=LOCAL_TZ)
    return ts


def start_of_day(ts: datetime) -> datetime:
    return ensure_aware(ts).replace(hour=0, minute=0, second=0, microsecond=0)


def end_of_day(ts: datetime) -> datetime:
    return ensure_aware(ts).replace(hour=23, minute=59, second=59, microsecond=999999)


def today(now: datetime) -> DateWindow:
    return DateWindow(start=start_of_day(now), end=end_of_day(now))


def last_n_days(now: datetime, n: int) -> DateWindow:
    """Window covering the last n calendar days, today included.

    The start is start-of-day of ``now - (n - 1)`` days, so a 7-day window
    reaches back 6 days and today is its 7th day.
    """
    if n < 1:
        raise ValueError(f"n must be >= 1: {n}")
    now = ensure_aware(now)
    return DateWindow(start=start_of_day(now - timedelta(days=n - 1)), end=now)


def last_7_days(now: datetime) -> DateWindow:
    return last_n_days(now, WEEK_DAYS)


def week_days(now: datetime, n: int = WEEK_DAYS) -> list[datetime]:
    """Day anchors for chart series, oldest first, ending at ``now``."""
    if n < 1:
        raise ValueError(f"n must be >= 1: {n}")
    now = ensure_aware(now)
    return [now - timedelta(days=n - 1 - i) for i in range(n)]


def recent_cutoff(now: datetime, days: int = RECENT_DAYS) -> datetime:
    # Not snapped to start of day
    return ensure_aware(now) - timedelta(days=days)
