"""
PotTogether Backend: Calendar Helpers
======================================

What:  Day, week and month windows plus per-day bucketing of record times.
How:   Windows are computed in the configured zone and converted to UTC
       bounds, so queries compare against stored UTC timestamps while the
       grouping still follows the user's local calendar.

Conventions:
    - A week runs Monday 00:00 to the next Monday 00:00 (ISO calendar week).
    - A month runs from the 1st 00:00 to the 1st of the next month.
    - Series are SPARSE: only dates with at least one record are emitted.
"""

from collections import defaultdict
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Dict, Iterable, Optional, Tuple

Window = Tuple[datetime, datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """
    Normalizes a timestamp read from the database.

    SQLite hands back naive datetimes; they were written as UTC.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def local_date(value: datetime, zone: tzinfo) -> date:
    return ensure_utc(value).astimezone(zone).date()


def _local_midnight_utc(day: date, zone: tzinfo) -> datetime:
    return datetime.combine(day, time.min, tzinfo=zone).astimezone(timezone.utc)


def day_window(now: datetime, zone: tzinfo) -> Window:
    today = local_date(now, zone)
    return (
        _local_midnight_utc(today, zone),
        _local_midnight_utc(today + timedelta(days=1), zone),
    )


def week_window(now: datetime, zone: tzinfo) -> Window:
    today = local_date(now, zone)
    monday = today - timedelta(days=today.weekday())
    return (
        _local_midnight_utc(monday, zone),
        _local_midnight_utc(monday + timedelta(days=7), zone),
    )


def month_window(now: datetime, zone: tzinfo) -> Window:
    today = local_date(now, zone)
    first = today.replace(day=1)
    if first.month == 12:
        next_first = first.replace(year=first.year + 1, month=1)
    else:
        next_first = first.replace(month=first.month + 1)
    return (
        _local_midnight_utc(first, zone),
        _local_midnight_utc(next_first, zone),
    )


def bucket_by_day(
    rows: Iterable[Tuple[datetime, Optional[int]]],
    zone: tzinfo,
) -> Dict[date, int]:
    """
    Sums intervals per local date.

    Args:
        rows: (timestamp, interval) pairs; a NULL interval counts as 0.
        zone: Zone whose calendar decides which day a timestamp belongs to.

    Returns:
        Mapping containing only the dates that appeared in `rows`.
    """
    totals: Dict[date, int] = defaultdict(int)
    for stamp, interval in rows:
        totals[local_date(stamp, zone)] += interval or 0
    return dict(totals)
