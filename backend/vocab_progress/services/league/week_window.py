"""
Weekly Window Resolution

The single source of week boundaries for league assignment, leaderboards
and close-out. Weeks run Monday 00:00:00.000 to Sunday 23:59:59.999 in UTC,
independent of the server locale.

Usage:
    from vocab_progress.services.league.week_window import resolve_week_window

    window = resolve_week_window(now)
    window.start  # Monday 00:00 UTC
    window.end    # Sunday 23:59:59.999 UTC
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from vocab_progress.services.records import utc_now

WEEK = timedelta(days=7)
WEEK_END_OFFSET = WEEK - timedelta(milliseconds=1)


@dataclass(frozen=True)
class WeekWindow:
    """Inclusive [start, end] bounds of one league week."""

    start: datetime
    end: datetime

    def contains(self, instant: datetime) -> bool:
        return self.start <= _to_utc(instant) <= self.end

    def previous(self) -> "WeekWindow":
        return resolve_week_window(self.start - WEEK)

    def next(self) -> "WeekWindow":
        return resolve_week_window(self.start + WEEK)


def _to_utc(instant: datetime) -> datetime:
    """Treat naive datetimes as UTC; convert aware ones to UTC."""
    if instant.tzinfo is None:
        return instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(timezone.utc)


def resolve_week_window(instant: Optional[datetime] = None) -> WeekWindow:
    """
    Return the Monday-first week containing `instant`.

    Args:
        instant: Any point in time (defaults to now). Naive values are UTC.

    Returns:
        WeekWindow whose start is the most recent Monday 00:00:00 and whose
        end is the following Sunday 23:59:59.999.
    """
    instant = _to_utc(instant or utc_now())
    midnight = instant.replace(hour=0, minute=0, second=0, microsecond=0)
    start = midnight - timedelta(days=midnight.weekday())
    return WeekWindow(start=start, end=start + WEEK_END_OFFSET)
