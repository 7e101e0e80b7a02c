"""
Daily Streak Tracking

Maintains the consecutive-days-active counter on the user record.

Rules (calendar days, midnight-normalized):
- never active before: streak starts at 1
- already active today: nothing changes
- active yesterday: streak grows by one
- a gap of two or more days: streak restarts at 1

Calling touch() repeatedly on the same day is idempotent; the same-day
branch is what guarantees it, so concurrent callers that both observe a
same-day last activity cannot double-increment.
"""

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional, Union


@dataclass(frozen=True)
class StreakUpdate:
    """Result of touching the streak for a day."""

    current_streak: int
    longest_streak: int
    changed: bool


def _as_date(value: Union[date, datetime]) -> date:
    return value.date() if isinstance(value, datetime) else value


def day_diff(last_active: Union[date, datetime], today: Union[date, datetime]) -> int:
    """Whole calendar days from last_active to today."""
    return (_as_date(today) - _as_date(last_active)).days


def touch(
    last_active_date: Optional[Union[date, datetime]],
    current_streak: int,
    longest_streak: int,
    today: Union[date, datetime],
) -> StreakUpdate:
    """
    Record activity on `today` and return the new streak counters.

    A last-active date later than today (clock skew between writers) is
    treated like same-day activity and changes nothing.
    """
    if last_active_date is None:
        new_streak = 1
    else:
        diff = day_diff(last_active_date, today)
        if diff <= 0:
            return StreakUpdate(current_streak, longest_streak, changed=False)
        new_streak = current_streak + 1 if diff == 1 else 1

    return StreakUpdate(
        current_streak=new_streak,
        longest_streak=max(new_streak, longest_streak),
        changed=True,
    )
