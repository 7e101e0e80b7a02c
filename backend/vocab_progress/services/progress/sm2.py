"""
SM-2 Review Scheduler

Maps a 1-5 recall rating and the item's prior scheduling state to the next
interval, ease factor and due date.

Algorithm:
- Recalled (rating >= 3): repetitions += 1; the interval is 1 day after the
  first recall, 6 days after the second, then the previous interval times
  the previous ease factor. The ease factor moves by
  0.1 - (5 - rating) * (0.08 + (5 - rating) * 0.02).
- Forgot (rating < 3): repetitions and interval reset to 0 and 1, the ease
  factor is kept.
- The ease factor never drops below 1.3.

Usage:
    from vocab_progress.services.progress.sm2 import SchedulingState, schedule

    result = schedule(5, SchedulingState(ease_factor=2.5, interval=0, repetitions=0))
    result.interval  # 1
"""

import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from vocab_progress.middleware.error_handling import ValidationError
from vocab_progress.services.records import DEFAULT_EASE_FACTOR, utc_now

MIN_EASE_FACTOR = 1.3
MIN_RATING = 1
MAX_RATING = 5
PASSING_RATING = 3

FIRST_INTERVAL_DAYS = 1
SECOND_INTERVAL_DAYS = 6


@dataclass(frozen=True)
class SchedulingState:
    """The subset of a review state that drives scheduling."""

    ease_factor: float = DEFAULT_EASE_FACTOR
    interval: int = 0
    repetitions: int = 0


@dataclass(frozen=True)
class ScheduleResult:
    """Outcome of scheduling one rating."""

    ease_factor: float
    interval: int
    repetitions: int
    next_review_date: datetime


def validate_rating(rating: int) -> None:
    """Raise ValidationError unless rating is an integer in [1, 5]."""
    if isinstance(rating, bool) or not isinstance(rating, int):
        raise ValidationError(f"Rating must be an integer, got {rating!r}")
    if rating < MIN_RATING or rating > MAX_RATING:
        raise ValidationError(
            f"Rating must be between {MIN_RATING} and {MAX_RATING}",
            details={"rating": rating},
        )


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _ease_delta(rating: int) -> float:
    miss = MAX_RATING - rating
    return 0.1 - miss * (0.08 + miss * 0.02)


def schedule(
    rating: int,
    prior: SchedulingState,
    now: Optional[datetime] = None,
) -> ScheduleResult:
    """
    Schedule the next review of an item.

    Pure and deterministic for a given `now`.

    Args:
        rating: Recall rating, 1 (blackout) to 5 (perfect).
        prior: Ease factor, interval and repetitions before this rating.
        now: Review instant (defaults to current UTC time).

    Returns:
        ScheduleResult with the new ease factor, interval, repetitions and
        next review date (now + interval calendar days).

    Raises:
        ValidationError: If rating is outside [1, 5].
    """
    validate_rating(rating)
    now = now or utc_now()

    ease_factor = prior.ease_factor
    if rating >= PASSING_RATING:
        repetitions = prior.repetitions + 1
        if repetitions == 1:
            interval = FIRST_INTERVAL_DAYS
        elif repetitions == 2:
            interval = SECOND_INTERVAL_DAYS
        else:
            interval = max(1, _round_half_up(prior.interval * prior.ease_factor))
        ease_factor = prior.ease_factor + _ease_delta(rating)
    else:
        repetitions = 0
        interval = FIRST_INTERVAL_DAYS

    ease_factor = max(MIN_EASE_FACTOR, ease_factor)

    return ScheduleResult(
        ease_factor=ease_factor,
        interval=interval,
        repetitions=repetitions,
        next_review_date=now + timedelta(days=interval),
    )
