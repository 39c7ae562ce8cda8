"""SuperMemo 2 (SM-2) scheduling for vocabulary entries.

Every function here is pure: the current instant is always passed in by the
caller, so identical inputs produce identical outputs.
"""
import math
from datetime import datetime, timedelta
from enum import IntEnum
from typing import Optional

from vocabsync.config import (
    DEFAULT_EASE_FACTOR,
    DEFAULT_EASY_BONUS,
    DEFAULT_INTERVAL_MODIFIER,
    MIN_EASE_FACTOR,
    SchedulingSettings,
)
from vocabsync.exceptions import ValidationError
from vocabsync.models.entities import SchedulingState

SECONDS_PER_DAY = 24 * 60 * 60


class Rating(IntEnum):
    """Common recall ratings on the 0-5 scale."""
    AGAIN = 0  # Complete blackout
    HARD = 1  # Incorrect, but the answer was recognised
    GOOD = 3  # Correct with some hesitation
    EASY = 5  # Perfect recall


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _positive_or_default(value, default: float) -> float:
    """Return ``value`` if it is a positive number, otherwise ``default``."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    if math.isnan(value) or value <= 0:
        return default
    return float(value)


def validate_rating(rating) -> int:
    """Raise ValidationError unless rating is an integer in [0, 5]."""
    if isinstance(rating, bool) or not isinstance(rating, int):
        raise ValidationError(f"Rating must be an integer between 0 and 5, got {rating!r}")
    if rating < 0 or rating > 5:
        raise ValidationError(f"Rating must be between 0 and 5, got {rating}")
    return int(rating)


def create_initial_state(now: datetime) -> SchedulingState:
    """Scheduling state of a newly created entry; due immediately."""
    return SchedulingState(
        interval_days=0,
        repetition_count=0,
        ease_factor=DEFAULT_EASE_FACTOR,
        next_review_at=now,
    )


def next_state(
    current: SchedulingState,
    rating: int,
    now: datetime,
    config: Optional[SchedulingSettings] = None,
) -> SchedulingState:
    """Compute the scheduling state after a review graded ``rating``."""
    rating = validate_rating(rating)

    easy_bonus = _positive_or_default(
        getattr(config, "easy_bonus", None), DEFAULT_EASY_BONUS
    )
    interval_modifier = _positive_or_default(
        getattr(config, "interval_modifier", None), DEFAULT_INTERVAL_MODIFIER
    )

    # EF' = EF + (0.1 - (5 - q) * (0.08 + (5 - q) * 0.02))
    penalty = 5 - rating
    ease_factor = current.ease_factor + (0.1 - penalty * (0.08 + penalty * 0.02))
    ease_factor = max(MIN_EASE_FACTOR, ease_factor)

    if rating < 3:
        # Failed - start over
        interval = 1
        repetition = 0
    else:
        if current.repetition_count == 0:
            interval = 1
        elif current.repetition_count == 1:
            interval = 6
        else:
            interval = _round_half_up(
                current.interval_days * ease_factor * interval_modifier
            )
        repetition = current.repetition_count + 1

        if rating == 5:
            interval = _round_half_up(interval * easy_bonus)

    interval = max(0, interval)

    return SchedulingState(
        interval_days=interval,
        repetition_count=repetition,
        ease_factor=ease_factor,
        next_review_at=now + timedelta(days=interval),
    )


def is_due(state: SchedulingState, now: datetime) -> bool:
    """Whether the entry should be reviewed at ``now``."""
    return now >= state.next_review_at


def days_until_due(state: SchedulingState, now: datetime) -> int:
    """Whole days until the entry becomes due, rounded up; zero if already due."""
    remaining = (state.next_review_at - now).total_seconds()
    return max(0, math.ceil(remaining / SECONDS_PER_DAY))
