"""
Scheduler - SM-2 Algorithm Logic

Pure SM-2 scheduling (no database calls, no wall clock).

Main workflow:
1. Load memory state (caller's responsibility)
2. Update easiness factor for the rating
3. Compute the next interval from the prior repetitions
4. Resolve the next status from the shared transition table
5. Return a new MemoryState due `interval` days after `now`

This module handles ONLY the algorithm logic.
Database I/O is handled by the database module.
"""

from __future__ import annotations
import math
from dataclasses import replace
from datetime import datetime, timedelta

from recall.errors import InvalidInputError
from recall.sm2.constants import (
    DEFAULT_PARAMETERS,
    GRADUATE,
    LADDER_START_STATUSES,
    STATUS_TRANSITIONS,
    LearningStatus,
    Rating,
    SM2Parameters,
)
from recall.sm2.memory_state import MemoryState, as_utc


def parse_rating(value: int) -> Rating:
    """
    Convert a raw integer into a Rating.

    Raises:
        InvalidInputError: value is not one of 0, 1, 2, 3
    """
    if isinstance(value, bool):
        raise InvalidInputError(
            f"Invalid rating: {value!r}",
            {"rating": "rating must be between 0 and 3 (0=again, 1=hard, 2=good, 3=easy)"}
        )
    try:
        return Rating(value)
    except ValueError as exc:
        raise InvalidInputError(
            f"Invalid rating: {value!r}",
            {"rating": "rating must be between 0 and 3 (0=again, 1=hard, 2=good, 3=easy)"}
        ) from exc


def transition(
    state: MemoryState,
    rating: Rating,
    now: datetime,
    params: SM2Parameters = DEFAULT_PARAMETERS
) -> MemoryState:
    """
    Compute the memory state after one review.

    Deterministic: identical inputs always give identical outputs.

    Args:
        state: Current memory state
        rating: Validated learner rating
        now: Reference time of the review
        params: Scheduler configuration

    Returns:
        New MemoryState (the input is not modified)
    """
    rating = parse_rating(rating)

    easiness_factor = update_easiness_factor(state.easiness_factor, rating, params)
    interval = next_interval(state.interval, state.repetitions, easiness_factor, rating, params)
    repetitions = next_repetitions(state.repetitions, rating)
    lapses = state.lapses + 1 if rating == Rating.AGAIN else state.lapses
    status = next_status(state.status, rating, repetitions, params)

    return replace(
        state,
        easiness_factor=easiness_factor,
        interval=interval,
        repetitions=repetitions,
        lapses=lapses,
        status=status,
        next_review_date=as_utc(now) + timedelta(days=interval)
    )


def update_easiness_factor(
    easiness_factor: float,
    rating: Rating,
    params: SM2Parameters = DEFAULT_PARAMETERS
) -> float:
    """Apply the rating's EF change and clamp to the allowed range."""
    new_ef = easiness_factor + params.ef_change[rating]
    return min(params.max_easiness_factor, max(params.min_easiness_factor, new_ef))


def next_interval(
    interval: int,
    repetitions: int,
    easiness_factor: float,
    rating: Rating,
    params: SM2Parameters = DEFAULT_PARAMETERS
) -> int:
    """
    Days until the next review.

    `repetitions` is the count *before* this review and `easiness_factor`
    the value *after* the EF update.
    """
    if rating == Rating.AGAIN:
        return 0

    first, second, multiplier = params.intervals_for(rating)
    if repetitions == 0:
        return first
    if repetitions == 1:
        return second

    if rating == Rating.HARD:
        return _ceil_days(interval * multiplier)
    return _ceil_days(interval * easiness_factor * multiplier)


def next_repetitions(repetitions: int, rating: Rating) -> int:
    """Repetition count after this review."""
    if rating == Rating.AGAIN:
        return 0
    if rating == Rating.HARD and repetitions < 2:
        return 1
    return repetitions + 1


def next_status(
    status: LearningStatus,
    rating: Rating,
    repetitions_after: int,
    params: SM2Parameters = DEFAULT_PARAMETERS
) -> LearningStatus:
    """Resolve the next status from the shared transition table."""
    status = LearningStatus(status)
    phase = LearningStatus.NEW if status in LADDER_START_STATUSES else status

    target = STATUS_TRANSITIONS[phase][rating]
    if target == GRADUATE:
        if repetitions_after >= params.graduation_repetitions:
            return LearningStatus.REVIEW
        return LearningStatus.LEARNING
    return target


def _ceil_days(value: float) -> int:
    # Round off float noise first so 100 * 1.1 stays 110, not 111
    return int(math.ceil(round(value, 9)))
